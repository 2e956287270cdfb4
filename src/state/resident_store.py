from __future__ import annotations

import logging
import threading
from typing import Dict, Optional

from .models import Scope, State
from .store import Store


_LOGGER = logging.getLogger(__name__)


class ResidentStore(Store):
    """
    In-memory staging store ("agent") for one identity scope.

    Lives as long as the owning process or session and never persists by
    itself; drain/persist move its content to and from the file store.
    """

    def __init__(self, scope: Optional[Scope] = None) -> None:
        super().__init__()
        self.scope = scope
        self._state = State.empty()

    def _load(self) -> State:
        return self._state.clone()

    def _commit(self, state: State) -> None:
        self._state = state


_STORES: Dict[Scope, ResidentStore] = {}
_STORES_LOCK = threading.Lock()


def get_resident_store(scope: Scope) -> ResidentStore:
    """Return the resident store for `scope`, creating it on first use."""
    with _STORES_LOCK:
        store = _STORES.get(scope)
        if store is None:
            store = ResidentStore(scope)
            _STORES[scope] = store
            _LOGGER.debug("created resident store for %s", scope.key())
        return store


def reset_resident_stores() -> None:
    """Drop every cached resident store (end of session, tests)."""
    with _STORES_LOCK:
        _STORES.clear()


__all__ = ["ResidentStore", "get_resident_store", "reset_resident_stores"]
