from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from common.maputil import ordered

from .errors import NotStagedError
from .models import Entry, Service, State, TagEntry


_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class Store(ABC):
    """
    Staging store capability set.

    Backends implement `_load` (return a private copy of the current state)
    and `_commit` (replace the stored state). Every mutation here is a
    read-copy-modify-commit under the store lock, so an exception raised
    half-way through leaves the store exactly as it was.

    Contracts
    - `get_entry` / `get_tag` raise `NotStagedError` for absent items.
    - `unstage_entry` / `unstage_tag` on absent items are no-ops.
    - `stage_entry` / `stage_tag` overwrite; staging an empty tag entry unstages it.
    - `list_entries` / `list_tags` are ordered by item name.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    @abstractmethod
    def _load(self) -> State:
        ...

    @abstractmethod
    def _commit(self, state: State) -> None:
        ...

    @contextmanager
    def _mutate(self) -> Iterator[State]:
        with self._lock:
            state = self._load()
            yield state
            self._commit(state)

    def _snapshot(self) -> State:
        with self._lock:
            return self._load()

    # -------- Entries --------
    def stage_entry(self, service: Service, name: str, entry: Entry) -> None:
        svc = Service.parse(service)
        _require_name(name)
        with self._mutate() as state:
            state.entries[svc][name] = entry.model_copy(deep=True)
        _LOGGER.debug("staged %s %s for %s", entry.operation.value, svc.value, name)

    def get_entry(self, service: Service, name: str) -> Entry:
        svc = Service.parse(service)
        entry = self._snapshot().entries[svc].get(name)
        if entry is None:
            raise NotStagedError(svc.value, name)
        return entry

    def unstage_entry(self, service: Service, name: str) -> None:
        svc = Service.parse(service)
        with self._mutate() as state:
            state.entries[svc].pop(name, None)

    def list_entries(self, service: Service) -> "OrderedDict[str, Entry]":
        svc = Service.parse(service)
        return ordered(self._snapshot().entries[svc])

    # -------- Tags --------
    def stage_tag(self, service: Service, name: str, tag: TagEntry) -> None:
        svc = Service.parse(service)
        _require_name(name)
        with self._mutate() as state:
            if tag.is_empty():
                state.tags[svc].pop(name, None)
            else:
                state.tags[svc][name] = tag.model_copy(deep=True)

    def get_tag(self, service: Service, name: str) -> TagEntry:
        svc = Service.parse(service)
        tag = self._snapshot().tags[svc].get(name)
        if tag is None:
            raise NotStagedError(svc.value, name, "no tag changes")
        return tag

    def unstage_tag(self, service: Service, name: str) -> None:
        svc = Service.parse(service)
        with self._mutate() as state:
            state.tags[svc].pop(name, None)

    def list_tags(self, service: Service) -> "OrderedDict[str, TagEntry]":
        svc = Service.parse(service)
        return ordered(self._snapshot().tags[svc])

    # -------- Bulk --------
    def unstage_all(self, service: Service) -> bool:
        """Clear one service; True when anything was staged."""
        svc = Service.parse(service)
        with self._mutate() as state:
            had = not state.is_empty(svc)
            state.entries[svc] = {}
            state.tags[svc] = {}
        if had:
            _LOGGER.info("cleared staged %s changes", svc.value)
        return had

    def drain(self, service: Optional[Service] = None, *, keep: bool = True) -> State:
        """Return the staged state (one service or all).

        With `keep=False` the returned portion is removed from the store in
        the same locked step.
        """
        svc = Service.parse(service) if service is not None else None
        with self._lock:
            state = self._load()
            out = state.extract_service(svc)
            if not keep:
                self._commit(state.remove_service(svc))
        return out

    def update(self, fn: Callable[[State], T]) -> T:
        """Run `fn` on a private copy of the state and commit it, all under the lock.

        If `fn` raises, nothing is committed.
        """
        with self._mutate() as state:
            result = fn(state)
        return result

    def write_state(self, state: State) -> None:
        """Replace the whole stored state."""
        with self._lock:
            self._commit(state.clone())

    def is_empty(self, service: Optional[Service] = None) -> bool:
        return self._snapshot().is_empty(Service.parse(service) if service is not None else None)


def _require_name(name: str) -> None:
    if not isinstance(name, str) or not name:
        raise ValueError("item name is required")


__all__ = ["Store"]
