from __future__ import annotations

import threading
from typing import Optional

from state.errors import OperationCancelledError


def is_cancelled(cancel: Optional[threading.Event]) -> bool:
    return cancel is not None and cancel.is_set()


def raise_if_cancelled(cancel: Optional[threading.Event], what: str = "operation") -> None:
    """Raise `OperationCancelledError` when the caller has abandoned `cancel`.

    Use cases call this before each store mutation or remote call; nothing is
    written once cancellation has been observed.
    """
    if is_cancelled(cancel):
        raise OperationCancelledError(what)


__all__ = ["is_cancelled", "raise_if_cancelled"]
