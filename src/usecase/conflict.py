from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import List, Mapping, Optional

from state.errors import RemoteOperationFailedError, ResourceNotFoundError
from state.models import Entry, Operation
from strategy.base import ApplyStrategy

from common.maputil import sorted_items


_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Conflict:
    name: str
    reason: str


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


def modified_after(remote: Optional[datetime], base: Optional[datetime]) -> bool:
    """True when the remote item changed after the staged change's base time."""
    if remote is None or base is None:
        return False
    return _aware(remote) > _aware(base)


def check_conflicts(strategy: ApplyStrategy, entries: Mapping[str, Entry]) -> List[Conflict]:
    """
    Compare staged entries against the remote side.

    - create: the item now exists remotely
    - update: the item no longer exists remotely
    - update / delete: the item was modified after `base_modified_at`

    A delete of an item that is already gone is not a conflict. Fetch errors
    other than "not found" are not treated as conflicts; apply reports them.
    """
    out: List[Conflict] = []
    for name, entry in sorted_items(entries):
        try:
            last_modified = strategy.fetch_last_modified(name)
            exists = True
        except ResourceNotFoundError:
            last_modified, exists = None, False
        except RemoteOperationFailedError as ex:
            _LOGGER.warning("conflict check for %s skipped: %s", name, ex)
            continue

        op = entry.operation
        if op is Operation.CREATE and exists:
            out.append(Conflict(name, "already exists remotely"))
        elif op is Operation.UPDATE and not exists:
            out.append(Conflict(name, "no longer exists remotely"))
        elif op in (Operation.UPDATE, Operation.DELETE) and modified_after(last_modified, entry.base_modified_at):
            out.append(Conflict(name, "modified remotely after it was staged"))
    return out


__all__ = ["Conflict", "modified_after", "check_conflicts"]
