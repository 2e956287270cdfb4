from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from common.cancel import raise_if_cancelled
from state.errors import ResourceNotFoundError, StagingError
from state.models import Entry, Operation, Service, TagEntry
from state.store import Store
from strategy.base import DiffStrategy, FetchResult

from .conflict import modified_after
from .lookup import staged_entry, staged_tag


_LOGGER = logging.getLogger(__name__)


class DiffEntryType(str, Enum):
    NORMAL = "normal"
    CREATE = "create"
    AUTO_UNSTAGED = "autoUnstaged"
    WARNING = "warning"


@dataclass
class DiffEntry:
    name: str
    type: DiffEntryType
    operation: Optional[Operation] = None
    remote_value: Optional[str] = None
    remote_identifier: Optional[str] = None
    staged_value: Optional[str] = None
    description: Optional[str] = None
    warning: Optional[str] = None


@dataclass
class DiffTagEntry:
    name: str
    add: Dict[str, str]
    remove: List[str]


@dataclass
class DiffOutput:
    service: Service
    entries: List[DiffEntry] = field(default_factory=list)
    tag_entries: List[DiffTagEntry] = field(default_factory=list)


def classify(name: str, entry: Entry, remote: Optional[FetchResult], error: Optional[StagingError] = None) -> DiffEntry:
    """Classify one staged entry against the fetched remote item.

    `remote` is None when the item does not exist (or the fetch failed with
    `error`).
    """
    op = entry.operation
    base = DiffEntry(name=name, type=DiffEntryType.NORMAL, operation=op, staged_value=entry.value, description=entry.description)

    if error is not None:
        base.type = DiffEntryType.WARNING
        base.warning = f"failed to fetch remote value: {error}"
        return base

    if remote is None:
        if op is Operation.CREATE:
            base.type = DiffEntryType.CREATE
        elif op is Operation.UPDATE:
            base.type = DiffEntryType.AUTO_UNSTAGED
            base.warning = "item no longer exists remotely"
        else:
            base.type = DiffEntryType.AUTO_UNSTAGED
            base.warning = "already deleted remotely"
        return base

    base.remote_value = remote.value
    base.remote_identifier = remote.identifier
    if op is Operation.CREATE:
        base.type = DiffEntryType.AUTO_UNSTAGED
        base.warning = "item already exists remotely"
    elif op is Operation.UPDATE and entry.value == remote.value and entry.description is None:
        base.type = DiffEntryType.WARNING
        base.warning = "staged value is identical to remote"
    elif modified_after(remote.last_modified, entry.base_modified_at):
        base.type = DiffEntryType.WARNING
        base.warning = f"modified remotely ({remote.identifier}) after it was staged"
    return base


class DiffUseCase:
    """
    Compare staged changes with the remote side.

    Entries classified `autoUnstaged` are removed from the store as part of
    the diff; `warning` entries stay staged for the operator to resolve.
    """

    def __init__(self, strategy: DiffStrategy, store: Store) -> None:
        self._strategy = strategy
        self._store = store

    def execute(self, name: Optional[str] = None, *, cancel: Optional[threading.Event] = None) -> DiffOutput:
        svc = self._strategy.service
        out = DiffOutput(service=svc)
        if name is None:
            entries = self._store.list_entries(svc)
            tags = self._store.list_tags(svc)
        else:
            name = self._strategy.parse_name(name)
            entry = staged_entry(self._store, svc, name)
            tag = staged_tag(self._store, svc, name)
            if entry is None and tag is None:
                out.entries.append(DiffEntry(name=name, type=DiffEntryType.WARNING, warning="not staged"))
                return out
            entries = {name: entry} if entry is not None else {}
            tags = {name: tag} if tag is not None else {}

        for item_name, entry in entries.items():
            raise_if_cancelled(cancel, "diff")
            out.entries.append(self._diff_entry(item_name, entry))
        out.tag_entries = [_diff_tag(n, t) for n, t in tags.items()]
        return out

    def _diff_entry(self, name: str, entry: Entry) -> DiffEntry:
        remote: Optional[FetchResult] = None
        error: Optional[StagingError] = None
        try:
            remote = self._strategy.fetch_current(name)
        except ResourceNotFoundError:
            remote = None
        except StagingError as ex:
            error = ex
        result = classify(name, entry, remote, error)
        if result.type is DiffEntryType.AUTO_UNSTAGED:
            self._store.unstage_entry(self._strategy.service, name)
            _LOGGER.info("auto-unstaged %s %s: %s", self._strategy.service.value, name, result.warning)
        return result


def _diff_tag(name: str, tag: TagEntry) -> DiffTagEntry:
    return DiffTagEntry(name=name, add=dict(sorted(tag.add.items())), remove=sorted(tag.remove))


__all__ = ["DiffEntryType", "DiffEntry", "DiffTagEntry", "DiffOutput", "classify", "DiffUseCase"]
