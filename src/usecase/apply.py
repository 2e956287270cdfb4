from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, assert_never

from common.cancel import is_cancelled
from state.errors import NotStagedError, StagingError
from state.models import Entry, Operation, Service
from state.store import Store
from strategy.base import ApplyStrategy

from .conflict import Conflict, check_conflicts
from .lookup import staged_entry, staged_tag


_LOGGER = logging.getLogger(__name__)


class ApplyResultStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    FAILED = "failed"


def _status_for(op: Operation) -> ApplyResultStatus:
    if op is Operation.CREATE:
        return ApplyResultStatus.CREATED
    if op is Operation.UPDATE:
        return ApplyResultStatus.UPDATED
    if op is Operation.DELETE:
        return ApplyResultStatus.DELETED
    assert_never(op)


@dataclass
class ApplyEntryResult:
    name: str
    status: ApplyResultStatus
    error: Optional[str] = None


@dataclass
class ApplyTagResult:
    name: str
    add: Dict[str, str]
    remove: List[str]
    error: Optional[str] = None


@dataclass
class ApplyOutput:
    service: Service
    entry_results: List[ApplyEntryResult] = field(default_factory=list)
    tag_results: List[ApplyTagResult] = field(default_factory=list)
    conflicts: List[Conflict] = field(default_factory=list)
    entry_succeeded: int = 0
    entry_failed: int = 0
    tag_succeeded: int = 0
    tag_failed: int = 0
    cancelled: bool = False


class ApplyUseCase:
    """
    Push staged changes to the remote side.

    Entries are applied before tag changes, each in name order. Unless
    `ignore_conflicts` is set, items whose remote state diverged from the
    staged assumption are left out of the pass and listed in `conflicts`.
    A failing item is recorded and the pass continues; successes are
    unstaged, failures stay staged. When `cancel` is set the pass stops
    after the item in flight.
    """

    def __init__(self, strategy: ApplyStrategy, store: Store) -> None:
        self._strategy = strategy
        self._store = store

    def execute(
        self,
        name: Optional[str] = None,
        *,
        ignore_conflicts: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> ApplyOutput:
        svc = self._strategy.service
        out = ApplyOutput(service=svc)

        if name is None:
            entries: Dict[str, Entry] = dict(self._store.list_entries(svc))
            tags = dict(self._store.list_tags(svc))
        else:
            name = self._strategy.parse_name(name)
            entry = staged_entry(self._store, svc, name)
            tag = staged_tag(self._store, svc, name)
            if entry is None and tag is None:
                raise NotStagedError(svc.value, name)
            entries = {name: entry} if entry is not None else {}
            tags = {name: tag} if tag is not None else {}

        if not ignore_conflicts:
            out.conflicts = check_conflicts(self._strategy, entries)
            for c in out.conflicts:
                entries.pop(c.name, None)
                tags.pop(c.name, None)
                _LOGGER.warning("skipping %s %s: %s", svc.value, c.name, c.reason)

        for item_name in sorted(entries):
            if is_cancelled(cancel):
                out.cancelled = True
                return out
            out.entry_results.append(self._apply_entry(item_name, entries[item_name], out))

        for item_name in sorted(tags):
            if is_cancelled(cancel):
                out.cancelled = True
                return out
            tag = tags[item_name]
            result = ApplyTagResult(name=item_name, add=dict(sorted(tag.add.items())), remove=sorted(tag.remove))
            try:
                self._strategy.apply_tags(item_name, tag)
            except StagingError as ex:
                result.error = str(ex)
                out.tag_failed += 1
                _LOGGER.error("tag change for %s %s failed: %s", svc.value, item_name, ex)
            else:
                self._store.unstage_tag(svc, item_name)
                out.tag_succeeded += 1
            out.tag_results.append(result)
        return out

    def _apply_entry(self, name: str, entry: Entry, out: ApplyOutput) -> ApplyEntryResult:
        svc = self._strategy.service
        try:
            self._strategy.apply(name, entry)
        except StagingError as ex:
            out.entry_failed += 1
            _LOGGER.error("%s of %s %s failed: %s", entry.operation.value, svc.value, name, ex)
            return ApplyEntryResult(name=name, status=ApplyResultStatus.FAILED, error=str(ex))
        self._store.unstage_entry(svc, name)
        out.entry_succeeded += 1
        _LOGGER.info("applied %s of %s %s", entry.operation.value, svc.value, name)
        return ApplyEntryResult(name=name, status=_status_for(entry.operation))


__all__ = ["ApplyResultStatus", "ApplyEntryResult", "ApplyTagResult", "ApplyOutput", "ApplyUseCase"]
