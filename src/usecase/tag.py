from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from common.cancel import raise_if_cancelled
from state.models import Operation, Service, TagEntry
from state.store import Store
from strategy.base import EditStrategy

from .lookup import fetch_remote, staged_entry, staged_tag
from .transition import add_tags, cancel_add_tag, cancel_remove_tag, check_taggable, remove_tags


@dataclass
class TagOutput:
    """Tag change staged for an item after the request."""

    name: str
    add: Dict[str, str] = field(default_factory=dict)
    remove: List[str] = field(default_factory=list)
    unstaged: bool = False

    @classmethod
    def of(cls, name: str, tag: TagEntry) -> "TagOutput":
        if tag.is_empty():
            return cls(name=name, unstaged=True)
        return cls(name=name, add=dict(sorted(tag.add.items())), remove=sorted(tag.remove))


class TagUseCase:
    """Stage tag additions and removals."""

    def __init__(self, strategy: EditStrategy, store: Store) -> None:
        self._strategy = strategy
        self._store = store

    def _prepare(self, name: str):
        svc = self._strategy.service
        name = self._strategy.parse_name(name)
        staged = staged_entry(self._store, svc, name)
        current = staged_tag(self._store, svc, name)
        last_modified = None
        remote_exists = False
        if staged is None or staged.operation is not Operation.CREATE:
            remote = fetch_remote(self._strategy, name)
            remote_exists = remote is not None
            last_modified = remote.last_modified if remote is not None else None
        check_taggable(svc, name, staged, remote_exists=remote_exists)
        return svc, name, current, last_modified

    def tag(self, name: str, tags: Dict[str, str], *, cancel: Optional[threading.Event] = None) -> TagOutput:
        svc, name, current, last_modified = self._prepare(name)
        updated = add_tags(current, tags, base_modified_at=last_modified)
        raise_if_cancelled(cancel, "tag")
        self._store.stage_tag(svc, name, updated)
        return TagOutput.of(name, updated)

    def untag(self, name: str, keys: Iterable[str], *, cancel: Optional[threading.Event] = None) -> TagOutput:
        svc, name, current, last_modified = self._prepare(name)
        updated = remove_tags(current, keys, base_modified_at=last_modified)
        raise_if_cancelled(cancel, "untag")
        self._store.stage_tag(svc, name, updated)
        return TagOutput.of(name, updated)


class CancelTagUseCase:
    """
    Withdraw a single staged tag key.

    Raises `NotStagedError` when the item has no tag changes or the key is
    not staged in the requested direction. Once both `add` and `remove` are
    empty the tag entry is unstaged.
    """

    def __init__(self, store: Store, service: Service) -> None:
        self._store = store
        self._service = Service.parse(service)

    def cancel_add(self, name: str, key: str, *, cancel: Optional[threading.Event] = None) -> TagOutput:
        current = self._store.get_tag(self._service, name)
        updated = cancel_add_tag(self._service, name, current, key)
        return self._save(name, updated, cancel)

    def cancel_remove(self, name: str, key: str, *, cancel: Optional[threading.Event] = None) -> TagOutput:
        current = self._store.get_tag(self._service, name)
        updated = cancel_remove_tag(self._service, name, current, key)
        return self._save(name, updated, cancel)

    def _save(self, name: str, updated: TagEntry, cancel: Optional[threading.Event]) -> TagOutput:
        raise_if_cancelled(cancel, "cancel tag")
        if updated.is_empty():
            self._store.unstage_tag(self._service, name)
        else:
            self._store.stage_tag(self._service, name, updated)
        return TagOutput.of(name, updated)


__all__ = ["TagOutput", "TagUseCase", "CancelTagUseCase"]
