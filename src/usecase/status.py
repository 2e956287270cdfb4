from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from state.errors import NotStagedError
from state.models import Entry, Service, TagEntry
from state.store import Store

from .lookup import staged_entry, staged_tag


@dataclass
class StatusEntry:
    name: str
    operation: str
    value: Optional[str]
    description: Optional[str]
    staged_at: datetime
    force_delete: bool = False
    recovery_window: Optional[int] = None

    @classmethod
    def of(cls, name: str, entry: Entry) -> "StatusEntry":
        opts = entry.delete_options
        return cls(
            name=name,
            operation=entry.operation.value,
            value=entry.value,
            description=entry.description,
            staged_at=entry.staged_at,
            force_delete=bool(opts and opts.force),
            recovery_window=opts.recovery_window if opts and not opts.force else None,
        )


@dataclass
class StatusTagEntry:
    name: str
    add: Dict[str, str]
    remove: List[str]
    staged_at: datetime

    @classmethod
    def of(cls, name: str, tag: TagEntry) -> "StatusTagEntry":
        return cls(name=name, add=dict(sorted(tag.add.items())), remove=sorted(tag.remove), staged_at=tag.staged_at)


@dataclass
class StatusOutput:
    service: Service
    entries: List[StatusEntry] = field(default_factory=list)
    tag_entries: List[StatusTagEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.entries and not self.tag_entries


@dataclass
class CheckOutput:
    name: str
    has_entry: bool
    has_tags: bool


class StatusUseCase:
    """List what is staged for a service, or for one item."""

    def __init__(self, store: Store) -> None:
        self._store = store

    def execute(self, service: Service, name: Optional[str] = None) -> StatusOutput:
        svc = Service.parse(service)
        out = StatusOutput(service=svc)
        if name is None:
            out.entries = [StatusEntry.of(n, e) for n, e in self._store.list_entries(svc).items()]
            out.tag_entries = [StatusTagEntry.of(n, t) for n, t in self._store.list_tags(svc).items()]
            return out

        entry = staged_entry(self._store, svc, name)
        tag = staged_tag(self._store, svc, name)
        if entry is None and tag is None:
            raise NotStagedError(svc.value, name)
        if entry is not None:
            out.entries.append(StatusEntry.of(name, entry))
        if tag is not None:
            out.tag_entries.append(StatusTagEntry.of(name, tag))
        return out

    def check(self, service: Service, name: str) -> CheckOutput:
        svc = Service.parse(service)
        return CheckOutput(
            name=name,
            has_entry=staged_entry(self._store, svc, name) is not None,
            has_tags=staged_tag(self._store, svc, name) is not None,
        )


__all__ = ["StatusEntry", "StatusTagEntry", "StatusOutput", "CheckOutput", "StatusUseCase"]
