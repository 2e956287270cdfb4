from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from common.cancel import raise_if_cancelled
from state.models import Entry, Service
from state.store import Store
from strategy.base import EditStrategy, ResetStrategy

from .lookup import fetch_remote, staged_entry, staged_tag


_LOGGER = logging.getLogger(__name__)


@dataclass
class UnstageOutput:
    name: str
    had_entry: bool
    had_tags: bool


class UnstageUseCase:
    """Remove the staged entry and tag entry of one item; absent is fine."""

    def __init__(self, store: Store) -> None:
        self._store = store

    def execute(self, service: Service, name: str, *, cancel: Optional[threading.Event] = None) -> UnstageOutput:
        svc = Service.parse(service)
        had_entry = staged_entry(self._store, svc, name) is not None
        had_tags = staged_tag(self._store, svc, name) is not None
        raise_if_cancelled(cancel, "unstage")
        self._store.unstage_entry(svc, name)
        self._store.unstage_tag(svc, name)
        return UnstageOutput(name=name, had_entry=had_entry, had_tags=had_tags)


class ResetResultType(str, Enum):
    UNSTAGED = "unstaged"
    UNSTAGED_ALL = "unstagedAll"
    RESTORED = "restored"
    NOT_STAGED = "notStaged"
    NOTHING_STAGED = "nothingStaged"


@dataclass
class ResetOutput:
    type: ResetResultType
    service: Service
    name: Optional[str] = None
    version_label: Optional[str] = None
    count: int = 0


class _ResetCapable(ResetStrategy, EditStrategy, Protocol):
    pass


class ResetUseCase:
    """
    Discard staged changes.

    - `execute()` clears the whole service (`unstagedAll` / `nothingStaged`).
    - `execute("name")` unstages one item (`unstaged` / `notStaged`).
    - `execute("name#3")` (or `name:label`) stages an update restoring that
      version's value (`restored`).
    """

    def __init__(self, strategy: _ResetCapable, store: Store) -> None:
        self._strategy = strategy
        self._store = store

    def execute(self, spec: Optional[str] = None, *, cancel: Optional[threading.Event] = None) -> ResetOutput:
        svc = self._strategy.service
        if spec is None:
            snapshot = self._store.drain(svc)
            count = snapshot.entry_count() + snapshot.tag_count()
            raise_if_cancelled(cancel, "reset")
            if self._store.unstage_all(svc):
                return ResetOutput(type=ResetResultType.UNSTAGED_ALL, service=svc, count=count)
            return ResetOutput(type=ResetResultType.NOTHING_STAGED, service=svc)

        parsed = self._strategy.parse_spec(spec)
        if parsed.has_version:
            return self._restore(parsed, cancel)

        name = parsed.name
        staged = staged_entry(self._store, svc, name) is not None or staged_tag(self._store, svc, name) is not None
        if not staged:
            return ResetOutput(type=ResetResultType.NOT_STAGED, service=svc, name=name)
        raise_if_cancelled(cancel, "reset")
        self._store.unstage_entry(svc, name)
        self._store.unstage_tag(svc, name)
        return ResetOutput(type=ResetResultType.UNSTAGED, service=svc, name=name, count=1)

    def _restore(self, parsed, cancel: Optional[threading.Event]) -> ResetOutput:
        svc = self._strategy.service
        value, label = self._strategy.fetch_version(parsed)
        current = fetch_remote(self._strategy, parsed.name)
        base = current.last_modified if current is not None else None
        raise_if_cancelled(cancel, "restore")
        self._store.stage_entry(svc, parsed.name, Entry.update(value, base_modified_at=base))
        _LOGGER.info("staged restore of %s %s to %s", svc.value, parsed.name, label)
        return ResetOutput(
            type=ResetResultType.RESTORED,
            service=svc,
            name=parsed.name,
            version_label=label,
            count=1,
        )


__all__ = [
    "UnstageOutput",
    "UnstageUseCase",
    "ResetResultType",
    "ResetOutput",
    "ResetUseCase",
]
