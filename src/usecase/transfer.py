"""
Drain (file -> resident) and persist (resident -> file).

Both are scoped to one service or to everything. Collisions are items with
the same `(service, name)` in the same map on both sides whose content
differs. Decryption failures and unforced collisions stop the transfer
before anything is written.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from common.cancel import raise_if_cancelled
from state.errors import DrainConflictError
from state.file_store import FileStore
from state.models import Service, State, services_of
from state.store import Store


_LOGGER = logging.getLogger(__name__)


@dataclass
class TransferOutput:
    entry_count: int = 0
    tag_count: int = 0
    merged: bool = False

    @property
    def total(self) -> int:
        return self.entry_count + self.tag_count


@dataclass
class FileStatusOutput:
    exists: bool
    encrypted: bool
    path: str


def find_collisions(resident: State, incoming: State, service: Optional[Service] = None) -> List[str]:
    """Names (as `service:name`) staged on both sides with different content."""
    out: List[str] = []
    for s in services_of(service):
        for name, entry in incoming.entries[s].items():
            cur = resident.entries[s].get(name)
            if cur is not None and not cur.same_change(entry):
                out.append(f"{s.value}:{name}")
        for name, tag in incoming.tags[s].items():
            cur_tag = resident.tags[s].get(name)
            if cur_tag is not None and not cur_tag.same_change(tag):
                out.append(f"{s.value}:{name} (tags)")
    return sorted(set(out))


def file_status(file_store: FileStore) -> FileStatusOutput:
    return FileStatusOutput(exists=file_store.exists(), encrypted=file_store.is_encrypted(), path=str(file_store.path))


class DrainUseCase:
    """Load the staging file into the resident store."""

    def __init__(self, file_store: FileStore, resident: Store) -> None:
        self._file = file_store
        self._resident = resident

    def execute(
        self,
        service: Optional[Service] = None,
        *,
        keep: bool = False,
        force: bool = False,
        merge: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> TransferOutput:
        """
        Args:
        - keep: leave the drained content in the file.
        - force: resolve collisions instead of failing with `DrainConflictError`.
        - merge: on collision keep the resident copy; otherwise the file copy wins.

        Collision detection and the combine happen in one resident-store update.
        """
        svc = Service.parse(service) if service is not None else None
        incoming = self._file.drain(svc, keep=True)
        if incoming.is_empty():
            return TransferOutput()

        def combine(state: State) -> TransferOutput:
            collisions = find_collisions(state, incoming, svc)
            if collisions and not force:
                raise DrainConflictError(collisions)
            result = TransferOutput(merged=bool(collisions))
            for s in services_of(svc):
                for name, entry in incoming.entries[s].items():
                    if merge and name in state.entries[s]:
                        continue
                    state.entries[s][name] = entry
                    result.entry_count += 1
                for name, tag in incoming.tags[s].items():
                    if merge and name in state.tags[s]:
                        continue
                    state.tags[s][name] = tag
                    result.tag_count += 1
            raise_if_cancelled(cancel, "drain")
            return result

        out = self._resident.update(combine)
        if not keep:
            self._file.drain(svc, keep=False)
        _LOGGER.info(
            "drained %d entries and %d tags from %s (merged=%s)",
            out.entry_count,
            out.tag_count,
            self._file.path,
            out.merged,
        )
        return out


def _overlay(target: State, source: State, service: Optional[Service]) -> None:
    for s in services_of(service):
        target.entries[s].update(source.entries[s])
        target.tags[s].update(source.tags[s])


def _unstage_persisted(state: State, persisted: State, service: Optional[Service]) -> None:
    """Remove items that still hold exactly the persisted change."""
    for s in services_of(service):
        for name, entry in persisted.entries[s].items():
            cur = state.entries[s].get(name)
            if cur is not None and cur.same_change(entry):
                del state.entries[s][name]
        for name, tag in persisted.tags[s].items():
            cur_tag = state.tags[s].get(name)
            if cur_tag is not None and cur_tag.same_change(tag):
                del state.tags[s][name]


class PersistUseCase:
    """Write the resident store's staged changes to the staging file."""

    def __init__(self, resident: Store, file_store: FileStore) -> None:
        self._resident = resident
        self._file = file_store

    def execute(
        self,
        service: Optional[Service] = None,
        *,
        keep: bool = False,
        merge: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> TransferOutput:
        """
        Args:
        - keep: leave the persisted items staged in the resident store.
        - merge: keep the file's existing items, with resident items
          replacing any of the same name. Otherwise the file is overwritten
          (only the persisted service's part of it, when scoped).

        Scoped and merging persists read (and decrypt) the existing file
        first. Items staged again after the snapshot was taken stay in the
        resident store.
        """
        svc = Service.parse(service) if service is not None else None
        scoped = self._resident.drain(svc, keep=True)
        if scoped.is_empty():
            return TransferOutput()

        if svc is None and not merge:
            target = scoped
        else:
            target = self._file.drain(None, keep=True)
            if svc is not None and not merge:
                target = target.remove_service(svc)
            _overlay(target, scoped, svc)

        raise_if_cancelled(cancel, "persist")
        self._file.write_state(target)
        if not keep:
            self._resident.update(lambda state: _unstage_persisted(state, scoped, svc))
        out = TransferOutput(entry_count=scoped.entry_count(), tag_count=scoped.tag_count())
        _LOGGER.info(
            "persisted %d entries and %d tags to %s (merge=%s)",
            out.entry_count,
            out.tag_count,
            self._file.path,
            merge,
        )
        return out


__all__ = [
    "TransferOutput",
    "FileStatusOutput",
    "find_collisions",
    "file_status",
    "DrainUseCase",
    "PersistUseCase",
]
