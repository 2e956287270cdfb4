"""
Staging transition rules.

Pure functions deciding what a staging request does given what is already
staged for the item and what the remote side looks like. Use cases fetch
the inputs, call one of these, and carry out the returned decision.

    staged    | add       | edit              | delete            | tag/untag
    ----------+-----------+-------------------+-------------------+----------
    none      | create *  | update / skip     | delete *          | ok *
    create    | create    | create            | unstage (+ tags)  | ok
    update    | error     | update / unstage  | delete            | ok *
    delete    | error     | error             | delete            | error

    * requires the remote item to be absent (add) or present (the rest)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Optional

from state.errors import InvalidArgumentError, NotStagedError, ResourceNotFoundError, TransitionError
from state.models import DeleteOptions, Entry, Operation, Service, TagEntry

from strategy.base import EditFetchResult


MAX_TAG_KEY_LEN = 128
MAX_TAG_VALUE_LEN = 256


class EntryAction(str, Enum):
    STAGE = "staged"
    SKIP = "skipped"
    UNSTAGE = "unstaged"


@dataclass(frozen=True)
class EntryDecision:
    action: EntryAction
    entry: Optional[Entry] = None
    drop_tags: bool = False
    reason: Optional[str] = None


def decide_add(
    service: Service,
    name: str,
    staged: Optional[Entry],
    *,
    remote_exists: bool,
    value: str,
    description: Optional[str] = None,
) -> EntryDecision:
    if staged is None:
        if remote_exists:
            raise TransitionError(f"{service.value} {name!r} already exists; use edit instead")
        return EntryDecision(EntryAction.STAGE, Entry.create(value, description=description))
    if staged.operation is Operation.CREATE:
        desc = description if description is not None else staged.description
        return EntryDecision(EntryAction.STAGE, Entry.create(value, description=desc))
    raise TransitionError(f"{service.value} {name!r} is already staged for {staged.operation.value}")


def decide_edit(
    service: Service,
    name: str,
    staged: Optional[Entry],
    *,
    remote: Optional[EditFetchResult],
    value: str,
    description: Optional[str] = None,
) -> EntryDecision:
    """Decide an edit; `remote` may be None only when a create is staged."""
    if staged is not None and staged.operation is Operation.DELETE:
        raise TransitionError(f"{service.value} {name!r} is staged for deletion; unstage it first")
    if staged is not None and staged.operation is Operation.CREATE:
        desc = description if description is not None else staged.description
        return EntryDecision(EntryAction.STAGE, Entry.create(value, description=desc))
    if remote is None:
        raise ResourceNotFoundError(service.value, name)

    if value == remote.value and description is None:
        if staged is not None:
            return EntryDecision(EntryAction.UNSTAGE, reason="value matches remote; unstaged")
        return EntryDecision(EntryAction.SKIP, reason="value matches remote; nothing staged")

    base = staged.base_modified_at if staged is not None else remote.last_modified
    return EntryDecision(
        EntryAction.STAGE,
        Entry.update(value, description=description, base_modified_at=base),
    )


def decide_delete(
    service: Service,
    name: str,
    staged: Optional[Entry],
    *,
    remote_exists: bool,
    last_modified: Optional[datetime] = None,
    options: Optional[DeleteOptions] = None,
) -> EntryDecision:
    if staged is not None and staged.operation is Operation.CREATE:
        return EntryDecision(
            EntryAction.UNSTAGE,
            drop_tags=True,
            reason="staged create discarded",
        )
    if not remote_exists:
        raise ResourceNotFoundError(service.value, name)
    base = staged.base_modified_at if staged is not None and staged.base_modified_at else last_modified
    return EntryDecision(
        EntryAction.STAGE,
        Entry.delete(base_modified_at=base, options=options),
        drop_tags=True,
    )


def check_taggable(service: Service, name: str, staged: Optional[Entry], *, remote_exists: bool) -> None:
    if staged is not None and staged.operation is Operation.DELETE:
        raise TransitionError(f"{service.value} {name!r} is staged for deletion; cannot change tags")
    if staged is not None and staged.operation is Operation.CREATE:
        return
    if not remote_exists:
        raise ResourceNotFoundError(service.value, name)


def _check_tag_key(key: str) -> None:
    if not isinstance(key, str) or not key.strip():
        raise InvalidArgumentError("tag key is required")
    if len(key) > MAX_TAG_KEY_LEN:
        raise InvalidArgumentError(f"tag key longer than {MAX_TAG_KEY_LEN} characters: {key!r}")


def add_tags(current: Optional[TagEntry], tags: Dict[str, str], *, base_modified_at: Optional[datetime] = None) -> TagEntry:
    if not tags:
        raise InvalidArgumentError("at least one tag is required")
    add = dict(current.add) if current else {}
    remove = set(current.remove) if current else set()
    for key, value in tags.items():
        _check_tag_key(key)
        if len(value) > MAX_TAG_VALUE_LEN:
            raise InvalidArgumentError(f"tag value for {key!r} longer than {MAX_TAG_VALUE_LEN} characters")
        add[key] = value
        remove.discard(key)
    base = current.base_modified_at if current and current.base_modified_at else base_modified_at
    return TagEntry(add=add, remove=remove, base_modified_at=base)


def remove_tags(current: Optional[TagEntry], keys: Iterable[str], *, base_modified_at: Optional[datetime] = None) -> TagEntry:
    keys = list(keys)
    if not keys:
        raise InvalidArgumentError("at least one tag key is required")
    add = dict(current.add) if current else {}
    remove = set(current.remove) if current else set()
    for key in keys:
        _check_tag_key(key)
        remove.add(key)
        add.pop(key, None)
    base = current.base_modified_at if current and current.base_modified_at else base_modified_at
    return TagEntry(add=add, remove=remove, base_modified_at=base)


def cancel_add_tag(service: Service, name: str, current: TagEntry, key: str) -> TagEntry:
    if key not in current.add:
        raise NotStagedError(service.value, name, f"tag {key!r} is not staged for addition")
    add = {k: v for k, v in current.add.items() if k != key}
    return TagEntry(add=add, remove=set(current.remove), base_modified_at=current.base_modified_at)


def cancel_remove_tag(service: Service, name: str, current: TagEntry, key: str) -> TagEntry:
    if key not in current.remove:
        raise NotStagedError(service.value, name, f"tag {key!r} is not staged for removal")
    remove = set(current.remove) - {key}
    return TagEntry(add=dict(current.add), remove=remove, base_modified_at=current.base_modified_at)


__all__ = [
    "EntryAction",
    "EntryDecision",
    "decide_add",
    "decide_edit",
    "decide_delete",
    "check_taggable",
    "add_tags",
    "remove_tags",
    "cancel_add_tag",
    "cancel_remove_tag",
]
