from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, UTC
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field, field_serializer, model_validator

from common.maputil import sorted_set

from .errors import InvalidServiceError


STATE_VERSION = 1

MIN_RECOVERY_WINDOW_DAYS = 7
MAX_RECOVERY_WINDOW_DAYS = 30


def utcnow() -> datetime:
    return datetime.now(UTC)


class Service(str, Enum):
    """Disjoint namespaces of staged items."""

    PARAM = "param"
    SECRET = "secret"

    @classmethod
    def parse(cls, tag: object) -> "Service":
        """Convert a front-end string tag into a `Service`.

        Accepts the canonical tags (`param`, `secret`) plus the long forms
        `parameter` and `secretsmanager`. Anything else raises
        `InvalidServiceError`.
        """
        if isinstance(tag, Service):
            return tag
        if not isinstance(tag, str):
            raise InvalidServiceError(tag)
        key = tag.strip().lower()
        key = _SERVICE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as ex:
            raise InvalidServiceError(tag) from ex

    @property
    def label(self) -> str:
        return "Parameter" if self is Service.PARAM else "Secret"


_SERVICE_ALIASES = {"parameter": "param", "ssm": "param", "secretsmanager": "secret"}

ALL_SERVICES: List[Service] = [Service.PARAM, Service.SECRET]


def services_of(service: Optional[Service]) -> List[Service]:
    """The services a (possibly unscoped) operation covers."""
    return list(ALL_SERVICES) if service is None else [service]


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class DeleteOptions(BaseModel):
    """Secret deletion parameters (ignored for parameters)."""

    force: bool = Field(default=False, description="Delete immediately without a recovery window")
    recovery_window: int = Field(
        default=MAX_RECOVERY_WINDOW_DAYS,
        description="Days Secrets Manager keeps the secret recoverable (7-30)",
    )


class Entry(BaseModel):
    """
    One pending value change for an item.

    Fields
    - operation: create / update / delete.
    - value: new value; present iff operation is not delete.
    - description: optional description applied together with the value.
    - staged_at: when the change was (last) staged.
    - base_modified_at: remote last-modified time observed while staging; used
      to detect that the remote item changed underneath the staged change.
    - delete_options: secret delete parameters (delete only).
    """

    operation: Operation
    value: Optional[str] = None
    description: Optional[str] = None
    staged_at: datetime = Field(default_factory=utcnow)
    base_modified_at: Optional[datetime] = None
    delete_options: Optional[DeleteOptions] = None

    @model_validator(mode="after")
    def check_value_matches_operation(self) -> "Entry":
        if self.operation is Operation.DELETE:
            if self.value is not None:
                raise ValueError("delete entries carry no value")
        elif self.value is None:
            raise ValueError(f"{self.operation.value} entries require a value")
        if self.delete_options is not None and self.operation is not Operation.DELETE:
            raise ValueError("delete_options only apply to delete entries")
        return self

    @classmethod
    def create(cls, value: str, *, description: Optional[str] = None) -> "Entry":
        return cls(operation=Operation.CREATE, value=value, description=description)

    @classmethod
    def update(
        cls,
        value: str,
        *,
        description: Optional[str] = None,
        base_modified_at: Optional[datetime] = None,
    ) -> "Entry":
        return cls(
            operation=Operation.UPDATE,
            value=value,
            description=description,
            base_modified_at=base_modified_at,
        )

    @classmethod
    def delete(
        cls,
        *,
        base_modified_at: Optional[datetime] = None,
        options: Optional[DeleteOptions] = None,
    ) -> "Entry":
        return cls(operation=Operation.DELETE, base_modified_at=base_modified_at, delete_options=options)

    def same_change(self, other: "Entry") -> bool:
        """Equal ignoring `staged_at`."""
        return self.model_dump(exclude={"staged_at"}) == other.model_dump(exclude={"staged_at"})


class TagEntry(BaseModel):
    """
    One pending tag change for an item.

    `add` maps keys to new values, `remove` holds keys to delete. A key never
    appears in both. An empty tag entry is never stored.
    """

    add: Dict[str, str] = Field(default_factory=dict)
    remove: Set[str] = Field(default_factory=set)
    staged_at: datetime = Field(default_factory=utcnow)
    base_modified_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_disjoint(self) -> "TagEntry":
        both = set(self.add) & self.remove
        if both:
            raise ValueError(f"tag keys both added and removed: {sorted(both)}")
        return self

    @field_serializer("remove")
    def serialize_remove(self, remove: Set[str]) -> List[str]:
        return sorted_set(remove)

    def is_empty(self) -> bool:
        return not self.add and not self.remove

    def same_change(self, other: "TagEntry") -> bool:
        return self.add == other.add and self.remove == other.remove and self.base_modified_at == other.base_modified_at


def _empty_entries() -> Dict[Service, Dict[str, Entry]]:
    return {s: {} for s in ALL_SERVICES}


def _empty_tags() -> Dict[Service, Dict[str, TagEntry]]:
    return {s: {} for s in ALL_SERVICES}


class State(BaseModel):
    """
    The full staging record for one identity scope.

    Fields
    - version: serialization format version.
    - entries: service -> item name -> pending value change.
    - tags: service -> item name -> pending tag change.

    Both services are always present in both maps. Serialized as JSON (sorted
    keys, ISO-8601 timestamps) by the file store.
    """

    version: int = Field(default=STATE_VERSION)
    entries: Dict[Service, Dict[str, Entry]] = Field(default_factory=_empty_entries)
    tags: Dict[Service, Dict[str, TagEntry]] = Field(default_factory=_empty_tags)

    @model_validator(mode="after")
    def normalize_services(self) -> "State":
        for s in ALL_SERVICES:
            self.entries.setdefault(s, {})
            self.tags.setdefault(s, {})
            empty = [name for name, tag in self.tags[s].items() if tag.is_empty()]
            for name in empty:
                del self.tags[s][name]
        return self

    @classmethod
    def empty(cls) -> "State":
        """Convenience constructor for a fresh, empty state."""
        return cls()

    def clone(self) -> "State":
        return self.model_copy(deep=True)

    def is_empty(self, service: Optional[Service] = None) -> bool:
        return self.entry_count(service) == 0 and self.tag_count(service) == 0

    def entry_count(self, service: Optional[Service] = None) -> int:
        return sum(len(self.entries[s]) for s in services_of(service))

    def tag_count(self, service: Optional[Service] = None) -> int:
        return sum(len(self.tags[s]) for s in services_of(service))

    def extract_service(self, service: Optional[Service]) -> "State":
        """Copy holding only `service` (everything when None)."""
        out = State.empty()
        for s in services_of(service):
            out.entries[s] = {k: v.model_copy(deep=True) for k, v in self.entries[s].items()}
            out.tags[s] = {k: v.model_copy(deep=True) for k, v in self.tags[s].items()}
        return out

    def remove_service(self, service: Optional[Service]) -> "State":
        """Copy with `service` cleared (empty when None)."""
        out = self.clone()
        for s in services_of(service):
            out.entries[s] = {}
            out.tags[s] = {}
        return out


_SCOPE_PART = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass(frozen=True)
class Scope:
    """Remote-account identity a store is bound to."""

    account_id: str
    region: str

    def __post_init__(self) -> None:
        for label, part in (("account_id", self.account_id), ("region", self.region)):
            if not part or not _SCOPE_PART.match(part) or part in (".", ".."):
                raise ValueError(f"invalid scope {label}: {part!r}")

    def key(self) -> str:
        return f"{self.account_id}/{self.region}"


__all__ = [
    "STATE_VERSION",
    "MIN_RECOVERY_WINDOW_DAYS",
    "MAX_RECOVERY_WINDOW_DAYS",
    "utcnow",
    "Service",
    "ALL_SERVICES",
    "services_of",
    "Operation",
    "DeleteOptions",
    "Entry",
    "TagEntry",
    "State",
    "Scope",
]
