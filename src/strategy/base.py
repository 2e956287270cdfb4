from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Tuple

from botocore.exceptions import ClientError

from state.errors import InvalidNameError
from state.models import DeleteOptions, Entry, Service, TagEntry


@dataclass(frozen=True)
class FetchResult:
    """Current remote value plus the metadata shown in a diff."""

    value: str
    identifier: str
    last_modified: Optional[datetime] = None
    arn: Optional[str] = None


@dataclass(frozen=True)
class EditFetchResult:
    value: str
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class ApplyResult:
    """Outcome of pushing one entry."""

    operation: str
    version: Optional[str] = None


@dataclass(frozen=True)
class NameSpec:
    """An item name with an optional version selector."""

    name: str
    version: Optional[str] = None
    label: Optional[str] = None

    @property
    def has_version(self) -> bool:
        return self.version is not None or self.label is not None


class Parser(Protocol):
    service: Service
    service_name: str
    item_name: str
    has_delete_options: bool

    def parse_name(self, raw: str) -> str: ...

    def parse_spec(self, raw: str) -> NameSpec: ...


class EditStrategy(Parser, Protocol):
    def fetch_current_value(self, name: str) -> EditFetchResult: ...


class DeleteStrategy(Parser, Protocol):
    def validate_delete_options(self, options: Optional[DeleteOptions]) -> Optional[DeleteOptions]: ...

    def fetch_last_modified(self, name: str) -> Optional[datetime]: ...


class ApplyStrategy(Parser, Protocol):
    def apply(self, name: str, entry: Entry) -> ApplyResult: ...

    def apply_tags(self, name: str, tag: TagEntry) -> None: ...

    def fetch_last_modified(self, name: str) -> Optional[datetime]: ...


class DiffStrategy(Parser, Protocol):
    def fetch_current(self, name: str) -> FetchResult: ...


class ResetStrategy(Parser, Protocol):
    def fetch_version(self, spec: NameSpec) -> Tuple[str, str]: ...


class FullStrategy(EditStrategy, DeleteStrategy, ApplyStrategy, DiffStrategy, ResetStrategy, Protocol):
    """Everything a concrete per-service strategy provides."""


def error_code(e: BaseException) -> Optional[str]:
    """AWS error code of a `ClientError`; None for transport-level failures."""
    if not isinstance(e, ClientError):
        return None
    return e.response.get("Error", {}).get("Code")


_WS = re.compile(r"\s")


def check_plain_name(raw: str, *, item_name: str, pattern: "re.Pattern[str]", max_len: int) -> str:
    """Validate a bare item name against a service naming rule."""
    if not isinstance(raw, str) or not raw:
        raise InvalidNameError(f"{item_name} name is required")
    if _WS.search(raw):
        raise InvalidNameError(f"{item_name} name must not contain whitespace: {raw!r}")
    if len(raw) > max_len:
        raise InvalidNameError(f"{item_name} name is longer than {max_len} characters")
    if not pattern.match(raw):
        raise InvalidNameError(f"invalid {item_name} name: {raw!r}")
    return raw


def split_spec(raw: str, *, item_name: str) -> NameSpec:
    """Split `name#version` or `name:label` into a `NameSpec`."""
    if not isinstance(raw, str) or not raw:
        raise InvalidNameError(f"{item_name} name is required")
    if "#" in raw:
        name, version = raw.split("#", 1)
        if not version:
            raise InvalidNameError(f"empty version in {raw!r}")
        return NameSpec(name=name, version=version)
    if ":" in raw:
        name, label = raw.rsplit(":", 1)
        if not label:
            raise InvalidNameError(f"empty label in {raw!r}")
        return NameSpec(name=name, label=label)
    return NameSpec(name=raw)


__all__ = [
    "FetchResult",
    "EditFetchResult",
    "ApplyResult",
    "NameSpec",
    "Parser",
    "EditStrategy",
    "DeleteStrategy",
    "ApplyStrategy",
    "DiffStrategy",
    "ResetStrategy",
    "FullStrategy",
    "error_code",
    "check_plain_name",
    "split_spec",
]
