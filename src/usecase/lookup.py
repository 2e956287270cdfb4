from __future__ import annotations

from typing import Optional

from state.errors import NotStagedError, ResourceNotFoundError
from state.models import Entry, Service, TagEntry
from state.store import Store
from strategy.base import EditFetchResult, EditStrategy


def staged_entry(store: Store, service: Service, name: str) -> Optional[Entry]:
    try:
        return store.get_entry(service, name)
    except NotStagedError:
        return None


def staged_tag(store: Store, service: Service, name: str) -> Optional[TagEntry]:
    try:
        return store.get_tag(service, name)
    except NotStagedError:
        return None


def fetch_remote(strategy: EditStrategy, name: str) -> Optional[EditFetchResult]:
    """Current remote value, or None when the item does not exist."""
    try:
        return strategy.fetch_current_value(name)
    except ResourceNotFoundError:
        return None


__all__ = ["staged_entry", "staged_tag", "fetch_remote"]
