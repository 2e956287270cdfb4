"""
Staging state model and stores.

This package defines the staged-change schema (`Entry`, `TagEntry`, `State`),
the error taxonomy, and the two store backends: the in-memory resident store
and the (optionally encrypted) file store.
"""

from .errors import NotStagedError, StagingError
from .models import Entry, Operation, Scope, Service, State, TagEntry

__all__ = [
    "Entry",
    "Operation",
    "Scope",
    "Service",
    "State",
    "TagEntry",
    "StagingError",
    "NotStagedError",
]
