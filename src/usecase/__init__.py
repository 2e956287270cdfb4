"""
Staging use cases.

Each use case takes its strategy and store by injection and returns plain
dataclass outputs; none of them holds global state.
"""

from .apply import ApplyUseCase
from .diff import DiffUseCase
from .entry import AddUseCase, DeleteUseCase, EditUseCase
from .reset import ResetUseCase, UnstageUseCase
from .status import StatusUseCase
from .tag import CancelTagUseCase, TagUseCase
from .transfer import DrainUseCase, PersistUseCase

__all__ = [
    "AddUseCase",
    "ApplyUseCase",
    "CancelTagUseCase",
    "DeleteUseCase",
    "DiffUseCase",
    "DrainUseCase",
    "EditUseCase",
    "PersistUseCase",
    "ResetUseCase",
    "StatusUseCase",
    "TagUseCase",
    "UnstageUseCase",
]
