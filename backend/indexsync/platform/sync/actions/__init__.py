"""Actions module for the diff engine.

Types (types.py):
    BaseAction, InsertAction, UpdateAction, KeepAction, ActionBatch

Resolver (resolver.py):
    DiffEngine, diff_engine
"""

from .resolver import DiffEngine, diff_engine
from .types import (
    ActionBatch,
    BaseAction,
    InsertAction,
    KeepAction,
    UpdateAction,
)

__all__ = [
    "ActionBatch",
    "BaseAction",
    "DiffEngine",
    "InsertAction",
    "KeepAction",
    "UpdateAction",
    "diff_engine",
]
