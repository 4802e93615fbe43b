"""Content stores that supply the raw items of a sync."""

from ._base import BaseContentStore, ContentCollection
from .static import StaticContentStore

__all__ = [
    "BaseContentStore",
    "ContentCollection",
    "StaticContentStore",
]
