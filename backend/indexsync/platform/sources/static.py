"""In-memory content store for hosts that already hold their items."""

from typing import Any, Dict, Iterable, Mapping

from indexsync.platform.sources._base import BaseContentStore, ContentCollection


class StaticContentStore(BaseContentStore):
    """Content store backed by a mapping of content type name to items."""

    def __init__(self, collections: Mapping[str, Iterable[Any]] | None = None):
        self._collections: Dict[str, list] = {
            name: list(items) for name, items in (collections or {}).items()
        }

    def add(self, content_type_name: str, items: Iterable[Any]) -> None:
        """Register (or replace) the items of a content type."""
        self._collections[content_type_name] = list(items)

    def get_collection(self, content_type_name: str) -> ContentCollection:
        try:
            items = self._collections[content_type_name]
        except KeyError:
            raise KeyError(f"Unknown content type '{content_type_name}'") from None
        return ContentCollection(data=list(items))
