"""Transform raw content items into index records."""

from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional

from indexsync.platform.sync.exceptions import ConfigurationError

# Identity field of every index record
OBJECT_ID = "objectID"

ItemRecord = Dict[str, Any]
ItemFormatter = Callable[[Any], ItemRecord]

DEFAULT_FIELDS = ("title", "slug", "modified")


def _get(item: Any, field: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(field)
    return getattr(item, field, None)


def default_transformer(item: Any) -> ItemRecord:
    """Keep ``title``, ``slug`` and ``modified`` and expose ``id`` as the object id.

    Items may be mappings or objects with attributes.
    """
    record: ItemRecord = {OBJECT_ID: _get(item, "id")}
    for field in DEFAULT_FIELDS:
        record[field] = _get(item, field)
    return record


def transform_items(
    items: Iterable[Any],
    formatter: Optional[ItemFormatter] = None,
    collection_number: Optional[int] = None,
    content_type_name: Optional[str] = None,
) -> List[ItemRecord]:
    """Apply ``formatter`` to every item.

    A formatter is assumed to be uniform across a collection, so the object id is
    checked once on the first record.

    Raises:
        ConfigurationError: If the first record has no object id
    """
    formatter = formatter or default_transformer
    records = [formatter(item) for item in items]

    if records and not _has_object_id(records[0]):
        raise ConfigurationError(
            f"Query results do not have '{OBJECT_ID}' key",
            collection_number=collection_number,
            content_type_name=content_type_name,
        )
    return records


def _has_object_id(record: Any) -> bool:
    if not isinstance(record, Mapping):
        return False
    object_id = record.get(OBJECT_ID)
    return object_id is not None and str(object_id) != ""
