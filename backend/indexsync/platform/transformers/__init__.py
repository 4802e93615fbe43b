"""Record transformers."""

from .default import (
    OBJECT_ID,
    ItemFormatter,
    ItemRecord,
    default_transformer,
    transform_items,
)

__all__ = [
    "ItemFormatter",
    "ItemRecord",
    "OBJECT_ID",
    "default_transformer",
    "transform_items",
]
