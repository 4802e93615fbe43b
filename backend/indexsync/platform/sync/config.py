"""Sync options for controlling a run.

Options are validated once at run start; invalid collections are reported as
``ConfigurationError`` naming the collection number.
"""

from typing import Any, Dict, List, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)

from indexsync.core.config import settings
from indexsync.platform.sync.exceptions import ConfigurationError
from indexsync.platform.transformers.default import ItemFormatter


class CollectionSpec(BaseModel):
    """One logical collection to sync into a physical index."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, populate_by_name=True)

    index_name: str = Field(..., min_length=1, alias="indexName", description="Physical index")
    content_type_name: str = Field(
        ..., min_length=1, alias="contentTypeName", description="Content type in the store"
    )
    item_formatter: Optional[ItemFormatter] = Field(
        None, alias="itemFormatter", description="Raw item -> record, defaults to id/title/slug"
    )
    match_fields: List[str] = Field(
        default_factory=lambda: ["modified"],
        alias="matchFields",
        description="Fields compared to decide whether a record changed",
    )
    chunk_size: Optional[int] = Field(
        None, gt=0, alias="chunkSize", description="Overrides the run chunk size"
    )

    @field_validator("match_fields")
    @classmethod
    def validate_match_fields(cls, value: List[str]) -> List[str]:
        """Require a non-empty list of non-empty field names."""
        if not value:
            raise ValueError("matchFields required array of strings")
        if any(not isinstance(field, str) or not field for field in value):
            raise ValueError("matchFields must only contain non-empty strings")
        return value


class SyncOptions(BaseModel):
    """Declarative options of one sync run."""

    model_config = ConfigDict(populate_by_name=True)

    app_id: Optional[str] = Field(None, alias="appId", description="Index service app id")
    api_key: Optional[SecretStr] = Field(None, alias="apiKey", description="Index service key")
    chunk_size: int = Field(
        default_factory=lambda: settings.DEFAULT_CHUNK_SIZE,
        gt=0,
        alias="chunkSize",
        description="Records per upsert operation",
    )
    enable_partial_updates: bool = Field(
        False,
        alias="enablePartialUpdates",
        description="Diff against remote content instead of rebuilding through a shadow index",
    )
    collections: List[CollectionSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_collections(self):
        """Reject runs with nothing to sync."""
        if not self.collections:
            raise ValueError("at least one collection is required")
        return self

    def chunk_size_for(self, collection: CollectionSpec) -> int:
        """Chunk size of ``collection``, falling back to the run default."""
        return collection.chunk_size or self.chunk_size

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SyncOptions":
        """Build options, reporting invalid collections by number.

        Raises:
            ConfigurationError: If the options or any collection are invalid
        """
        collections = []
        for number, raw_collection in enumerate(raw.get("collections") or []):
            collections.append(_parse_collection(number, raw_collection))

        values: Dict[str, Any] = {k: v for k, v in raw.items() if k != "collections"}
        try:
            return cls(**values, collections=collections)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid sync options: {_describe(e)}") from e


def _parse_collection(number: int, raw: Any) -> CollectionSpec:
    if isinstance(raw, CollectionSpec):
        return raw
    if not isinstance(raw, Mapping):
        raise ConfigurationError("collection must be a mapping", collection_number=number)
    content_type_name = raw.get("contentTypeName") or raw.get("content_type_name")
    if not content_type_name:
        raise ConfigurationError("contentTypeName required", collection_number=number)
    try:
        return CollectionSpec.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(
            _describe(e), collection_number=number, content_type_name=content_type_name
        ) from e


def _describe(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        message = detail["msg"].removeprefix("Value error, ")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)
