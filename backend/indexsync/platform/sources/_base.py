"""Base content store classes.

The content store is owned by the host pipeline. The sync only needs to ask it for
the raw items of one content type.
"""

from abc import ABC, abstractmethod
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field


class ContentCollection(BaseModel):
    """Raw items of one content type, in pipeline order."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: List[Any] = Field(default_factory=list, description="Raw items as produced")


class BaseContentStore(ABC):
    """Interface of the pipeline's content store."""

    @abstractmethod
    def get_collection(self, content_type_name: str) -> ContentCollection:
        """Return the items of ``content_type_name``.

        Raises:
            KeyError: If the content type is unknown to the store
        """
        pass
