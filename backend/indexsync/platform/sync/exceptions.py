"""Sync-specific exceptions for error handling.

Every error carries the collection it belongs to (when there is one) so a failure
can be traced back to the misconfigured or failing collection.
"""

from typing import Optional, Sequence


class IndexSyncError(Exception):
    """Base class for all index sync errors."""

    def __init__(
        self,
        message: str,
        collection_number: Optional[int] = None,
        content_type_name: Optional[str] = None,
    ):
        """Initialize the error with optional collection context."""
        super().__init__(message)
        self.message = message
        self.collection_number = collection_number
        self.content_type_name = content_type_name

    def __str__(self) -> str:
        if self.collection_number is None:
            return self.message
        label = f"collection #{self.collection_number}"
        if self.content_type_name:
            label = f"{label} ({self.content_type_name})"
        return f"{label}: {self.message}"


class ConfigurationError(IndexSyncError):
    """Raised when options or collection output are invalid.

    Fatal: the run is aborted before any remote call is made for the collection.

    Examples:
    - Missing site url
    - Missing content type name
    - Empty match fields
    - Transformed records without an object id
    """


class RemoteFetchError(IndexSyncError):
    """Raised when the remote index snapshot cannot be paginated."""


class RemoteWriteError(IndexSyncError):
    """Raised when an upsert, delete, copy or task acknowledgement fails."""


class RemotePromotionError(IndexSyncError):
    """Raised when a shadow index cannot be moved over the live index."""


class SyncFailureError(IndexSyncError):
    """Raised when the run as a whole failed.

    Collected after every collection settled, so ``errors`` lists all failures
    rather than the first one.
    """

    def __init__(self, message: str, errors: Sequence[BaseException] = ()):
        """Initialize with the underlying errors."""
        super().__init__(message)
        self.errors = list(errors)

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        details = "; ".join(str(error) for error in self.errors)
        return f"{self.message}: {details}"
