"""Base index client classes."""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from indexsync.core.logging import ContextualLogger
from indexsync.core.logging import logger as default_logger

# Aspects copied from a live index when staging a full rebuild
CONFIGURATION_SCOPE = ("settings", "synonyms", "rules")


class BaseIndexClient(ABC):
    """Umbrella interface for remote search index services.

    All write operations are asynchronous on the remote side: they return a task
    id that must be passed to ``wait_task`` before the write is considered done.
    """

    def __init__(self):
        """Initialize the base client."""
        self._logger: Optional[ContextualLogger] = None

    @property
    def logger(self):
        """Get the logger for this client, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return default_logger

    def set_logger(self, logger: ContextualLogger) -> None:
        """Set a contextual logger for this client."""
        self._logger = logger

    def init_index(self, index_name: str) -> "RemoteIndex":
        """Return a handle bound to ``index_name``. Does not contact the service."""
        return RemoteIndex(self, index_name)

    @abstractmethod
    async def count_hits(self, index_name: str) -> int:
        """Run an empty search and return the number of hits."""
        pass

    @abstractmethod
    def browse(
        self, index_name: str, attributes_to_retrieve: Sequence[str]
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        """Yield every record of the index page by page.

        Only ``attributes_to_retrieve`` (plus ``objectID``) are returned per hit.
        """
        pass

    @abstractmethod
    async def save_objects(self, index_name: str, records: List[Dict[str, Any]]) -> int:
        """Upsert records by object id. Returns the task id."""
        pass

    @abstractmethod
    async def delete_objects(self, index_name: str, object_ids: List[str]) -> int:
        """Delete records by object id. Returns the task id."""
        pass

    @abstractmethod
    async def clear_objects(self, index_name: str) -> int:
        """Delete every record, keeping the configuration. Returns the task id."""
        pass

    @abstractmethod
    async def wait_task(self, index_name: str, task_id: int) -> None:
        """Block until the task has been applied to the index."""
        pass

    @abstractmethod
    async def copy_index(
        self, source_name: str, target_name: str, scope: Optional[Sequence[str]] = None
    ) -> int:
        """Copy ``scope`` aspects (or everything) to another index. Returns the task id."""
        pass

    @abstractmethod
    async def move_index(self, source_name: str, target_name: str) -> int:
        """Rename ``source_name`` over ``target_name``, replacing it. Returns the task id."""
        pass

    async def __aenter__(self) -> "BaseIndexClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:  # noqa: B027
        """Release network resources held by the client."""
        pass


class RemoteIndex:
    """Handle on one physical index of a client."""

    def __init__(self, client: BaseIndexClient, name: str):
        """Bind ``client`` to the index called ``name``."""
        self.client = client
        self.name = name

    def __repr__(self) -> str:
        return f"RemoteIndex({self.name!r})"

    async def count_hits(self) -> int:
        return await self.client.count_hits(self.name)

    def browse(
        self, attributes_to_retrieve: Sequence[str]
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        return self.client.browse(self.name, attributes_to_retrieve)

    async def save_objects(self, records: List[Dict[str, Any]]) -> int:
        return await self.client.save_objects(self.name, records)

    async def delete_objects(self, object_ids: List[str]) -> int:
        return await self.client.delete_objects(self.name, object_ids)

    async def wait_task(self, task_id: int) -> None:
        await self.client.wait_task(self.name, task_id)

    async def clear_objects(self) -> None:
        """Delete every record and wait for the deletion to be applied."""
        task_id = await self.client.clear_objects(self.name)
        await self.wait_task(task_id)

    async def copy_configuration_to(self, target: "RemoteIndex") -> None:
        """Copy settings, synonyms and rules (no records) to ``target`` and wait."""
        task_id = await self.client.copy_index(self.name, target.name, list(CONFIGURATION_SCOPE))
        await target.wait_task(task_id)

    async def move_to(self, target: "RemoteIndex") -> None:
        """Move this index over ``target`` and wait for the move to be applied."""
        task_id = await self.client.move_index(self.name, target.name)
        await target.wait_task(task_id)
