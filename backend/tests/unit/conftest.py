"""Unit test conftest for setting up test environment."""

import os

# Set minimal environment before importing any indexsync modules
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("TASK_POLL_INTERVAL", "0.01")
os.environ.setdefault("TASK_WAIT_TIMEOUT", "1")

import copy  # noqa: E402
import itertools  # noqa: E402
from typing import Any, Dict, List, Optional, Sequence  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402

from indexsync.platform.destinations._base import BaseIndexClient  # noqa: E402
from indexsync.platform.sources.static import StaticContentStore  # noqa: E402


class FakeIndexClient(BaseIndexClient):
    """In-memory index service.

    Writes are applied when submitted; ``wait_task`` only records the ack. Failures
    are injected per operation name through ``fail_on``.
    """

    def __init__(self, page_size: int = 2):
        super().__init__()
        self.indexes: Dict[str, Dict[str, dict]] = {}
        self.configs: Dict[str, dict] = {}
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, Exception] = {}
        self.page_size = page_size
        self._task_ids = itertools.count(1)

    def seed(self, index_name: str, records: Sequence[dict], config: Optional[dict] = None):
        self.indexes[index_name] = {str(r["objectID"]): dict(r) for r in records}
        self.configs[index_name] = config or {"settings": {"searchableAttributes": ["title"]}}

    def ids(self, index_name: str) -> set:
        return set(self.indexes.get(index_name, {}))

    def calls_of(self, operation: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == operation]

    def _maybe_fail(self, operation: str) -> None:
        error = self.fail_on.get(operation)
        if error is not None:
            raise error

    def _task(self) -> int:
        return next(self._task_ids)

    async def count_hits(self, index_name: str) -> int:
        self.calls.append(("count_hits", index_name))
        self._maybe_fail("count_hits")
        return len(self.indexes.get(index_name, {}))

    async def browse(self, index_name: str, attributes_to_retrieve: Sequence[str]):
        self.calls.append(("browse", index_name, list(attributes_to_retrieve)))
        records = list(self.indexes.get(index_name, {}).values())
        for start in range(0, len(records), self.page_size):
            self._maybe_fail("browse")
            page = records[start : start + self.page_size]
            yield [
                {
                    "objectID": record["objectID"],
                    **{a: record[a] for a in attributes_to_retrieve if a in record},
                }
                for record in page
            ]

    async def save_objects(self, index_name: str, records: List[Dict[str, Any]]) -> int:
        self.calls.append(("save_objects", index_name, [r["objectID"] for r in records]))
        self._maybe_fail("save_objects")
        index = self.indexes.setdefault(index_name, {})
        for record in records:
            index[str(record["objectID"])] = copy.deepcopy(record)
        return self._task()

    async def delete_objects(self, index_name: str, object_ids: List[str]) -> int:
        self.calls.append(("delete_objects", index_name, list(object_ids)))
        self._maybe_fail("delete_objects")
        index = self.indexes.setdefault(index_name, {})
        for object_id in object_ids:
            index.pop(object_id, None)
        return self._task()

    async def clear_objects(self, index_name: str) -> int:
        self.calls.append(("clear_objects", index_name))
        self._maybe_fail("clear_objects")
        self.indexes[index_name] = {}
        return self._task()

    async def wait_task(self, index_name: str, task_id: int) -> None:
        self.calls.append(("wait_task", index_name, task_id))
        self._maybe_fail("wait_task")

    async def copy_index(self, source_name, target_name, scope=None) -> int:
        self.calls.append(("copy_index", source_name, target_name, list(scope or [])))
        self._maybe_fail("copy_index")
        self.configs[target_name] = copy.deepcopy(self.configs.get(source_name, {}))
        self.indexes.setdefault(target_name, {})
        return self._task()

    async def move_index(self, source_name: str, target_name: str) -> int:
        self.calls.append(("move_index", source_name, target_name))
        self._maybe_fail("move_index")
        self.indexes[target_name] = self.indexes.pop(source_name, {})
        self.configs[target_name] = self.configs.pop(source_name, {})
        return self._task()


@pytest.fixture
def fake_client():
    """Create an empty in-memory index client."""
    return FakeIndexClient()


@pytest.fixture
def mock_logger():
    """Create a mock contextual logger."""
    logger = MagicMock()
    logger.with_context.return_value = logger
    return logger


@pytest.fixture
def store():
    """Create a content store with two small content types."""
    return StaticContentStore(
        {
            "Post": [
                {"id": "a", "title": "X", "slug": "x", "modified": 1},
                {"id": "b", "title": "Y", "slug": "y", "modified": 2},
            ],
            "Page": [
                {"id": "p1", "title": "About", "slug": "about", "modified": 5},
            ],
        }
    )
