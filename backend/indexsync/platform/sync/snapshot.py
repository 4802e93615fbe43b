"""Remote snapshot fetcher.

Reads the current content of a physical index (match fields only) into an
object-id keyed mapping. Fetched at most once per index per run.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence

from indexsync.core.logging import ContextualLogger
from indexsync.platform.destinations._base import RemoteIndex
from indexsync.platform.sync.context import SyncRunContext
from indexsync.platform.sync.exceptions import RemoteFetchError
from indexsync.platform.transformers.default import OBJECT_ID

RemoteSnapshot = Dict[str, Dict[str, Any]]


class RemoteSnapshotFetcher:
    """Builds and memoizes remote snapshots in the run context."""

    async def fetch(
        self,
        index: RemoteIndex,
        match_fields: Sequence[str],
        context: SyncRunContext,
        collection_number: Optional[int] = None,
        content_type_name: Optional[str] = None,
        logger: Optional[ContextualLogger] = None,
    ) -> RemoteSnapshot:
        """Return the snapshot of ``index``, fetching it on first use.

        Concurrent callers for the same index await the same fetch. The returned
        mapping is shared and must be treated as read-only.

        Raises:
            RemoteFetchError: If paginating the index fails
        """
        logger = logger or context.logger
        task = context.snapshots.get(index.name)
        if task is None:
            attributes = _merge_attributes(context.snapshot_attributes(index.name), match_fields)
            task = asyncio.create_task(
                self._browse(index, attributes, logger), name=f"snapshot-{index.name}"
            )
            context.snapshots[index.name] = task
        else:
            logger.debug(f"[Snapshot] Reusing snapshot of '{index.name}'")

        try:
            return await task
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Never keep a failed fetch around as if it were a snapshot
            if context.snapshots.get(index.name) is task:
                del context.snapshots[index.name]
            raise RemoteFetchError(
                f"Failed to fetch existing records of '{index.name}': {e}",
                collection_number=collection_number,
                content_type_name=content_type_name,
            ) from e

    async def _browse(
        self, index: RemoteIndex, attributes: List[str], logger: ContextualLogger
    ) -> RemoteSnapshot:
        started = time.monotonic()
        logger.info(f"[Snapshot] Browsing '{index.name}' for attributes {attributes}")

        snapshot: RemoteSnapshot = {}
        async for page in index.browse(attributes):
            for hit in page:
                object_id = hit.get(OBJECT_ID)
                if object_id is None:
                    continue
                snapshot[str(object_id)] = {
                    attribute: hit[attribute] for attribute in attributes if attribute in hit
                }

        logger.info(
            f"[Snapshot] Retrieved {len(snapshot)} records from '{index.name}' "
            f"in {time.monotonic() - started:.2f}s"
        )
        return snapshot


def _merge_attributes(base: Sequence[str], extra: Sequence[str]) -> List[str]:
    merged = list(base)
    for attribute in extra:
        if attribute not in merged:
            merged.append(attribute)
    return merged


snapshot_fetcher = RemoteSnapshotFetcher()
