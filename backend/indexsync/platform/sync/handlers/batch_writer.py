"""Batch writer for record upserts.

Splits a write set into ordered chunks and submits one upsert per chunk. Chunks
are independent on the remote side, so they are submitted concurrently and the
write only completes once every chunk's task has been acknowledged.
"""

import asyncio
from typing import Iterator, List, Optional, Sequence

from indexsync.core.config import settings
from indexsync.core.logging import ContextualLogger
from indexsync.core.logging import logger as default_logger
from indexsync.platform.destinations._base import RemoteIndex
from indexsync.platform.sync.exceptions import ConfigurationError, RemoteWriteError
from indexsync.platform.transformers.default import ItemRecord


def chunked(records: Sequence[ItemRecord], size: int) -> Iterator[List[ItemRecord]]:
    """Yield consecutive chunks of at most ``size`` records, preserving order."""
    if size <= 0:
        raise ConfigurationError(f"chunkSize must be positive, got {size}")
    for start in range(0, len(records), size):
        yield list(records[start : start + size])


class BatchWriter:
    """Writes records to an index in acknowledged chunks."""

    async def write(
        self,
        index: RemoteIndex,
        records: Sequence[ItemRecord],
        chunk_size: Optional[int] = None,
        collection_number: Optional[int] = None,
        content_type_name: Optional[str] = None,
        logger: Optional[ContextualLogger] = None,
    ) -> int:
        """Upsert ``records`` into ``index``.

        Every chunk is awaited even if a sibling fails, so the caller learns about
        all failures at once. Chunks that landed are not rolled back.

        Returns:
            Number of chunk operations issued

        Raises:
            RemoteWriteError: If any chunk upsert or acknowledgement fails
        """
        logger = logger or default_logger
        chunks = list(chunked(records, chunk_size or settings.DEFAULT_CHUNK_SIZE))
        if not chunks:
            logger.debug(f"[BatchWriter] Nothing to write to '{index.name}'")
            return 0

        logger.info(f"[BatchWriter] Splitting {len(records)} records in {len(chunks)} jobs")

        tasks = [
            asyncio.create_task(self._write_chunk(index, chunk), name=f"chunk-{index.name}-{i}")
            for i, chunk in enumerate(chunks)
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        failures = [
            (i, result) for i, result in enumerate(results) if isinstance(result, BaseException)
        ]
        if failures:
            for i, error in failures:
                logger.error(f"[BatchWriter] Chunk {i} of {len(chunks)} failed: {error}")
            first_chunk, first_error = failures[0]
            raise RemoteWriteError(
                f"{len(failures)}/{len(chunks)} chunks failed to write to '{index.name}'. "
                f"First error (chunk {first_chunk}): {first_error}",
                collection_number=collection_number,
                content_type_name=content_type_name,
            ) from first_error

        logger.debug(f"[BatchWriter] {len(chunks)} chunks acknowledged by '{index.name}'")
        return len(chunks)

    async def _write_chunk(self, index: RemoteIndex, chunk: List[ItemRecord]) -> None:
        task_id = await index.save_objects(chunk)
        await index.wait_task(task_id)


batch_writer = BatchWriter()
