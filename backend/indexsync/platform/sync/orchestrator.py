"""Sync orchestrator coordinating every collection of a run.

Execution Order:
1. Load and transform every collection (no remote calls; configuration errors abort)
2. Sync all collections concurrently: diff (partial) or shadow (full), then write
3. Once every collection settled, delete stale records per physical index (partial)
4. Report: raise SyncFailureError if anything failed, else return a SyncReport
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from indexsync.core.logging import ContextualLogger
from indexsync.core.logging import logger as default_logger
from indexsync.platform.destinations._base import BaseIndexClient
from indexsync.platform.sources._base import BaseContentStore
from indexsync.platform.sync.actions.resolver import DiffEngine, diff_engine
from indexsync.platform.sync.config import CollectionSpec, SyncOptions
from indexsync.platform.sync.context import IndexRunState, SyncRunContext
from indexsync.platform.sync.exceptions import (
    ConfigurationError,
    IndexSyncError,
    SyncFailureError,
)
from indexsync.platform.sync.handlers.batch_writer import BatchWriter, batch_writer
from indexsync.platform.sync.pipeline.cleanup_service import CleanupService, cleanup_service
from indexsync.platform.sync.shadow import ShadowIndexManager, shadow_manager
from indexsync.platform.sync.snapshot import RemoteSnapshotFetcher, snapshot_fetcher
from indexsync.platform.transformers.default import ItemRecord, transform_items


@dataclass
class CollectionResult:
    """Outcome of one collection."""

    number: int
    content_type_name: str
    index_name: str
    total: int
    written: int
    unchanged: int = 0
    removal_candidates: int = 0
    chunks: int = 0
    used_shadow: bool = False
    promoted: bool = False


@dataclass
class SyncReport:
    """Outcome of a successful run."""

    collections: List[CollectionResult] = field(default_factory=list)
    deleted: Dict[str, int] = field(default_factory=dict)
    elapsed_ms: int = 0

    @property
    def written(self) -> int:
        """Records written across all collections."""
        return sum(result.written for result in self.collections)

    @property
    def deleted_count(self) -> int:
        """Records deleted across all indices."""
        return sum(self.deleted.values())


@dataclass
class _PreparedCollection:
    number: int
    spec: CollectionSpec
    records: List[ItemRecord]


class SyncOrchestrator:
    """Runs every configured collection and the final deletion pass."""

    def __init__(
        self,
        client: BaseIndexClient,
        options: SyncOptions,
        logger: Optional[ContextualLogger] = None,
        diff_engine: DiffEngine = diff_engine,
        snapshot_fetcher: RemoteSnapshotFetcher = snapshot_fetcher,
        batch_writer: BatchWriter = batch_writer,
        shadow_manager: ShadowIndexManager = shadow_manager,
        cleanup_service: CleanupService = cleanup_service,
    ):
        """Initialize the orchestrator.

        Args:
            client: Remote index client
            options: Validated sync options
            logger: Run logger
            diff_engine: Diff engine (injectable for tests)
            snapshot_fetcher: Remote snapshot fetcher
            batch_writer: Chunked record writer
            shadow_manager: Shadow index manager for full rebuilds
            cleanup_service: Deletion pass
        """
        self.client = client
        self.options = options
        self.logger = logger or default_logger
        self.diff_engine = diff_engine
        self.snapshot_fetcher = snapshot_fetcher
        self.batch_writer = batch_writer
        self.shadow_manager = shadow_manager
        self.cleanup_service = cleanup_service

    async def run(self, store: BaseContentStore) -> SyncReport:
        """Sync every collection of ``store`` into its index.

        Raises:
            ConfigurationError: Before any remote call, if a collection is invalid
            SyncFailureError: After every collection settled, if any of them failed
        """
        context = SyncRunContext(self.client, self.options, self.logger)
        prepared = self._prepare(store, context)

        for item in prepared:
            state = context.get_index_state(item.spec.index_name)
            state.contributors.add(item.number)
            if not context.partial_updates:
                state.pending_writers += 1

        tasks = [
            asyncio.create_task(
                self._sync_collection(item, context), name=f"collection-{item.number}"
            )
            for item in prepared
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        report = SyncReport()
        errors: List[BaseException] = []
        for result in results:
            if isinstance(result, BaseException):
                errors.append(result)
            else:
                report.collections.append(result)

        if context.partial_updates:
            try:
                report.deleted = await self.cleanup_service.remove_stale_records(context)
            except IndexSyncError as e:
                errors.append(e)

        report.elapsed_ms = context.elapsed_ms()
        if errors:
            self.logger.error(
                f"Index sync failed for {len(errors)} operation(s) after {report.elapsed_ms}ms"
            )
            raise SyncFailureError("Index sync failed", errors)

        self.logger.info(
            f"Finished indexing in {report.elapsed_ms}ms: {report.written} written, "
            f"{report.deleted_count} deleted across {len(report.collections)} collections"
        )
        return report

    # -------------------------------------------------------------------------
    # Internal Methods
    # -------------------------------------------------------------------------

    def _prepare(
        self, store: BaseContentStore, context: SyncRunContext
    ) -> List[_PreparedCollection]:
        """Load and transform every collection before touching the index service."""
        prepared = []
        for number, spec in enumerate(self.options.collections):
            logger = context.collection_logger(number, spec)
            logger.info(f"Collection #{number}: getting {spec.content_type_name}")
            try:
                collection = store.get_collection(spec.content_type_name)
            except KeyError as e:
                raise ConfigurationError(
                    f"Unknown content type: {e}",
                    collection_number=number,
                    content_type_name=spec.content_type_name,
                ) from e

            records = transform_items(
                collection.data,
                spec.item_formatter,
                collection_number=number,
                content_type_name=spec.content_type_name,
            )
            logger.info(f"Collection #{number}: items in collection {len(records)}")
            prepared.append(_PreparedCollection(number=number, spec=spec, records=records))
        return prepared

    async def _sync_collection(
        self, item: _PreparedCollection, context: SyncRunContext
    ) -> CollectionResult:
        """Sync one collection, recording failures in its index state."""
        spec = item.spec
        logger = context.collection_logger(item.number, spec)
        state = context.get_index_state(spec.index_name)
        writer_open = not context.partial_updates

        try:
            if context.partial_updates:
                result = await self._sync_partial(item, state, context, logger)
            else:
                result = await self._sync_full(item, state, logger)
                writer_open = False
                result.promoted = await self.shadow_manager.complete(
                    state, item.number, spec.content_type_name, logger
                )
            logger.info(f"Collection #{item.number}: done")
            return result
        except Exception as e:
            if writer_open:
                self.shadow_manager.abandon(state, item.number, logger)
            else:
                state.failed_contributors.add(item.number)
            logger.error(f"Collection #{item.number}: failed: {e}")
            if isinstance(e, IndexSyncError):
                raise
            raise IndexSyncError(
                f"Unexpected failure: {e}",
                collection_number=item.number,
                content_type_name=spec.content_type_name,
            ) from e

    async def _sync_partial(
        self,
        item: _PreparedCollection,
        state: IndexRunState,
        context: SyncRunContext,
        logger: ContextualLogger,
    ) -> CollectionResult:
        spec = item.spec
        logger.info(f"Collection #{item.number}: starting partial updates")

        snapshot = await self.snapshot_fetcher.fetch(
            state.index,
            spec.match_fields,
            context,
            collection_number=item.number,
            content_type_name=spec.content_type_name,
            logger=logger,
        )
        logger.info(f"Collection #{item.number}: found {len(snapshot)} existing items")

        batch = self.diff_engine.resolve(item.records, snapshot, spec.match_fields)
        state.record_diff(batch.local_ids, batch.to_remove)
        if not batch.has_mutations:
            logger.info(
                f"Collection #{item.number}: all {batch.total_count} items unchanged, "
                "nothing to sync"
            )
        else:
            logger.info(
                f"Collection #{item.number}: partial updates [{batch.summary()}, "
                f"total: {batch.total_count}]"
            )

        chunks = await self.batch_writer.write(
            state.index,
            batch.to_write,
            self.options.chunk_size_for(spec),
            collection_number=item.number,
            content_type_name=spec.content_type_name,
            logger=logger,
        )
        return CollectionResult(
            number=item.number,
            content_type_name=spec.content_type_name,
            index_name=spec.index_name,
            total=len(item.records),
            written=len(batch.to_write),
            unchanged=len(batch.keeps),
            removal_candidates=len(batch.to_remove),
            chunks=chunks,
        )

    async def _sync_full(
        self,
        item: _PreparedCollection,
        state: IndexRunState,
        logger: ContextualLogger,
    ) -> CollectionResult:
        spec = item.spec
        target = await self.shadow_manager.prepare(
            state, item.number, spec.content_type_name, logger
        )
        batch = self.diff_engine.resolve(item.records, None, spec.match_fields)

        logger.info(
            f"Collection #{item.number}: writing {len(batch.to_write)} items "
            f"to '{target.target.name}'"
        )
        chunks = await self.batch_writer.write(
            target.target,
            batch.to_write,
            self.options.chunk_size_for(spec),
            collection_number=item.number,
            content_type_name=spec.content_type_name,
            logger=logger,
        )
        return CollectionResult(
            number=item.number,
            content_type_name=spec.content_type_name,
            index_name=spec.index_name,
            total=len(item.records),
            written=len(batch.to_write),
            chunks=chunks,
            used_shadow=target.is_shadow,
        )
