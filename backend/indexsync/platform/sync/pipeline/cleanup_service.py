"""Cleanup service for records removed at the source."""

import asyncio
import time
from typing import Dict, List, Tuple

from indexsync.core.logging import ContextualLogger
from indexsync.platform.sync.context import IndexRunState, SyncRunContext
from indexsync.platform.sync.exceptions import RemoteWriteError


class CleanupService:
    """Deletes stale records once every collection of a run has settled.

    Handles:
    - One deletion per physical index that accumulated removals
    - Skipping indices whose contributing collections failed, since their
      removal candidates were never fully accounted for
    """

    async def remove_stale_records(self, context: SyncRunContext) -> Dict[str, int]:
        """Run the deletion pass of a partial-update run.

        Deletions for different indices run concurrently.

        Returns:
            Number of deleted ids per index name

        Raises:
            RemoteWriteError: If any index deletion fails (after all settled)
        """
        plans: List[Tuple[IndexRunState, List[str]]] = []
        for state in context.index_states.values():
            if state.has_failures:
                context.logger.warning(
                    f"[Cleanup] Skipping deletions for '{state.name}': collections "
                    f"{sorted(state.failed_contributors)} failed"
                )
                continue
            removals = state.pending_removals()
            if removals:
                plans.append((state, removals))

        if not plans:
            context.logger.debug("[Cleanup] No stale records to delete")
            return {}

        tasks = [
            asyncio.create_task(
                self._delete(state, removals, context.logger), name=f"cleanup-{state.name}"
            )
            for state, removals in plans
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        deleted: Dict[str, int] = {}
        failures = []
        for (state, removals), result in zip(plans, results, strict=False):
            if isinstance(result, BaseException):
                failures.append((state.name, result))
            else:
                deleted[state.name] = len(removals)

        if failures:
            failure_msgs = [f"{name}: {err}" for name, err in failures]
            context.logger.error(f"[Cleanup] Deletion failures: {failure_msgs}")
            raise RemoteWriteError(f"Deleting stale records failed: {', '.join(failure_msgs)}")

        return deleted

    async def _delete(
        self,
        state: IndexRunState,
        object_ids: List[str],
        logger: ContextualLogger,
    ) -> None:
        started = time.monotonic()
        logger.info(f"[Cleanup] Deleting {len(object_ids)} items from {state.name} index")
        task_id = await state.index.delete_objects(object_ids)
        await state.index.wait_task(task_id)
        logger.info(
            f"[Cleanup] Deleted {len(object_ids)} items from {state.name} "
            f"in {time.monotonic() - started:.2f}s"
        )


# Singleton instance
cleanup_service = CleanupService()
