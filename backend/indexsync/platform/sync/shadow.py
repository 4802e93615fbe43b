"""Shadow index manager for full rebuilds.

Readers must never observe a partially rebuilt index. When the live index already
has content, records are written to ``<index><suffix>`` which starts with a copy
of the live index configuration (settings, synonyms, rules; no records) and is
moved over the live index once every write succeeded. The move replaces the live
index in one step on the remote side.

A shadow is prepared once per physical index and run; collections sharing the
index all write into it and the last one to finish promotes it.
"""

from dataclasses import dataclass
from typing import Optional

from indexsync.core.config import settings
from indexsync.core.logging import ContextualLogger
from indexsync.core.logging import logger as default_logger
from indexsync.platform.destinations._base import RemoteIndex
from indexsync.platform.sync.context import IndexRunState
from indexsync.platform.sync.exceptions import RemotePromotionError, RemoteWriteError


@dataclass
class ShadowTarget:
    """Where a full rebuild of one physical index writes to."""

    live: RemoteIndex
    target: RemoteIndex

    @property
    def is_shadow(self) -> bool:
        """Whether writes are staged in a temporary index."""
        return self.target.name != self.live.name


class ShadowIndexManager:
    """Prepares, promotes and abandons shadow indices."""

    def __init__(self, suffix: Optional[str] = None):
        """Initialize with the suffix appended to live index names."""
        self.suffix = suffix or settings.SHADOW_INDEX_SUFFIX

    async def index_has_content(
        self, index: RemoteIndex, logger: Optional[ContextualLogger] = None
    ) -> bool:
        """Probe whether ``index`` holds any record.

        The probe is best effort: any error counts as "no content".
        """
        logger = logger or default_logger
        try:
            return await index.count_hits() > 0
        except Exception as e:
            logger.warning(
                f"[Shadow] Existence probe of '{index.name}' failed, assuming empty: {e}"
            )
            return False

    async def prepare(
        self,
        state: IndexRunState,
        collection_number: Optional[int] = None,
        content_type_name: Optional[str] = None,
        logger: Optional[ContextualLogger] = None,
    ) -> ShadowTarget:
        """Return the write target of ``state``'s index, preparing it on first use.

        Raises:
            RemoteWriteError: If copying the live configuration fails
        """
        logger = logger or default_logger
        async with state.shadow_lock:
            if state.shadow is None:
                state.shadow = await self._create_target(
                    state.index, collection_number, content_type_name, logger
                )
        return state.shadow

    async def promote(
        self,
        target: ShadowTarget,
        collection_number: Optional[int] = None,
        content_type_name: Optional[str] = None,
        logger: Optional[ContextualLogger] = None,
    ) -> bool:
        """Move the shadow over the live index. No-op without a shadow.

        Returns:
            True if a shadow was promoted

        Raises:
            RemotePromotionError: If the move fails
        """
        if not target.is_shadow:
            return False

        logger = logger or default_logger
        logger.info(f"[Shadow] Moving '{target.target.name}' to '{target.live.name}'")
        try:
            await target.target.move_to(target.live)
        except Exception as e:
            raise RemotePromotionError(
                f"Failed to move '{target.target.name}' to '{target.live.name}': {e}",
                collection_number=collection_number,
                content_type_name=content_type_name,
            ) from e
        return True

    async def complete(
        self,
        state: IndexRunState,
        collection_number: Optional[int] = None,
        content_type_name: Optional[str] = None,
        logger: Optional[ContextualLogger] = None,
    ) -> bool:
        """Mark one writer of ``state`` as done and promote if it was the last one.

        Returns:
            True if this call promoted the shadow
        """
        logger = logger or default_logger
        state.pending_writers -= 1
        if state.pending_writers > 0 or state.shadow is None:
            return False
        if state.has_failures:
            self._log_abandoned(state, logger)
            return False
        return await self.promote(state.shadow, collection_number, content_type_name, logger)

    def abandon(
        self,
        state: IndexRunState,
        collection_number: int,
        logger: Optional[ContextualLogger] = None,
    ) -> None:
        """Mark one writer of ``state`` as failed. The shadow is left in place."""
        logger = logger or default_logger
        state.failed_contributors.add(collection_number)
        state.pending_writers -= 1
        if state.pending_writers <= 0 and state.shadow is not None:
            self._log_abandoned(state, logger)

    async def _create_target(
        self,
        live: RemoteIndex,
        collection_number: Optional[int],
        content_type_name: Optional[str],
        logger: ContextualLogger,
    ) -> ShadowTarget:
        if not await self.index_has_content(live, logger):
            logger.info(f"[Shadow] '{live.name}' is empty, writing to it directly")
            return ShadowTarget(live=live, target=live)

        shadow = live.client.init_index(f"{live.name}{self.suffix}")
        logger.info(f"[Shadow] Copying configuration of '{live.name}' to '{shadow.name}'")
        try:
            await live.copy_configuration_to(shadow)
            # A shadow abandoned by an earlier run may still hold records
            await shadow.clear_objects()
        except Exception as e:
            raise RemoteWriteError(
                f"Failed to copy configuration of '{live.name}' to '{shadow.name}': {e}",
                collection_number=collection_number,
                content_type_name=content_type_name,
            ) from e
        return ShadowTarget(live=live, target=shadow)

    @staticmethod
    def _log_abandoned(state: IndexRunState, logger: ContextualLogger) -> None:
        if state.shadow is not None and state.shadow.is_shadow:
            logger.warning(
                f"[Shadow] Not promoting '{state.shadow.target.name}': collections "
                f"{sorted(state.failed_contributors)} failed. Left in place for manual cleanup"
            )


shadow_manager = ShadowIndexManager()
