"""Module for sync run context."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Set

from indexsync.core.logging import ContextualLogger
from indexsync.core.logging import logger as default_logger
from indexsync.platform.destinations._base import BaseIndexClient, RemoteIndex
from indexsync.platform.sync.config import CollectionSpec, SyncOptions

if TYPE_CHECKING:
    from indexsync.platform.sync.shadow import ShadowTarget
    from indexsync.platform.sync.snapshot import RemoteSnapshot


@dataclass
class IndexRunState:
    """Bookkeeping for one physical index during one run.

    Several collections may target the same index. Removal candidates found by any
    of them are only deleted if no collection produced the id locally, and only
    once every contributing collection has finished.
    """

    index: RemoteIndex
    removal_candidates: Set[str] = field(default_factory=set)
    accounted_ids: Set[str] = field(default_factory=set)
    contributors: Set[int] = field(default_factory=set)
    failed_contributors: Set[int] = field(default_factory=set)

    # Full-rebuild bookkeeping: one shadow per physical index
    shadow: Optional["ShadowTarget"] = None
    shadow_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    pending_writers: int = 0

    @property
    def name(self) -> str:
        """Name of the physical index."""
        return self.index.name

    @property
    def has_failures(self) -> bool:
        """Whether any contributing collection failed."""
        return bool(self.failed_contributors)

    def record_diff(self, local_ids: Iterable[str], removals: Iterable[str]) -> None:
        """Merge one collection's diff into the index state.

        Must be called without awaiting in between so that concurrent collections
        never observe a half-applied update.
        """
        self.accounted_ids.update(local_ids)
        self.removal_candidates.update(removals)

    def pending_removals(self) -> List[str]:
        """Ids to delete: candidates that no collection produced locally."""
        return sorted(self.removal_candidates - self.accounted_ids)


class SyncRunContext:
    """Context container for one sync run.

    Contains everything that lives for exactly one run:
    - client - the remote index client
    - options - validated sync options
    - index states - per physical index removal and shadow bookkeeping
    - snapshots - memoized remote snapshot fetches, one per physical index
    - logger - contextual logger for the run

    Created at run start and discarded at run end; never shared across runs.
    """

    def __init__(
        self,
        client: BaseIndexClient,
        options: SyncOptions,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the run context."""
        self.client = client
        self.options = options
        self.logger = logger or default_logger
        self.index_states: Dict[str, IndexRunState] = {}
        self.snapshots: Dict[str, "asyncio.Task[RemoteSnapshot]"] = {}
        self.started_at = time.monotonic()

    @property
    def partial_updates(self) -> bool:
        """Whether this run diffs against remote content."""
        return self.options.enable_partial_updates

    def get_index_state(self, index_name: str) -> IndexRunState:
        """Return the state of ``index_name``, creating it on first reference."""
        state = self.index_states.get(index_name)
        if state is None:
            state = IndexRunState(index=self.client.init_index(index_name))
            self.index_states[index_name] = state
        return state

    def snapshot_attributes(self, index_name: str) -> List[str]:
        """Ordered union of the match fields of every collection on ``index_name``."""
        attributes: List[str] = []
        for collection in self.options.collections:
            if collection.index_name != index_name:
                continue
            for match_field in collection.match_fields:
                if match_field not in attributes:
                    attributes.append(match_field)
        return attributes

    def collection_logger(self, number: int, collection: CollectionSpec) -> ContextualLogger:
        """Logger carrying the collection dimensions."""
        return self.logger.with_context(
            collection=number,
            content_type=collection.content_type_name,
            index=collection.index_name,
        )

    def elapsed_ms(self) -> int:
        """Milliseconds since the run started."""
        return int((time.monotonic() - self.started_at) * 1000)
