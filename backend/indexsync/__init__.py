"""Incremental synchronization of content collections with a remote search index."""

from indexsync.plugin import IndexSyncPlugin
from indexsync.platform.sync.config import CollectionSpec, SyncOptions
from indexsync.platform.sync.orchestrator import CollectionResult, SyncOrchestrator, SyncReport

__all__ = [
    "CollectionResult",
    "CollectionSpec",
    "IndexSyncPlugin",
    "SyncOptions",
    "SyncOrchestrator",
    "SyncReport",
]
