"""Pipeline components that run after every collection settled.

- CleanupService: deletes records no longer produced by any collection
"""

from indexsync.platform.sync.pipeline.cleanup_service import CleanupService, cleanup_service

__all__ = [
    "CleanupService",
    "cleanup_service",
]
