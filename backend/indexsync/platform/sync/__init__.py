"""Sync module for indexsync.

Provides:
- SyncOrchestrator: Coordinates every collection of a run (orchestrator.py)
- DiffEngine: Decides which records to write and remove (actions/)
- BatchWriter: Writes records in acknowledged chunks (handlers/)
- ShadowIndexManager: Stages full rebuilds in a temporary index (shadow.py)
- CleanupService: Deletes stale records after all collections settled (pipeline/)
"""
