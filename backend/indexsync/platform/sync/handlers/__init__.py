"""Handlers module for sync pipeline.

Contains handlers that execute resolved writes against an index.
"""

from .batch_writer import BatchWriter, batch_writer, chunked

__all__ = [
    "BatchWriter",
    "batch_writer",
    "chunked",
]
