"""Destinations module.

Contains remote search index clients used as the write target of a sync.

Key Classes:
- BaseIndexClient: Abstract base class for all index services
- RemoteIndex: Handle binding a client to one physical index
- AlgoliaIndexClient: REST client for Algolia
"""

from ._base import CONFIGURATION_SCOPE, BaseIndexClient, RemoteIndex
from .algolia import AlgoliaIndexClient

__all__ = [
    "AlgoliaIndexClient",
    "BaseIndexClient",
    "CONFIGURATION_SCOPE",
    "RemoteIndex",
]
