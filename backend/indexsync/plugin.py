"""Post-build hook for content pipelines.

Usage:
    plugin = IndexSyncPlugin({
        "appId": "...",
        "apiKey": "...",
        "enablePartialUpdates": True,
        "collections": [{"indexName": "posts", "contentTypeName": "Post"}],
    })
    plugin.register(api)  # api.after_build(plugin.after_build)
"""

from typing import Any, Callable, Mapping, Optional, Union

from indexsync.core.logging import ContextualLogger
from indexsync.core.logging import logger as default_logger
from indexsync.platform.destinations._base import BaseIndexClient
from indexsync.platform.destinations.algolia import AlgoliaIndexClient
from indexsync.platform.sources._base import BaseContentStore
from indexsync.platform.sync.config import SyncOptions
from indexsync.platform.sync.exceptions import ConfigurationError
from indexsync.platform.sync.orchestrator import SyncOrchestrator, SyncReport

ClientFactory = Callable[[SyncOptions, ContextualLogger], Any]


async def _algolia_client_factory(
    options: SyncOptions, logger: ContextualLogger
) -> BaseIndexClient:
    api_key = options.api_key.get_secret_value() if options.api_key else None
    try:
        return await AlgoliaIndexClient.create(options.app_id, api_key, logger=logger)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


class IndexSyncPlugin:
    """Syncs the pipeline's collections into the search index after every build."""

    def __init__(
        self,
        options: Union[SyncOptions, Mapping[str, Any]],
        client_factory: Optional[ClientFactory] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the plugin.

        Args:
            options: Sync options or their raw mapping (camelCase keys accepted)
            client_factory: Async callable building the index client, Algolia by default
            logger: Logger, defaults to the indexsync logger

        Raises:
            ConfigurationError: If the options are invalid
        """
        self.options = (
            options if isinstance(options, SyncOptions) else SyncOptions.from_dict(options)
        )
        self.client_factory = client_factory or _algolia_client_factory
        self.logger = logger or default_logger

    def register(self, api: Any) -> None:
        """Attach ``after_build`` to the host pipeline."""
        api.after_build(self.after_build)

    async def after_build(self, store: BaseContentStore, config: Any) -> SyncReport:
        """Run the sync for a finished build.

        Raises:
            ConfigurationError: If the site has no ``site_url``
            SyncFailureError: If any collection or deletion failed
        """
        if not _site_url(config):
            raise ConfigurationError("Index sync plugin is missing a required site_url config")

        client = await self.client_factory(self.options, self.logger)
        async with client:
            orchestrator = SyncOrchestrator(client, self.options, self.logger)
            return await orchestrator.run(store)


def _site_url(config: Any) -> Optional[str]:
    if isinstance(config, Mapping):
        return config.get("site_url") or config.get("siteUrl")
    return getattr(config, "site_url", None) or getattr(config, "siteUrl", None)
