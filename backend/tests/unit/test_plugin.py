"""Tests for the post-build plugin."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from indexsync import IndexSyncPlugin
from indexsync.platform.sync.exceptions import ConfigurationError, SyncFailureError

RAW_OPTIONS = {
    "appId": "APP",
    "apiKey": "KEY",
    "enablePartialUpdates": True,
    "collections": [{"indexName": "posts", "contentTypeName": "Post"}],
}


@pytest.fixture
def factory(fake_client):
    """Client factory returning the in-memory client."""
    fake_client.close = AsyncMock()
    return AsyncMock(return_value=fake_client)


def test_register_attaches_after_build_hook(factory):
    """Test that the plugin registers its hook with the host."""
    plugin = IndexSyncPlugin(RAW_OPTIONS, client_factory=factory)
    api = MagicMock()

    plugin.register(api)

    api.after_build.assert_called_once_with(plugin.after_build)


def test_invalid_options_rejected_at_construction():
    """Test that raw options are validated when the plugin is created."""
    with pytest.raises(ConfigurationError):
        IndexSyncPlugin({"collections": [{"indexName": "posts"}]})


@pytest.mark.asyncio
async def test_after_build_syncs_and_closes_client(fake_client, factory, mock_logger, store):
    """Test a full hook run against the injected client."""
    plugin = IndexSyncPlugin(RAW_OPTIONS, client_factory=factory, logger=mock_logger)

    report = await plugin.after_build(store, {"site_url": "https://example.com"})

    assert fake_client.ids("posts") == {"a", "b"}
    assert report.written == 2
    factory.assert_awaited_once_with(plugin.options, mock_logger)
    fake_client.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_after_build_accepts_attribute_config(fake_client, factory, mock_logger, store):
    """Test that site config objects are read by attribute."""
    plugin = IndexSyncPlugin(RAW_OPTIONS, client_factory=factory, logger=mock_logger)

    await plugin.after_build(store, SimpleNamespace(siteUrl="https://example.com"))

    assert fake_client.ids("posts") == {"a", "b"}


@pytest.mark.asyncio
async def test_missing_site_url_fails_before_connecting(factory, mock_logger, store):
    """Test that the hook refuses to run without a site url."""
    plugin = IndexSyncPlugin(RAW_OPTIONS, client_factory=factory, logger=mock_logger)

    with pytest.raises(ConfigurationError, match="site_url"):
        await plugin.after_build(store, {})

    factory.assert_not_awaited()


@pytest.mark.asyncio
async def test_client_closed_when_sync_fails(fake_client, factory, mock_logger, store):
    """Test that the client is released even if the run fails."""
    fake_client.fail_on["save_objects"] = RuntimeError("503")
    plugin = IndexSyncPlugin(RAW_OPTIONS, client_factory=factory, logger=mock_logger)

    with pytest.raises(SyncFailureError):
        await plugin.after_build(store, {"site_url": "https://example.com"})

    fake_client.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_default_factory_reports_missing_credentials(mock_logger, store):
    """Test that the Algolia factory turns missing credentials into a config error."""
    raw = {k: v for k, v in RAW_OPTIONS.items() if k not in ("appId", "apiKey")}
    plugin = IndexSyncPlugin(raw, logger=mock_logger)

    with patch("indexsync.platform.destinations.algolia.settings") as mock_settings:
        mock_settings.ALGOLIA_APP_ID = None
        mock_settings.ALGOLIA_API_KEY = None

        with pytest.raises(ConfigurationError, match="api key"):
            await plugin.after_build(store, {"site_url": "https://example.com"})
