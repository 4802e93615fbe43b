"""Tests for the sync orchestrator.

End-to-end runs against the in-memory index client, covering both modes:
- Partial updates: diff against the remote snapshot, upsert changes, delete stale ids
- Full rebuild: write through a shadow index and promote it
"""

import json

import httpx
import pytest

from indexsync.platform.destinations.algolia import AlgoliaIndexClient
from indexsync.platform.sync.config import CollectionSpec, SyncOptions
from indexsync.platform.sync.exceptions import ConfigurationError, SyncFailureError
from indexsync.platform.sync.orchestrator import SyncOrchestrator


def _orchestrator(client, logger, partial=True, chunk_size=1000, **collections):
    specs = [
        CollectionSpec(index_name=index_name, content_type_name=content_type)
        for content_type, index_name in collections.items()
    ]
    options = SyncOptions(
        enable_partial_updates=partial, chunk_size=chunk_size, collections=specs
    )
    return SyncOrchestrator(client, options, logger)


def _post(object_id, title, slug, modified):
    return {"objectID": object_id, "title": title, "slug": slug, "modified": modified}


# -----------------------------------------------------------------------------
# Partial updates
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_partial_run_upserts_changes_and_deletes_stale(fake_client, mock_logger, store):
    """Test the example run: a unchanged, b inserted, c deleted."""
    fake_client.seed("posts", [_post("a", "X", "x", 1), {"objectID": "c", "modified": 9}])

    report = await _orchestrator(fake_client, mock_logger, Post="posts").run(store)

    assert fake_client.calls_of("save_objects") == [("save_objects", "posts", ["b"])]
    assert fake_client.calls_of("delete_objects") == [("delete_objects", "posts", ["c"])]
    assert fake_client.ids("posts") == {"a", "b"}
    assert report.written == 1
    assert report.deleted == {"posts": 1}
    assert report.collections[0].unchanged == 1


@pytest.mark.asyncio
async def test_partial_run_is_idempotent(fake_client, mock_logger, store):
    """Test that a second run over unchanged content issues no write."""
    fake_client.seed("posts", [{"objectID": "stale", "modified": 0}])
    orchestrator = _orchestrator(fake_client, mock_logger, Post="posts")

    await orchestrator.run(store)
    fake_client.calls.clear()
    report = await orchestrator.run(store)

    assert fake_client.calls_of("save_objects") == []
    assert fake_client.calls_of("delete_objects") == []
    assert report.written == 0
    assert report.deleted_count == 0
    mock_logger.info.assert_any_call("Collection #0: all 2 items unchanged, nothing to sync")


@pytest.mark.asyncio
async def test_partial_run_converges_to_local_content(fake_client, mock_logger, store):
    """Test that the remote id set equals the local id set after a run."""
    fake_client.seed(
        "posts",
        [_post("a", "X", "x", 0), {"objectID": "gone-1"}, {"objectID": "gone-2"}],
    )

    await _orchestrator(fake_client, mock_logger, chunk_size=1, Post="posts").run(store)

    assert fake_client.ids("posts") == {"a", "b"}
    assert fake_client.indexes["posts"]["a"]["modified"] == 1
    assert len(fake_client.calls_of("save_objects")) == 2


@pytest.mark.asyncio
async def test_collections_sharing_an_index_never_delete_each_other(
    fake_client, mock_logger, store
):
    """Test that ids produced by a sibling collection survive the deletion pass."""
    fake_client.seed(
        "site",
        [
            _post("a", "X", "x", 1),
            {"objectID": "p1", "title": "About", "slug": "about", "modified": 5},
            {"objectID": "z", "modified": 3},
        ],
    )

    report = await _orchestrator(fake_client, mock_logger, Post="site", Page="site").run(store)

    assert fake_client.ids("site") == {"a", "b", "p1"}
    assert fake_client.calls_of("delete_objects") == [("delete_objects", "site", ["z"])]
    assert len(fake_client.calls_of("browse")) == 1
    assert report.deleted == {"site": 1}


@pytest.mark.asyncio
async def test_failed_collection_skips_deletions_on_its_index(fake_client, mock_logger, store):
    """Test that a failure keeps its index intact but not the other indices."""
    fake_client.seed("posts", [_post("a", "X", "x", 1), _post("b", "Y", "y", 2), {"objectID": "c"}])
    fake_client.seed("pages", [{"objectID": "old-page"}])
    fake_client.fail_on["save_objects"] = RuntimeError("503")

    orchestrator = _orchestrator(fake_client, mock_logger, Post="posts", Page="pages")
    with pytest.raises(SyncFailureError) as exc_info:
        await orchestrator.run(store)

    errors = exc_info.value.errors
    assert len(errors) == 1
    assert errors[0].collection_number == 1
    assert errors[0].content_type_name == "Page"
    assert fake_client.ids("pages") == {"old-page"}
    assert fake_client.ids("posts") == {"a", "b"}


@pytest.mark.asyncio
async def test_partial_run_creates_missing_algolia_index(mock_logger, store):
    """Test that a first partial run against a nonexistent index inserts everything."""
    saved = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/browse"):
            return httpx.Response(404, json={"message": "Index does not exist", "status": 404})
        if path.endswith("/batch"):
            requests = json.loads(request.content)["requests"]
            saved.extend(r["body"]["objectID"] for r in requests)
            return httpx.Response(200, json={"taskID": 1})
        return httpx.Response(200, json={"status": "published"})

    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://test.algolia.net"
    )
    client = AlgoliaIndexClient("APP", "KEY", http_client=http_client, poll_interval=0.01)

    report = await _orchestrator(client, mock_logger, Post="posts").run(store)

    assert saved == ["a", "b"]
    assert report.written == 2
    assert report.deleted_count == 0


# -----------------------------------------------------------------------------
# Full rebuild
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_full_run_on_empty_index_writes_directly(fake_client, mock_logger, store):
    """Test that a fresh index is written without a shadow."""
    report = await _orchestrator(fake_client, mock_logger, partial=False, Post="posts").run(store)

    assert fake_client.ids("posts") == {"a", "b"}
    assert fake_client.calls_of("copy_index") == []
    assert fake_client.calls_of("move_index") == []
    assert not report.collections[0].used_shadow


@pytest.mark.asyncio
async def test_full_run_replaces_content_through_shadow(fake_client, mock_logger, store):
    """Test that a populated index is rebuilt in a shadow and moved over."""
    fake_client.seed("posts", [{"objectID": "old"}], config={"settings": {"ranking": ["x"]}})

    report = await _orchestrator(fake_client, mock_logger, partial=False, Post="posts").run(store)

    assert fake_client.ids("posts") == {"a", "b"}
    assert fake_client.configs["posts"] == {"settings": {"ranking": ["x"]}}
    assert "posts_tmp" not in fake_client.indexes
    assert fake_client.calls_of("save_objects") == [("save_objects", "posts_tmp", ["a", "b"])]
    assert fake_client.calls_of("delete_objects") == []
    assert report.collections[0].used_shadow
    assert report.collections[0].promoted


@pytest.mark.asyncio
async def test_full_run_shares_one_shadow_per_index(fake_client, mock_logger, store):
    """Test that two collections on one index are promoted together."""
    fake_client.seed("site", [{"objectID": "old"}])

    orchestrator = _orchestrator(
        fake_client, mock_logger, partial=False, Post="site", Page="site"
    )
    report = await orchestrator.run(store)

    assert fake_client.ids("site") == {"a", "b", "p1"}
    assert len(fake_client.calls_of("copy_index")) == 1
    assert fake_client.calls_of("move_index") == [("move_index", "site_tmp", "site")]
    assert sum(result.promoted for result in report.collections) == 1


@pytest.mark.asyncio
async def test_full_run_failure_keeps_live_index(fake_client, mock_logger, store):
    """Test that a failed rebuild never promotes the shadow."""
    fake_client.seed("posts", [{"objectID": "old"}])
    fake_client.fail_on["save_objects"] = RuntimeError("503")

    with pytest.raises(SyncFailureError):
        await _orchestrator(fake_client, mock_logger, partial=False, Post="posts").run(store)

    assert fake_client.ids("posts") == {"old"}
    assert "posts_tmp" in fake_client.indexes
    assert fake_client.calls_of("move_index") == []


# -----------------------------------------------------------------------------
# Configuration errors
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unknown_content_type_fails_before_any_remote_call(
    fake_client, mock_logger, store
):
    """Test that a missing content type aborts the run up front."""
    orchestrator = _orchestrator(fake_client, mock_logger, Post="posts", Missing="other")

    with pytest.raises(ConfigurationError) as exc_info:
        await orchestrator.run(store)

    assert exc_info.value.collection_number == 1
    assert fake_client.calls == []


@pytest.mark.asyncio
async def test_formatter_without_object_id_fails_before_any_remote_call(
    fake_client, mock_logger, store
):
    """Test that records lacking an object id are rejected."""
    options = SyncOptions(
        enable_partial_updates=True,
        collections=[
            CollectionSpec(
                index_name="posts",
                content_type_name="Post",
                item_formatter=lambda item: {"title": item["title"]},
            )
        ],
    )

    with pytest.raises(ConfigurationError, match="objectID"):
        await SyncOrchestrator(fake_client, options, mock_logger).run(store)

    assert fake_client.calls == []
