"""Algolia index client.

Talks to the Algolia REST API directly through ``httpx.AsyncClient``. Every write
returns a task id; ``wait_task`` polls the task endpoint until the write is
published.

Retry Strategy:
- Transient HTTP failures (429, 5xx, timeouts) are retried here with tenacity
- Task polling is bounded by ``TASK_WAIT_TIMEOUT``
"""

from typing import Any, AsyncIterator, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from indexsync.core.config import settings
from indexsync.core.logging import ContextualLogger
from indexsync.core.logging import logger as default_logger
from indexsync.platform.destinations._base import BaseIndexClient
from indexsync.platform.destinations.retry_helpers import (
    retry_if_transient,
    wait_rate_limit_with_backoff,
)

TASK_PUBLISHED = "published"


class AlgoliaIndexClient(BaseIndexClient):
    """Algolia REST client implementing the index client interface."""

    def __init__(
        self,
        app_id: str,
        api_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        max_retries: Optional[int] = None,
        poll_interval: Optional[float] = None,
        task_timeout: Optional[float] = None,
    ):
        """Initialize the client.

        Args:
            app_id: Algolia application id
            api_key: Admin API key (needs addObject, deleteObject, browse, settings)
            http_client: Optional preconfigured client (tests inject a mock transport)
            base_url: Override for the API host, defaults to ``https://{app_id}.algolia.net``
            max_retries: Attempts for transient failures
            poll_interval: Seconds between task status polls
            task_timeout: Max seconds to wait for one task
        """
        super().__init__()
        self.app_id = app_id
        self.base_url = base_url or f"https://{app_id}.algolia.net"
        self.max_retries = max_retries or settings.HTTP_MAX_RETRIES
        self.poll_interval = poll_interval or settings.TASK_POLL_INTERVAL
        self.task_timeout = task_timeout or settings.TASK_WAIT_TIMEOUT

        headers = {
            "X-Algolia-Application-Id": app_id,
            "X-Algolia-API-Key": api_key,
            "Content-Type": "application/json",
        }
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url, headers=headers, timeout=settings.HTTP_TIMEOUT
        )
        if http_client is not None:
            self._client.headers.update(headers)

    @classmethod
    async def create(
        cls,
        app_id: Optional[str] = None,
        api_key: Optional[str] = None,
        logger: Optional[ContextualLogger] = None,
        **kwargs,
    ) -> "AlgoliaIndexClient":
        """Create a client, falling back to credentials from settings."""
        app_id = app_id or settings.ALGOLIA_APP_ID
        api_key = api_key or settings.ALGOLIA_API_KEY
        if not app_id or not api_key:
            raise ValueError("Algolia app id and api key are required")

        instance = cls(app_id, api_key, **kwargs)
        instance.set_logger(logger or default_logger)
        instance.logger.info(f"Algolia client ready for application {app_id}")
        return instance

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    # -------------------------------------------------------------------------
    # Index client interface
    # -------------------------------------------------------------------------

    async def count_hits(self, index_name: str) -> int:
        body = await self._request(
            "POST", f"{self._index_path(index_name)}/query", json={"params": "hitsPerPage=0"}
        )
        return int(body.get("nbHits", 0))

    async def browse(
        self, index_name: str, attributes_to_retrieve: Sequence[str]
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        path = f"{self._index_path(index_name)}/browse"
        payload: Dict[str, Any] = {"attributesToRetrieve": list(attributes_to_retrieve)}
        first_page = True
        while True:
            try:
                body = await self._request("POST", path, json=payload)
            except httpx.HTTPStatusError as e:
                # Algolia answers 404 for an index that was never written to
                if first_page and e.response.status_code == 404:
                    self.logger.info(f"[Algolia] Index '{index_name}' does not exist yet")
                    return
                raise
            first_page = False
            hits = body.get("hits") or []
            if hits:
                yield hits
            cursor = body.get("cursor")
            if not cursor:
                return
            payload = {"cursor": cursor}

    async def save_objects(self, index_name: str, records: List[Dict[str, Any]]) -> int:
        requests = [{"action": "updateObject", "body": record} for record in records]
        return await self._batch(index_name, requests)

    async def delete_objects(self, index_name: str, object_ids: List[str]) -> int:
        requests = [
            {"action": "deleteObject", "body": {"objectID": object_id}} for object_id in object_ids
        ]
        return await self._batch(index_name, requests)

    async def clear_objects(self, index_name: str) -> int:
        body = await self._request("POST", f"{self._index_path(index_name)}/clear")
        return body["taskID"]

    async def wait_task(self, index_name: str, task_id: int) -> None:
        path = f"{self._index_path(index_name)}/task/{task_id}"
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_result(lambda status: status != TASK_PUBLISHED),
                wait=wait_fixed(self.poll_interval),
                stop=stop_after_delay(self.task_timeout),
            ):
                with attempt:
                    body = await self._request("GET", path)
                    status = body.get("status")
                if not attempt.retry_state.outcome.failed:
                    attempt.retry_state.set_result(status)
        except RetryError as e:
            raise TimeoutError(
                f"Task {task_id} on index '{index_name}' not published "
                f"after {self.task_timeout}s"
            ) from e

    async def copy_index(
        self, source_name: str, target_name: str, scope: Optional[Sequence[str]] = None
    ) -> int:
        payload: Dict[str, Any] = {"operation": "copy", "destination": target_name}
        if scope:
            payload["scope"] = list(scope)
        body = await self._request(
            "POST", f"{self._index_path(source_name)}/operation", json=payload
        )
        return body["taskID"]

    async def move_index(self, source_name: str, target_name: str) -> int:
        body = await self._request(
            "POST",
            f"{self._index_path(source_name)}/operation",
            json={"operation": "move", "destination": target_name},
        )
        return body["taskID"]

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _index_path(index_name: str) -> str:
        return f"/1/indexes/{quote(index_name, safe='')}"

    async def _batch(self, index_name: str, requests: List[Dict[str, Any]]) -> int:
        body = await self._request(
            "POST", f"{self._index_path(index_name)}/batch", json={"requests": requests}
        )
        return body["taskID"]

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send a request, retrying transient failures, and return the JSON body."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            retry=retry_if_transient,
            wait=wait_rate_limit_with_backoff,
            reraise=True,
        ):
            with attempt:
                response = await self._client.request(method, path, **kwargs)
                if response.status_code == 429 or response.status_code >= 500:
                    self.logger.warning(
                        f"[Algolia] {method} {path} returned {response.status_code}, retrying"
                    )
                response.raise_for_status()
                return response.json()
