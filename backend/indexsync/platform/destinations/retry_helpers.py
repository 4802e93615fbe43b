"""Retry helpers for index clients.

Transient failures of the search service (rate limits, server errors, network
timeouts) are retried by the client; everything else propagates to the sync.
"""

import httpx
from tenacity import retry_if_exception, wait_exponential


def should_retry_on_rate_limit(exception: BaseException) -> bool:
    """Check if exception is a retryable rate limit (429)."""
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code == 429
    return False


def should_retry_on_server_error(exception: BaseException) -> bool:
    """Check if exception is a 5xx response."""
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code >= 500
    return False


def should_retry_on_transport_error(exception: BaseException) -> bool:
    """Check if exception is a timeout or a dropped connection."""
    return isinstance(exception, (httpx.TimeoutException, httpx.NetworkError))


def should_retry_transient(exception: BaseException) -> bool:
    """Combined retry condition for index service calls.

    Example:
        AsyncRetrying(
            stop=stop_after_attempt(4),
            retry=retry_if_transient,
            wait=wait_rate_limit_with_backoff,
            reraise=True,
        )
    """
    return (
        should_retry_on_rate_limit(exception)
        or should_retry_on_server_error(exception)
        or should_retry_on_transport_error(exception)
    )


def wait_rate_limit_with_backoff(retry_state) -> float:
    """Wait strategy that respects Retry-After for 429s, exponential backoff otherwise.

    Args:
        retry_state: tenacity retry state

    Returns:
        Number of seconds to wait before retry
    """
    exception = retry_state.outcome.exception()

    if isinstance(exception, httpx.HTTPStatusError) and exception.response.status_code == 429:
        retry_after = exception.response.headers.get("Retry-After")
        if retry_after:
            try:
                # At least 1s so retries do not burn through attempts inside one window
                return min(max(float(retry_after), 1.0), 60.0)
            except (ValueError, TypeError):
                pass
        return wait_exponential(multiplier=1, min=2, max=30)(retry_state)

    return wait_exponential(multiplier=0.5, min=0.5, max=10)(retry_state)


retry_if_transient = retry_if_exception(should_retry_transient)
