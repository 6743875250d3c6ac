"""Retry policy for calls to remote HTTP collaborators."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from edupass.core.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")

# Transport failures worth another attempt. HTTP error statuses are not
# retried: the response is final for that item.
RETRYABLE_EXCEPTIONS = (
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    ConnectionError,
    TimeoutError,
)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "remote_call_retry",
        attempt=retry_state.attempt_number,
        error_type=type(exc).__name__ if exc else None,
        error=str(exc) if exc else None,
    )


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    min_wait: float = 0.5,
    max_wait: float = 5.0,
) -> T:
    """Await ``func()`` with exponential backoff on transport errors.

    The last exception is re-raised once attempts are exhausted.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        before_sleep=_log_retry,
        reraise=True,
    ):
        with attempt:
            return await func()
    raise AssertionError("unreachable")  # pragma: no cover
