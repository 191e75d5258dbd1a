"""Retryable error classification with exponential backoff retry.

Classifies errors as retryable (transient) or non-retryable (permanent).
The API client retries read-only calls with ``with_retry``; the reconciler
tags failure logs with ``is_retryable``.

Usage:
    from instancevol.core.retryable import is_retryable, with_retry

    # Check if error is retryable
    if is_retryable(exc):
        # retry logic

    # Execute with automatic retry
    result = await with_retry(lambda: some_async_operation())
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from instancevol.core.errors import (
    RemoteAPIError,
    RemoteNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# httpx error classification
# =============================================================================

HTTPX_RETRYABLE = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
)

HTTPX_NON_RETRYABLE = (
    httpx.InvalidURL,
    httpx.TooManyRedirects,
)


def is_status_retryable(status: int) -> bool:
    """429 and 5xx are transient, other 4xx are not."""
    if status == 429:
        return True
    return status >= 500


def is_httpx_retryable(exc: Exception) -> bool:
    """Check if httpx exception is retryable."""
    if isinstance(exc, HTTPX_RETRYABLE):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return is_status_retryable(exc.response.status_code)
    return False


# =============================================================================
# Unified classification
# =============================================================================


def classify_error(exc: Exception) -> str:
    """Classify error as 'retryable', 'permanent', or 'unknown'.

    Args:
        exc: Exception to classify

    Returns:
        'retryable': Transient error, can retry
        'permanent': Permanent error, should not retry
        'unknown': Cannot classify
    """
    if isinstance(exc, asyncio.TimeoutError):
        return "retryable"

    if isinstance(exc, (ValidationError, RemoteNotFoundError)):
        return "permanent"

    if isinstance(exc, RemoteAPIError):
        if exc.status and is_status_retryable(exc.status):
            return "retryable"
        return "permanent"

    if isinstance(exc, httpx.HTTPStatusError):
        return "retryable" if is_httpx_retryable(exc) else "permanent"
    if isinstance(exc, HTTPX_RETRYABLE):
        return "retryable"
    if isinstance(exc, HTTPX_NON_RETRYABLE):
        return "permanent"

    return "unknown"


def is_retryable(exc: Exception) -> bool:
    """Check if error is retryable (transient).

    Unknown errors are treated as not retryable.
    """
    return classify_error(exc) == "retryable"


# =============================================================================
# Retry utility
# =============================================================================


async def with_retry(
    coro_factory: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
) -> T:
    """Execute async operation with exponential backoff retry.

    Only retries for retryable errors (transient failures).
    Non-retryable and unknown errors are raised immediately.

    Args:
        coro_factory: Factory function that creates new coroutine for each attempt
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 30.0)

    Returns:
        Result of successful operation

    Raises:
        Exception: The last exception if all retries fail, or immediately
                   for non-retryable errors
    """
    last_exc: Exception | None = None

    for attempt in range(max_retries + 1):
        try:
            return await coro_factory()
        except Exception as exc:
            last_exc = exc
            error_class = classify_error(exc)

            if error_class != "retryable":
                raise

            if attempt == max_retries:
                logger.error(
                    "Max retries exceeded (%d attempts): %s",
                    max_retries + 1,
                    exc,
                    extra={"error_class": error_class, "attempt": attempt + 1},
                )
                raise

            delay = min(base_delay * (2**attempt), max_delay)
            # Jitter: 50% ~ 150% of delay
            jittered_delay = delay * (0.5 + random.random())
            logger.warning(
                "Retryable error (attempt %d/%d, retry in %.1fs): %s",
                attempt + 1,
                max_retries + 1,
                jittered_delay,
                exc,
                extra={
                    "error_class": error_class,
                    "attempt": attempt + 1,
                    "delay": jittered_delay,
                },
            )
            await asyncio.sleep(jittered_delay)

    # Unreachable, satisfies the type checker
    if last_exc:
        raise last_exc
    raise RuntimeError("Unexpected state in with_retry")
