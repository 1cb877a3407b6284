"""Retry logic with exponential backoff and jitter.

This module provides:
- is_transient_error: Classify errors worth retrying
- backoff_delay: Exponential delay (without jitter) for a failed attempt
- with_retry: Retry an async operation with bounded backoff

Exhausting every attempt raises RetryExhaustedError chained to the last
underlying error. Fatal errors are re-raised unchanged on first occurrence.
"""

from __future__ import annotations

import asyncio
import logging
import random as _random
import re
from collections.abc import Awaitable, Callable
from typing import TypeVar

from docsync.client.sync.types import AttemptCallback, RetryExhaustedError
from docsync.core.config import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Exceptions that indicate connectivity issues
TRANSIENT_EXCEPTIONS: tuple[type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
)

# Messages of network/timeout failures, or HTTP 5xx/429 statuses
TRANSIENT_MESSAGE_PATTERN = re.compile(
    r"timeout|timed out|network|connection|unavailable|too many requests"
    r"|\b(?:HTTP|status(?: code)?)\s*:?\s*(?:5\d\d|429)\b",
    re.IGNORECASE,
)


def is_transient_error(error: BaseException) -> bool:
    """Check whether an error is expected to resolve on retry.

    Errors flagged with ``transient = True`` are transient. So are
    connection/timeout exceptions and messages that look like network,
    timeout, HTTP 5xx or 429 failures, whatever the flag says.

    Args:
        error: The raised exception.

    Returns:
        True if the operation should be retried.
    """
    if getattr(error, "transient", False) is True:
        return True

    if isinstance(error, TRANSIENT_EXCEPTIONS):
        return True

    return bool(TRANSIENT_MESSAGE_PATTERN.search(str(error)))


def backoff_delay(attempt: int, policy: RetryPolicy) -> float:
    """Delay after the given failed attempt (1-indexed), before jitter."""
    return min(policy.max_delay, policy.base_delay * 2 ** (attempt - 1))


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    on_attempt: AttemptCallback | None = None,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    random: Callable[[], float] = _random.random,
) -> T:
    """Execute an async operation with exponential backoff retry.

    Args:
        operation: Zero-argument coroutine function to execute.
        policy: Attempt limit and delay settings.
        on_attempt: Called with the 0-based attempt index before each attempt.
        sleep: Awaitable sleep used between attempts.
        random: Source of uniform values in [0, 1) for jitter.

    Returns:
        Result of the operation.

    Raises:
        The operation's error if it is not transient.
        RetryExhaustedError: If every attempt failed with a transient error.
    """
    for attempt in range(1, policy.max_attempts + 1):
        if on_attempt:
            on_attempt(attempt - 1)

        try:
            return await operation()
        except Exception as e:
            if not is_transient_error(e):
                raise

            if attempt == policy.max_attempts:
                logger.error(f"All {policy.max_attempts} attempts failed: {e}")
                raise RetryExhaustedError(attempt, e) from e

            delay = backoff_delay(attempt, policy)
            delay += delay * policy.jitter_ratio * random()
            logger.warning(
                f"Attempt {attempt}/{policy.max_attempts} failed: {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            await sleep(delay)

    # Unreachable: max_attempts >= 1 is enforced by RetryPolicy
    raise RuntimeError("Unexpected retry loop exit")
