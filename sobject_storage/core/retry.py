"""Retry with exponential backoff for coroutine-producing operations.

Approximate delays with the default backoff factor of 50ms:

    Retry #          1    2    3    4     5     6     7      8      9
    Delay ms         100  200  400  800   1600  3200  6400   12800  25600
    Total delay ms   100  300  700  1500  3100  6300  12700  25500  51100
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 9
DEFAULT_RETRY_BACKOFF_FACTOR = 50

RetryPredicate = Callable[[BaseException, int], "bool | Awaitable[bool]"]

_logger = logging.getLogger(__name__)


def _always_retry(error: BaseException, current_retry: int) -> bool:
    return True


def backoff_delay_ms(current_retry: int, retry_backoff_factor: int) -> int:
    """Delay before attempt number *current_retry* (0 for the first attempt)."""
    if current_retry <= 0:
        return 0
    return (2**current_retry) * retry_backoff_factor


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int | None = None,
    retry_backoff_factor: int | None = None,
    retry_predicate: RetryPredicate | None = None,
    logger: Any = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Await ``operation()`` until it succeeds or retrying is no longer allowed.

    A failure is retried while ``current_retry < max_retries`` and
    ``retry_predicate(error, current_retry)`` is true (the predicate may be
    a coroutine function). Otherwise the original exception propagates
    unchanged.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt.
        max_retries: Retries after the initial attempt. Defaults to 9.
        retry_backoff_factor: Milliseconds multiplied by 2**retry. Defaults to 50.
        retry_predicate: Decides whether an error is retryable.
        logger: Receives a warning for every retry and give-up decision.
        sleep: Awaitable sleep taking seconds; injectable for tests.
    """
    max_retries = DEFAULT_MAX_RETRIES if max_retries is None else max_retries
    if retry_backoff_factor is None:
        retry_backoff_factor = DEFAULT_RETRY_BACKOFF_FACTOR
    predicate = retry_predicate or _always_retry
    log = logger or _logger

    current_retry = 0
    while True:
        backoff_ms = backoff_delay_ms(current_retry, retry_backoff_factor)
        if backoff_ms:
            await sleep(backoff_ms / 1000)

        try:
            return await operation()
        except Exception as error:
            retryable = False
            if current_retry < max_retries:
                decision = predicate(error, current_retry)
                if inspect.isawaitable(decision):
                    decision = await decision
                retryable = bool(decision)

            details = {
                "current_retry": current_retry,
                "max_retries": max_retries,
                "backoff_ms": backoff_ms,
                "error": repr(error),
            }
            if not retryable:
                log.warning(
                    "Retry limit exceeded or error not retryable (attempt %d of %d): %s",
                    current_retry + 1,
                    max_retries + 1,
                    error,
                    extra={"sobject_context": details},
                )
                raise

            log.warning(
                "Error executing operation, retrying (attempt %d of %d): %s",
                current_retry + 1,
                max_retries + 1,
                error,
                extra={"sobject_context": details},
            )
            current_retry += 1
