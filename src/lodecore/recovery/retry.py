"""
Generic retry/backoff executor for fallible async operations.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from ..protocols import RetryPolicy
from .classifier import ErrorClass, classify_error

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]
Classifier = Callable[[BaseException], ErrorClass]


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    classifier: Classifier = classify_error,
    sleep: Optional[Sleeper] = None,
    label: str = "operation",
) -> T:
    """
    Run ``operation`` until it succeeds, retrying retryable failures.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        policy: Attempt budget and backoff shape.
        classifier: Maps an exception to retryable/terminal.
        sleep: Delay coroutine, ``asyncio.sleep`` unless overridden.
        label: Name used in log events.

    Returns:
        Whatever ``operation`` returns on its first successful attempt.

    Raises:
        The most recent exception, unchanged, once attempts are exhausted or
        as soon as a terminal error is seen.
    """
    sleeper = sleep or asyncio.sleep

    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error_class = classifier(e)
            if error_class is ErrorClass.TERMINAL:
                logger.debug(
                    "Terminal failure, not retrying",
                    label=label,
                    attempt=attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            if attempt >= policy.max_attempts:
                logger.info(
                    "Retries exhausted",
                    label=label,
                    attempts=attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            delay = policy.delay_for(attempt)
            logger.info(
                "Retrying after transient failure",
                label=label,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay=delay,
                error=str(e),
            )
            await sleeper(delay)
