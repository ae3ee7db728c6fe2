"""Bounded retry loop for summarization calls.

Driven by the SummaryResult each attempt returns rather than by exceptions:
retryable failures sleep and try again, anything else returns immediately.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from devrecap.core.exceptions import RunCancelled
from devrecap.services.summarizer.types import SummaryResult

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAYS = [2, 4, 8]


async def call_with_retry(
    fn: Callable[[], Awaitable[SummaryResult]],
    *,
    max_attempts: int = MAX_RETRIES,
    delays: list[float] | None = None,
    operation_name: str = "Summary",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    should_stop: Callable[[], bool] | None = None,
) -> tuple[SummaryResult, int]:
    """Run fn until it succeeds, fails non-retryably, or attempts run out.

    Args:
        fn: Zero-arg async callable performing one attempt.
        max_attempts: Upper bound on calls to fn (at least one is made).
        delays: Seconds to wait after each failed attempt; the last value
            repeats if there are more attempts than delays.
        operation_name: Label for log messages.
        sleep: Awaitable sleep, replaceable in tests.
        should_stop: Checked before every attempt; True aborts the loop.

    Returns:
        The last SummaryResult and the number of attempts made.

    Raises:
        RunCancelled: should_stop returned True before an attempt.
    """
    delays = delays or RETRY_DELAYS
    attempts = max(1, max_attempts)
    result = SummaryResult()

    for attempt in range(attempts):
        if should_stop is not None and should_stop():
            raise RunCancelled(f"{operation_name} cancelled before attempt {attempt + 1}")

        result = await fn()
        if result.succeeded:
            if attempt > 0:
                logger.info(f"{operation_name} succeeded on attempt {attempt + 1}/{attempts}")
            return result, attempt + 1

        if not result.retryable:
            logger.error(f"{operation_name} failed ({result.failure.value}), not retrying: {result.message}")
            return result, attempt + 1

        if attempt < attempts - 1:
            delay = delays[min(attempt, len(delays) - 1)]
            logger.warning(
                f"{operation_name} error (attempt {attempt + 1}/{attempts}), "
                f"retrying in {delay}s: {result.message}"
            )
            await sleep(delay)
        else:
            logger.error(f"{operation_name} failed after {attempts} attempts: {result.message}")

    return result, attempts
