"""
Bounded retry with exponential backoff and proportional jitter for chunk reviews
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from ai_code_review.exceptions import ConfigurationException
from ai_code_review.models.review_models import ChunkResult, ChunkStatus

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
BASE_DELAY = 1.0
MAX_DELAY = 10.0
MIN_DELAY = 0.1
JITTER = 0.2

StatusCallback = Callable[[ChunkStatus], None]


class wait_exponential_proportional_jitter(wait_base):
    """Wait ``min(max, base * 2**(n-1))`` seconds, perturbed by +/- ``jitter``,
    floored at ``minimum``."""

    def __init__(
        self,
        base: float = BASE_DELAY,
        max: float = MAX_DELAY,  # noqa: A002
        jitter: float = JITTER,
        minimum: float = MIN_DELAY,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.base = base
        self.max = max
        self.jitter = jitter
        self.minimum = minimum
        self.rng = rng or random.Random()

    def __call__(self, retry_state: RetryCallState) -> float:
        exponential = min(self.max, self.base * 2 ** (retry_state.attempt_number - 1))
        perturbation = exponential * self.rng.uniform(-self.jitter, self.jitter)
        return max(self.minimum, exponential + perturbation)


def _log_before_sleep(chunk_number: int, max_retries: int):
    def log_it(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"Chunk {chunk_number} failed ({type(error).__name__}): {error}. "
            f"Retry {retry_state.attempt_number}/{max_retries} in {delay:.1f}s",
            extra={
                "operation": "chunk_retry_wait",
                "chunk_number": chunk_number,
                "attempt": retry_state.attempt_number,
                "error_type": type(error).__name__,
                "delay": delay,
            },
        )

    return log_it


async def execute_with_retry(
    operation: Callable[[], Awaitable[ChunkResult]],
    *,
    chunk_number: int = 1,
    on_status: Optional[StatusCallback] = None,
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    max_delay: float = MAX_DELAY,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rng: Optional[random.Random] = None,
) -> ChunkResult:
    """
    Run ``operation`` with up to ``max_retries`` retries after the first attempt.

    ``on_status`` receives ``ChunkStatus.RETRYING`` before every retry. A result
    obtained after at least one retry is annotated with ``retry_attempts`` and
    ``retry_success=True``. When every attempt fails the last error is annotated
    with ``retry_attempts=max_retries`` and ``retry_success=False`` and re-raised.
    Configuration errors are never retried, and cancellation propagates at once.

    Args:
        operation: Zero-argument coroutine factory performing one attempt
        chunk_number: 1-based chunk ordinal, for logging
        on_status: Status transition observer
        max_retries: Retries after the initial attempt
        base_delay: Delay before the first retry in seconds
        max_delay: Upper bound of the exponential delay in seconds
        sleep: Awaitable sleep used between attempts
        rng: Random source for jitter

    Returns:
        ChunkResult of the first successful attempt
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential_proportional_jitter(
            base=base_delay, max=max_delay, rng=rng
        ),
        retry=(
            retry_if_exception_type(Exception)
            & retry_if_not_exception_type(ConfigurationException)
        ),
        before_sleep=_log_before_sleep(chunk_number, max_retries),
        sleep=sleep,
        reraise=True,
    )

    retries = 0
    try:
        async for attempt in retrying:
            with attempt:
                retries = attempt.retry_state.attempt_number - 1
                if retries > 0:
                    logger.info(
                        f"Retry attempt {retries}/{max_retries} for chunk {chunk_number}",
                        extra={"operation": "chunk_retry", "chunk_number": chunk_number},
                    )
                    if on_status:
                        on_status(ChunkStatus.RETRYING)
                result = await operation()
    except Exception as e:
        if not isinstance(e, ConfigurationException):
            e.retry_attempts = max_retries  # type: ignore[attr-defined]
            e.retry_success = False  # type: ignore[attr-defined]
        raise

    if retries > 0:
        result.retry_attempts = retries
        result.retry_success = True
    return result
