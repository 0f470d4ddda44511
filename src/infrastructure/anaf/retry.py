"""Bounded retry with exponential backoff and jitter.

The first attempt runs immediately. Before every further attempt the caller
waits ``delay`` and the delay then grows::

    delay = min(delay * multiplier + uniform(0, jitter), max_delay)

An ``HttpStatusError`` below 500 (other than 429) ends the retries at once:
the upstream has given a definitive answer and repeating the question will
not change it. The firewall rejection page is treated the same way whatever
status it came with.

The loop itself is tenacity's ``AsyncRetrying``. The delay arithmetic is the
pure ``next_delay``, fed to tenacity through ``BackoffWait``; waiting and
randomness are injected so tests can run the engine without real time passing.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Self

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)

from src.core.config import RetryConfig
from src.core.constants import MILLISECONDS_PER_SECOND
from src.infrastructure.anaf.errors import HttpStatusError, UpstreamError

RATE_LIMITED_STATUS = 429
SERVER_ERROR_STATUS = 500

type Sleep = Callable[[float], Awaitable[None]]
type JitterSource = Callable[[float, float], float]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Numeric parameters of the backoff.

    Attributes:
        retries: Attempts after the first one.
        initial_delay_ms: Wait before the first retry.
        max_delay_ms: Cap for any single wait.
        multiplier: Growth factor of the wait.
        jitter_ms: Upper bound of the uniform jitter added after each wait.
    """

    retries: int = 3
    initial_delay_ms: float = 2000
    max_delay_ms: float = 10000
    multiplier: float = 1.5
    jitter_ms: float = 1000

    def __post_init__(self) -> None:
        if self.retries < 0:
            msg = "retries must not be negative"
            raise ValueError(msg)
        if not 0 <= self.initial_delay_ms <= self.max_delay_ms:
            msg = "initial_delay_ms must be between 0 and max_delay_ms"
            raise ValueError(msg)

    @classmethod
    def from_config(cls, config: RetryConfig) -> Self:
        """Build the policy from application settings."""
        return cls(
            retries=config.retries,
            initial_delay_ms=config.initial_delay_ms,
            max_delay_ms=config.max_delay_ms,
            multiplier=config.multiplier,
            jitter_ms=config.jitter_ms,
        )


@dataclass(frozen=True, slots=True)
class RetryState:
    """Where one top-level call stands: attempt number and the next wait."""

    attempt: int
    delay_ms: float


def next_delay(state: RetryState, policy: RetryPolicy, jitter_ms: float) -> float:
    """Compute the wait that follows the current one.

    Args:
        state: Current retry state.
        policy: Backoff parameters.
        jitter_ms: A jitter sample in ``[0, policy.jitter_ms]``.

    Returns:
        float: The next delay in milliseconds, never above ``max_delay_ms``.
    """
    return min(state.delay_ms * policy.multiplier + jitter_ms, policy.max_delay_ms)


def is_terminal(error: UpstreamError) -> bool:
    """Whether retrying cannot change the outcome of this error."""
    if not isinstance(error, HttpStatusError):
        return False
    if error.is_firewall_rejection:
        return True
    return error.status < SERVER_ERROR_STATUS and error.status != RATE_LIMITED_STATUS


def is_retryable(error: BaseException) -> bool:
    """Whether tenacity should try ``error`` again."""
    return isinstance(error, UpstreamError) and not is_terminal(error)


class BackoffWait:
    """tenacity wait strategy that hands out the current delay, then grows it.

    Every retry sleeps for the delay held in ``state`` and only afterwards
    advances it with ``next_delay``, so the first retry waits exactly
    ``initial_delay_ms``.
    """

    def __init__(self, policy: RetryPolicy, jitter: JitterSource) -> None:
        self.policy = policy
        self.jitter = jitter
        self.state = RetryState(attempt=0, delay_ms=policy.initial_delay_ms)

    def __call__(self, retry_state: RetryCallState) -> float:
        current = self.state
        self.state = RetryState(
            attempt=retry_state.attempt_number,
            delay_ms=next_delay(
                current, self.policy, self.jitter(0, self.policy.jitter_ms)
            ),
        )
        return current.delay_ms / MILLISECONDS_PER_SECOND


def _log_before_sleep(policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def log(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        sleep_s = retry_state.next_action.sleep if retry_state.next_action else 0
        wait_ms = round(sleep_s * MILLISECONDS_PER_SECOND)
        context = error.log_context() if isinstance(error, UpstreamError) else {}
        logger.warning(
            "Attempt {}/{} failed: {} - waiting {}ms before retry",
            retry_state.attempt_number,
            policy.retries + 1,
            error,
            wait_ms,
            attempt=retry_state.attempt_number,
            **context,
        )

    return log


async def with_retry[T](
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
    jitter: JitterSource = random.uniform,
) -> T:
    """Run ``operation`` with bounded retries.

    Args:
        operation: The unit of work; raises ``UpstreamError`` on failure.
        policy: Backoff parameters.
        sleep: Awaitable sleep taking seconds.
        jitter: Random source called as ``jitter(0, policy.jitter_ms)``.

    Returns:
        T: Whatever the first successful attempt returned.

    Raises:
        UpstreamError: The terminal error, or the last error once every
            attempt has failed.
    """
    retrying = AsyncRetrying(
        sleep=sleep,
        stop=stop_after_attempt(policy.retries + 1),
        wait=BackoffWait(policy, jitter),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_before_sleep(policy),
        reraise=True,
    )
    return await retrying(operation)
