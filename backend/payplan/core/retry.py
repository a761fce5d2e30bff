"""Exponential backoff retry for transient infrastructure failures."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import httpx
from sqlalchemy.exc import DisconnectionError, OperationalError

from payplan.core.errors import TransientInfrastructureError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_PATTERNS = (
    "econnreset",
    "etimedout",
    "econnrefused",
    "connection",
    "timeout",
    "timed out",
)


def is_transient_error(error: BaseException) -> bool:
    """Classify an error as transient (retryable) or permanent.

    Connection resets, timeouts and refused connections are transient.
    Schema, validation and business errors are not.
    """
    if isinstance(error, TransientInfrastructureError):
        return True
    if isinstance(error, OperationalError | DisconnectionError):
        return True
    if isinstance(error, httpx.TransportError | TimeoutError | ConnectionError):
        return True
    message = str(error).lower()
    return any(pattern in message for pattern in TRANSIENT_PATTERNS)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    is_transient: Callable[[BaseException], bool] = is_transient_error

    def delay_for(self, attempt: int) -> float:
        """Delay to sleep after the given (1-based) failed attempt."""
        return self.base_delay * (2 ** (attempt - 1))


@dataclass
class RetryOutcome(Generic[T]):
    """Result of a retried call: either ``value`` or ``error`` is set."""

    value: T | None = None
    error: BaseException | None = None
    attempts: int = 0
    delays: list[float] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> RetryOutcome[T]:
    """Run ``fn`` under ``policy`` and return the outcome instead of raising.

    Non-transient errors stop immediately. Transient errors are retried until
    ``policy.max_attempts`` is reached, sleeping ``base_delay * 2**n`` between
    attempts.
    """
    outcome: RetryOutcome[T] = RetryOutcome()
    for attempt in range(1, policy.max_attempts + 1):
        outcome.attempts = attempt
        try:
            outcome.value = await fn()
            outcome.error = None
            return outcome
        except Exception as exc:
            outcome.error = exc
            if not policy.is_transient(exc):
                logger.warning("Non-transient error on attempt %d: %s", attempt, exc)
                return outcome
            if attempt >= policy.max_attempts:
                logger.warning("Giving up after %d attempts: %s", attempt, exc)
                return outcome
            delay = policy.delay_for(attempt)
            logger.warning(
                "Transient error on attempt %d/%d, retrying in %.1fs: %s",
                attempt,
                policy.max_attempts,
                delay,
                exc,
            )
            outcome.delays.append(delay)
            await sleep(delay)
    return outcome
