"""Bounded exponential-backoff retry policy.

Applied explicitly where it is needed (agent construction, swarm config
generation) so the attempt bound and the retryable-error predicate can be
tested on their own.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from .errors import TransientBackendError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    TransientBackendError,
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


def is_transient(exc: BaseException) -> bool:
    """Connectivity and timeout class failures are worth another attempt."""
    return isinstance(exc, TRANSIENT_ERRORS)


def log_retry(attempt: int, exc: BaseException, delay: Optional[float]) -> None:
    if delay is None:
        logger.error("Attempt %d failed, giving up: %s", attempt, exc)
    else:
        logger.warning("Attempt %d failed, retrying in %.1fs: %s", attempt, delay, exc)


class RetryExhausted(Exception):
    """Raised by ``RetryPolicy.call`` when every attempt failed on a retryable error."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Gave up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    min_delay: float = 4.0
    max_delay: float = 10.0
    multiplier: float = 1.0
    jitter: bool = False
    retry_on: Callable[[BaseException], bool] = is_transient
    # Observability sink: called with (attempt, error, next delay or None)
    on_retry: Callable[[int, BaseException, Optional[float]], None] = log_retry
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self) -> None:
        self.max_attempts = max(1, int(self.max_attempts))
        if self.max_delay < self.min_delay:
            raise ValueError("max_delay must be >= min_delay")

    @classmethod
    def from_config(cls, config: dict, max_attempts: Optional[int] = None, **kwargs) -> "RetryPolicy":
        """Build a policy from the ``construction`` section of the effective config."""
        section = config.get("construction", {})
        return cls(
            max_attempts=max_attempts if max_attempts is not None else section.get("retry_attempts", 3),
            min_delay=section.get("min_delay_seconds", 4),
            max_delay=section.get("max_delay_seconds", 10),
            multiplier=section.get("multiplier", 1),
            jitter=section.get("jitter", False),
            **kwargs,
        )

    def delay_for(self, attempt: int) -> float:
        """Wait before the attempt following ``attempt`` (1-based)."""
        delay = self.multiplier * (2 ** (attempt - 1))
        if self.jitter:
            delay += random.uniform(0, 1)
        return max(self.min_delay, min(delay, self.max_delay))

    def _report(self, attempt: int, exc: BaseException, delay: Optional[float]) -> None:
        try:
            self.on_retry(attempt, exc, delay)
        except Exception as sink_error:
            logger.warning("Retry observer failed: %s", sink_error)

    async def call(self, fn: Callable[[int], Awaitable[T]]) -> T:
        """Run ``fn(attempt)`` until it succeeds or the policy gives up.

        Non-retryable errors propagate unchanged on first occurrence.
        Exhausting the attempt budget raises ``RetryExhausted``.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await fn(attempt)
            except Exception as e:
                if not self.retry_on(e):
                    raise
                if attempt >= self.max_attempts:
                    self._report(attempt, e, None)
                    raise RetryExhausted(attempt, e) from e
                delay = self.delay_for(attempt)
                self._report(attempt, e, delay)
                await self.sleep(delay)
        raise AssertionError("unreachable")
