"""Retry wrapper with exponential backoff and jitter for reasoning-service calls"""

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import httpx

from finpulse_gateway.config import settings
from finpulse_gateway.domain.exceptions import (
    DomainException,
    ErrorKind,
    RateLimitError,
    RemoteServiceError,
    TransientError,
)
from finpulse_gateway.infrastructure.observability.logging import log_retry
from finpulse_gateway.infrastructure.observability.metrics import (
    reasoning_latency_histogram,
    reasoning_retry_counter,
)

T = TypeVar("T")

_RATE_LIMIT_MARKERS = ("429", "resource_exhausted", "quota")
_TRANSIENT_MARKERS = ("500", "503", "xhr error", "rpc failed", "unknown error")


def _classify_status(status_code: int) -> ErrorKind:
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code >= 500:
        return ErrorKind.TRANSIENT
    return ErrorKind.FATAL


def classify_error(error: BaseException) -> ErrorKind:
    """
    Map a failure to rate-limited, transient or fatal.

    - Explicit status codes win: 429 is rate-limited, 5xx transient, other 4xx fatal
    - Transport failures and timeouts are transient
    - Local domain errors (validation, contract) are fatal
    - Anything else falls back to message inspection, then fatal
    """
    if isinstance(error, RemoteServiceError):
        kind = _classify_status(error.status_code)
        if kind is ErrorKind.FATAL and any(m in str(error).lower() for m in _RATE_LIMIT_MARKERS):
            return ErrorKind.RATE_LIMITED
        return kind
    if isinstance(error, httpx.HTTPStatusError):
        return _classify_status(error.response.status_code)
    if isinstance(error, (httpx.TransportError, asyncio.TimeoutError)):
        return ErrorKind.TRANSIENT
    if isinstance(error, DomainException):
        return ErrorKind.FATAL

    message = str(error).lower()
    if any(m in message for m in _RATE_LIMIT_MARKERS):
        return ErrorKind.RATE_LIMITED
    if any(m in message for m in _TRANSIENT_MARKERS):
        return ErrorKind.TRANSIENT
    return ErrorKind.FATAL


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: base * 2^attempt + uniform(0, jitter), in milliseconds"""

    max_attempts: int = 5
    base_delay_ms: int = 2000
    jitter_ms: int = 1000

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.reasoning_max_attempts,
            base_delay_ms=settings.reasoning_backoff_base_ms,
            jitter_ms=settings.reasoning_jitter_ms,
        )

    def base_wait_ms(self, retry_index: int) -> float:
        """Wait before retry number retry_index (0-based): 2s, 4s, 8s, 16s, ..."""
        return self.base_delay_ms * (2 ** retry_index)


class ResilientInvoker:
    """
    Runs an async operation, retrying rate-limited and transient failures.

    Retry strategy:
    - Up to max_attempts calls in total (5 by default, so at most 4 waits)
    - Fatal failures propagate immediately, unchanged
    - After the last attempt the failure is re-raised as RateLimitError or
      TransientError (chained to the original) so callers can tell quota
      exhaustion from a generic outage
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def wait_ms(self, retry_index: int) -> float:
        return self.policy.base_wait_ms(retry_index) + self._rng.uniform(0, self.policy.jitter_ms)

    async def invoke(self, operation: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            attempt += 1
            started = time.perf_counter()
            try:
                result = await operation()
                reasoning_latency_histogram.observe(time.perf_counter() - started)
                return result
            except Exception as e:
                reasoning_latency_histogram.observe(time.perf_counter() - started)
                kind = classify_error(e)
                if kind is ErrorKind.FATAL:
                    raise

                if attempt >= self.policy.max_attempts:
                    # Final failure after all retries
                    error_cls = RateLimitError if kind is ErrorKind.RATE_LIMITED else TransientError
                    raise error_cls(
                        f"Reasoning service failed after {attempt} attempts: {e}",
                        attempts=attempt,
                    ) from e

                wait = self.wait_ms(attempt - 1)
                reasoning_retry_counter.labels(kind=kind.value).inc()
                log_retry(attempt, self.policy.max_attempts, kind.value, wait, e)

            # Exponential backoff: 2s, 4s, 8s, 16s plus jitter
            await self._sleep(wait / 1000)
