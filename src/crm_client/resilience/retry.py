"""Bounded retry for recovery-sensitive calls.

Fixed attempt count, fixed inter-attempt delay -- no backoff, no jitter.
Built on tenacity's AsyncRetrying with ``reraise=True`` so exhaustion
surfaces the last underlying error itself, not a RetryError wrapper.

The policy retries on any exception unless the caller passes a
``should_retry`` predicate. That includes 4xx validation errors from the
server; callers that want selective retry pass ``is_transient_error``
(or their own filter).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
import structlog
from pydantic import BaseModel, Field, model_validator
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
RetryPredicate = Callable[[BaseException], bool]


class RetryAttempt(BaseModel):
    """Where a retried operation stands after a failed attempt."""

    attempt_number: int = Field(ge=1)
    max_attempts: int = Field(ge=1)
    delay_ms: int = Field(ge=0)

    @model_validator(mode="after")
    def _within_budget(self) -> RetryAttempt:
        if self.attempt_number > self.max_attempts:
            msg = (
                f"attempt_number {self.attempt_number} exceeds "
                f"max_attempts {self.max_attempts}"
            )
            raise ValueError(msg)
        return self


def _retry_everything(error: BaseException) -> bool:
    return True


def _only_exceptions(predicate: RetryPredicate) -> RetryPredicate:
    # Cancellation and interpreter exit are never retried.
    return lambda error: isinstance(error, Exception) and predicate(error)


def is_transient_error(error: BaseException) -> bool:
    """Return True for failures worth retrying.

    Transport failures, 5xx and 429 are transient; every other HTTP status
    is a definitive answer from the server.
    """
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status >= 500 or status == 429
    return False


class RetryPolicy:
    """Invoke an async operation up to N times with a fixed delay.

    Args:
        sleep: Awaitable sleep used between attempts (seconds).
    """

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        self._sleep = sleep

    async def run(
        self,
        operation: Operation[T],
        max_attempts: int,
        delay_ms: int,
        should_retry: RetryPredicate | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds or attempts run out.

        Args:
            operation: Zero-argument coroutine function.
            max_attempts: Total attempts including the first (>= 1).
            delay_ms: Wait between attempts in milliseconds (>= 0).
            should_retry: Predicate on the raised error; a False answer
                re-raises immediately. Defaults to retrying everything.

        Returns:
            The first successful result.

        Raises:
            ValueError: If ``max_attempts < 1`` or ``delay_ms < 0``.
            Exception: The last error raised by ``operation``, unchanged.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")

        predicate = should_retry or _retry_everything

        def _log_retry(retry_state: RetryCallState) -> None:
            attempt = RetryAttempt(
                attempt_number=retry_state.attempt_number,
                max_attempts=max_attempts,
                delay_ms=delay_ms,
            )
            error = retry_state.outcome.exception() if retry_state.outcome else None
            logger.info(
                "retry.attempt_failed",
                **attempt.model_dump(),
                error_type=type(error).__name__ if error else None,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_fixed(delay_ms / 1000),
            retry=retry_if_exception(_only_exceptions(predicate)),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        attempts = 0

        async def _attempt() -> T:
            nonlocal attempts
            attempts += 1
            return await operation()

        try:
            return await retrying(_attempt)
        except Exception as exc:
            logger.warning(
                "retry.gave_up",
                attempts=attempts,
                max_attempts=max_attempts,
                error_type=type(exc).__name__,
            )
            raise
