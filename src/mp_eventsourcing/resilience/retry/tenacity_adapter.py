"""Resilience – TenacityRetryPolicy for transient storage failures."""
from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

import tenacity

from mp_eventsourcing.kernel.errors import BaseError
from mp_eventsourcing.observability.logging import get_logger

T = TypeVar("T")
logger = get_logger(__name__)


def is_retryable(exc: BaseException) -> bool:
    """True for errors flagged ``retryable`` (transient storage failures)."""
    return isinstance(exc, BaseError) and exc.retryable


def _log_retry(retry_state: tenacity.RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome is not None else None
    fields = exc.log_fields() if isinstance(exc, BaseError) else {"error": repr(exc)}
    logger.warning("retrying_after_error", attempt=retry_state.attempt_number, **fields)


class TenacityRetryPolicy:
    """Retry policy backed by the ``tenacity`` library.

    By default only errors flagged ``retryable`` (that is,
    :class:`StorageUnavailableError`) are retried, with exponential backoff.
    Concurrency conflicts are never retried here: the
    business decision may change once the caller re-reads the aggregate.

    Parameters
    ----------
    max_attempts:
        Maximum number of call attempts (including the first call).
    wait:
        A ``tenacity`` wait strategy.  Defaults to
        ``wait_exponential(multiplier=0.1, max=5)``.
    retry:
        A ``tenacity`` retry predicate.  Defaults to
        ``retry_if_exception(is_retryable)``.
    kwargs:
        Forwarded to :class:`tenacity.AsyncRetrying`.

    Example
    -------
    ::

        policy = TenacityRetryPolicy(max_attempts=5, wait=tenacity.wait_fixed(0.2))
        records = await policy.execute_async(lambda: store.append_batch(events, 3))
    """

    def __init__(
        self,
        max_attempts: int = 3,
        wait: Any = None,
        retry: Any = None,
        **kwargs: Any,
    ) -> None:
        self.max_attempts = max_attempts
        self._wait = wait or tenacity.wait_exponential(multiplier=0.1, max=5)
        self._retry = retry or tenacity.retry_if_exception(is_retryable)
        self._extra_kwargs = kwargs

    @classmethod
    def from_settings(cls, max_attempts: int, wait_seconds: float) -> "TenacityRetryPolicy":
        return cls(
            max_attempts=max_attempts,
            wait=tenacity.wait_exponential(multiplier=wait_seconds, max=max(wait_seconds * 32, 1)),
        )

    def _build_async_retrying(self) -> tenacity.AsyncRetrying:
        return tenacity.AsyncRetrying(
            stop=tenacity.stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=self._retry,
            reraise=True,
            before_sleep=_log_retry,
            **self._extra_kwargs,
        )

    async def execute_async(self, func: Callable[[], Awaitable[T]]) -> T:
        """Execute *func* with retry; the last error is re-raised once attempts run out."""
        async for attempt in self._build_async_retrying():
            with attempt:
                result = await func()
        return result  # type: ignore[possibly-undefined]


__all__ = ["TenacityRetryPolicy", "is_retryable"]
