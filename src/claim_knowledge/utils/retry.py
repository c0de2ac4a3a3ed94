"""Retry utilities with exponential backoff for upstream model and search calls."""

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from claim_knowledge.errors import UpstreamFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Transient errors that are worth retrying
RETRYABLE_EXCEPTIONS = (ConnectionError, TimeoutError, httpx.TransportError)

# HTTP statuses treated as transient (throttling and server-side errors)
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def is_transient(exc: BaseException) -> bool:
    """Whether an exception is a transient failure worth retrying.

    Validation errors (4xx other than 408/429) are never retried.
    """
    if isinstance(exc, UpstreamFailure):
        return exc.transient
    return isinstance(exc, RETRYABLE_EXCEPTIONS)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff settings."""

    max_attempts: int = 3
    min_wait: float = 2.0
    max_wait: float = 10.0
    multiplier: float = 1.0

    def call(self, func: Callable[..., T], *args, **kwargs) -> T:
        """Call func, retrying on transient failures; the last error is reraised."""
        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=wait_exponential(
                multiplier=self.multiplier, min=self.min_wait, max=self.max_wait
            ),
            retry=retry_if_exception(is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(func, *args, **kwargs)


NO_RETRY = RetryPolicy(max_attempts=1, min_wait=0.0, max_wait=0.0)
