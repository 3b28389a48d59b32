"""Bounded exponential backoff around calls to external services."""

import logging
import time
from typing import Callable, TypeVar

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

import config
from vocabsync.logger import get_logger

T = TypeVar("T")


def with_retry(
    op: Callable[[], T],
    is_transient: Callable[[BaseException], bool],
    max_attempts: int = config.RETRY_MAX_ATTEMPTS,
    base_delay: float = config.RETRY_BASE_DELAY,
    sleep: Callable[[float], None] | None = None,
) -> T:
    """
    Call ``op``, retrying while it raises errors classified as transient.

    Waits ``base_delay * 2**n`` seconds before retry ``n + 1`` (1s then 2s with
    the defaults). Permanent errors propagate on first occurrence. When all
    attempts fail, the last transient error is re-raised unwrapped.

    Args:
        op: Zero-argument callable performing the external call
        is_transient: Classifier returning True for errors worth retrying
        max_attempts: Total number of attempts, including the first
        base_delay: Delay before the first retry, in seconds
        sleep: Sleep function, replaceable by a fake clock in tests

    Returns:
        Whatever ``op`` returns
    """
    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay),
        retry=retry_if_exception(is_transient),
        before_sleep=before_sleep_log(get_logger(), logging.WARNING),
        sleep=sleep or time.sleep,
        reraise=True,
    )
    return retrying(op)


class RetryPolicy:
    """Retry settings shared by a client's calls."""

    def __init__(
        self,
        max_attempts: int = config.RETRY_MAX_ATTEMPTS,
        base_delay: float = config.RETRY_BASE_DELAY,
        sleep: Callable[[float], None] | None = None,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sleep = sleep

    def call(self, op: Callable[[], T], is_transient: Callable[[BaseException], bool]) -> T:
        return with_retry(
            op,
            is_transient,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            sleep=self.sleep,
        )


def is_transient_http_error(exc: BaseException) -> bool:
    """
    Classify a raw httpx error.

    Timeouts, connection failures (resets, DNS lookups) and HTTP 5xx responses
    are transient. Everything else, including 4xx, is permanent.
    """
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False
