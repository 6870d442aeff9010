"""Retry utilities for the ingestion driver."""

import logging
from typing import Callable, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_retry(
    operation: Callable[[], T],
    retry_on: type[BaseException] | tuple[type[BaseException], ...],
    max_attempts: int = 3,
    min_wait: int = 1,
    max_wait: int = 10,
) -> T:
    """
    Call ``operation`` and retry it when it raises one of ``retry_on``.

    The download engine and the registry store never retry on their own;
    the driver decides which steps are worth repeating.

    Args:
        operation: Zero-argument callable to run
        retry_on: Exception type(s) that trigger another attempt
        max_attempts: Maximum number of attempts (default: 3)
        min_wait: Minimum wait between retries in seconds (default: 1)
        max_wait: Maximum wait between retries in seconds (default: 10)

    Returns:
        Whatever ``operation`` returns

    Raises:
        The last exception raised by ``operation`` once attempts are exhausted
    """

    # Use no wait in tests (when min_wait=0) for speed
    if min_wait == 0:
        wait_strategy = wait_none()
        before_sleep_callback = None
    else:
        wait_strategy = wait_exponential(multiplier=1, min=min_wait, max=max_wait)
        before_sleep_callback = before_sleep_log(logger, logging.WARNING)

    @retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_strategy,
        retry=retry_if_exception_type(retry_on),
        before_sleep=before_sleep_callback,
        reraise=True,
    )
    def _call() -> T:
        return operation()

    return _call()
