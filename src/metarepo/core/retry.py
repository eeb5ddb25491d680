"""Bounded immediate retry for operations that can hit transient races.

Right after a bulk copy the filesystem (and tools scanning it) may not yet
see every entry. with_retry() re-runs the whole action, immediately, up to
max_attempts times.
"""

import logging
from typing import Callable, Tuple, Type, TypeVar

from tenacity import (
    Retrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from metarepo.errors import MetarepoError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_ATTEMPTS = 5


class RetryExhaustedError(MetarepoError):
    """Every attempt failed; wraps the last failure."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Gave up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def with_retry(
    action: Callable[[], T],
    max_attempts: int = DEFAULT_RETRY_ATTEMPTS,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """Run action, retrying immediately on failure.

    Args:
        action: Zero-argument callable to run
        max_attempts: Total attempts including the first one
        retry_on: Exception types that trigger a retry; anything else
            propagates on the first occurrence

    Returns:
        The action's return value

    Raises:
        RetryExhaustedError: If all attempts failed (chained to the last error)
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        retry=retry_if_exception_type(retry_on),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    try:
        return retrying(action)
    except RetryError as e:
        last_error = e.last_attempt.exception()
        raise RetryExhaustedError(max_attempts, last_error) from last_error
