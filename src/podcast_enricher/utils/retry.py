"""Retry utilities with exponential backoff for transient errors.

This module provides a bounded retry loop for the language-model boundary:
an explicit attempt counter, a computed delay that doubles each attempt, and
no sleep after the final attempt.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, initial_delay: float, max_delay: Optional[float] = None) -> float:
    """Delay before the retry that follows ``attempt`` (0-based)."""
    delay = initial_delay * (2**attempt)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


def retry_with_exponential_backoff(
    func: Callable[[], T],
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    max_delay: Optional[float] = None,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """Call ``func`` until it succeeds or ``max_attempts`` is reached.

    Args:
        func: Function to retry (must be callable with no arguments)
        max_attempts: Total number of attempts, including the first (default: 3)
        initial_delay: Delay in seconds after the first failure; doubles after
            each further failure (default: 0.5)
        max_delay: Optional cap on the delay between attempts
        retryable_exceptions: Exception types that trigger a retry; anything
            else propagates immediately
        description: Label used in log messages

    Returns:
        Result of calling func()

    Raises:
        Exception: The last exception raised by func() if all attempts fail
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_exception: Optional[Exception] = None
    for attempt in range(max_attempts):
        try:
            return func()
        except retryable_exceptions as exc:
            last_exception = exc
            if attempt + 1 < max_attempts:
                delay = backoff_delay(attempt, initial_delay, max_delay)
                logger.warning(
                    "%s attempt %d/%d failed: %s. Retrying in %.1fs...",
                    description,
                    attempt + 1,
                    max_attempts,
                    exc,
                    delay,
                )
                time.sleep(delay)
            else:
                logger.warning(
                    "%s failed after %d attempts. Last error: %s", description, max_attempts, exc
                )

    assert last_exception is not None
    raise last_exception
