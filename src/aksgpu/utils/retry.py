#!/usr/bin/env python3
"""
Retry logic for transient external command failures.

Helm repository refreshes and Azure CLI queries occasionally fail on
network hiccups; these helpers retry them with backoff.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import functools
import logging
import time
from enum import Enum
from typing import Callable, Optional, Tuple, Type

from aksgpu.core.errors import CommandError, TimeoutError

logger = logging.getLogger(__name__)


class RetryStrategy(Enum):
    """Retry strategies for different failure types."""
    EXPONENTIAL_BACKOFF = "exponential_backoff"
    LINEAR_BACKOFF = "linear_backoff"
    IMMEDIATE = "immediate"


def compute_delay(
    attempt: int, strategy: RetryStrategy, base_delay: float, max_delay: float
) -> float:
    """Delay before the retry that follows ``attempt`` (1-based)."""
    if strategy == RetryStrategy.EXPONENTIAL_BACKOFF:
        return min(base_delay * (2 ** (attempt - 1)), max_delay)
    if strategy == RetryStrategy.LINEAR_BACKOFF:
        return min(base_delay * attempt, max_delay)
    return 0.0


def retry_on_failure(
    max_attempts: int = 3,
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL_BACKOFF,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
):
    """
    Decorator to retry a function on failure.

    Args:
        max_attempts: Maximum number of attempts
        strategy: Retry strategy to use
        base_delay: Base delay between retries in seconds
        max_delay: Maximum delay between retries
        exceptions: Tuple of exceptions to catch and retry
        on_retry: Optional callback called before each retry with
            (attempt, max_attempts, delay, exception)

    Example:
        @retry_on_failure(max_attempts=3, exceptions=(CommandError,))
        def update_repos():
            ...
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        raise

                    delay = compute_delay(attempt, strategy, base_delay, max_delay)
                    if on_retry:
                        on_retry(attempt, max_attempts, delay, e)
                    if delay > 0:
                        time.sleep(delay)

        return wrapper
    return decorator


def retry_cli_operation(operation_name: str, max_attempts: int = 3):
    """
    Retry decorator for external CLI calls, with logging.

    Example:
        @retry_cli_operation("helm repo update")
        def update(self):
            ...
    """
    def on_retry_callback(attempt, max_attempts, delay, exception):
        logger.warning(
            f"{operation_name} failed (attempt {attempt}/{max_attempts}): {exception}"
        )
        if delay > 0:
            logger.info(f"Retrying in {delay:.1f}s...")

    return retry_on_failure(
        max_attempts=max_attempts,
        strategy=RetryStrategy.EXPONENTIAL_BACKOFF,
        base_delay=2.0,
        max_delay=30.0,
        exceptions=(CommandError, TimeoutError),
        on_retry=on_retry_callback,
    )
