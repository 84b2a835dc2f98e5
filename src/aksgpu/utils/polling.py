#!/usr/bin/env python3
"""
Timeout-bounded polling.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import time
from typing import Callable, Optional, TypeVar

from aksgpu.core.errors import TimeoutError

T = TypeVar("T")


def wait_until(
    probe: Callable[[], Optional[T]],
    timeout: float,
    interval: float = 5.0,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Call ``probe`` every ``interval`` seconds until it returns a truthy value.

    Returns the truthy value. Raises TimeoutError once ``timeout`` seconds
    have elapsed without one.
    """
    deadline = clock() + timeout
    while True:
        result = probe()
        if result:
            return result
        if clock() >= deadline:
            raise TimeoutError(f"Timed out after {timeout:.0f}s waiting for {description}")
        sleep(interval)
