"""Timestamp source for round-trip measurements"""

import time
from typing import Callable

Clock = Callable[[], float]


def now_ms() -> float:
    """Monotonic timestamp in milliseconds"""
    return time.perf_counter() * 1000


def elapsed_ms(start: float, clock: Clock = now_ms) -> float:
    """Milliseconds elapsed since ``start`` (taken from the same clock)"""
    return clock() - start
