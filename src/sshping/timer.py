"""Monotonic timestamps and nanosecond durations."""

import time

from .types import Timestamp

NANOS_PER_MILLI = 1000000
NANOS_PER_SECOND = 1000000000


def now() -> Timestamp:
    """Return a monotonic clock reading in nanoseconds.

    Unaffected by wall-clock adjustments (NTP slews, DST).
    """
    return time.monotonic_ns()


def duration(t0: Timestamp, t1: Timestamp) -> int:
    """Nanoseconds between two timestamps, in either order."""
    return t1 - t0 if t1 > t0 else t0 - t1


def to_millis(nanos: int) -> int:
    """Truncate nanoseconds to whole milliseconds."""
    return nanos // NANOS_PER_MILLI


def to_seconds(nanos: int) -> float:
    return nanos / NANOS_PER_SECOND
