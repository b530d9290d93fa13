"""Text rendering of probe results, in the classic sshping layout."""

from __future__ import annotations

from typing import List

from .models import ProbeResult
from .timer import to_millis


def format_login(login_nanos: int) -> str:
    return f"--- Login: {to_millis(login_nanos)} msec"


def format_result(result: ProbeResult) -> List[str]:
    """Lines for one successful probe; empty for a failed one."""
    if not result.ok:
        return []

    if result.stats is not None:
        stats = result.stats
        return [
            f"--- Minimum Latency: {stats.minimum} nsec",
            f"---  Median Latency: {stats.median} nsec  +/- {stats.stddev} std dev",
            f"--- Average Latency: {stats.mean} nsec",
            f"--- Maximum Latency: {stats.maximum} nsec",
        ]

    return [f"---  Transfer Speed: {result.bytes_per_second} Bytes/second"]


def format_failure(result: ProbeResult) -> str:
    kind = result.error_kind.value if result.error_kind is not None else "unknown"
    return f"*** {result.probe} test failed ({kind}): {result.error_message}"
