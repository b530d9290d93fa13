"""Summary statistics over a set of latency samples."""

from __future__ import annotations

import dataclasses
import math
from typing import Sequence

from typeguard import typechecked

from .exceptions import InvalidInputError


@dataclasses.dataclass(frozen=True)
class ProbeStats:
    """Immutable summary of one probe's samples, all in nanoseconds.

    Attributes:
        count: Number of samples reduced.
        minimum: Smallest sample.
        median: Middle sample of the sorted set (see ``reduce`` for the
            even-count rule).
        mean: Integer mean, truncated.
        maximum: Largest sample.
        stddev: Population standard deviation around ``mean``, truncated.
    """
    count: int
    minimum: int
    median: int
    mean: int
    maximum: int
    stddev: int


def _median(ordered: Sequence[int], exact: bool) -> int:
    n = len(ordered)
    if n & 1:
        return ordered[(n + 1) // 2 - 1]
    if exact:
        return (ordered[n // 2 - 1] + ordered[n // 2]) // 2
    # Both indices land on the lower middle element for even n, so this
    # reports the lower middle sample rather than the average of the two.
    return (ordered[n // 2 - 1] + ordered[(n + 1) // 2 - 1]) // 2


def _pstdev(samples: Sequence[int], mean: float) -> int:
    variance = sum((s - mean) ** 2 for s in samples) / len(samples)
    return int(math.sqrt(variance))


@typechecked
def reduce(samples: Sequence[int], exact_median: bool = False) -> ProbeStats:
    """Reduce *samples* to min, median, mean, max and standard deviation.

    The caller's sequence is never reordered; the median is taken from a
    sorted copy.

    Args:
        samples: Non-empty nanosecond samples, each >= 0.
        exact_median: For an even sample count, average the two middle
            samples instead of reporting the lower one.

    Returns:
        A ``ProbeStats`` summary.

    Raises:
        InvalidInputError: If *samples* is empty or holds a negative value.
    """
    if not samples:
        raise InvalidInputError("Cannot reduce an empty sample set")

    minimum = maximum = samples[0]
    total = 0
    for sample in samples:
        if sample < 0:
            raise InvalidInputError(f"Negative sample {sample} in sample set")
        if sample < minimum:
            minimum = sample
        if sample > maximum:
            maximum = sample
        total += sample

    count = len(samples)
    return ProbeStats(
        count=count,
        minimum=minimum,
        median=_median(sorted(samples), exact_median),
        mean=total // count,
        maximum=maximum,
        stddev=_pstdev(samples, total / count),
    )
