"""Type definitions for sshping."""

import enum
from typing import List, Tuple

# Measurement types
Timestamp = int  # monotonic clock reading, nanoseconds
Sample = int  # one round trip, nanoseconds
SampleSet = List[Sample]

# Target address
Target = Tuple[str, str, int]  # (username, hostname, port)


class ErrorKind(enum.Enum):
    """Why a probe failed."""

    SHORT_WRITE = "short-write"
    TIMEOUT = "timeout"
    IO_ERROR = "io-error"
    TRANSPORT_ERROR = "transport-error"
    INVALID_INPUT = "invalid-input"


class DrainStatus(enum.Enum):
    """How a drain ended: the channel went quiet, or it closed first."""

    QUIET = "quiet"
    CLOSED_EARLY = "closed-early"
