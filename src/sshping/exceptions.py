"""Custom exceptions for SSH sessions and measurement probes."""

from __future__ import annotations

from .types import ErrorKind


class SSHPingError(Exception):
    """Common base exception for all sshping errors."""
    pass


class SSHConnectionError(SSHPingError):
    """Exception for SSH connection errors."""
    pass


class SSHTimeoutError(SSHConnectionError):
    """Exception for SSH connection timeouts."""
    pass


class ProbeError(SSHPingError):
    """Base exception for failures inside a measurement probe.

    Every subclass carries the ``ErrorKind`` that ends up in the failed
    ``ProbeResult`` when the probe catches it at its boundary.

    Attributes:
        kind: The error category reported to the caller.
    """

    kind = ErrorKind.IO_ERROR


class ShortWriteError(ProbeError):
    """Exception for writes that accepted fewer bytes than requested.

    Attributes:
        requested: Number of bytes handed to the channel.
        written: Number of bytes the channel accepted.
    """

    kind = ErrorKind.SHORT_WRITE

    def __init__(self, message: str, *, requested: int, written: int) -> None:
        super().__init__(message)
        self.requested = requested
        self.written = written


class ProbeTimeoutError(ProbeError):
    """Exception for reads that returned no data before their deadline."""

    kind = ErrorKind.TIMEOUT


class ProbeIOError(ProbeError):
    """Exception for failed reads or writes, or a channel that closed early."""

    kind = ErrorKind.IO_ERROR


class TransportError(ProbeError):
    """Exception for channel or transfer-sink setup failures."""

    kind = ErrorKind.TRANSPORT_ERROR


class InvalidInputError(ProbeError, ValueError):
    """Exception for invalid probe configuration or an empty sample set."""

    kind = ErrorKind.INVALID_INPUT
