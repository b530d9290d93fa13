"""Probe configuration and probe results."""

from __future__ import annotations

import dataclasses
from typing import Optional, Tuple

from . import (
    CHUNK_SIZE,
    ECHO_COMMAND,
    ECHO_COUNT,
    ECHO_READ_TIMEOUT_MS,
    ECHO_SETTLE_MS,
    SPEED_PAYLOAD_SIZE,
    SPEED_REMOTE_MODE,
    SPEED_REMOTE_NAME,
    SPEED_REMOTE_TARGET,
)
from .exceptions import InvalidInputError
from .stats import ProbeStats
from .types import ErrorKind


@dataclasses.dataclass(frozen=True)
class ProbeConfig:
    """Immutable input shared by the echo and speed probes.

    Attributes:
        count: Characters to echo.
        echo_command: Remote command that swallows or echoes stdin.
        runtime_s: When set, echo for this many seconds instead of
            ``count`` characters.
        payload_size: Bytes pushed by the speed probe.
        remote_target: Path handed to the remote ``scp -t``.
        remote_name: File name announced in the SCP header.
        remote_mode: Permission bits announced in the SCP header.
        chunk_size: Bytes per write while streaming the payload.
        settle_ms: Quiet period that ends the responder start-up drain.
        read_timeout_ms: Deadline for each echoed character.
        exact_median: Average the two middle samples for an even count.
        stop_responder: Send Ctrl-C to the responder when the echo probe ends.
        show_progress: Display a progress bar while pushing the payload.

    Raises:
        InvalidInputError: If a count, size or timeout is not positive.
    """
    count: int = ECHO_COUNT
    echo_command: str = ECHO_COMMAND
    runtime_s: Optional[float] = None
    payload_size: int = SPEED_PAYLOAD_SIZE
    remote_target: str = SPEED_REMOTE_TARGET
    remote_name: str = SPEED_REMOTE_NAME
    remote_mode: int = SPEED_REMOTE_MODE
    chunk_size: int = CHUNK_SIZE
    settle_ms: int = ECHO_SETTLE_MS
    read_timeout_ms: int = ECHO_READ_TIMEOUT_MS
    exact_median: bool = False
    stop_responder: bool = True
    show_progress: bool = False

    def __post_init__(self) -> None:
        for name in ("count", "payload_size", "chunk_size", "settle_ms", "read_timeout_ms"):
            value = getattr(self, name)
            if value < 1:
                raise InvalidInputError(f"Invalid {name} {value!r}: must be a positive integer")
        if self.runtime_s is not None and self.runtime_s <= 0:
            raise InvalidInputError(
                f"Invalid runtime_s {self.runtime_s!r}: must be a positive number of seconds"
            )
        if not self.echo_command.strip():
            raise InvalidInputError("Echo command must not be empty")


@dataclasses.dataclass(frozen=True)
class ProbeResult:
    """Immutable outcome of one probe run.

    Echo probes fill ``stats`` and ``samples``; speed probes fill
    ``bytes_transferred``, ``elapsed_seconds`` and ``bytes_per_second``.
    A failed run carries only ``error_kind`` and ``error_message``.
    """
    probe: str
    ok: bool
    stats: Optional[ProbeStats] = None
    samples: Tuple[int, ...] = ()
    bytes_transferred: int = 0
    elapsed_seconds: float = 0.0
    bytes_per_second: int = 0
    error_kind: Optional[ErrorKind] = None
    error_message: str = ""

    @classmethod
    def success_echo(cls, stats: ProbeStats, samples: Tuple[int, ...]) -> ProbeResult:
        return cls(probe="echo", ok=True, stats=stats, samples=samples)

    @classmethod
    def success_speed(
        cls, bytes_transferred: int, elapsed_seconds: float, bytes_per_second: int,
    ) -> ProbeResult:
        return cls(
            probe="speed",
            ok=True,
            bytes_transferred=bytes_transferred,
            elapsed_seconds=elapsed_seconds,
            bytes_per_second=bytes_per_second,
        )

    @classmethod
    def failure(cls, probe: str, kind: ErrorKind, message: str) -> ProbeResult:
        return cls(probe=probe, ok=False, error_kind=kind, error_message=message)
