"""Interactive channel contract and its paramiko implementation."""

from __future__ import annotations

import abc
import logging
import socket

import paramiko
from typeguard import typechecked

from .exceptions import ProbeIOError

logger = logging.getLogger("sshping.channel")


class Channel(abc.ABC):
    """Byte-level duplex stream to a remote interactive shell.

    Probes only ever talk to a channel through these five operations, so a
    scripted fake can stand in for a real SSH channel in tests.
    """

    @abc.abstractmethod
    def write(self, data: bytes) -> int:
        """Send *data*; return how many bytes the channel accepted.

        Raises:
            ProbeIOError: If the write fails outright.
        """

    @abc.abstractmethod
    def read_with_timeout(self, max_bytes: int, timeout_ms: int) -> bytes:
        """Read up to *max_bytes*, waiting at most *timeout_ms*.

        Returns ``b""`` when nothing arrived in time or the remote end sent
        EOF; ``is_eof()`` tells the two apart.

        Raises:
            ProbeIOError: If the read fails.
        """

    @abc.abstractmethod
    def is_open(self) -> bool:
        """True until either side closes the channel."""

    @abc.abstractmethod
    def is_eof(self) -> bool:
        """True once the remote end has signalled end-of-stream."""

    @abc.abstractmethod
    def close(self) -> None:
        """Send EOF and close. Safe to call more than once."""


@typechecked
class ParamikoChannel(Channel):
    """``Channel`` backed by a ``paramiko.Channel`` running a PTY shell."""

    def __init__(
        self,
        channel: paramiko.Channel,
        label: str = "",
        write_timeout: float = 10.0,
    ) -> None:
        """Wrap an already-open paramiko channel.

        Args:
            channel: Channel with a PTY and shell already requested.
            label: ``user@host:port`` used in log and error messages.
            write_timeout: Seconds a single write may block on a full window.
        """
        self._channel = channel
        self.label = label or f"channel {channel.get_id()}"
        self.write_timeout = write_timeout

    def write(self, data: bytes) -> int:
        self._channel.settimeout(self.write_timeout)
        try:
            return self._channel.send(data)
        except socket.timeout:
            # Nothing accepted before the deadline; the caller sees a short write.
            return 0
        except (paramiko.SSHException, OSError) as exc:
            raise ProbeIOError(f"Write of {len(data)} bytes to {self.label} failed: {exc}") from exc

    def read_with_timeout(self, max_bytes: int, timeout_ms: int) -> bytes:
        self._channel.settimeout(timeout_ms / 1000.0)
        try:
            return self._channel.recv(max_bytes)
        except socket.timeout:
            return b""
        except (paramiko.SSHException, OSError) as exc:
            raise ProbeIOError(f"Read from {self.label} failed: {exc}") from exc

    def is_open(self) -> bool:
        return not self._channel.closed

    def is_eof(self) -> bool:
        return bool(self._channel.eof_received)

    def close(self) -> None:
        if self._channel.closed:
            logger.debug("[CHANNEL] close() called on already-closed %s", self.label)
            return
        try:
            self._channel.shutdown_write()
            self._channel.close()
        except (paramiko.SSHException, OSError) as exc:
            logger.warning("[CHANNEL] Error closing %s: %s", self.label, exc)
        else:
            logger.info("[CHANNEL] Login shell on %s closed", self.label)
