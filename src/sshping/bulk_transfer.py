"""Bulk transfer sinks for the throughput probe."""

from __future__ import annotations

import abc
import logging
import shlex
import socket
from typing import Optional

import paramiko
from typeguard import typechecked

from . import SCP_ACK_TIMEOUT
from .exceptions import ProbeIOError, TransportError

logger = logging.getLogger("sshping.bulk_transfer")


class BulkSink(abc.ABC):
    """Write-only destination for a single pushed file.

    Call order: ``open_write`` once, ``push_file`` once, ``write`` until
    ``size`` bytes have gone out, then ``close``.
    """

    @abc.abstractmethod
    def open_write(self) -> None:
        """Allocate and initialise the transfer.

        Raises:
            TransportError: If the remote side cannot be set up.
        """

    @abc.abstractmethod
    def push_file(self, name: str, size: int, mode: int) -> None:
        """Announce the file name, byte size and permission bits.

        Raises:
            TransportError: If the remote side refuses the file.
        """

    @abc.abstractmethod
    def write(self, data: bytes) -> None:
        """Send the next piece of the file body.

        Raises:
            ProbeIOError: If the bytes cannot be sent.
        """

    @abc.abstractmethod
    def close(self) -> None:
        """Finish the transfer and release the channel.

        Safe to call more than once, and after a failed ``write``.

        Raises:
            TransportError: If the remote side rejects a completed file.
        """


@typechecked
class ScpSink(BulkSink):
    """Pushes one file with the SCP sink protocol (``scp -t``) over an exec channel."""

    def __init__(
        self,
        client: paramiko.SSHClient,
        remote_target: str,
        label: str = "",
        ack_timeout: float = SCP_ACK_TIMEOUT,
    ) -> None:
        """Initialize SCP sink.

        Args:
            client: Connected SSH client.
            remote_target: Path given to the remote ``scp -t``.  A directory
                receives the pushed file by name; any other path (such as
                ``/dev/null``) is written directly.
            label: ``user@host:port`` used in messages.
            ack_timeout: Seconds to wait for each protocol acknowledgement.
        """
        self.client = client
        self.remote_target = remote_target
        self.label = label or "remote host"
        self.ack_timeout = ack_timeout
        self._channel: Optional[paramiko.Channel] = None
        self._expected = 0
        self.bytes_written = 0

    def _read_ack(self, step: str) -> None:
        """Read one SCP acknowledgement; anything but ``\\0`` is an error."""
        if self._channel is None:
            raise TransportError(f"SCP transfer to {self.label} is not open (waiting for {step})")
        try:
            code = self._channel.recv(1)
            if code == b"\x00":
                return
            if not code:
                raise TransportError(
                    f"SCP on {self.label} closed the channel during {step}"
                )
            message = b""
            while not message.endswith(b"\n"):
                piece = self._channel.recv(1)
                if not piece:
                    break
                message += piece
        except socket.timeout as exc:
            raise TransportError(
                f"SCP on {self.label} did not acknowledge {step} within {self.ack_timeout}s"
            ) from exc
        except (paramiko.SSHException, OSError) as exc:
            raise TransportError(f"SCP on {self.label} failed during {step}: {exc}") from exc

        text = message.decode("utf-8", errors="replace").strip() or "(no message)"
        severity = "fatal error" if code == b"\x02" else "error"
        raise TransportError(f"SCP on {self.label} reported {severity} during {step}: {text}")

    def open_write(self) -> None:
        if self._channel is not None:
            raise TransportError(f"SCP transfer to {self.label} is already open")

        transport = self.client.get_transport()
        if transport is None or not transport.is_active():
            raise TransportError(f"Cannot allocate SCP channel: not connected to {self.label}")

        command = f"scp -t {shlex.quote(self.remote_target)}"
        try:
            channel = transport.open_session()
            channel.settimeout(self.ack_timeout)
            channel.exec_command(command)
        except (paramiko.SSHException, OSError) as exc:
            raise TransportError(f"Cannot init SCP channel on {self.label}: {exc}") from exc

        self._channel = channel
        logger.info("[SCP] Started %r on %s", command, self.label)
        self._read_ack("start-up")

    def push_file(self, name: str, size: int, mode: int) -> None:
        if self._channel is None:
            raise TransportError(f"SCP transfer to {self.label} is not open")
        if not name or "/" in name or "\n" in name:
            raise TransportError(f"Invalid remote file name {name!r}")
        if size < 0:
            raise TransportError(f"Invalid remote file size {size}")

        header = f"C{mode & 0o7777:04o} {size} {name}\n".encode("utf-8")
        try:
            self._channel.sendall(header)
        except (paramiko.SSHException, OSError) as exc:
            raise TransportError(f"Can't open remote file {name!r} on {self.label}: {exc}") from exc
        self._read_ack(f"file header {header.strip()!r}")

        self._expected = size
        self.bytes_written = 0
        logger.info(
            "[SCP] Opened remote file %r (%d bytes, mode %04o) on %s",
            name, size, mode & 0o7777, self.label,
        )

    def write(self, data: bytes) -> None:
        if self._channel is None:
            raise ProbeIOError(f"Can't write to remote file on {self.label}: transfer not open")
        if self.bytes_written + len(data) > self._expected:
            raise ProbeIOError(
                f"Can't write {len(data)} bytes to remote file on {self.label}: "
                f"only {self._expected - self.bytes_written} of {self._expected} bytes remain"
            )
        try:
            self._channel.sendall(data)
        except (paramiko.SSHException, OSError) as exc:
            raise ProbeIOError(
                f"Can't write to remote file on {self.label} after "
                f"{self.bytes_written} bytes: {exc}"
            ) from exc
        self.bytes_written += len(data)

    def close(self) -> None:
        channel = self._channel
        if channel is None:
            return

        try:
            if self._expected and self.bytes_written == self._expected:
                try:
                    channel.sendall(b"\x00")
                except (paramiko.SSHException, OSError) as exc:
                    raise TransportError(
                        f"SCP on {self.label} failed while finishing the file: {exc}"
                    ) from exc
                self._read_ack("end of file")
                logger.info("[SCP] Remote file complete on %s (%d bytes)", self.label, self.bytes_written)
            elif self._expected:
                logger.warning(
                    "[SCP] Abandoning transfer on %s after %d/%d bytes",
                    self.label, self.bytes_written, self._expected,
                )
        finally:
            self._channel = None
            try:
                channel.shutdown_write()
                channel.close()
            except (paramiko.SSHException, OSError) as exc:
                logger.warning("[SCP] Error closing channel on %s: %s", self.label, exc)
