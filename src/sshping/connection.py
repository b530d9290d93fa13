"""SSH session management: connect, authenticate, log in to a shell."""

from __future__ import annotations

import logging
import socket
from typing import Optional

import paramiko
from typeguard import typechecked

from . import CONNECTION_TIMEOUT, LOGIN_SETTLE_MS, PTY_HEIGHT, PTY_WIDTH, SSH_PORT, timer
from .bulk_transfer import ScpSink
from .channel import ParamikoChannel
from .drain import drain
from .exceptions import ProbeError, SSHConnectionError, SSHTimeoutError

logger = logging.getLogger("sshping.connection")


@typechecked
class SSHSessionManager:
    """Owns one SSH session to the target host and the channels opened on it."""

    def __init__(
        self,
        hostname: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        port: int = SSH_PORT,
        key_filename: Optional[str] = None,
        timeout: int = CONNECTION_TIMEOUT,
    ) -> None:
        """Initialize SSH session manager.

        Args:
            hostname: IP address or hostname of the target
            username: SSH username (default: the local user)
            password: SSH password; when omitted only key-based auth is tried
            port: SSH port (default: 22)
            key_filename: Private key file to offer before agent/default keys
            timeout: Connection timeout in seconds (default: 30)
        """
        self.hostname = hostname
        self.username = username
        self.password = password
        self.port = port
        self.key_filename = key_filename
        self.timeout = timeout
        self.ssh_client: Optional[paramiko.SSHClient] = None
        self.login_nanos: Optional[int] = None
        self._connect_started: Optional[int] = None

    @property
    def label(self) -> str:
        user = f"{self.username}@" if self.username else ""
        return f"{user}{self.hostname}:{self.port}"

    def _get_ssh_client(self) -> paramiko.SSHClient:
        """Get or create SSH client with auto-approval policy."""
        if self.ssh_client is None:
            self.ssh_client = paramiko.SSHClient()
            self.ssh_client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        return self.ssh_client

    def connect(self, context: str) -> None:
        """Establish and authenticate the SSH session.

        Tries the identity file, then the SSH agent and default keys, then
        the password, in paramiko's usual order.

        Args:
            context: Description of the purpose of this connection,
                embedded into error messages.

        Raises:
            SSHConnectionError: If connection or authentication fails
            SSHTimeoutError: If connection times out
        """
        logger.info(
            "[CONNECT] [%s] Attempting SSH connection to %s (timeout=%ds) ...",
            context, self.label, self.timeout,
        )
        self._connect_started = timer.now()

        try:
            client = self._get_ssh_client()

            client.connect(
                hostname=self.hostname,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                key_filename=self.key_filename or None,
                look_for_keys=True,
                allow_agent=True,
                timeout=self.timeout,
                banner_timeout=self.timeout,
                auth_timeout=self.timeout,
            )

            logger.info(
                "[CONNECT] [%s] Connected to %s in %d ms",
                context, self.label, timer.to_millis(timer.duration(self._connect_started, timer.now())),
            )

        except socket.timeout as e:
            msg = f"[{context}] Connection to {self.hostname}:{self.port} timed out (limit {self.timeout}s)"
            logger.error("[CONNECT] TIMEOUT — %s", msg)
            raise SSHTimeoutError(msg) from e
        except paramiko.AuthenticationException as e:
            msg = f"[{context}] Authentication failed for {self.label}: {e}"
            logger.error("[CONNECT] AUTH FAILED — %s", msg)
            raise SSHConnectionError(msg) from e
        except paramiko.SSHException as e:
            msg = f"[{context}] SSH error connecting to {self.hostname}:{self.port}: {e}"
            logger.error("[CONNECT] SSH ERROR — %s", msg)
            raise SSHConnectionError(msg) from e
        except OSError as e:
            msg = f"[{context}] OS/network error connecting to {self.hostname}:{self.port}: {e}"
            logger.error("[CONNECT] OS ERROR — %s", msg)
            raise SSHConnectionError(msg) from e

    def is_connected(self) -> bool:
        """Check if SSH connection is active."""
        if self.ssh_client is None:
            return False
        transport = self.ssh_client.get_transport()
        return transport is not None and transport.is_active()

    def open_interactive_channel(
        self,
        context: str,
        settle_ms: int = LOGIN_SETTLE_MS,
        width: int = PTY_WIDTH,
        height: int = PTY_HEIGHT,
    ) -> ParamikoChannel:
        """Open a PTY shell and wait for the login output to settle.

        Sets ``login_nanos`` to the time from the start of ``connect`` until
        the shell went quiet.

        Args:
            context: Description of the purpose, embedded into error messages.
            settle_ms: Silence that marks the end of the login banner/prompt.
            width: PTY columns.
            height: PTY rows.

        Returns:
            The logged-in interactive channel.

        Raises:
            SSHConnectionError: If not connected, the channel cannot be
                opened, or the shell closes during login.
        """
        if not self.is_connected():
            msg = f"[{context}] Cannot open shell: not connected to {self.hostname}:{self.port}"
            logger.error("[LOGIN] %s", msg)
            raise SSHConnectionError(msg)

        transport = self._get_ssh_client().get_transport()
        if transport is None:
            msg = f"[{context}] Cannot open shell: no transport to {self.hostname}:{self.port}"
            logger.error("[LOGIN] %s", msg)
            raise SSHConnectionError(msg)

        try:
            raw = transport.open_session(timeout=self.timeout)
            raw.get_pty(width=width, height=height)
            raw.invoke_shell()
        except (paramiko.SSHException, OSError) as e:
            msg = f"[{context}] Cannot start login shell on {self.label}: {e}"
            logger.error("[LOGIN] SSH ERROR — %s", msg)
            raise SSHConnectionError(msg) from e

        channel = ParamikoChannel(raw, label=self.label)
        try:
            outcome = drain(channel, settle_ms, context=context)
            outcome.raise_for_status(context)
        except ProbeError as e:
            channel.close()
            msg = f"[{context}] Login shell on {self.label} did not settle: {e}"
            logger.error("[LOGIN] %s", msg)
            raise SSHConnectionError(msg) from e

        started = self._connect_started if self._connect_started is not None else timer.now()
        self.login_nanos = timer.duration(started, timer.now())
        logger.info(
            "[LOGIN] [%s] Login shell established on %s (%d banner bytes discarded)",
            context, self.label, outcome.bytes_discarded,
        )
        return channel

    def open_bulk_sink(self, remote_target: str) -> ScpSink:
        """Create an SCP sink on this session; the caller opens it.

        Raises:
            SSHConnectionError: If not connected.
        """
        if not self.is_connected():
            raise SSHConnectionError(
                f"Cannot open transfer: not connected to {self.hostname}:{self.port}"
            )
        return ScpSink(self._get_ssh_client(), remote_target, label=self.label)

    def disconnect(self) -> None:
        """Close SSH connection if open."""
        was_connected = self.is_connected()

        if self.ssh_client is not None:
            try:
                self.ssh_client.close()
            except Exception as exc:
                logger.warning("[DISCONNECT] Error closing connection to %s: %s", self.label, exc)
            finally:
                self.ssh_client = None

        if was_connected:
            logger.info("[DISCONNECT] Disconnected from %s", self.label)
        else:
            logger.debug("[DISCONNECT] disconnect() called on already-closed connection to %s", self.label)

    def __enter__(self) -> SSHSessionManager:
        """Context manager entry."""
        self.connect(context=f"Connecting to {self.hostname}:{self.port}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        """Context manager exit - ensure connection is closed."""
        self.disconnect()

    def __del__(self) -> None:
        """Destructor - ensure connection is closed."""
        try:
            self.disconnect()
        except Exception:
            pass
