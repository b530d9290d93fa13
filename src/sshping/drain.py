"""Discard pending channel output until the remote shell goes quiet."""

from __future__ import annotations

import dataclasses
import logging

from typeguard import typechecked

from . import DRAIN_BUFFER_SIZE
from .channel import Channel
from .exceptions import ProbeIOError
from .types import DrainStatus

logger = logging.getLogger("sshping.drain")


@dataclasses.dataclass(frozen=True)
class DrainResult:
    """Outcome of ``drain``.

    Attributes:
        status: ``QUIET`` when a read timed out with the channel still open,
            ``CLOSED_EARLY`` when the channel closed or hit EOF first.
        bytes_discarded: Total bytes read and thrown away.
        reads: Number of read calls made.
    """
    status: DrainStatus
    bytes_discarded: int
    reads: int

    @property
    def quiet(self) -> bool:
        return self.status is DrainStatus.QUIET

    def raise_for_status(self, context: str = "") -> None:
        """Raise ``ProbeIOError`` unless the channel went quiet.

        Raises:
            ProbeIOError: If the channel closed before it went quiet.
        """
        if self.status is DrainStatus.CLOSED_EARLY:
            raise ProbeIOError(
                f"[{context}] Channel closed while draining output "
                f"({self.bytes_discarded} bytes discarded in {self.reads} reads)"
            )


@typechecked
def drain(
    channel: Channel,
    inactivity_timeout_ms: int,
    context: str = "",
    buffer_size: int = DRAIN_BUFFER_SIZE,
) -> DrainResult:
    """Read and discard output until no byte arrives for *inactivity_timeout_ms*.

    Args:
        channel: Open interactive channel.
        inactivity_timeout_ms: Silence that counts as "settled".
        context: Description of the purpose, embedded into messages.
        buffer_size: Maximum bytes per read.

    Returns:
        A ``DrainResult``; a closed channel is reported, not raised.

    Raises:
        ProbeIOError: If a read fails.
    """
    discarded = 0
    reads = 0

    while channel.is_open() and not channel.is_eof():
        data = channel.read_with_timeout(buffer_size, inactivity_timeout_ms)
        reads += 1
        if not data:
            if channel.is_eof():
                break
            logger.debug(
                "[DRAIN] [%s] Quiet after %d ms — discarded %d bytes in %d reads",
                context, inactivity_timeout_ms, discarded, reads,
            )
            return DrainResult(DrainStatus.QUIET, discarded, reads)
        discarded += len(data)
        logger.debug("[DRAIN] [%s] Discarded %d bytes: %r", context, len(data), data[:64])

    logger.warning(
        "[DRAIN] [%s] Channel closed before going quiet (%d bytes discarded)",
        context, discarded,
    )
    return DrainResult(DrainStatus.CLOSED_EARLY, discarded, reads)
