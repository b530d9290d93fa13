"""Bulk transfer throughput probe."""

from __future__ import annotations

import logging

from tqdm import tqdm
from typeguard import typechecked

from . import SPEED_DURATION_FLOOR_S, timer
from .bulk_transfer import BulkSink
from .exceptions import ProbeError, TransportError
from .models import ProbeConfig, ProbeResult

logger = logging.getLogger("sshping.speed_probe")

FILLER = b"s"


def format_speed(speed: float) -> str:
    """Format speed for display."""
    if speed < 1024:
        return f"{speed:.2f} B/s"
    elif speed < 1024 * 1024:
        return f"{speed / 1024:.2f} KB/s"
    else:
        return f"{speed / (1024 * 1024):.2f} MB/s"


@typechecked
class ThroughputProbe:
    """Pushes a fixed-size payload and reports the aggregate transfer rate."""

    def __init__(self, config: ProbeConfig) -> None:
        """Initialize throughput probe.

        Args:
            config: Probe settings; ``payload_size``, ``remote_name``,
                ``remote_mode``, ``chunk_size`` and ``show_progress`` apply here.
        """
        self.config = config

    def run(self, sink: BulkSink, context: str = "speed test") -> ProbeResult:
        """Push the payload through *sink* and measure it.

        Only the body transfer is timed; opening the sink and announcing the
        file happen before the clock starts.

        Args:
            sink: Fresh, unopened bulk-transfer sink.
            context: Description of the purpose, embedded into messages.

        Returns:
            A successful result with bytes, elapsed seconds and bytes per
            second, or a failure carrying the ``ErrorKind``.
        """
        size = self.config.payload_size
        logger.info("[SPEED] [%s] Speed test started (%d bytes)", context, size)

        try:
            self._open(sink, context)
            elapsed_ns = self._push(sink, size)
            sink.close()
        except ProbeError as exc:
            logger.error("[SPEED] [%s] FAILED (%s) — %s", context, exc.kind.value, exc)
            self._discard(sink, context)
            return ProbeResult.failure("speed", exc.kind, str(exc))

        seconds = timer.to_seconds(elapsed_ns)
        if seconds == 0:
            logger.debug(
                "[SPEED] [%s] Transfer finished inside one clock tick; using %.1fs",
                context, SPEED_DURATION_FLOOR_S,
            )
            seconds = SPEED_DURATION_FLOOR_S
        rate = int(size / seconds)

        logger.info(
            "[SPEED] [%s] Speed test completed — %d bytes in %.3fs (%s)",
            context, size, seconds, format_speed(rate),
        )
        return ProbeResult.success_speed(size, seconds, rate)

    def _open(self, sink: BulkSink, context: str) -> None:
        try:
            sink.open_write()
            sink.push_file(self.config.remote_name, self.config.payload_size, self.config.remote_mode)
        except TransportError:
            raise
        except ProbeError as exc:
            raise TransportError(f"[{context}] Cannot set up transfer: {exc}") from exc

    def _push(self, sink: BulkSink, size: int) -> int:
        """Stream *size* filler bytes and return the elapsed nanoseconds."""
        chunk = FILLER * min(self.config.chunk_size, size)
        view = memoryview(chunk)
        remaining = size

        progress = tqdm(
            total=size,
            unit="B",
            unit_scale=True,
            unit_divisor=1024,
            desc="Speed test",
            disable=not self.config.show_progress,
        )
        try:
            t_start = timer.now()
            while remaining > 0:
                n = min(remaining, len(chunk))
                sink.write(chunk if n == len(chunk) else bytes(view[:n]))
                remaining -= n
                progress.update(n)
            t_end = timer.now()
        finally:
            progress.close()

        return timer.duration(t_start, t_end)

    @staticmethod
    def _discard(sink: BulkSink, context: str) -> None:
        try:
            sink.close()
        except ProbeError as exc:
            logger.warning("[SPEED] [%s] Error releasing transfer sink: %s", context, exc)
