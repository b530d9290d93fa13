"""Interactive echo latency probe.

Starts a responder in the remote shell, then types one character at a time
and waits for the PTY to echo it back before sending the next one.  Each
round trip is one sample; the samples are reduced to ``ProbeStats``.

Characters are never batched or pipelined: iteration ``n + 1`` does not
write until iteration ``n`` has read its echo, so every sample is a genuine
keystroke-to-echo time.
"""

from __future__ import annotations

import logging
from typing import List

from tqdm import tqdm
from typeguard import typechecked

from . import timer
from .channel import Channel
from .drain import drain
from .exceptions import ProbeError, ProbeIOError, ProbeTimeoutError, ShortWriteError
from .models import ProbeConfig, ProbeResult
from .stats import reduce
from .types import SampleSet

logger = logging.getLogger("sshping.echo_probe")

ECHO_ALPHABET = b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ\n"
INTERRUPT = b"\x03"


def echo_char(iteration: int) -> bytes:
    """The single byte typed on *iteration*; cycles a-z, A-Z, newline."""
    i = iteration % len(ECHO_ALPHABET)
    return ECHO_ALPHABET[i:i + 1]


@typechecked
class EchoProbe:
    """Measures per-character round-trip latency through a remote shell."""

    def __init__(self, config: ProbeConfig) -> None:
        """Initialize echo probe.

        Args:
            config: Probe settings; ``count``, ``runtime_s``,
                ``echo_command``, ``settle_ms``, ``read_timeout_ms``,
                ``exact_median`` and ``stop_responder`` apply here.
        """
        self.config = config

    def run(self, channel: Channel, context: str = "echo test") -> ProbeResult:
        """Run the probe on *channel*.

        I/O failures do not raise; they come back as a failed
        ``ProbeResult`` carrying the ``ErrorKind``.

        Args:
            channel: Open interactive channel with a settled shell prompt.
            context: Description of the purpose, embedded into messages.

        Returns:
            A successful result with stats and samples, or a failure.
        """
        try:
            self._start_responder(channel, context)
            samples = self._collect(channel, context)
            stats = reduce(samples, exact_median=self.config.exact_median)
        except ProbeError as exc:
            logger.error("[ECHO] [%s] FAILED (%s) — %s", context, exc.kind.value, exc)
            return ProbeResult.failure("echo", exc.kind, str(exc))

        logger.info(
            "[ECHO] [%s] %d samples — min=%d median=%d mean=%d max=%d stddev=%d nsec",
            context, stats.count, stats.minimum, stats.median, stats.mean,
            stats.maximum, stats.stddev,
        )

        if self.config.stop_responder:
            self._stop_responder(channel, context)

        return ProbeResult.success_echo(stats, tuple(samples))

    def _start_responder(self, channel: Channel, context: str) -> None:
        command = (self.config.echo_command + "\n").encode("utf-8")
        written = channel.write(command)
        if written != len(command):
            raise ShortWriteError(
                f"[{context}] Starting responder {self.config.echo_command!r}: "
                f"wrote {written}/{len(command)} bytes",
                requested=len(command),
                written=written,
            )

        drain(channel, self.config.settle_ms, context=context).raise_for_status(context)
        logger.info("[ECHO] [%s] Echo responder started: %r", context, self.config.echo_command)

    def _collect(self, channel: Channel, context: str) -> SampleSet:
        samples: List[int] = []
        timeout_ms = self.config.read_timeout_ms
        runtime_s = self.config.runtime_s
        total = None if runtime_s is not None else self.config.count
        deadline = None
        if runtime_s is not None:
            deadline = timer.now() + int(runtime_s * timer.NANOS_PER_SECOND)

        progress = tqdm(
            total=total,
            unit="char",
            desc="Echo test",
            disable=not self.config.show_progress,
        )
        try:
            n = 0
            while True:
                if deadline is None:
                    if n >= self.config.count:
                        break
                elif n > 0 and timer.now() >= deadline:
                    break

                char = echo_char(n)
                t_write = timer.now()
                written = channel.write(char)
                if written != 1:
                    raise ShortWriteError(
                        f"[{context}] Character {n}: write put {written} bytes, expected 1",
                        requested=1,
                        written=written,
                    )

                echoed = channel.read_with_timeout(1, timeout_ms)
                if len(echoed) != 1:
                    if channel.is_eof() or not channel.is_open():
                        raise ProbeIOError(
                            f"[{context}] Character {n}: channel closed while waiting for echo"
                        )
                    raise ProbeTimeoutError(
                        f"[{context}] Character {n}: no echo within {timeout_ms} ms"
                    )
                t_read = timer.now()

                samples.append(timer.duration(t_write, t_read))
                progress.update(1)
                n += 1
        finally:
            progress.close()

        logger.debug("[ECHO] [%s] Collected %d samples", context, len(samples))
        return samples

    def _stop_responder(self, channel: Channel, context: str) -> None:
        try:
            channel.write(INTERRUPT)
            outcome = drain(channel, self.config.settle_ms, context=context)
        except ProbeError as exc:
            logger.warning("[ECHO] [%s] Could not stop echo responder: %s", context, exc)
            return
        if outcome.quiet:
            logger.info("[ECHO] [%s] Echo responder finished", context)
        else:
            logger.warning("[ECHO] [%s] Channel closed while stopping echo responder", context)
