"""
Throughput probe test suite.

Uses in-memory sinks derived from ``sshping.bulk_transfer.BulkSink``.  The
SCP sink against a real SSH server is covered in ``test_ssh_session.py``.

Run with full visibility:
    pytest tests/test_speed_probe.py -v -s
"""

from __future__ import annotations

import sys
from typing import List, Optional

import pytest

# ---------------------------------------------------------------------------
# Dependency gate
# ---------------------------------------------------------------------------
_MISSING: List[str] = []

try:
    import paramiko  # noqa: F401
except ImportError:
    _MISSING.append("paramiko")

try:
    from typeguard import typechecked  # noqa: F401
except ImportError:
    _MISSING.append("typeguard")

try:
    import tqdm  # noqa: F401
except ImportError:
    _MISSING.append("tqdm")

if _MISSING:
    print(
        "\n"
        "=" * 72 + "\n"
        "  MISSING REQUIRED LIBRARIES\n"
        "=" * 72 + "\n"
        f"  The following packages are not installed: {', '.join(_MISSING)}\n"
        f"  Install them with:  pip install {' '.join(_MISSING)}\n"
        "=" * 72 + "\n",
        file=sys.stderr,
    )
    pytest.skip(
        f"Required libraries missing: {', '.join(_MISSING)}",
        allow_module_level=True,
    )

from sshping import timer
from sshping.bulk_transfer import BulkSink
from sshping.exceptions import ProbeIOError, TransportError
from sshping.models import ProbeConfig
from sshping.speed_probe import ThroughputProbe, format_speed
from sshping.types import ErrorKind


class MemorySink(BulkSink):
    """Counts what a probe pushes; optionally fails at a chosen step."""

    def __init__(self, fail_at: Optional[str] = None, fail_after_bytes: int = 0) -> None:
        self.fail_at = fail_at
        self.fail_after_bytes = fail_after_bytes
        self.calls: List[str] = []
        self.header: Optional[tuple] = None
        self.chunk_sizes: List[int] = []
        self.received = 0
        self.body_ok = True

    def open_write(self) -> None:
        self.calls.append("open_write")
        if self.fail_at == "open_write":
            raise TransportError("cannot allocate scp context")

    def push_file(self, name: str, size: int, mode: int) -> None:
        self.calls.append("push_file")
        if self.fail_at == "push_file":
            raise TransportError("remote refused file")
        self.header = (name, size, mode)

    def write(self, data: bytes) -> None:
        if self.fail_at == "write" and self.received >= self.fail_after_bytes:
            raise ProbeIOError("connection reset during body")
        if data.strip(b"s"):
            self.body_ok = False
        self.chunk_sizes.append(len(data))
        self.received += len(data)

    def close(self) -> None:
        self.calls.append("close")
        if self.fail_at == "close":
            raise TransportError("remote rejected file")


def _report(label: str, detail: str = "") -> None:
    if detail:
        print(f"  [{label}] {detail}")
    else:
        print(f"  [{label}]")


class TestThroughputProbe:
    """Happy path and rate computation."""

    def test_pushes_whole_payload_in_chunks(self) -> None:
        sink = MemorySink()
        config = ProbeConfig(payload_size=100000, chunk_size=32768)
        result = ThroughputProbe(config).run(sink)
        _report("RESULT", f"{result}")

        assert result.ok
        assert result.probe == "speed"
        assert result.bytes_transferred == 100000
        assert sink.received == 100000
        assert sink.chunk_sizes == [32768, 32768, 32768, 1696]
        assert sink.body_ok
        assert sink.header == ("speedtest.tmp", 100000, 0o400)
        assert sink.calls == ["open_write", "push_file", "close"]
        assert result.bytes_per_second > 0
        assert result.elapsed_seconds > 0

    def test_payload_smaller_than_chunk(self) -> None:
        sink = MemorySink()
        ThroughputProbe(ProbeConfig(payload_size=10, chunk_size=4096)).run(sink)
        assert sink.chunk_sizes == [10]

    def test_instant_transfer_uses_floor(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _report("TEST", "Clock frozen → zero duration → 0.1s floor → 10,000,000 B/s")
        monkeypatch.setattr(timer, "now", lambda: 123456789)
        result = ThroughputProbe(ProbeConfig(payload_size=1000000)).run(MemorySink())
        _report("RESULT", f"rate={result.bytes_per_second} elapsed={result.elapsed_seconds}")
        assert result.ok
        assert result.elapsed_seconds == 0.1
        assert result.bytes_per_second == 10000000

    def test_rate_is_truncated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _report("TEST", "1,000,000 bytes in 3s → 333333 B/s (truncated)")
        readings = iter([0, 3000000000])
        monkeypatch.setattr(timer, "now", lambda: next(readings))
        result = ThroughputProbe(ProbeConfig(payload_size=1000000, chunk_size=1000000)).run(MemorySink())
        assert result.elapsed_seconds == 3.0
        assert result.bytes_per_second == 333333

    def test_custom_remote_name_and_mode(self) -> None:
        sink = MemorySink()
        config = ProbeConfig(payload_size=5, remote_name="probe.bin", remote_mode=0o600)
        ThroughputProbe(config).run(sink)
        assert sink.header == ("probe.bin", 5, 0o600)


class TestThroughputProbeFailures:
    """Setup failures are TRANSPORT_ERROR; body failures are IO_ERROR."""

    def test_open_failure(self) -> None:
        sink = MemorySink(fail_at="open_write")
        result = ThroughputProbe(ProbeConfig(payload_size=100)).run(sink)
        _report("RESULT", f"{result.error_kind}: {result.error_message}")
        assert not result.ok
        assert result.error_kind is ErrorKind.TRANSPORT_ERROR
        assert sink.calls == ["open_write", "close"]
        assert sink.received == 0

    def test_push_failure(self) -> None:
        sink = MemorySink(fail_at="push_file")
        result = ThroughputProbe(ProbeConfig(payload_size=100)).run(sink)
        assert result.error_kind is ErrorKind.TRANSPORT_ERROR
        assert sink.received == 0

    def test_push_io_failure_is_transport_error(self) -> None:
        class IOOnPush(MemorySink):
            def push_file(self, name: str, size: int, mode: int) -> None:
                raise ProbeIOError("broken pipe")

        result = ThroughputProbe(ProbeConfig(payload_size=100)).run(IOOnPush())
        assert result.error_kind is ErrorKind.TRANSPORT_ERROR
        assert "broken pipe" in result.error_message

    def test_write_failure_mid_body(self) -> None:
        _report("TEST", "Body write fails after 64 KiB → IO_ERROR, sink still closed")
        sink = MemorySink(fail_at="write", fail_after_bytes=65536)
        result = ThroughputProbe(ProbeConfig(payload_size=200000, chunk_size=32768)).run(sink)
        assert result.error_kind is ErrorKind.IO_ERROR
        assert result.bytes_per_second == 0
        assert sink.received == 65536
        assert sink.calls[-1] == "close"

    def test_close_failure(self) -> None:
        sink = MemorySink(fail_at="close")
        result = ThroughputProbe(ProbeConfig(payload_size=100)).run(sink)
        assert result.error_kind is ErrorKind.TRANSPORT_ERROR
        assert "rejected" in result.error_message


class TestFormatSpeed:

    def test_units(self) -> None:
        assert format_speed(512) == "512.00 B/s"
        assert format_speed(2048) == "2.00 KB/s"
        assert format_speed(5 * 1024 * 1024) == "5.00 MB/s"
