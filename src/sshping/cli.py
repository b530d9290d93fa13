"""Command-line interface for sshping."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from . import DEFAULT_IDENTITY, DEFAULT_PASSWORD, ECHO_COMMAND, ECHO_COUNT, SPEED_PAYLOAD_SIZE, SSH_PORT
from .channel import Channel
from .connection import SSHSessionManager
from .echo_probe import EchoProbe
from .exceptions import InvalidInputError, SSHConnectionError
from .models import ProbeConfig, ProbeResult
from .report import format_failure, format_login, format_result
from .speed_probe import ThroughputProbe
from .types import ErrorKind, Target

EXIT_FAILURE = 255


def parse_target(text: str) -> Target:
    """Split ``[user@]host[:port]`` into ``(user, host, port)``.

    ``user`` is ``""`` when not given; ``port`` defaults to 22.

    Raises:
        ValueError: If the host is missing or the port is not 1-65535.
    """
    user, _, hostport = text.rpartition("@")
    host, _, port_text = hostport.partition(":")
    if not host:
        raise ValueError(f"Missing host in target {text!r}")

    if not port_text:
        return (user, host, SSH_PORT)
    try:
        port = int(port_text)
    except ValueError:
        port = 0
    if port < 1 or port > 65535:
        raise ValueError("Bad port, must be integer from 1 to 65535")
    return (user, host, port)


def parse_tests(text: str) -> List[str]:
    """Map ``-t`` letters to probe names (``e`` echo, ``s`` speed)."""
    unknown = set(text) - {"e", "s"}
    if unknown or not text:
        raise ValueError(f"Bad test selection {text!r}, use e, s or es")
    return [name for letter, name in (("e", "echo"), ("s", "speed")) if letter in text]


def run_probes(
    manager: SSHSessionManager,
    channel: Channel,
    config: ProbeConfig,
    tests: List[str],
) -> List[ProbeResult]:
    """Run the selected probes one after another; a failure does not stop the next."""
    results = []
    if "echo" in tests:
        results.append(EchoProbe(config).run(channel, context=f"echo test on {manager.label}"))
    if "speed" in tests:
        try:
            sink = manager.open_bulk_sink(config.remote_target)
        except SSHConnectionError as e:
            results.append(ProbeResult.failure("speed", ErrorKind.TRANSPORT_ERROR, str(e)))
        else:
            results.append(ThroughputProbe(config).run(sink, context=f"speed test on {manager.label}"))
    return results


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    # paramiko's transport-level logs only at -vv
    logging.getLogger("paramiko").setLevel(logging.DEBUG if verbosity >= 2 else logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sshping",
        description="SSH-based ping that measures interactive character echo latency. "
                    "Pronounced \"shipping\".",
    )
    parser.add_argument(
        "target", metavar="[user@]addr[:port]",
        help="Target host, optionally with user and port",
    )
    parser.add_argument(
        "-c", "--count", type=int, default=ECHO_COUNT,
        help=f"Number of characters to echo (default: {ECHO_COUNT})",
    )
    parser.add_argument(
        "-e", "--echocmd", default=ECHO_COMMAND,
        help=f"Use ECHOCMD for echo command (default: {ECHO_COMMAND})",
    )
    parser.add_argument(
        "-i", "--identity", default=DEFAULT_IDENTITY or None,
        help="Identity file, ie ssh private keyfile (env: SSHPING_IDENTITY)",
    )
    parser.add_argument(
        "-p", "--password", default=DEFAULT_PASSWORD or None,
        help="Use password PASSWORD (can be seen, use with care; env: SSHPING_PASSWORD)",
    )
    parser.add_argument(
        "-r", "--runtime", type=float, default=None,
        help="Run the echo test for RUNTIME seconds, instead of count limit",
    )
    parser.add_argument(
        "-s", "--size", type=int, default=SPEED_PAYLOAD_SIZE,
        help=f"Speed test payload size in bytes (default: {SPEED_PAYLOAD_SIZE})",
    )
    parser.add_argument(
        "-t", "--tests", default="es",
        help="Run tests e=echo s=speed (default: es=both)",
    )
    parser.add_argument(
        "--progress", action="store_true", default=False,
        help="Show progress bars while the tests run",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Show more output, use twice for more: -vv",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    try:
        args = build_parser().parse_args(argv)
    except SystemExit as e:
        # argparse exits 0 after --help and 2 after printing a usage error
        if not e.code:
            return 0
        print("*** Command error, see usage", file=sys.stderr)
        return EXIT_FAILURE
    _configure_logging(args.verbose)

    try:
        user, host, port = parse_target(args.target)
        tests = parse_tests(args.tests)
        config = ProbeConfig(
            count=args.count,
            echo_command=args.echocmd,
            runtime_s=args.runtime,
            payload_size=args.size,
            show_progress=args.progress,
        )
    except (ValueError, InvalidInputError) as e:
        print(f"*** {e}", file=sys.stderr)
        return EXIT_FAILURE

    if args.verbose:
        print(f"User: {user or '--not specified--'}")
        print(f"Host: {host}")
        print(f"Port: {port}")
        print(f"Echo: {config.echo_command}")
        print()

    manager = SSHSessionManager(
        hostname=host,
        username=user or None,
        password=args.password,
        port=port,
        key_filename=args.identity,
    )

    try:
        try:
            manager.connect(context=f"sshping {manager.label}")
        except SSHConnectionError as e:
            print(f"*** {e}", file=sys.stderr)
            print("*** Cannot establish ssh session", file=sys.stderr)
            return EXIT_FAILURE

        try:
            channel = manager.open_interactive_channel(context=f"login to {manager.label}")
        except SSHConnectionError as e:
            print(f"*** {e}", file=sys.stderr)
            print("*** Cannot login and run echo command", file=sys.stderr)
            return EXIT_FAILURE

        if manager.login_nanos is not None:
            print(format_login(manager.login_nanos))

        try:
            results = run_probes(manager, channel, config, tests)
        finally:
            channel.close()
    finally:
        manager.disconnect()

    failed = False
    for result in results:
        if result.ok:
            for line in format_result(result):
                print(line)
        else:
            failed = True
            print(format_failure(result), file=sys.stderr)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
