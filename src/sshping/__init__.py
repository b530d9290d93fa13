"""
sshping - SSH-based ping that measures interactive character echo latency

This package measures how a remote shell feels over SSH. It includes:

- **Echo latency probe** that types one character at a time into a remote
  responder and times each round trip
- **Throughput probe** that pushes a large payload over SCP and reports
  bytes per second
- **Statistics** (min, median, mean, max, standard deviation) over the
  collected samples
- **Connection management** with fingerprint bypass and automatic cleanup

All probes take an explicit ``ProbeConfig`` and report a ``ProbeResult``;
nothing in the package keeps state between runs.
"""

import logging
import os

logging.getLogger("sshping").addHandler(logging.NullHandler())

__version__ = "0.2.0"

# Credentials may come from the environment instead of the command line.
#   SSHPING_PASSWORD / SSHPING_IDENTITY
DEFAULT_PASSWORD = os.environ.get("SSHPING_PASSWORD", "")
DEFAULT_IDENTITY = os.environ.get("SSHPING_IDENTITY", "")

# SSH port
SSH_PORT = 22

# Timeout settings (seconds)
CONNECTION_TIMEOUT = 30

# Interactive shell settings
PTY_WIDTH = 80
PTY_HEIGHT = 24
LOGIN_SETTLE_MS = 1300    # quiet period that marks the end of the login banner

# Echo probe settings
ECHO_COUNT = 1000
ECHO_COMMAND = "cat > /dev/null"
ECHO_SETTLE_MS = 1500     # quiet period after starting the responder
ECHO_READ_TIMEOUT_MS = 2500
DRAIN_BUFFER_SIZE = 256

# Throughput probe settings
SPEED_PAYLOAD_SIZE = 8000000
SPEED_REMOTE_TARGET = "/dev/null"
SPEED_REMOTE_NAME = "speedtest.tmp"
SPEED_REMOTE_MODE = 0o400
SPEED_DURATION_FLOOR_S = 0.1  # substituted when the clock cannot resolve the transfer
CHUNK_SIZE = 32768
SCP_ACK_TIMEOUT = 30
