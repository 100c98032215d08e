"""Timeout constants for the capture agent.

All grace periods, resync intervals and kubectl timeouts.
"""

from typing import Final

# ============================================================================
# API/Cluster timeouts (string format for kubectl)
# ============================================================================

CLUSTER_REQUEST_TIMEOUT: Final = "30s"

# Process-level command timeout (must be greater than request timeout)
KUBECTL_COMMAND_TIMEOUT: Final = 45

# ============================================================================
# Capture lifecycle (float, in seconds)
# ============================================================================

STOP_GRACE_PERIOD: Final = 0.5
SHUTDOWN_MONITOR_TIMEOUT: Final = 2.0

# ============================================================================
# Pod watch (float, in seconds)
# ============================================================================

RESYNC_INTERVAL: Final = 30.0
WATCH_RESTART_DELAY: Final = 1.0

__all__ = [
    "CLUSTER_REQUEST_TIMEOUT",
    "KUBECTL_COMMAND_TIMEOUT",
    "RESYNC_INTERVAL",
    "SHUTDOWN_MONITOR_TIMEOUT",
    "STOP_GRACE_PERIOD",
    "WATCH_RESTART_DELAY",
]
