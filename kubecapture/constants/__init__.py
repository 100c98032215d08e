"""Constants module for the capture agent.

Centralized constants organized by domain:
- enums.py: All Enum class definitions
- values.py: Scalar constants (strings, numbers with Final)
- timeouts.py: Timeout and interval values (seconds)
- defaults.py: Default values for settings
"""

from kubecapture.constants.defaults import (
    LOG_LEVEL_DEFAULT,
    ROTATION_SIZE_UNITS_DEFAULT,
)
from kubecapture.constants.enums import (
    CaptureAction,
    PodPhase,
    WatchEventType,
    WorkloadEventKind,
)
from kubecapture.constants.timeouts import (
    CLUSTER_REQUEST_TIMEOUT,
    RESYNC_INTERVAL,
    STOP_GRACE_PERIOD,
)
from kubecapture.constants.values import (
    ANNOTATION_KEY,
    CAPTURE_BINARY,
    CAPTURE_DIR,
    ROTATION_UNIT_BYTES,
)

__all__ = [
    # Annotation / files
    "ANNOTATION_KEY",
    "CAPTURE_BINARY",
    "CAPTURE_DIR",
    # Timeouts
    "CLUSTER_REQUEST_TIMEOUT",
    # Defaults
    "LOG_LEVEL_DEFAULT",
    "RESYNC_INTERVAL",
    "ROTATION_SIZE_UNITS_DEFAULT",
    "ROTATION_UNIT_BYTES",
    "STOP_GRACE_PERIOD",
    # Enums
    "CaptureAction",
    "PodPhase",
    "WatchEventType",
    "WorkloadEventKind",
]
