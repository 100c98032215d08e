"""All enum definitions for the capture agent."""

from enum import Enum

# =============================================================================
# Kubernetes Enums
# =============================================================================

class PodPhase(Enum):
    """Pod phase values from Kubernetes API."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class WatchEventType(Enum):
    """Event types printed by ``kubectl get --output-watch-events``."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    BOOKMARK = "BOOKMARK"
    ERROR = "ERROR"


# =============================================================================
# Lifecycle Enums
# =============================================================================

class WorkloadEventKind(Enum):
    """Notification kinds delivered to the capture controller."""

    OBSERVED = "observed"
    REMOVED = "removed"


class CaptureAction(Enum):
    """Reconciliation outcome for one observed snapshot."""

    START = "start"
    STOP = "stop"
    NONE = "none"


__all__ = [
    "CaptureAction",
    "PodPhase",
    "WatchEventType",
    "WorkloadEventKind",
]
