"""Core workload models."""

from kubecapture.models.core.workload import (
    WorkloadEvent,
    WorkloadKey,
    WorkloadSnapshot,
)

__all__ = [
    "WorkloadEvent",
    "WorkloadKey",
    "WorkloadSnapshot",
]
