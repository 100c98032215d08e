"""Controllers module for the capture agent.

This module provides the capture lifecycle controller and the node-scoped
pod event source that feeds it.
"""

from __future__ import annotations

# Base classes
from kubecapture.controllers.base import BaseController, EventResult

# Capture domain
from kubecapture.controllers.capture import (
    CaptureController,
    CaptureRegistry,
    RegistryError,
)
from kubecapture.controllers.capture.driver import (
    CaptureSpawnError,
    ProcessDriver,
    TcpdumpDriver,
)

# Pods domain
from kubecapture.controllers.pods import PodWatcher, WatchSyncError

__all__ = [
    # Base
    "BaseController",
    # Capture domain
    "CaptureController",
    "CaptureRegistry",
    "CaptureSpawnError",
    "EventResult",
    # Pods domain
    "PodWatcher",
    "ProcessDriver",
    "RegistryError",
    "TcpdumpDriver",
    "WatchSyncError",
]
