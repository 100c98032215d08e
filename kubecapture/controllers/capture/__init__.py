"""Init file for capture module."""

from kubecapture.controllers.capture.controller import CaptureController, decide_action
from kubecapture.controllers.capture.registry import (
    CaptureRegistry,
    RegistryError,
    RegistryTransaction,
)

__all__ = [
    "CaptureController",
    "CaptureRegistry",
    "RegistryError",
    "RegistryTransaction",
    "decide_action",
]
