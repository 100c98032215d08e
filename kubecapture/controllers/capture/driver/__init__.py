"""Capture process drivers."""

from kubecapture.controllers.capture.driver.process_driver import (
    CaptureSpawnError,
    ProcessDriver,
    TcpdumpDriver,
)

__all__ = ["CaptureSpawnError", "ProcessDriver", "TcpdumpDriver"]
