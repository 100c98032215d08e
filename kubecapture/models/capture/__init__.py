"""Capture models."""

from kubecapture.models.capture.capture_handle import CaptureExit, CaptureHandle
from kubecapture.models.capture.capture_request import (
    CaptureRequest,
    parse_capture_request,
    parse_max_files,
)

__all__ = [
    "CaptureExit",
    "CaptureHandle",
    "CaptureRequest",
    "parse_capture_request",
    "parse_max_files",
]
