"""Utility functions and classes for the capture agent."""

from kubecapture.utils.capture_files import (
    CleanupResult,
    capture_output_prefix,
    delete_capture_files,
    find_capture_files,
)
from kubecapture.utils.kubectl import KubectlError, KubectlRunner

__all__ = [
    # Capture files
    "CleanupResult",
    "capture_output_prefix",
    "delete_capture_files",
    "find_capture_files",
    # kubectl
    "KubectlError",
    "KubectlRunner",
]
