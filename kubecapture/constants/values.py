"""Scalar constants for the capture agent.

Annotation contract, capture file naming and the capture tool's fixed units.
"""

from typing import Final

# ============================================================================
# Annotation contract
# ============================================================================

ANNOTATION_KEY: Final = "tcpdump.antrea.io"

# ============================================================================
# Capture files
# ============================================================================

CAPTURE_DIR: Final = "/captures"
CAPTURE_FILE_PREFIX: Final = "capture-"
CAPTURE_FILE_SUFFIX: Final = ".pcap"

# tcpdump -C counts in millions of bytes, not MiB.
ROTATION_UNIT_BYTES: Final = 1_000_000

# ============================================================================
# Capture process
# ============================================================================

CAPTURE_BINARY: Final = "tcpdump"
CAPTURE_INTERFACE: Final = "any"

# ============================================================================
# Environment
# ============================================================================

NODE_NAME_ENV: Final = "NODE_NAME"
KUBECTL_BINARY: Final = "kubectl"

__all__ = [
    "ANNOTATION_KEY",
    "CAPTURE_BINARY",
    "CAPTURE_DIR",
    "CAPTURE_FILE_PREFIX",
    "CAPTURE_FILE_SUFFIX",
    "CAPTURE_INTERFACE",
    "KUBECTL_BINARY",
    "NODE_NAME_ENV",
    "ROTATION_UNIT_BYTES",
]
