"""kubecapture - per-node agent running packet captures for annotated pods."""

__version__ = "0.1.0"
