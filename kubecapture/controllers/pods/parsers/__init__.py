"""Pod parsers."""

from kubecapture.controllers.pods.parsers.pod_parser import PodParser
from kubecapture.controllers.pods.parsers.watch_stream_parser import WatchStreamDecoder

__all__ = ["PodParser", "WatchStreamDecoder"]
