"""Init file for pods module."""

from kubecapture.controllers.pods.fetchers import PodFetcher
from kubecapture.controllers.pods.parsers import PodParser, WatchStreamDecoder
from kubecapture.controllers.pods.watcher import PodWatcher, WatchSyncError

__all__ = ["PodFetcher", "PodParser", "PodWatcher", "WatchStreamDecoder", "WatchSyncError"]
