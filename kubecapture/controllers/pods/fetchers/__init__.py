"""Pod fetchers."""

from kubecapture.controllers.pods.fetchers.pod_fetcher import PodFetcher

__all__ = ["PodFetcher"]
