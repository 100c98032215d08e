"""Pod fetcher - lists and watches the pods scheduled on one node."""

from __future__ import annotations

import json
import logging
from typing import Any

from kubecapture.constants.timeouts import CLUSTER_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)


class PodFetcher:
    """Fetches pod data for a single node."""

    def __init__(self, run_kubectl_func: Any) -> None:
        """Initialize with kubectl runner function.

        Args:
            run_kubectl_func: Async function to run kubectl commands
        """
        self._run_kubectl = run_kubectl_func

    @staticmethod
    def _node_selector(node_name: str) -> str:
        return f"--field-selector=spec.nodeName={node_name}"

    def build_list_args(
        self,
        node_name: str,
        request_timeout: str = CLUSTER_REQUEST_TIMEOUT,
    ) -> tuple[str, ...]:
        """Build the node-scoped pod list arguments."""
        return (
            "get",
            "pods",
            "--all-namespaces",
            self._node_selector(node_name),
            "-o",
            "json",
            f"--request-timeout={request_timeout}",
        )

    def build_watch_args(self, node_name: str) -> tuple[str, ...]:
        """Build the node-scoped pod watch arguments (changes only)."""
        return (
            "get",
            "pods",
            "--all-namespaces",
            self._node_selector(node_name),
            "--watch-only",
            "--output-watch-events",
            "-o",
            "json",
            "--request-timeout=0",
        )

    async def fetch_node_pods(
        self,
        node_name: str,
        request_timeout: str = CLUSTER_REQUEST_TIMEOUT,
    ) -> list[dict[str, Any]]:
        """Fetch raw pods scheduled on ``node_name``.

        Raises:
            ValueError: If kubectl returned something other than a pod list.
        """
        output = await self._run_kubectl(self.build_list_args(node_name, request_timeout))
        if not output:
            return []

        try:
            data = json.loads(output)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid pod list JSON: {exc}") from exc

        items = data.get("items", []) if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise ValueError("Pod list response has no items list")
        return [item for item in items if isinstance(item, dict)]
