"""Pod parser - turns raw pod objects into workload snapshots."""

from __future__ import annotations

from typing import Any

from kubecapture.constants.enums import PodPhase
from kubecapture.models.core.workload import WorkloadKey, WorkloadSnapshot


class PodParser:
    """Parses pod data into WorkloadSnapshot objects."""

    def parse_key(self, pod: dict[str, Any]) -> WorkloadKey | None:
        """Return the pod's key, or None when namespace or name is missing."""
        metadata = pod.get("metadata") or {}
        namespace = metadata.get("namespace")
        name = metadata.get("name")
        if not isinstance(namespace, str) or not isinstance(name, str):
            return None
        if not namespace or not name:
            return None
        return WorkloadKey(namespace=namespace, name=name)

    def parse_resource_version(self, pod: dict[str, Any]) -> str | None:
        version = (pod.get("metadata") or {}).get("resourceVersion")
        return str(version) if version else None

    def parse_snapshot(self, pod: dict[str, Any]) -> WorkloadSnapshot | None:
        """Parse a single pod into a WorkloadSnapshot.

        Args:
            pod: Raw pod dictionary from API

        Returns:
            WorkloadSnapshot, or None if the pod has no usable identity.
        """
        key = self.parse_key(pod)
        if key is None:
            return None

        metadata = pod.get("metadata") or {}
        raw_annotations = metadata.get("annotations") or {}
        annotations = {
            str(name): str(value)
            for name, value in raw_annotations.items()
            if value is not None
        }
        phase = (pod.get("status") or {}).get("phase")
        return WorkloadSnapshot(
            key=key,
            annotations=annotations,
            running=phase == PodPhase.RUNNING.value,
            resource_version=self.parse_resource_version(pod),
        )
