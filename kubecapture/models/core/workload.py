"""Workload identity and snapshot models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from kubecapture.constants.enums import WorkloadEventKind


class WorkloadKey(BaseModel):
    """Stable ``<namespace>/<name>`` identity of a locally-scheduled pod."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    @classmethod
    def parse(cls, value: str) -> WorkloadKey:
        """Build a key from its ``namespace/name`` text form."""
        namespace, sep, name = value.partition("/")
        if not sep or not namespace or not name:
            raise ValueError(f"Invalid workload key: {value!r}")
        return cls(namespace=namespace, name=name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class WorkloadSnapshot(BaseModel):
    """The part of a pod's state the capture controller acts on.

    Replaced wholesale on every notification; never merged.
    """

    model_config = ConfigDict(frozen=True)

    key: WorkloadKey
    annotations: dict[str, str] = Field(default_factory=dict)
    running: bool = False
    resource_version: str | None = None


class WorkloadEvent(BaseModel):
    """One notification from the pod event source."""

    model_config = ConfigDict(frozen=True)

    kind: WorkloadEventKind
    key: WorkloadKey
    snapshot: WorkloadSnapshot | None = None

    @classmethod
    def observed(cls, snapshot: WorkloadSnapshot) -> WorkloadEvent:
        return cls(kind=WorkloadEventKind.OBSERVED, key=snapshot.key, snapshot=snapshot)

    @classmethod
    def removed(cls, key: WorkloadKey) -> WorkloadEvent:
        return cls(kind=WorkloadEventKind.REMOVED, key=key)
