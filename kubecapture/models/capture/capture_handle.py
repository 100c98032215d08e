"""Runtime record for one live capture process."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from time import monotonic
from typing import Any

from kubecapture.models.core.workload import WorkloadKey


@dataclass(eq=False)
class CaptureHandle:
    """Owns a capture process, its cancellation token and its output prefix.

    Created only by a successful spawn and discarded only once the stop
    path has terminated the process and deleted its files.
    """

    key: WorkloadKey
    process: Any
    output_prefix: Path
    max_files: int
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    started_at: float = field(default_factory=monotonic)
    background_tasks: list[asyncio.Task[Any]] = field(default_factory=list)

    @property
    def pid(self) -> int | None:
        return getattr(self.process, "pid", None)

    @property
    def stop_requested(self) -> bool:
        return self.cancel_event.is_set()

    @property
    def exit_code(self) -> int | None:
        """Exit status once the process has been reaped, else None."""
        return getattr(self.process, "returncode", None)


@dataclass(frozen=True)
class CaptureExit:
    """Exit report sent from a capture's exit monitor to the controller."""

    key: WorkloadKey
    handle: CaptureHandle
    exit_code: int | None
    stop_requested: bool
