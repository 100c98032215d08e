"""Base controller for workload event handling.

Dispatches event-source notifications to the concrete controller and keeps
one workload's failure from escaping into the event loop.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from kubecapture.constants.enums import WorkloadEventKind
from kubecapture.models.core.workload import WorkloadEvent, WorkloadKey, WorkloadSnapshot

logger = logging.getLogger(__name__)


@dataclass
class EventResult:
    """Result wrapper for one handled notification."""

    success: bool
    key: str
    error: str | None = None


class BaseController(ABC):
    """Base controller class for workload notifications.

    Subclasses implement the observed/removed hooks and the shutdown path.
    """

    @abstractmethod
    async def on_workload_observed(self, snapshot: WorkloadSnapshot) -> None:
        """React to the full current state of one workload."""
        ...

    @abstractmethod
    async def on_workload_removed(self, key: WorkloadKey) -> None:
        """React to the deletion of one workload."""
        ...

    @abstractmethod
    async def shutdown(self) -> int:
        """Release everything the controller owns.

        Returns:
            Number of resources released
        """
        ...

    async def handle_event(self, event: WorkloadEvent) -> EventResult:
        """Dispatch one notification, absorbing any error it raises."""
        try:
            if event.kind is WorkloadEventKind.REMOVED:
                await self.on_workload_removed(event.key)
            elif event.snapshot is not None:
                await self.on_workload_observed(event.snapshot)
            else:
                logger.warning("Observed event for %s carried no snapshot", event.key)
        except Exception as exc:
            logger.exception("Error handling %s event for %s", event.kind.value, event.key)
            return EventResult(success=False, key=str(event.key), error=str(exc))
        return EventResult(success=True, key=str(event.key))
