"""Capture agent - wires the pod watcher to the capture controller."""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import AsyncIterator
from contextlib import suppress
from typing import Protocol

from kubecapture.constants.defaults import LOG_FORMAT_DEFAULT
from kubecapture.controllers.capture import CaptureController
from kubecapture.controllers.pods import PodWatcher, WatchSyncError
from kubecapture.models.core.workload import WorkloadEvent
from kubecapture.models.state.app_settings import AgentSettings
from kubecapture.utils.kubectl import KubectlRunner

logger = logging.getLogger(__name__)

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class EventSource(Protocol):
    def events(self) -> AsyncIterator[WorkloadEvent]: ...


def configure_logging(level: str) -> None:
    """Install a single stream handler on the root logger."""
    logging.basicConfig(level=level, format=LOG_FORMAT_DEFAULT, force=True)


class CaptureAgent:
    """Runs the capture controller until a shutdown signal arrives."""

    def __init__(
        self,
        settings: AgentSettings,
        controller: CaptureController | None = None,
        source: EventSource | None = None,
    ) -> None:
        self.settings = settings
        self.controller = controller or CaptureController(settings)
        self.source = source or PodWatcher(
            settings.node_name,
            KubectlRunner(context=settings.kubectl_context),
            resync_interval=settings.resync_interval_seconds,
        )
        self._stop_event = asyncio.Event()

    def request_stop(self) -> None:
        if not self._stop_event.is_set():
            logger.info("Shutdown requested")
        self._stop_event.set()

    def _install_signal_handlers(self) -> list[signal.Signals]:
        loop = asyncio.get_running_loop()
        installed = []
        for sig in _SHUTDOWN_SIGNALS:
            # Not available on every platform/loop.
            with suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self.request_stop)
                installed.append(sig)
        return installed

    @staticmethod
    def _remove_signal_handlers(installed: list[signal.Signals]) -> None:
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)

    async def _consume_events(self) -> None:
        async for event in self.source.events():
            await self.controller.handle_event(event)

    async def run(self) -> int:
        """Consume events until stopped, then stop every capture.

        Returns:
            Process exit status
        """
        logger.info("Starting packet-capture agent on node %s", self.settings.node_name)
        installed = self._install_signal_handlers()
        consumer = asyncio.create_task(self._consume_events(), name="event-consumer")
        reports = asyncio.create_task(
            self.controller.process_exit_reports(), name="exit-reports"
        )
        stopper = asyncio.create_task(self._stop_event.wait(), name="stop-wait")
        exit_code = 0
        try:
            done, _ = await asyncio.wait(
                {consumer, stopper}, return_when=asyncio.FIRST_COMPLETED
            )
            if consumer in done:
                error = consumer.exception()
                if isinstance(error, WatchSyncError):
                    logger.error("%s", error)
                    exit_code = 1
                elif error is not None:
                    logger.error("Event consumption failed: %s", error, exc_info=error)
                    exit_code = 1
                else:
                    logger.warning("Event source ended")
        finally:
            stopped = await self.controller.shutdown()
            logger.info("Stopped %d capture(s)", stopped)
            for task in (consumer, reports, stopper):
                task.cancel()
            await asyncio.gather(consumer, reports, stopper, return_exceptions=True)
            self._remove_signal_handlers(installed)
        return exit_code
