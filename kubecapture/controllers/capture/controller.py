"""Capture controller - annotation-driven capture lifecycle.

Each observed pod snapshot is judged against the current registry, never
against the previous snapshot, so duplicated or reordered notifications of
the same state converge:

    annotation valid   + no handle -> start
    annotation missing + handle    -> stop
    anything else                  -> nothing
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from kubecapture.constants.enums import CaptureAction
from kubecapture.constants.timeouts import SHUTDOWN_MONITOR_TIMEOUT
from kubecapture.constants.values import ROTATION_UNIT_BYTES
from kubecapture.controllers.base import BaseController
from kubecapture.controllers.capture.driver import (
    CaptureSpawnError,
    ProcessDriver,
    TcpdumpDriver,
)
from kubecapture.controllers.capture.registry import (
    CaptureRegistry,
    RegistryTransaction,
)
from kubecapture.models.capture.capture_handle import CaptureExit, CaptureHandle
from kubecapture.models.capture.capture_request import (
    CaptureRequest,
    parse_capture_request,
)
from kubecapture.models.core.workload import WorkloadKey, WorkloadSnapshot
from kubecapture.models.state.app_settings import AgentSettings
from kubecapture.utils.capture_files import capture_output_prefix, delete_capture_files

logger = logging.getLogger(__name__)


def decide_action(request: CaptureRequest, capturing: bool) -> CaptureAction:
    """Map desired state and registry membership to an action."""
    if request.present and not capturing:
        return CaptureAction.START
    if not request.present and capturing:
        return CaptureAction.STOP
    return CaptureAction.NONE


class CaptureController(BaseController):
    """Starts and stops one capture per annotated pod on this node."""

    def __init__(
        self,
        settings: AgentSettings,
        driver: ProcessDriver | None = None,
        registry: CaptureRegistry | None = None,
    ) -> None:
        self.settings = settings
        self.driver = driver or TcpdumpDriver(
            binary=settings.capture_binary,
            interface=settings.capture_interface,
            rotation_size_units=settings.rotation_size_units,
        )
        self.registry = registry or CaptureRegistry()
        self._exit_reports: asyncio.Queue[CaptureExit] = asyncio.Queue()
        self._monitors: set[asyncio.Task[None]] = set()
        self._closing = False

    @property
    def closing(self) -> bool:
        return self._closing

    # =========================================================================
    # Event hooks
    # =========================================================================

    async def on_workload_observed(self, snapshot: WorkloadSnapshot) -> None:
        # Removal events handle real termination; transient phases are ignored.
        if not snapshot.running:
            return

        key = snapshot.key
        request = parse_capture_request(snapshot.annotations, self.settings.annotation_key)
        if request.invalid_value is not None:
            logger.warning(
                "Invalid annotation value %r for %s, expected a positive integer",
                request.invalid_value,
                key,
            )

        async with self.registry.transaction() as txn:
            if self._closing:
                logger.debug("Ignoring %s, controller is shutting down", key)
                return

            action = decide_action(request, txn.get(key) is not None)
            if action is CaptureAction.START and request.max_files is not None:
                logger.info("Starting capture for %s (max files: %d)", key, request.max_files)
                await self._start_capture(txn, key, request.max_files)
            elif action is CaptureAction.STOP:
                logger.info("Stopping capture for %s", key)
                await self._stop_capture(txn, key)

    async def on_workload_removed(self, key: WorkloadKey) -> None:
        async with self.registry.transaction() as txn:
            if txn.get(key) is None:
                return
            logger.info("Pod %s deleted, stopping capture", key)
            await self._stop_capture(txn, key)

    async def shutdown(self) -> int:
        """Stop every active capture and refuse new ones.

        Returns:
            Number of captures stopped
        """
        async with self.registry.transaction() as txn:
            self._closing = True
            keys = txn.keys()
            logger.info("Shutting down, stopping %d capture(s)", len(keys))
            for key in keys:
                await self._stop_capture(txn, key)

        await self._reap_monitors()
        return len(keys)

    # =========================================================================
    # Start / stop (registry lock held by caller)
    # =========================================================================

    async def _start_capture(
        self,
        txn: RegistryTransaction,
        key: WorkloadKey,
        max_files: int,
    ) -> CaptureHandle | None:
        output_prefix = capture_output_prefix(self.settings.capture_dir, key.name)
        try:
            handle = await self.driver.spawn(
                key,
                output_prefix,
                max_rotated_files=max_files,
                rotation_unit_bytes=ROTATION_UNIT_BYTES,
            )
        except CaptureSpawnError as exc:
            logger.error("Failed to start capture for %s: %s", key, exc)
            return None

        txn.insert(handle)
        monitor = asyncio.create_task(
            self._monitor_exit(handle), name=f"capture-exit-{key}"
        )
        self._monitors.add(monitor)
        monitor.add_done_callback(self._monitors.discard)
        return handle

    async def _stop_capture(self, txn: RegistryTransaction, key: WorkloadKey) -> bool:
        handle = txn.get(key)
        if handle is None:
            return False

        try:
            self.driver.terminate(handle)
            # Fixed grace period for the tool to close its current file.
            await asyncio.sleep(self.settings.stop_grace_seconds)
            if self.settings.kill_after_grace and handle.exit_code is None:
                logger.warning("Capture for %s still running after grace period, killing", key)
                self.driver.kill(handle)
            await self._cancel_background_tasks(handle)

            result = await asyncio.to_thread(delete_capture_files, handle.output_prefix)
            if not result.ok:
                logger.warning(
                    "Capture cleanup for %s left %d file(s) behind", key, len(result.failed)
                )
        finally:
            txn.remove(key)
        return True

    @staticmethod
    async def _cancel_background_tasks(handle: CaptureHandle) -> None:
        tasks = [task for task in handle.background_tasks if not task.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        handle.background_tasks.clear()

    # =========================================================================
    # Exit reports
    # =========================================================================

    async def _monitor_exit(self, handle: CaptureHandle) -> None:
        exit_code = await self.driver.await_exit(handle)
        await self._exit_reports.put(
            CaptureExit(
                key=handle.key,
                handle=handle,
                exit_code=exit_code,
                stop_requested=handle.stop_requested,
            )
        )

    async def handle_exit_report(self, report: CaptureExit) -> None:
        """Record the exit of a capture process."""
        if report.stop_requested:
            logger.debug("Capture for %s exited with %s after stop", report.key, report.exit_code)
            return

        logger.warning(
            "Capture process for %s exited unexpectedly with status %s",
            report.key,
            report.exit_code,
        )
        if not self.settings.respawn_on_unexpected_exit:
            return

        async with self.registry.transaction() as txn:
            # Only drop the exact handle that died; a newer one may have replaced it.
            if txn.get(report.key) is report.handle:
                txn.remove(report.key)
                logger.info("Dropped stale capture for %s, next observation restarts it", report.key)

    async def drain_exit_reports(self) -> int:
        """Handle every exit report already queued, without waiting."""
        handled = 0
        while not self._exit_reports.empty():
            report = self._exit_reports.get_nowait()
            await self.handle_exit_report(report)
            handled += 1
        return handled

    async def process_exit_reports(self) -> None:
        """Consume exit reports until cancelled."""
        while True:
            report = await self._exit_reports.get()
            try:
                await self.handle_exit_report(report)
            except Exception:
                logger.exception("Error handling exit report for %s", report.key)

    async def _reap_monitors(self) -> None:
        monitors = list(self._monitors)
        if not monitors:
            return
        _, pending = await asyncio.wait(monitors, timeout=SHUTDOWN_MONITOR_TIMEOUT)
        for task in pending:
            task.cancel()
        for task in pending:
            with suppress(asyncio.CancelledError):
                await task
        await self.drain_exit_reports()

    async def active_keys(self) -> list[WorkloadKey]:
        return await self.registry.keys()
