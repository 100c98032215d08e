"""Pod watcher - the node-scoped event source for the capture controller.

Lists the pods on this node once (fatal if that fails), then follows a
``kubectl --watch-only`` stream. Every resync interval, and whenever the
watch stream ends, the pod list is fetched again and every pod is
redelivered as observed; pods that disappeared in between are delivered as
removed.

A listing is delivered after the watch events that arrived while it was in
flight, so watch state seen during the listing wins over the listed copy
unless the listed copy carries a newer resourceVersion.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from collections.abc import AsyncIterator
from contextlib import suppress
from typing import Any

from kubecapture.constants.enums import WatchEventType
from kubecapture.constants.timeouts import RESYNC_INTERVAL, WATCH_RESTART_DELAY
from kubecapture.controllers.pods.fetchers import PodFetcher
from kubecapture.controllers.pods.parsers import PodParser, WatchStreamDecoder
from kubecapture.models.core.workload import WorkloadEvent, WorkloadKey, WorkloadSnapshot
from kubecapture.utils.kubectl import KubectlError, KubectlRunner

logger = logging.getLogger(__name__)


class WatchSyncError(RuntimeError):
    """Raised when the initial pod list for this node cannot be obtained."""


class PodWatcher:
    """Produces WorkloadEvents for the pods scheduled on one node."""

    _READ_CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        node_name: str,
        runner: KubectlRunner,
        resync_interval: float = RESYNC_INTERVAL,
        restart_delay: float = WATCH_RESTART_DELAY,
        fetcher: PodFetcher | None = None,
        parser: PodParser | None = None,
    ) -> None:
        self.node_name = node_name
        self._runner = runner
        self._resync_interval = resync_interval
        self._restart_delay = restart_delay
        self._fetcher = fetcher or PodFetcher(runner.run)
        self._parser = parser or PodParser()
        self._known: set[WorkloadKey] = set()
        self._synced = False
        self._list_lock = asyncio.Lock()
        self._listing = False
        # Watch state observed while a listing is in flight.
        self._watch_seen: dict[WorkloadKey, str | None] = {}
        self._watch_deleted: set[WorkloadKey] = set()

    @property
    def synced(self) -> bool:
        return self._synced

    @property
    def known_keys(self) -> set[WorkloadKey]:
        return set(self._known)

    async def _list_snapshots(self) -> list[WorkloadSnapshot]:
        pods = await self._fetcher.fetch_node_pods(self.node_name)
        snapshots = []
        for pod in pods:
            snapshot = self._parser.parse_snapshot(pod)
            if snapshot is not None:
                snapshots.append(snapshot)
        return snapshots

    @staticmethod
    def _is_newer(listed: str | None, watched: str | None) -> bool:
        if listed is None or watched is None:
            return False
        if not (listed.isdigit() and watched.isdigit()):
            return False
        return int(listed) > int(watched)

    def _listed_is_stale(self, snapshot: WorkloadSnapshot) -> bool:
        """Whether the watch delivered newer state for this pod during the listing."""
        if snapshot.key in self._watch_deleted:
            return True
        if snapshot.key not in self._watch_seen:
            return False
        return not self._is_newer(snapshot.resource_version, self._watch_seen[snapshot.key])

    def _reconcile_listing(self, snapshots: list[WorkloadSnapshot]) -> list[WorkloadEvent]:
        """Turn a full listing into observed events plus removals for vanished pods."""
        fresh = []
        for snapshot in snapshots:
            if self._listed_is_stale(snapshot):
                logger.debug("Skipping listed state for %s, watch is newer", snapshot.key)
                continue
            fresh.append(snapshot)

        # Pods the watch saw alive during the listing stay known even if unlisted.
        current = {snapshot.key for snapshot in fresh} | set(self._watch_seen)
        events = [WorkloadEvent.observed(snapshot) for snapshot in fresh]
        vanished = sorted(self._known - current, key=str)
        events.extend(WorkloadEvent.removed(key) for key in vanished)
        self._known = current
        return events

    async def _relist(self) -> list[WorkloadEvent]:
        """List this node's pods and reconcile against watch state seen meanwhile."""
        async with self._list_lock:
            self._watch_seen = {}
            self._watch_deleted = set()
            self._listing = True
            try:
                snapshots = await self._list_snapshots()
                return self._reconcile_listing(snapshots)
            finally:
                self._listing = False
                self._watch_seen = {}
                self._watch_deleted = set()

    async def initial_sync(self) -> list[WorkloadEvent]:
        """List this node's pods once.

        Raises:
            WatchSyncError: If the pod list cannot be fetched or parsed.
        """
        try:
            events = await self._relist()
        except (KubectlError, ValueError) as exc:
            raise WatchSyncError(
                f"Failed to sync pods for node {self.node_name}: {exc}"
            ) from exc
        self._synced = True
        logger.info("Synced %d pod(s) on node %s", len(events), self.node_name)
        return events

    async def resync(self) -> list[WorkloadEvent]:
        """Relist pods; failures after startup are logged and skipped."""
        try:
            return await self._relist()
        except (KubectlError, ValueError) as exc:
            logger.warning("Pod resync for node %s failed: %s", self.node_name, exc)
            return []

    def translate(self, document: dict[str, Any]) -> WorkloadEvent | None:
        """Translate one watch document into a WorkloadEvent."""
        raw_type = document.get("type")
        try:
            event_type = WatchEventType(raw_type)
        except ValueError:
            logger.warning("Ignoring watch event with unknown type %r", raw_type)
            return None

        if event_type is WatchEventType.BOOKMARK:
            return None
        obj = document.get("object")
        if event_type is WatchEventType.ERROR:
            message = obj.get("message") if isinstance(obj, dict) else obj
            logger.warning("Pod watch reported an error: %s", message)
            return None
        if not isinstance(obj, dict):
            return None

        if event_type is WatchEventType.DELETED:
            key = self._parser.parse_key(obj)
            if key is None:
                return None
            self._known.discard(key)
            if self._listing:
                self._watch_seen.pop(key, None)
                self._watch_deleted.add(key)
            return WorkloadEvent.removed(key)

        snapshot = self._parser.parse_snapshot(obj)
        if snapshot is None:
            return None
        self._known.add(snapshot.key)
        if self._listing:
            self._watch_deleted.discard(snapshot.key)
            self._watch_seen[snapshot.key] = snapshot.resource_version
        return WorkloadEvent.observed(snapshot)

    @staticmethod
    async def _drain_stderr(stream: asyncio.StreamReader | None) -> None:
        """Log kubectl's stderr line by line while the watch runs."""
        if stream is None:
            return
        with suppress(OSError, ValueError, asyncio.IncompleteReadError):
            async for raw_line in stream:
                line = raw_line.decode("utf-8", errors="replace").rstrip()
                if line:
                    logger.warning("kubectl watch: %s", line)

    async def _watch_once(self, queue: asyncio.Queue[WorkloadEvent]) -> None:
        """Follow one kubectl watch process until its output ends."""
        process = await self._runner.open_stream(self._fetcher.build_watch_args(self.node_name))
        decoder = WatchStreamDecoder()
        text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        stderr_task = asyncio.create_task(
            self._drain_stderr(process.stderr), name="pod-watch-stderr"
        )
        try:
            while True:
                chunk = await process.stdout.read(self._READ_CHUNK_SIZE)
                if not chunk:
                    break
                for document in decoder.feed(text_decoder.decode(chunk)):
                    event = self.translate(document)
                    if event is not None:
                        await queue.put(event)
            returncode = await process.wait()
            await stderr_task
            logger.warning("Pod watch exited with status %s", returncode)
        finally:
            if not stderr_task.done():
                stderr_task.cancel()
                with suppress(asyncio.CancelledError):
                    await stderr_task
            if process.returncode is None:
                with suppress(ProcessLookupError):
                    process.terminate()
                with suppress(asyncio.CancelledError):
                    await process.wait()

    async def _watch_loop(self, queue: asyncio.Queue[WorkloadEvent]) -> None:
        while True:
            try:
                await self._watch_once(queue)
            except KubectlError as exc:
                logger.warning("Pod watch failed: %s", exc)
            await asyncio.sleep(self._restart_delay)
            # Catch up on anything missed while the watch was down.
            for event in await self.resync():
                await queue.put(event)

    async def _resync_loop(self, queue: asyncio.Queue[WorkloadEvent]) -> None:
        while True:
            await asyncio.sleep(self._resync_interval)
            events = await self.resync()
            logger.debug("Periodic resync delivered %d event(s)", len(events))
            for event in events:
                await queue.put(event)

    async def events(self) -> AsyncIterator[WorkloadEvent]:
        """Yield the initial listing, then watch and resync events forever.

        Raises:
            WatchSyncError: If the initial listing fails.
        """
        if not self._synced:
            for event in await self.initial_sync():
                yield event

        queue: asyncio.Queue[WorkloadEvent] = asyncio.Queue()
        tasks = [
            asyncio.create_task(self._watch_loop(queue), name="pod-watch"),
            asyncio.create_task(self._resync_loop(queue), name="pod-resync"),
        ]
        try:
            while True:
                yield await queue.get()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
