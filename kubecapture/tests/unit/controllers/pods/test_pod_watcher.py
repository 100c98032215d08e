"""Tests for the node-scoped pod watcher."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from kubecapture.constants.enums import WorkloadEventKind
from kubecapture.controllers.pods import PodWatcher, WatchSyncError
from kubecapture.models.core.workload import WorkloadKey
from kubecapture.utils.kubectl import KubectlError


def pod(
    name: str,
    phase: str = "Running",
    value: str | None = "5",
    resource_version: str | None = None,
) -> dict[str, Any]:
    annotations = {"tcpdump.antrea.io": value} if value is not None else {}
    metadata = {"name": name, "namespace": "default", "annotations": annotations}
    if resource_version is not None:
        metadata["resourceVersion"] = resource_version
    return {
        "metadata": metadata,
        "status": {"phase": phase},
    }


def pod_list(*pods: dict[str, Any]) -> str:
    return json.dumps({"items": list(pods)})


def make_watcher(run: AsyncMock, open_stream: AsyncMock | None = None) -> PodWatcher:
    runner = MagicMock()
    runner.run = run
    runner.open_stream = open_stream or AsyncMock()
    return PodWatcher("node-1", runner, resync_interval=3600, restart_delay=3600)


class FakeWatchProcess:
    def __init__(self, output: bytes, stderr: bytes | None = None) -> None:
        self.stdout = asyncio.StreamReader()
        self.stdout.feed_data(output)
        self.stdout.feed_eof()
        self.stderr = None
        if stderr is not None:
            self.stderr = asyncio.StreamReader()
            self.stderr.feed_data(stderr)
            self.stderr.feed_eof()
        self.returncode: int | None = None

    async def wait(self) -> int:
        self.returncode = 0
        return 0

    def terminate(self) -> None:
        self.returncode = -15


class TestInitialSync:
    """Tests for the first listing."""

    @pytest.mark.asyncio
    async def test_lists_pods_as_observed(self) -> None:
        watcher = make_watcher(AsyncMock(return_value=pod_list(pod("a"), pod("b", phase="Pending"))))

        events = await watcher.initial_sync()

        assert [e.kind for e in events] == [WorkloadEventKind.OBSERVED] * 2
        assert [e.snapshot.running for e in events] == [True, False]
        assert watcher.synced is True
        assert watcher.known_keys == {
            WorkloadKey(namespace="default", name="a"),
            WorkloadKey(namespace="default", name="b"),
        }

    @pytest.mark.asyncio
    async def test_kubectl_failure_is_fatal(self) -> None:
        watcher = make_watcher(AsyncMock(side_effect=KubectlError("connection refused")))
        with pytest.raises(WatchSyncError, match="node-1"):
            await watcher.initial_sync()
        assert watcher.synced is False

    @pytest.mark.asyncio
    async def test_bad_listing_is_fatal(self) -> None:
        watcher = make_watcher(AsyncMock(return_value="garbage"))
        with pytest.raises(WatchSyncError):
            await watcher.initial_sync()

    @pytest.mark.asyncio
    async def test_events_raises_on_failed_sync(self) -> None:
        watcher = make_watcher(AsyncMock(side_effect=KubectlError("forbidden")))
        with pytest.raises(WatchSyncError):
            async for _ in watcher.events():
                pass


class TestResync:
    """Tests for relisting."""

    @pytest.mark.asyncio
    async def test_vanished_pods_become_removed(self) -> None:
        run = AsyncMock(side_effect=[pod_list(pod("a"), pod("b")), pod_list(pod("b"))])
        watcher = make_watcher(run)
        await watcher.initial_sync()

        events = await watcher.resync()

        assert [(e.kind, e.key.name) for e in events] == [
            (WorkloadEventKind.OBSERVED, "b"),
            (WorkloadEventKind.REMOVED, "a"),
        ]
        assert watcher.known_keys == {WorkloadKey(namespace="default", name="b")}

    @pytest.mark.asyncio
    async def test_failure_is_skipped(self, caplog) -> None:
        run = AsyncMock(side_effect=[pod_list(pod("a")), KubectlError("timeout")])
        watcher = make_watcher(run)
        await watcher.initial_sync()

        assert await watcher.resync() == []
        assert watcher.known_keys == {WorkloadKey(namespace="default", name="a")}
        assert "Pod resync for node node-1 failed" in caplog.text


class HeldListing:
    """kubectl list call that blocks until released."""

    def __init__(self, output: str) -> None:
        self.output = output
        self.release = asyncio.Event()

    async def fetch(self, args) -> str:
        await self.release.wait()
        return self.output


async def start_held_resync(watcher: PodWatcher, run: AsyncMock, listing: HeldListing):
    run.side_effect = listing.fetch
    task = asyncio.create_task(watcher.resync())
    for _ in range(5):
        await asyncio.sleep(0)
    return task


class TestResyncOrdering:
    """Watch events that arrive while a listing is in flight win over it."""

    @pytest.mark.asyncio
    async def test_deleted_during_resync_is_not_redelivered(self) -> None:
        run = AsyncMock(return_value=pod_list(pod("x")))
        watcher = make_watcher(run)
        await watcher.initial_sync()
        listing = HeldListing(pod_list(pod("x")))
        task = await start_held_resync(watcher, run, listing)

        removed = watcher.translate({"type": "DELETED", "object": pod("x")})
        listing.release.set()
        events = await task

        assert removed is not None and removed.kind is WorkloadEventKind.REMOVED
        assert events == []
        assert watcher.known_keys == set()

    @pytest.mark.asyncio
    async def test_newer_watch_update_wins_over_listing(self) -> None:
        run = AsyncMock(return_value=pod_list(pod("x", resource_version="10")))
        watcher = make_watcher(run)
        await watcher.initial_sync()
        listing = HeldListing(pod_list(pod("x", value="5", resource_version="11")))
        task = await start_held_resync(watcher, run, listing)

        watcher.translate(
            {"type": "MODIFIED", "object": pod("x", value=None, resource_version="12")}
        )
        listing.release.set()
        events = await task

        assert events == []
        assert watcher.known_keys == {WorkloadKey(namespace="default", name="x")}

    @pytest.mark.asyncio
    async def test_newer_listing_is_delivered(self) -> None:
        run = AsyncMock(return_value=pod_list(pod("x", resource_version="10")))
        watcher = make_watcher(run)
        await watcher.initial_sync()
        listing = HeldListing(pod_list(pod("x", value=None, resource_version="13")))
        task = await start_held_resync(watcher, run, listing)

        watcher.translate({"type": "MODIFIED", "object": pod("x", resource_version="12")})
        listing.release.set()
        events = await task

        assert [(e.kind, e.snapshot.resource_version) for e in events] == [
            (WorkloadEventKind.OBSERVED, "13")
        ]

    @pytest.mark.asyncio
    async def test_pod_added_during_resync_is_not_removed(self) -> None:
        run = AsyncMock(return_value=pod_list())
        watcher = make_watcher(run)
        await watcher.initial_sync()
        listing = HeldListing(pod_list())
        task = await start_held_resync(watcher, run, listing)

        watcher.translate({"type": "ADDED", "object": pod("y", resource_version="20")})
        listing.release.set()
        events = await task

        assert events == []
        assert watcher.known_keys == {WorkloadKey(namespace="default", name="y")}

    @pytest.mark.asyncio
    async def test_watch_events_outside_listing_are_not_tracked(self) -> None:
        run = AsyncMock(side_effect=[pod_list(), pod_list(pod("x", resource_version="5"))])
        watcher = make_watcher(run)
        await watcher.initial_sync()

        watcher.translate({"type": "DELETED", "object": pod("x", resource_version="4")})
        events = await watcher.resync()

        assert [e.key.name for e in events] == ["x"]


class TestTranslate:
    """Tests for watch document translation."""

    @pytest.fixture
    def watcher(self) -> PodWatcher:
        return make_watcher(AsyncMock())

    @pytest.mark.parametrize("event_type", ["ADDED", "MODIFIED"])
    def test_added_and_modified_are_observed(self, watcher: PodWatcher, event_type: str) -> None:
        event = watcher.translate({"type": event_type, "object": pod("a")})
        assert event is not None
        assert event.kind is WorkloadEventKind.OBSERVED
        assert event.snapshot.annotations == {"tcpdump.antrea.io": "5"}
        assert WorkloadKey(namespace="default", name="a") in watcher.known_keys

    def test_deleted_is_removed(self, watcher: PodWatcher) -> None:
        watcher.translate({"type": "ADDED", "object": pod("a")})
        event = watcher.translate({"type": "DELETED", "object": pod("a")})
        assert event is not None
        assert event.kind is WorkloadEventKind.REMOVED
        assert event.key == WorkloadKey(namespace="default", name="a")
        assert watcher.known_keys == set()

    def test_bookmark_ignored(self, watcher: PodWatcher) -> None:
        assert watcher.translate({"type": "BOOKMARK", "object": {}}) is None

    def test_error_logged(self, watcher: PodWatcher, caplog) -> None:
        event = watcher.translate({"type": "ERROR", "object": {"message": "too old resource version"}})
        assert event is None
        assert "too old resource version" in caplog.text

    def test_unknown_type_ignored(self, watcher: PodWatcher) -> None:
        assert watcher.translate({"type": "SURPRISE", "object": pod("a")}) is None

    def test_object_without_identity_ignored(self, watcher: PodWatcher) -> None:
        assert watcher.translate({"type": "MODIFIED", "object": {"metadata": {}}}) is None


class TestWatchStream:
    """Tests for following one watch process."""

    @pytest.mark.asyncio
    async def test_stream_events_are_queued(self, caplog) -> None:
        output = (
            json.dumps({"type": "ADDED", "object": pod("a")}, indent=2)
            + "\n"
            + json.dumps({"type": "DELETED", "object": pod("a")}, indent=2)
            + "\n"
        ).encode()
        open_stream = AsyncMock(return_value=FakeWatchProcess(output))
        watcher = make_watcher(AsyncMock(), open_stream)
        queue: asyncio.Queue = asyncio.Queue()

        await watcher._watch_once(queue)

        kinds = [queue.get_nowait().kind for _ in range(queue.qsize())]
        assert kinds == [WorkloadEventKind.OBSERVED, WorkloadEventKind.REMOVED]
        assert "Pod watch exited with status 0" in caplog.text
        args = open_stream.await_args.args[0]
        assert "--watch-only" in args

    @pytest.mark.asyncio
    async def test_stderr_is_drained_while_stdout_is_open(self, caplog) -> None:
        process = FakeWatchProcess(b"", stderr=b"W1017 throttling request\n")
        stderr_read = asyncio.Event()
        stdout = asyncio.StreamReader()
        stderr_lines = process.stderr

        class TrackedStderr:
            def __aiter__(self):
                return self

            async def __anext__(self) -> bytes:
                line = await stderr_lines.readline()
                if not line:
                    stderr_read.set()
                    raise StopAsyncIteration
                return line

        async def close_stdout_after_stderr() -> None:
            # kubectl blocks on a full stderr pipe until someone reads it.
            await stderr_read.wait()
            stdout.feed_eof()

        process.stdout = stdout
        process.stderr = TrackedStderr()
        closer = asyncio.create_task(close_stdout_after_stderr())
        watcher = make_watcher(AsyncMock(), AsyncMock(return_value=process))

        await asyncio.wait_for(watcher._watch_once(asyncio.Queue()), timeout=5)
        await closer

        assert "kubectl watch: W1017 throttling request" in caplog.text
        assert "Pod watch exited with status 0" in caplog.text

    @pytest.mark.asyncio
    async def test_events_yields_listing_then_stream(self) -> None:
        output = (json.dumps({"type": "MODIFIED", "object": pod("b")}) + "\n").encode()
        open_stream = AsyncMock(return_value=FakeWatchProcess(output))
        watcher = make_watcher(AsyncMock(return_value=pod_list(pod("a"))), open_stream)

        stream = watcher.events()
        first = await stream.__anext__()
        second = await asyncio.wait_for(stream.__anext__(), timeout=5)
        await stream.aclose()

        assert first.key.name == "a"
        assert second.key.name == "b"


def test_default_fetcher_uses_runner() -> None:
    runner = SimpleNamespace(run=AsyncMock(), open_stream=AsyncMock())
    watcher = PodWatcher("node-1", runner)
    assert watcher._fetcher._run_kubectl is runner.run
