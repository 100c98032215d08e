"""Shared fixtures: fake capture processes and a fake process driver."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from kubecapture.controllers.capture import CaptureController
from kubecapture.controllers.capture.driver import CaptureSpawnError, ProcessDriver
from kubecapture.models.capture.capture_handle import CaptureHandle
from kubecapture.models.core.workload import WorkloadKey, WorkloadSnapshot
from kubecapture.models.state.app_settings import AgentSettings

ANNOTATION = "tcpdump.antrea.io"


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self, pid: int, ignore_terminate: bool = False) -> None:
        self.pid = pid
        self.returncode: int | None = None
        self.stderr = None
        self.ignore_terminate = ignore_terminate
        self.terminate_calls = 0
        self.kill_calls = 0
        self._exited = asyncio.Event()

    def terminate(self) -> None:
        self.terminate_calls += 1
        if not self.ignore_terminate:
            self.exit(-15)

    def kill(self) -> None:
        self.kill_calls += 1
        self.exit(-9)

    def exit(self, code: int) -> None:
        if self.returncode is None:
            self.returncode = code
            self._exited.set()

    async def wait(self) -> int | None:
        await self._exited.wait()
        return self.returncode


class FakeDriver(ProcessDriver):
    """Records spawns and writes rotated files the way tcpdump would."""

    def __init__(self, rotated_files: int = 2, ignore_terminate: bool = False) -> None:
        self.rotated_files = rotated_files
        self.ignore_terminate = ignore_terminate
        self.spawn_calls: list[tuple[WorkloadKey, Path, int, int]] = []
        self.processes: list[FakeProcess] = []
        self.fail_with: str | None = None

    async def spawn(
        self,
        key: WorkloadKey,
        output_prefix: Path,
        *,
        max_rotated_files: int,
        rotation_unit_bytes: int = 1_000_000,
    ) -> CaptureHandle:
        # Yield so concurrent callers interleave here.
        await asyncio.sleep(0)
        self.spawn_calls.append((key, output_prefix, max_rotated_files, rotation_unit_bytes))
        if self.fail_with is not None:
            raise CaptureSpawnError(self.fail_with)

        for index in range(self.rotated_files):
            Path(f"{output_prefix}{index}").write_bytes(b"\xd4\xc3\xb2\xa1")
        process = FakeProcess(pid=1000 + len(self.processes), ignore_terminate=self.ignore_terminate)
        self.processes.append(process)
        return CaptureHandle(
            key=key,
            process=process,
            output_prefix=output_prefix,
            max_files=max_rotated_files,
        )

    def terminate(self, handle: CaptureHandle) -> None:
        handle.cancel_event.set()
        handle.process.terminate()

    def kill(self, handle: CaptureHandle) -> None:
        handle.cancel_event.set()
        handle.process.kill()

    async def await_exit(self, handle: CaptureHandle) -> int | None:
        return await handle.process.wait()


def make_snapshot(
    name: str = "test-pod",
    namespace: str = "default",
    value: str | None = "5",
    running: bool = True,
) -> WorkloadSnapshot:
    annotations = {} if value is None else {ANNOTATION: value}
    return WorkloadSnapshot(
        key=WorkloadKey(namespace=namespace, name=name),
        annotations=annotations,
        running=running,
    )


@pytest.fixture
def capture_dir(tmp_path: Path) -> Path:
    path = tmp_path / "captures"
    path.mkdir()
    return path


@pytest.fixture
def settings(capture_dir: Path) -> AgentSettings:
    return AgentSettings(
        node_name="node-1",
        capture_dir=str(capture_dir),
        stop_grace_seconds=0,
    )


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def controller(settings: AgentSettings, driver: FakeDriver) -> CaptureController:
    return CaptureController(settings, driver=driver)


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def fake_process_factory():
    return FakeProcess


@pytest.fixture
def fake_driver_factory():
    return FakeDriver
