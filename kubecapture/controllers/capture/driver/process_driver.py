"""Process driver - spawns, signals and reaps capture processes.

``ProcessDriver`` is the boundary the capture controller talks to;
``TcpdumpDriver`` implements it with ``tcpdump`` rotation flags.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from abc import ABC, abstractmethod
from contextlib import suppress
from pathlib import Path

from kubecapture.constants.values import (
    CAPTURE_BINARY,
    CAPTURE_INTERFACE,
    ROTATION_UNIT_BYTES,
)
from kubecapture.models.capture.capture_handle import CaptureHandle
from kubecapture.models.core.workload import WorkloadKey

logger = logging.getLogger(__name__)


class CaptureSpawnError(Exception):
    """Raised when a capture process cannot be started."""


class ProcessDriver(ABC):
    """Abstract capture process capability."""

    @abstractmethod
    async def spawn(
        self,
        key: WorkloadKey,
        output_prefix: Path,
        *,
        max_rotated_files: int,
        rotation_unit_bytes: int = ROTATION_UNIT_BYTES,
    ) -> CaptureHandle:
        """Start a capture process writing rotated files under ``output_prefix``.

        Raises:
            CaptureSpawnError: If the process could not be started.
        """
        ...

    @abstractmethod
    def terminate(self, handle: CaptureHandle) -> None:
        """Ask the process to stop; does not wait."""
        ...

    @abstractmethod
    def kill(self, handle: CaptureHandle) -> None:
        """Force the process to stop; does not wait."""
        ...

    @abstractmethod
    async def await_exit(self, handle: CaptureHandle) -> int | None:
        """Wait for the process to exit and return its exit status."""
        ...


class TcpdumpDriver(ProcessDriver):
    """Runs one ``tcpdump`` per capture with size-based file rotation."""

    def __init__(
        self,
        binary: str = CAPTURE_BINARY,
        interface: str = CAPTURE_INTERFACE,
        rotation_size_units: int = 1,
    ) -> None:
        self.binary = binary
        self.interface = interface
        self.rotation_size_units = max(1, rotation_size_units)

    def build_command(
        self,
        output_prefix: Path,
        max_rotated_files: int,
        rotation_unit_bytes: int = ROTATION_UNIT_BYTES,
    ) -> list[str]:
        """Build the tcpdump argv.

        ``-C`` is expressed in tcpdump's own unit of 1,000,000 bytes.
        """
        rotation_bytes = rotation_unit_bytes * self.rotation_size_units
        file_size = max(1, rotation_bytes // ROTATION_UNIT_BYTES)
        return [
            self.binary,
            "-C", str(file_size),
            "-W", str(max_rotated_files),
            "-w", str(output_prefix),
            "-i", self.interface,
        ]

    async def spawn(
        self,
        key: WorkloadKey,
        output_prefix: Path,
        *,
        max_rotated_files: int,
        rotation_unit_bytes: int = ROTATION_UNIT_BYTES,
    ) -> CaptureHandle:
        if max_rotated_files <= 0:
            raise CaptureSpawnError(f"max_rotated_files must be positive, got {max_rotated_files}")

        output_dir = output_prefix.parent
        if not output_dir.is_dir():
            raise CaptureSpawnError(f"Capture directory {output_dir} does not exist")
        if shutil.which(self.binary) is None:
            raise CaptureSpawnError(f"{self.binary} not found in PATH")

        command = self.build_command(output_prefix, max_rotated_files, rotation_unit_bytes)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CaptureSpawnError(f"Failed to start {self.binary}: {exc}") from exc

        handle = CaptureHandle(
            key=key,
            process=process,
            output_prefix=output_prefix,
            max_files=max_rotated_files,
        )
        handle.background_tasks.append(
            asyncio.create_task(
                self._drain_stderr(handle), name=f"capture-stderr-{key}"
            )
        )
        logger.info("%s started (PID %s) for %s", self.binary, process.pid, key)
        return handle

    async def _drain_stderr(self, handle: CaptureHandle) -> None:
        """Log the process's stderr line by line until it closes."""
        stream = getattr(handle.process, "stderr", None)
        if stream is None:
            return
        with suppress(OSError, ValueError, asyncio.IncompleteReadError):
            async for raw_line in stream:
                line = raw_line.decode("utf-8", errors="replace").rstrip()
                if line:
                    logger.info("[%s] %s", handle.key, line)

    def terminate(self, handle: CaptureHandle) -> None:
        handle.cancel_event.set()
        if handle.exit_code is not None:
            return
        with suppress(ProcessLookupError):
            handle.process.terminate()

    def kill(self, handle: CaptureHandle) -> None:
        handle.cancel_event.set()
        if handle.exit_code is not None:
            return
        with suppress(ProcessLookupError):
            handle.process.kill()

    async def await_exit(self, handle: CaptureHandle) -> int | None:
        return await handle.process.wait()
