"""kubectl command runner shared by the pod fetcher and watcher."""

from __future__ import annotations

import asyncio
import logging
import subprocess

from kubecapture.constants.timeouts import KUBECTL_COMMAND_TIMEOUT
from kubecapture.constants.values import KUBECTL_BINARY

logger = logging.getLogger(__name__)


class KubectlError(RuntimeError):
    """Raised when a kubectl command fails or cannot be started."""


class KubectlRunner:
    """Runs kubectl one-shot commands and long-lived watch processes."""

    def __init__(
        self,
        context: str | None = None,
        binary: str = KUBECTL_BINARY,
        timeout: int = KUBECTL_COMMAND_TIMEOUT,
    ) -> None:
        self.context = context
        self.binary = binary
        self.timeout = timeout

    def build_command(self, args: tuple[str, ...]) -> list[str]:
        cmd = [self.binary]
        if self.context:
            cmd.extend(["--context", self.context])
        cmd.extend(args)
        return cmd

    def _run_kubectl_sync(self, args: tuple[str, ...]) -> str:
        """Run a kubectl command synchronously (thread-safe wrapper target)."""
        cmd = self.build_command(args)
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.timeout
            )
        except subprocess.TimeoutExpired as exc:
            raise KubectlError(f"kubectl timed out after {self.timeout}s") from exc
        except OSError as exc:
            raise KubectlError(f"Failed to run kubectl: {exc}") from exc
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise KubectlError(stderr or "kubectl command failed")
        return result.stdout

    async def run(self, args: tuple[str, ...]) -> str:
        """Run a kubectl command without blocking the event loop."""
        return await asyncio.to_thread(self._run_kubectl_sync, args)

    async def open_stream(self, args: tuple[str, ...]) -> asyncio.subprocess.Process:
        """Start a long-running kubectl command with stdout piped."""
        cmd = self.build_command(args)
        logger.debug("Starting kubectl stream: %s", " ".join(cmd))
        try:
            return await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise KubectlError(f"Failed to start kubectl: {exc}") from exc
