"""Capture registry - the single source of truth for active captures.

All access goes through one ``asyncio.Lock``. Mutations are only possible
through a :class:`RegistryTransaction`, which is valid solely while the lock
is held:

    async with registry.transaction() as txn:
        if txn.get(key) is None:
            txn.insert(handle)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from kubecapture.models.capture.capture_handle import CaptureHandle
from kubecapture.models.core.workload import WorkloadKey

logger = logging.getLogger(__name__)


class RegistryError(RuntimeError):
    """Raised on an invariant violation or use of an expired transaction."""


class RegistryTransaction:
    """Locked view over the registry's handles."""

    def __init__(self, handles: dict[WorkloadKey, CaptureHandle]) -> None:
        self._handles = handles
        self._active = True

    def _check_active(self) -> None:
        if not self._active:
            raise RegistryError("Registry transaction used after its lock was released")

    def close(self) -> None:
        self._active = False

    def get(self, key: WorkloadKey) -> CaptureHandle | None:
        self._check_active()
        return self._handles.get(key)

    def __contains__(self, key: object) -> bool:
        self._check_active()
        return key in self._handles

    def keys(self) -> list[WorkloadKey]:
        """Return a copy of the active keys."""
        self._check_active()
        return list(self._handles)

    def insert(self, handle: CaptureHandle) -> None:
        """Check-and-insert; a second handle for the same key is refused."""
        self._check_active()
        existing = self._handles.get(handle.key)
        if existing is not None:
            raise RegistryError(f"Capture already registered for {handle.key}")
        self._handles[handle.key] = handle

    def remove(self, key: WorkloadKey) -> CaptureHandle | None:
        """Check-and-remove; returns the removed handle or None."""
        self._check_active()
        return self._handles.pop(key, None)


class CaptureRegistry:
    """Mapping of WorkloadKey to CaptureHandle guarded by one lock."""

    def __init__(self) -> None:
        self._handles: dict[WorkloadKey, CaptureHandle] = {}
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[RegistryTransaction]:
        """Hold the registry lock for one read-decide-mutate sequence."""
        async with self._lock:
            txn = RegistryTransaction(self._handles)
            try:
                yield txn
            finally:
                txn.close()

    async def get(self, key: WorkloadKey) -> CaptureHandle | None:
        async with self.transaction() as txn:
            return txn.get(key)

    async def contains(self, key: WorkloadKey) -> bool:
        async with self.transaction() as txn:
            return key in txn

    async def keys(self) -> list[WorkloadKey]:
        async with self.transaction() as txn:
            return txn.keys()

    async def size(self) -> int:
        async with self.transaction() as txn:
            return len(txn.keys())
