"""
Concurrency utilities.
"""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator, Hashable
from contextlib import AbstractAsyncContextManager, asynccontextmanager


class KeyedLock:
    """
    A lock that manages independent locks for different keys.

    Store operations against the same save data key serialize on the same lock,
    so a read never races a write of the same record. Operations on different
    keys (multi-slot saves) proceed concurrently.

    The lock also counts holders, waiters and reserved operations so callers
    can wait until no operation is in flight at all (used before clearing
    history on restart). ``reserve()`` lets an operation count itself before
    its coroutine has been scheduled.

    THREAD-SAFETY:
        asyncio-only. All acquisitions must happen on the same event loop.
        Locks are never removed once created; the key space is the set of
        save slots, which is small.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def in_flight(self) -> int:
        """Number of tasks currently holding or waiting for any key."""
        return self._in_flight

    def locked(self, key: Hashable) -> bool:
        """Return True if the lock for ``key`` is currently held."""
        return key in self._locks and self._locks[key].locked()

    def reserve(self) -> None:
        """
        Count an operation as in flight before it starts running.

        Every call must be paired with exactly one ``release()``.
        """
        self._in_flight += 1
        self._idle.clear()

    def release(self) -> None:
        """End an operation counted by ``reserve()``."""
        if self._in_flight <= 0:
            raise RuntimeError("KeyedLock.release() called without a matching reserve()")
        self._in_flight -= 1
        if self._in_flight == 0:
            self._idle.set()

    @asynccontextmanager
    async def acquire(self, key: Hashable, reserved: bool = False) -> AsyncIterator[None]:
        """
        Acquire lock for a specific key.

        USAGE:
            async with keyed_lock.acquire("save_data"):
                await asyncio.to_thread(store.write, "save_data", snapshot)

        Args:
            key: Any hashable identifier, normally a save data key.
            reserved: The caller already counted this operation with
                ``reserve()`` and will ``release()`` it itself.

        Yields:
            None (context manager pattern)
        """
        lock = self._locks[key]

        if not reserved:
            self.reserve()
        try:
            async with lock:
                yield
        finally:
            if not reserved:
                self.release()

    async def wait_idle(self) -> None:
        """Wait until no task holds or waits for any key."""
        await self._idle.wait()

    def __call__(self, key: Hashable) -> AbstractAsyncContextManager[None]:
        """
        Shortcut for acquire.

        Allows: async with keyed_lock(key): ...
        Instead of: async with keyed_lock.acquire(key): ...
        """
        return self.acquire(key)
