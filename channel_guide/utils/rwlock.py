"""
Async read/write lock

Multiple readers may hold the lock together; a writer holds it alone.
Once a writer is waiting, new readers queue behind it so a steady stream
of readers cannot starve a refresh.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator


logger = logging.getLogger(__name__)


class AsyncRWLock:
    """
    Multi-reader / single-writer lock for asyncio tasks.

    Built on a single asyncio.Condition; not safe to share across event loops.
    """

    def __init__(self, name: str = "lock"):
        """Initialize an unlocked lock."""
        self.name = name
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        """Hold the lock shared for the duration of the block."""
        async with self._condition:
            await self._condition.wait_for(
                lambda: not self._writer and self._writers_waiting == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        """Hold the lock exclusively for the duration of the block."""
        async with self._condition:
            self._writers_waiting += 1
            try:
                await self._condition.wait_for(
                    lambda: not self._writer and self._readers == 0
                )
            except BaseException:
                self._writers_waiting -= 1
                # Readers queued behind a cancelled writer must be woken
                self._condition.notify_all()
                raise
            self._writers_waiting -= 1
            self._writer = True
        logger.debug("Acquired %s for writing", self.name)
        try:
            yield
        finally:
            async with self._condition:
                self._writer = False
                self._condition.notify_all()

    @property
    def readers(self) -> int:
        """Number of tasks currently holding the lock for reading."""
        return self._readers

    def is_write_locked(self) -> bool:
        """
        Check if a writer currently holds the lock.

        Returns:
            True if a writer holds the lock, False otherwise
        """
        return self._writer
