"""
Unit tests for the async read/write lock.
"""
import asyncio

import pytest

from channel_guide.utils.rwlock import AsyncRWLock


class TestAsyncRWLock:
    """Tests for reader/writer exclusion."""

    @pytest.mark.asyncio
    async def test_readers_share(self):
        lock = AsyncRWLock("test")
        async with lock.read():
            async with lock.read():
                assert lock.readers == 2
        assert lock.readers == 0

    @pytest.mark.asyncio
    async def test_writer_waits_for_readers(self):
        lock = AsyncRWLock("test")
        events = []

        async def writer():
            async with lock.write():
                events.append("write")

        async with lock.read():
            task = asyncio.create_task(writer())
            await asyncio.sleep(0)
            events.append("read done")
        await task

        assert events == ["read done", "write"]
        assert not lock.is_write_locked()

    @pytest.mark.asyncio
    async def test_waiting_writer_blocks_new_readers(self):
        lock = AsyncRWLock("test")
        events = []

        async def writer():
            async with lock.write():
                events.append("write")

        async def late_reader():
            async with lock.read():
                events.append("late read")

        async with lock.read():
            writer_task = asyncio.create_task(writer())
            await asyncio.sleep(0)
            reader_task = asyncio.create_task(late_reader())
            await asyncio.sleep(0)
        await asyncio.gather(writer_task, reader_task)

        assert events == ["write", "late read"]

    @pytest.mark.asyncio
    async def test_cancelled_writer_releases_readers(self):
        lock = AsyncRWLock("test")
        events = []

        async def late_reader():
            async with lock.read():
                events.append("late read")

        async with lock.read():
            writer_task = asyncio.create_task(lock.write().__aenter__())
            await asyncio.sleep(0)
            reader_task = asyncio.create_task(late_reader())
            await asyncio.sleep(0)
            writer_task.cancel()
            await asyncio.wait_for(reader_task, timeout=1)

        assert events == ["late read"]
        with pytest.raises(asyncio.CancelledError):
            await writer_task

    @pytest.mark.asyncio
    async def test_writer_excludes_writer(self):
        lock = AsyncRWLock("test")
        active = 0
        peak = 0

        async def writer():
            nonlocal active, peak
            async with lock.write():
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0)
                active -= 1

        await asyncio.gather(*(writer() for _ in range(5)))
        assert peak == 1
