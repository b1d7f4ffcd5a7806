"""Tests des verrous par clé."""

import asyncio
import threading
import time

import pytest

from courseware.core.locks import AsyncKeyedLock, KeyedLock


def test_same_key_serialises_threads():
    locks = KeyedLock()
    inside = []
    overlaps = []

    def worker():
        with locks.hold("content:c1"):
            inside.append(1)
            if len(inside) > 1:
                overlaps.append(True)
            time.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert overlaps == []
    assert len(locks) == 0


def test_distinct_keys_do_not_block():
    locks = KeyedLock()
    with locks.hold("a"):
        done = threading.Event()

        def other():
            with locks.hold("b"):
                done.set()

        t = threading.Thread(target=other)
        t.start()
        assert done.wait(1.0)
        t.join()


def test_multiple_keys_released_on_error():
    locks = KeyedLock()
    with pytest.raises(RuntimeError):
        with locks.hold("content:c1", "resource:r1"):
            raise RuntimeError("boom")
    assert len(locks) == 0
    with locks.hold("resource:r1", "content:c1"):
        pass


@pytest.mark.asyncio
async def test_async_lock_serialises_same_key():
    locks = AsyncKeyedLock()
    order = []

    async def task(name):
        async with locks.hold("fp"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(task("a"), task("b"))
    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
    assert list(locks.active_keys()) == []


@pytest.mark.asyncio
async def test_async_lock_released_on_cancel():
    locks = AsyncKeyedLock()
    gate = asyncio.Event()

    async def holder():
        async with locks.hold("fp"):
            await gate.wait()

    task = asyncio.create_task(holder())
    await asyncio.sleep(0)
    assert list(locks.active_keys()) == ["fp"]
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert list(locks.active_keys()) == []
