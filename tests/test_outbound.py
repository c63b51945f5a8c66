import asyncio
import time

import pytest

from realtime.outbound import OutboundQueue


def test_rejects_unbounded_queue():
    with pytest.raises(ValueError):
        OutboundQueue(0)


@pytest.mark.asyncio
async def test_offer_respects_capacity():
    q = OutboundQueue(2)
    assert q.offer("a")
    assert q.offer("b")
    assert q.full()
    assert not q.offer("c")
    assert await q.get() == "a"
    assert await q.get() == "b"


@pytest.mark.asyncio
async def test_put_times_out_when_full():
    q = OutboundQueue(1)
    q.offer("a")
    assert await q.put("b", timeout=0.05) is False
    assert q.qsize() == 1


@pytest.mark.asyncio
async def test_put_waits_for_room():
    q = OutboundQueue(1)
    q.offer("a")

    async def consume():
        await asyncio.sleep(0.02)
        return await q.get()

    consumer = asyncio.create_task(consume())
    assert await q.put("b", timeout=1.0) is True
    assert await consumer == "a"
    assert await q.get() == "b"


@pytest.mark.asyncio
async def test_closed_queue_never_blocks():
    q = OutboundQueue(1)
    q.offer("a")

    async def close_soon():
        await asyncio.sleep(0.02)
        q.close()

    asyncio.create_task(close_soon())
    started = time.monotonic()
    assert await q.put("b", timeout=5.0) is False
    assert time.monotonic() - started < 1.0

    assert q.closed
    assert not q.offer("c")
    assert await q.put("d", timeout=5.0) is False
    assert await q.get() is None


@pytest.mark.asyncio
async def test_get_wakes_on_close():
    q = OutboundQueue(4)
    waiter = asyncio.create_task(q.get())
    await asyncio.sleep(0)
    q.close()
    assert await asyncio.wait_for(waiter, timeout=1.0) is None
    q.close()  # idempotent


@pytest.mark.asyncio
async def test_cancelled_get_keeps_dequeued_item():
    q = OutboundQueue(4)
    getter = asyncio.ensure_future(q.get())
    await asyncio.sleep(0)
    q.offer("m1")
    getter.cancel()
    q.offer("m2")
    with pytest.raises(asyncio.CancelledError):
        await getter

    assert q.qsize() == 2
    assert await q.get() == "m1"
    assert await q.get() == "m2"


@pytest.mark.asyncio
async def test_get_timeout():
    q = OutboundQueue(4)
    with pytest.raises(asyncio.TimeoutError):
        await q.get(timeout=0.02)

    q.offer("late")
    assert await q.get(timeout=0.02) == "late"


@pytest.mark.asyncio
async def test_timed_out_gets_lose_nothing():
    q = OutboundQueue(64)
    received = []

    async def reader():
        while len(received) < 20:
            try:
                item = await q.get(timeout=0.001)
            except asyncio.TimeoutError:
                continue
            received.append(item)

    task = asyncio.create_task(reader())
    for i in range(20):
        q.offer(i)
        await asyncio.sleep(0.001 if i % 2 else 0)
    await asyncio.wait_for(task, timeout=2.0)
    assert received == list(range(20))
