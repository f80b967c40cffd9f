import asyncio

import pytest

from mediavault.services.progress import ProgressStream


def test_updates_arrive_in_order_and_end_on_close():
    async def scenario():
        stream = ProgressStream()
        stream.publish("gathering-information", 0)
        stream.publish("generating-stream", 42.5)
        stream.close()
        stream.publish("looking-up", 100)
        return [update async for update in stream], stream

    updates, stream = asyncio.run(scenario())
    assert updates == [("gathering-information", 0), ("generating-stream", 42.5)]
    assert stream.latest == ("generating-stream", 42.5)
    assert stream.closed


def test_consumer_waits_for_publisher():
    async def scenario():
        stream = ProgressStream()
        received = []

        async def consume():
            async for update in stream:
                received.append(update)

        consumer = asyncio.create_task(consume())
        await asyncio.sleep(0)
        stream.publish("looking-up", 10)
        await asyncio.sleep(0)
        assert received == [("looking-up", 10)]
        stream.close()
        await asyncio.wait_for(consumer, 1)
        return received

    assert asyncio.run(scenario()) == [("looking-up", 10)]


def test_cannot_be_consumed_twice():
    stream = ProgressStream()
    aiter(stream)
    with pytest.raises(RuntimeError):
        aiter(stream)
