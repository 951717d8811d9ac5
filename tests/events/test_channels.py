"""Tests for bounded event channels."""

import asyncio

import pytest

from pricewatch_app.events.channels import ChannelClosed, EventChannel


class TestEventChannel:

    def test_rejects_zero_size(self):
        with pytest.raises(ValueError):
            EventChannel(0)

    def test_publish_and_drain_in_order(self):
        channel = EventChannel(10)
        for i in range(3):
            channel.publish(i)

        assert len(channel) == 3
        assert channel.drain() == [0, 1, 2]
        assert len(channel) == 0

    def test_overflow_drops_oldest(self):
        channel = EventChannel(3)
        for i in range(5):
            assert channel.publish(i) is True

        assert channel.dropped == 2
        assert channel.drain() == [2, 3, 4]

    def test_get_nowait(self):
        channel = EventChannel(2)
        assert channel.get_nowait() is None

        channel.publish("a")
        assert channel.get_nowait() == "a"

    def test_publish_after_close_is_refused(self):
        channel = EventChannel(2)
        channel.close()

        assert channel.closed is True
        assert channel.publish("late") is False
        assert len(channel) == 0

    @pytest.mark.asyncio
    async def test_get_waits_for_publish(self):
        channel = EventChannel(2)

        getter = asyncio.create_task(channel.get())
        await asyncio.sleep(0)
        assert not getter.done()

        channel.publish("event")
        assert await asyncio.wait_for(getter, timeout=1.0) == "event"

    @pytest.mark.asyncio
    async def test_close_drains_then_raises(self):
        channel = EventChannel(4)
        channel.publish("last")
        channel.close()

        assert await channel.get() == "last"
        with pytest.raises(ChannelClosed):
            await channel.get()

    @pytest.mark.asyncio
    async def test_close_wakes_waiting_consumer(self):
        channel = EventChannel(2)

        getter = asyncio.create_task(channel.get())
        await asyncio.sleep(0)
        channel.close()

        with pytest.raises(ChannelClosed):
            await asyncio.wait_for(getter, timeout=1.0)

    @pytest.mark.asyncio
    async def test_async_iteration_ends_on_close(self):
        channel = EventChannel(8)
        received = []

        async def consume():
            async for item in channel:
                received.append(item)

        consumer = asyncio.create_task(consume())
        channel.publish(1)
        channel.publish(2)
        await asyncio.sleep(0)
        channel.publish(3)
        channel.close()
        await asyncio.wait_for(consumer, timeout=1.0)

        assert received == [1, 2, 3]
