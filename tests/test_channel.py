"""
Notification channel: bounded, fire-and-forget, closable twice
"""
import asyncio

from radio.channel import NotificationChannel
from radio.models import Event, EventType


def ended():
    return Event(EventType.BROADCAST_ENDED)


def test_send_and_drain_in_order():
    channel = NotificationChannel("c")
    channel.send(Event(EventType.LISTENER_COUNT_CHANGED, 1))
    channel.send(ended())

    assert [e.type for e in channel.drain()] == [
        EventType.LISTENER_COUNT_CHANGED, EventType.BROADCAST_ENDED
    ]
    assert channel.drain() == []


def test_full_channel_drops_events():
    channel = NotificationChannel("c", maxsize=2)
    assert channel.send(ended())
    assert channel.send(ended())
    assert not channel.send(ended())
    assert channel.dropped == 1
    assert len(channel.drain()) == 2


def test_closed_channel_rejects_events_and_closes_twice():
    channel = NotificationChannel("c")
    channel.close()
    channel.close()
    assert channel.closed
    assert not channel.send(ended())
    assert channel.drain() == []


async def test_iteration_ends_after_close():
    channel = NotificationChannel("c")
    channel.send(ended())
    channel.close()

    received = [event async for event in channel]

    assert [e.type for e in received] == [EventType.BROADCAST_ENDED]


async def test_reader_wakes_up_on_send():
    channel = NotificationChannel("c")
    reader = asyncio.create_task(channel.get())
    await asyncio.sleep(0)

    channel.send(ended())

    event = await asyncio.wait_for(reader, timeout=1)
    assert event.type is EventType.BROADCAST_ENDED
