"""
Shared pytest fixtures for the radio server tests.
"""
import pytest

from radio.controller import BroadcastController
from radio.models import PlayerState
from radio.registry import StationRegistry


def make_state(timestamp=1, paused=False, track="spotify:track:t1", position=0):
    return PlayerState(
        timestamp=timestamp,
        is_paused=paused,
        track_uri=track,
        playback_position=position,
    )


def event_types(channel):
    """Drain a channel and return just the event types"""
    return [event.type for event in channel.drain()]


@pytest.fixture
def registry():
    return StationRegistry()


@pytest.fixture
def controller(registry):
    return BroadcastController(registry)


@pytest.fixture
def live_station(controller):
    """A started station "jazz" owned by "owner" with one published state"""
    channel = controller.add_client("owner")
    controller.start_broadcasting("owner", "jazz")
    controller.update_player_state("owner", make_state())
    return channel


@pytest.fixture
def state():
    return make_state()


