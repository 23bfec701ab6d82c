"""
Random operation sequences against the controller, checking the station
invariants after every step
"""
import random

import pytest

from radio.controller import BroadcastController
from radio.errors import ClientError
from radio.models import EventType

from conftest import make_state

CLIENTS = ["c0", "c1", "c2", "c3", "c4", "c5"]
NAMES = ["", "jazz", "blues", "rock"]


def check_invariants(controller):
    stations = controller.registry.snapshot()
    names = [s.name for s in stations]
    owners = [s.owner_id for s in stations]
    listeners = [l for s in stations for l in s.listeners]

    assert len(names) == len(set(names))
    assert all(names)
    assert len(owners) == len(set(owners))
    assert len(listeners) == len(set(listeners))
    assert not set(owners) & set(listeners)
    for station in stations:
        assert station.owner_id not in station.listeners
        if station.listeners:
            assert station.player_state is not None
        for listener in station.listeners:
            assert controller.station_listening_to(listener) is station
        assert controller.station_owned_by(station.owner_id) is station


def random_step(rng, controller, channels):
    client = rng.choice(CLIENTS)
    op = rng.randrange(8)
    if op == 0:
        channels[client] = controller.add_client(client)
    elif op == 1:
        controller.remove_client(client)
    elif op == 2:
        controller.start_broadcasting(client, rng.choice(NAMES))
    elif op == 3:
        controller.stop_broadcasting(client)
    elif op == 4:
        controller.join_broadcast(client, rng.choice(NAMES))
    elif op == 5:
        controller.leave_broadcast(client)
    else:
        state = make_state(timestamp=rng.random()) if rng.random() > 0.1 else None
        controller.update_player_state(client, state)


@pytest.mark.parametrize("seed", range(50))
def test_random_sequences_keep_invariants(seed):
    rng = random.Random(seed)
    controller = BroadcastController()
    channels = {c: controller.add_client(c) for c in CLIENTS}

    for _ in range(200):
        before = controller.get_stations()
        try:
            random_step(rng, controller, channels)
        except ClientError:
            # Rejected operations leave everything as it was
            assert controller.get_stations() == before
        check_invariants(controller)


@pytest.mark.parametrize("seed", range(20))
def test_station_end_reaches_exactly_its_listeners(seed):
    rng = random.Random(seed)
    controller = BroadcastController()
    channels = {c: controller.add_client(c) for c in CLIENTS}
    controller.start_broadcasting("c0", "jazz")
    controller.update_player_state("c0", make_state())

    joined = [c for c in CLIENTS[1:] if rng.random() < 0.6]
    for client in joined:
        controller.join_broadcast(client, "jazz")
    for channel in channels.values():
        channel.drain()

    controller.stop_broadcasting("c0")

    for client, channel in channels.items():
        expected = [EventType.BROADCAST_ENDED] if client in joined else []
        assert [e.type for e in channel.drain()] == expected
    assert controller.get_stations() == []
