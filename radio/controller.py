"""
Broadcast controller: client lifecycle, station ownership and event fan-out.

All operations are synchronous and never await, so when driven from a
single event loop no two of them interleave. Business rule violations are
raised as ClientError subclasses before any state is changed.
"""
import logging
from typing import Dict, List, Optional

from .channel import NotificationChannel
from .errors import (
    InvalidName, NameTaken, NotFound, OwnStation, NotStarted,
    NotBroadcasting, InvalidPayload
)
from .models import Coordinate, Event, EventType, PlayerState, Station
from .registry import StationRegistry

logger = logging.getLogger("radio")


class BroadcastController:

    def __init__(self, registry: Optional[StationRegistry] = None, channel_size: int = 0):
        self.registry = registry if registry is not None else StationRegistry()
        self.channel_size = channel_size
        self._channels: Dict[str, NotificationChannel] = {}

    # ============================================================
    # NOTIFICATIONS
    # ============================================================

    def notify_client(self, client_id: str, event: Event):
        """Deliver an event to one client if it is still registered"""
        channel = self._channels.get(client_id)
        if channel is None:
            return
        if channel.send(event):
            logger.debug("→ %s %s", client_id, event.type.value)

    def notify_station(self, name: str, event: Event):
        """Deliver an event to every listener of a station, in join order"""
        station = self.registry.find_by_name(name)
        if station is None:
            return
        for listener in station.listeners:
            self.notify_client(listener, event)

    # ============================================================
    # CLIENTS
    # ============================================================

    def add_client(self, client_id: str) -> NotificationChannel:
        """Register a client and return the channel its events arrive on"""
        previous = self._channels.get(client_id)
        if previous is not None:
            logger.warning("Client %s re-added, closing its previous channel", client_id)
            previous.close()

        channel = NotificationChannel(client_id, maxsize=self.channel_size)
        self._channels[client_id] = channel
        logger.info("👤 Client added: %s (total: %d)", client_id, len(self._channels))
        return channel

    def remove_client(self, client_id: str):
        """Leave, stop broadcasting, close the channel. Safe to repeat."""
        self.leave_broadcast(client_id)
        self.stop_broadcasting(client_id)

        channel = self._channels.pop(client_id, None)
        if channel is None:
            return
        channel.close()
        logger.info("👋 Client removed: %s (remaining: %d)", client_id, len(self._channels))

    def is_registered(self, client_id: str) -> bool:
        return client_id in self._channels

    # ============================================================
    # BROADCASTING
    # ============================================================

    def start_broadcasting(self, client_id: str, name: str,
                           coordinate: Optional[Coordinate] = None):
        """
        Start a station owned by the client.

        Starting the station the client already owns is a no-op. Otherwise
        the client stops listening and its previous station is torn down
        before the new one is created. Unregistered clients are ignored.
        """
        if not self.is_registered(client_id):
            return

        if not name:
            raise InvalidName()

        existing = self.registry.find_by_name(name)
        if existing is not None:
            if existing.owner_id == client_id:
                return
            raise NameTaken()

        self.leave_broadcast(client_id)
        self.stop_broadcasting(client_id)

        self.registry.create(Station(name=name, owner_id=client_id, coordinate=coordinate))
        logger.info("🎙️ Broadcast started: %s by %s", name, client_id)

    def stop_broadcasting(self, client_id: str):
        """End the client's station, telling each listener"""
        station = self.registry.find_by_owner(client_id)
        if station is None:
            return

        self.notify_station(station.name, Event(EventType.BROADCAST_ENDED))
        self.registry.delete(station.name)
        logger.info(
            "🛑 Broadcast ended: %s (%d listeners notified)",
            station.name, len(station.listeners)
        )

    def update_player_state(self, client_id: str, state: Optional[PlayerState]):
        station = self.registry.find_by_owner(client_id)
        if station is None:
            raise NotBroadcasting()
        if state is None:
            raise InvalidPayload()

        self.registry.set_player_state(station.name, state)
        self.notify_station(station.name, Event(EventType.BROADCAST_CHANGED, state))

    # ============================================================
    # LISTENING
    # ============================================================

    def join_broadcast(self, client_id: str, name: str) -> Optional[PlayerState]:
        """Tune the client in to a station and return its current state"""
        if not self.is_registered(client_id):
            return None

        current = self.registry.find_by_listener(client_id)
        if current is not None and current.name == name:
            if current.player_state is None:
                raise NotStarted()
            return current.player_state

        station = self.registry.find_by_name(name)
        if station is None:
            raise NotFound()
        if station.owner_id == client_id:
            raise OwnStation()
        if not station.is_ready:
            raise NotStarted()

        self.stop_broadcasting(client_id)
        self.leave_broadcast(client_id)
        self.registry.add_listener(name, client_id)
        logger.info("🎧 %s joined broadcast: %s", client_id, name)
        return station.player_state

    def leave_broadcast(self, client_id: str):
        station = self.registry.find_by_listener(client_id)
        if station is None:
            return
        self.registry.remove_listener(station.name, client_id)
        logger.info("%s left broadcast: %s", client_id, station.name)

    # ============================================================
    # QUERIES
    # ============================================================

    def station_listening_to(self, client_id: str) -> Optional[Station]:
        return self.registry.find_by_listener(client_id)

    def station_owned_by(self, client_id: str) -> Optional[Station]:
        return self.registry.find_by_owner(client_id)

    def get_station(self, name: str) -> Optional[Station]:
        return self.registry.find_by_name(name)

    def get_stations(self) -> List[dict]:
        """Detached copies of every station record, for diagnostics"""
        return [station.to_dict() for station in self.registry.snapshot()]
