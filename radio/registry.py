"""
In-memory station table.

Pure data operations, no I/O and no user-facing errors: the controller
checks business rules before calling any mutation here.
"""
from dataclasses import replace
from typing import Dict, List, Optional

from .models import Station, PlayerState


class StationRegistry:

    def __init__(self):
        # Station name -> record
        self._stations: Dict[str, Station] = {}
        # Client id -> name of the station it owns
        self._owned: Dict[str, str] = {}
        # Client id -> name of the station it listens to
        self._listening: Dict[str, str] = {}

    def create(self, station: Station) -> Station:
        self._stations[station.name] = station
        self._owned[station.owner_id] = station.name
        for client_id in station.listeners:
            self._listening[client_id] = station.name
        return station

    def delete(self, name: str) -> Optional[Station]:
        station = self._stations.pop(name, None)
        if station is None:
            return None
        if self._owned.get(station.owner_id) == name:
            del self._owned[station.owner_id]
        for client_id in station.listeners:
            if self._listening.get(client_id) == name:
                del self._listening[client_id]
        return station

    def find_by_name(self, name: str) -> Optional[Station]:
        return self._stations.get(name)

    def find_by_owner(self, client_id: str) -> Optional[Station]:
        name = self._owned.get(client_id)
        return self._stations.get(name) if name is not None else None

    def find_by_listener(self, client_id: str) -> Optional[Station]:
        name = self._listening.get(client_id)
        return self._stations.get(name) if name is not None else None

    def add_listener(self, name: str, client_id: str) -> Optional[Station]:
        """Append a listener, keeping join order and no duplicates"""
        station = self._stations.get(name)
        if station is None:
            return None
        if client_id not in station.listeners:
            station = replace(station, listeners=station.listeners + (client_id,))
            self._stations[name] = station
        self._listening[client_id] = name
        return station

    def remove_listener(self, name: str, client_id: str) -> Optional[Station]:
        station = self._stations.get(name)
        if station is None:
            return None
        if client_id in station.listeners:
            station = replace(
                station,
                listeners=tuple(l for l in station.listeners if l != client_id)
            )
            self._stations[name] = station
        if self._listening.get(client_id) == name:
            del self._listening[client_id]
        return station

    def set_player_state(self, name: str, state: PlayerState) -> Optional[Station]:
        station = self._stations.get(name)
        if station is None:
            return None
        station = replace(station, player_state=state)
        self._stations[name] = station
        return station

    def snapshot(self) -> List[Station]:
        """All stations in creation order"""
        return list(self._stations.values())
