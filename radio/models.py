"""
Data types shared by the registry, the controller and the transport
"""
import math
from dataclasses import dataclass, asdict
from enum import Enum
from numbers import Real
from typing import Any, Optional, Tuple

from .errors import InvalidPayload


class EventType(str, Enum):
    """Outbound event kinds. Values are the names used on the wire."""
    BROADCAST_CHANGED = "player-state-updated"
    BROADCAST_ENDED = "broadcast-ended"
    LISTENER_COUNT_CHANGED = "listener"


def _number(data: dict, key: str) -> float:
    value = data.get(key)
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidPayload(f"'{key}' must be a number")
    # NaN and Infinity parse from JSON but cannot be sent back out as JSON
    if not math.isfinite(value):
        raise InvalidPayload(f"'{key}' must be finite")
    return value


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    @classmethod
    def from_dict(cls, data: Any) -> "Coordinate":
        if not isinstance(data, dict):
            raise InvalidPayload("coordinate must be an object")
        return cls(lat=_number(data, "lat"), lng=_number(data, "lng"))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PlayerState:
    """
    Playback snapshot published by a station owner.

    Replaced wholesale on every update, never merged.
    """
    timestamp: float
    is_paused: bool
    track_uri: str
    playback_position: float

    @classmethod
    def from_dict(cls, data: Any) -> "PlayerState":
        """Build a state from its wire form (camelCase keys)"""
        if not isinstance(data, dict):
            raise InvalidPayload("player state must be an object")

        is_paused = data.get("isPaused")
        if not isinstance(is_paused, bool):
            raise InvalidPayload("'isPaused' must be a boolean")

        track_uri = data.get("trackURI")
        if not isinstance(track_uri, str):
            raise InvalidPayload("'trackURI' must be a string")

        return cls(
            timestamp=_number(data, "timestamp"),
            is_paused=is_paused,
            track_uri=track_uri,
            playback_position=_number(data, "playbackPosition"),
        )

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "isPaused": self.is_paused,
            "trackURI": self.track_uri,
            "playbackPosition": self.playback_position,
        }


@dataclass(frozen=True)
class Station:
    """
    A named broadcast owned by one client.

    Records are immutable; the registry swaps in a new record on every edit
    so readers holding an old one never observe a half-applied change.
    """
    name: str
    owner_id: str
    listeners: Tuple[str, ...] = ()
    coordinate: Optional[Coordinate] = None
    player_state: Optional[PlayerState] = None

    @property
    def is_ready(self) -> bool:
        return self.player_state is not None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "ownerId": self.owner_id,
            "listeners": list(self.listeners),
            "listenerCount": len(self.listeners),
            "coordinate": self.coordinate.to_dict() if self.coordinate else None,
            "playerState": self.player_state.to_dict() if self.player_state else None,
        }


@dataclass(frozen=True)
class Event:
    type: EventType
    payload: Any = None

    def to_message(self) -> dict:
        """Wire form sent to the client by the transport"""
        payload = self.payload
        if isinstance(payload, PlayerState):
            payload = payload.to_dict()
        message = {"type": self.type.value}
        if payload is not None:
            message["payload"] = payload
        return message
