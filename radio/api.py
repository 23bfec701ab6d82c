"""
HTTP and WebSocket handlers for the radio server.

/radio is the transport: one WebSocket per client, inbound commands mapped
onto the broadcast controller, outbound events forwarded from the client's
notification channel. /stations is a read-only diagnostic view.
"""
import asyncio
import contextlib
import hashlib
import json
import logging
from typing import Any, Optional

from aiohttp import web

from .channel import NotificationChannel
from .controller import BroadcastController
from .errors import ClientError, InvalidPayload, NotBroadcasting
from .models import Coordinate, Event, EventType, PlayerState
from .utils import generate_client_id

logger = logging.getLogger("radio")

CONTROLLER = web.AppKey("controller", BroadcastController)
LISTENER_COUNT = web.AppKey("listener_count", bool)

# ============================================================
# COMMANDS
# ============================================================

def _station_name(payload: Any) -> str:
    """Commands accept either a bare name or {"name": ...}"""
    if isinstance(payload, dict):
        payload = payload.get("name")
    if payload is None:
        return ""
    if not isinstance(payload, str):
        raise InvalidPayload("station name must be a string")
    return payload


def _start_broadcast(controller, client_id, payload):
    coordinate = None
    if isinstance(payload, dict) and payload.get("coordinate") is not None:
        coordinate = Coordinate.from_dict(payload["coordinate"])
    controller.start_broadcasting(client_id, _station_name(payload), coordinate)


def _end_broadcast(controller, client_id, payload):
    controller.stop_broadcasting(client_id)


def _join_broadcast(controller, client_id, payload):
    state = controller.join_broadcast(client_id, _station_name(payload))
    return state.to_dict() if state is not None else None


def _leave_broadcast(controller, client_id, payload):
    controller.leave_broadcast(client_id)


def _player_state_changed(controller, client_id, payload):
    # Ownership is checked before the payload is looked at
    if controller.station_owned_by(client_id) is None:
        raise NotBroadcasting()
    state = PlayerState.from_dict(payload) if payload is not None else None
    controller.update_player_state(client_id, state)


COMMANDS = {
    "start-broadcast": _start_broadcast,
    "end-broadcast": _end_broadcast,
    "join-broadcast": _join_broadcast,
    "leave-broadcast": _leave_broadcast,
    "player-state-changed": _player_state_changed,
}


def announce_listener_count(controller: BroadcastController, name: Optional[str]):
    """Tell a station's owner and listeners how many listeners it has"""
    if name is None:
        return
    station = controller.get_station(name)
    if station is None:
        return
    event = Event(EventType.LISTENER_COUNT_CHANGED, len(station.listeners))
    controller.notify_client(station.owner_id, event)
    controller.notify_station(name, event)


def _listening_to(controller: BroadcastController, client_id: str) -> Optional[str]:
    station = controller.station_listening_to(client_id)
    return station.name if station else None


def handle_command(app: web.Application, client_id: str, raw: str) -> dict:
    """Run one inbound message and build its acknowledgement"""
    controller = app[CONTROLLER]

    try:
        message = json.loads(raw)
    except ValueError:
        return {"type": "ack", "ok": False, "error": "Malformed message"}
    if not isinstance(message, dict):
        return {"type": "ack", "ok": False, "error": "Malformed message"}

    command = message.get("type")
    if not isinstance(command, str):
        return {"type": "ack", "ok": False, "error": "Malformed message"}
    reply = {"type": "ack", "command": command, "ref": message.get("ref")}

    handler = COMMANDS.get(command)
    if handler is None:
        reply.update(ok=False, error=f"Unknown command: {command}")
        return reply

    was_listening = _listening_to(controller, client_id)
    try:
        result = handler(controller, client_id, message.get("payload"))
    except ClientError as e:
        logger.debug("✗ %s %s: %s", client_id, command, e)
        reply.update(ok=False, error=str(e))
        return reply

    reply["ok"] = True
    if result is not None:
        reply["payload"] = result

    if app.get(LISTENER_COUNT):
        now_listening = _listening_to(controller, client_id)
        if now_listening != was_listening:
            announce_listener_count(controller, was_listening)
            announce_listener_count(controller, now_listening)

    return reply

# ============================================================
# WEBSOCKET TRANSPORT
# ============================================================

async def _forward_events(ws: web.WebSocketResponse, channel: NotificationChannel):
    """Pump a client's notification channel onto its socket"""
    async for event in channel:
        if ws.closed:
            return
        try:
            await ws.send_json(event.to_message())
        except (ConnectionResetError, RuntimeError):
            logger.debug("Socket for %s went away while sending", channel.client_id)
            return


async def ws_radio(request: web.Request) -> web.WebSocketResponse:
    """WebSocket endpoint: one connection per radio client"""
    app = request.app
    controller = app[CONTROLLER]

    ws = web.WebSocketResponse()
    await ws.prepare(request)

    client_id = generate_client_id()
    channel = controller.add_client(client_id)
    writer = asyncio.create_task(_forward_events(ws, channel))
    logger.info("📡 WebSocket client connected: %s", client_id)

    try:
        await ws.send_json({"type": "welcome", "client_id": client_id})
        async for msg in ws:
            if msg.type == web.WSMsgType.TEXT:
                # Keepalive
                if msg.data == "ping":
                    await ws.send_str("pong")
                    continue
                await ws.send_json(handle_command(app, client_id, msg.data))
            elif msg.type == web.WSMsgType.ERROR:
                logger.debug("WebSocket error for %s: %s", client_id, ws.exception())
    except ConnectionResetError:
        logger.debug("WebSocket for %s reset", client_id)
    except Exception:
        logger.exception("WebSocket handler failed for %s", client_id)
    finally:
        was_listening = _listening_to(controller, client_id)
        controller.remove_client(client_id)
        if app.get(LISTENER_COUNT):
            announce_listener_count(controller, was_listening)

        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
        logger.info("📡 WebSocket client disconnected: %s", client_id)

    return ws

# ============================================================
# QUERIES
# ============================================================

async def ping(request: web.Request) -> web.Response:
    """Liveness check"""
    return web.Response(text="We have a signal!")


async def api_stations(request: web.Request) -> web.Response:
    """List all stations with ETag caching"""
    items = request.app[CONTROLLER].get_stations()

    content = json.dumps(items, sort_keys=True)
    etag = hashlib.md5(content.encode()).hexdigest()

    if request.headers.get("If-None-Match") == etag:
        return web.Response(status=304)

    response = web.json_response({"ok": True, "stations": items})
    response.headers["ETag"] = etag
    response.headers["Cache-Control"] = "max-age=5"
    return response
