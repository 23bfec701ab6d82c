#!/usr/bin/env python3
"""
Radio relay server - Entry Point
WebSocket transport + station list + rate limiting
"""
import logging
import socket
import os
import time
from pathlib import Path
from typing import Optional
from aiohttp import web
from collections import defaultdict
from dotenv import load_dotenv

from radio.api import CONTROLLER, LISTENER_COUNT, api_stations, ping, ws_radio
from radio.controller import BroadcastController

THIS_DIR = Path(__file__).parent.resolve()

# Load .env file from project root
load_dotenv(THIS_DIR / '.env')

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("radio")

CHANNEL_SIZE = int(os.environ.get("RADIO_CHANNEL_SIZE", 256))
RATE_LIMIT = int(os.environ.get("RADIO_RATE_LIMIT", 100))
NOTIFY_LISTENER_COUNT = os.environ.get("RADIO_LISTENER_COUNT", "0").lower() in ("1", "true", "yes")

RATE_LIMIT_STORE = web.AppKey("rate_limit_store", dict)
RATE_LIMIT_MAX = web.AppKey("rate_limit_max", int)


@web.middleware
async def rate_limit_middleware(request, handler):
    """Simple rate limiting: N requests per minute per IP"""
    # The radio socket is one long-lived request, not worth counting
    if request.path == "/radio":
        return await handler(request)

    store = request.app[RATE_LIMIT_STORE]
    limit = request.app[RATE_LIMIT_MAX]
    ip = request.remote
    now = time.time()

    # Clean old entries
    store[ip] = [t for t in store[ip] if now - t < 60]

    # Check limit
    if limit and len(store[ip]) >= limit:
        logger.warning(f"Rate limit exceeded for {ip}")
        return web.json_response(
            {"ok": False, "error": "Rate limit exceeded"},
            status=429
        )

    store[ip].append(now)
    return await handler(request)


def create_app(controller: Optional[BroadcastController] = None,
               rate_limit: int = RATE_LIMIT,
               listener_count: bool = NOTIFY_LISTENER_COUNT) -> web.Application:
    """Create and configure the aiohttp application"""
    app = web.Application(middlewares=[rate_limit_middleware])

    app[CONTROLLER] = controller if controller is not None else BroadcastController(
        channel_size=CHANNEL_SIZE
    )
    app[LISTENER_COUNT] = listener_count
    app[RATE_LIMIT_STORE] = defaultdict(list)
    app[RATE_LIMIT_MAX] = rate_limit

    app.router.add_get("/", ping)
    app.router.add_get("/stations", api_stations)

    # WebSocket transport for radio clients
    app.router.add_get("/radio", ws_radio)

    logger.info("📻 Radio server ready • WebSocket enabled")
    return app


def get_local_ip():
    """Get local WiFi IP address"""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "localhost"


def main():
    app = create_app()
    port = int(os.environ.get("PORT", 3000))
    host = os.environ.get("SERVER_HOST", "0.0.0.0")
    local_ip = get_local_ip()

    logger.info(f"🚀 Starting server on {host}:{port}")
    logger.info(f"💡 Access at: http://{local_ip}:{port}")

    web.run_app(app, host=host, port=port)


if __name__ == "__main__":
    main()
