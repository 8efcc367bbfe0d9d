"""Relay HTTP server - websocket endpoint plus the REST command surface."""

from __future__ import annotations

import asyncio
import logging
import signal

from aiohttp import WSMsgType, web

from dasher_automate.models.config import RelayConfig
from dasher_automate.models.messages import now_ms
from dasher_automate.models.rules import RuleSet
from dasher_automate.relay.router import Relay

log = logging.getLogger(__name__)

RELAY_KEY = web.AppKey("relay", Relay)

NOT_CONNECTED = "Device not connected"

# Command routes are served at the root and under /api (the console's path).
COMMAND_PREFIXES = ("", "/api")


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    """One persistent connection per session. Frames are handled one at a time."""
    relay = request.app[RELAY_KEY]
    session_id = request.match_info["session_id"]

    ws = web.WebSocketResponse()
    await ws.prepare(request)
    conn = await relay.on_connect(session_id, ws)
    try:
        async for frame in ws:
            if frame.type == WSMsgType.TEXT:
                await relay.on_message(session_id, frame.data)
            elif frame.type == WSMsgType.ERROR:
                log.warning("Websocket error for %s: %s", session_id, ws.exception())
    finally:
        await relay.on_disconnect(session_id, conn)
    return ws


async def _json_body(request: web.Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise web.HTTPBadRequest(
            text='{"error": "Invalid JSON body"}', content_type="application/json",
        )
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text='{"error": "Body must be a JSON object"}', content_type="application/json",
        )
    return body


async def get_status(request: web.Request) -> web.Response:
    relay = request.app[RELAY_KEY]
    device_id = request.match_info["device_id"]
    record = relay.query_status(device_id)
    return web.json_response({
        "deviceId": device_id,
        "status": record.status,
        "timestamp": now_ms(),
    })


async def post_rules(request: web.Request) -> web.Response:
    relay = request.app[RELAY_KEY]
    device_id = request.match_info["device_id"]
    body = await _json_body(request)

    rules = body.get("rules")
    try:
        RuleSet.from_dict(rules)
    except ValueError as exc:
        return web.json_response({"error": f"Invalid rules: {exc}"}, status=400)

    # Forward the console's object as sent; the device applies it wholesale.
    if not relay.push_rules(device_id, rules):
        return web.json_response({"error": NOT_CONNECTED}, status=404)
    return web.json_response({"success": True})


async def post_control(request: web.Request) -> web.Response:
    relay = request.app[RELAY_KEY]
    device_id = request.match_info["device_id"]
    body = await _json_body(request)

    action = body.get("action", "")
    enabled = body.get("enabled")
    if not isinstance(action, str):
        return web.json_response({"error": "action must be a string"}, status=400)
    if not isinstance(enabled, bool):
        return web.json_response({"error": "enabled must be a boolean"}, status=400)

    if not relay.push_control(device_id, action, enabled):
        return web.json_response({"error": NOT_CONNECTED}, status=404)
    return web.json_response({"success": True})


async def list_sessions(request: web.Request) -> web.Response:
    relay = request.app[RELAY_KEY]
    return web.json_response({
        "sessions": [s.to_dict() for s in relay.registry.sessions()],
        "timestamp": now_ms(),
    })


async def _close_sessions(app: web.Application) -> None:
    await app[RELAY_KEY].registry.close_all()


def create_app(relay: Relay | None = None) -> web.Application:
    """Build the relay application around ``relay`` (a fresh one by default)."""
    app = web.Application()
    app[RELAY_KEY] = relay or Relay()

    app.router.add_get("/ws/{session_id}", websocket_handler)
    for prefix in COMMAND_PREFIXES:
        app.router.add_get(f"{prefix}/status/{{device_id}}", get_status)
        app.router.add_post(f"{prefix}/rules/{{device_id}}", post_rules)
        app.router.add_post(f"{prefix}/control/{{device_id}}", post_control)
    app.router.add_get("/sessions", list_sessions)

    app.on_shutdown.append(_close_sessions)
    return app


async def run_relay(cfg: RelayConfig) -> None:
    """Entry point for running the relay until SIGINT/SIGTERM."""
    app = create_app(Relay(console_prefix=cfg.console_prefix))
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, cfg.host, cfg.port)
    await site.start()
    log.info("Relay listening on %s:%d (console prefix %r)", cfg.host, cfg.port, cfg.console_prefix)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    try:
        await stop.wait()
    finally:
        log.info("Relay shutting down")
        await runner.cleanup()
