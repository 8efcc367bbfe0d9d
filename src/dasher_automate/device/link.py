"""Device link - the device's persistent websocket connection to the relay."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

import aiohttp

from dasher_automate.device.state import DeviceState
from dasher_automate.errors import MessageError, UnknownMessageType
from dasher_automate.models.messages import Message, MessageType

log = logging.getLogger(__name__)


class LinkState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class DeviceLink:
    """Owns one outbound connection to the relay and applies control messages.

    Lifecycle: DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED, looping
    until stop(). There is no terminal failure state: after every close or
    transport error the link waits ``reconnect_delay`` seconds on its own task
    and tries again.
    """

    def __init__(
        self,
        relay_url: str,
        device_id: str,
        state: DeviceState,
        reconnect_delay: float = 5.0,
        ping_interval: float = 30.0,
    ) -> None:
        self._url = f"{relay_url.rstrip('/')}/ws/{device_id}"
        self._device_id = device_id
        self._state = state
        self._reconnect_delay = reconnect_delay
        self._ping_interval = ping_interval

        self._link_state = LinkState.DISCONNECTED
        self._connected = asyncio.Event()
        self._running = False
        self._task: asyncio.Task | None = None
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._send_lock = asyncio.Lock()
        self.connect_count = 0

    @property
    def url(self) -> str:
        return self._url

    @property
    def device_id(self) -> str:
        return self._device_id

    @property
    def state(self) -> DeviceState:
        return self._state

    @property
    def link_state(self) -> LinkState:
        return self._link_state

    @property
    def connected(self) -> bool:
        return self._link_state is LinkState.CONNECTED

    # ── Lifecycle ─────────────────────────────────────────

    async def start(self) -> None:
        """Start the connect/reconnect loop in the background."""
        if self._running:
            return
        self._running = True
        self._session = aiohttp.ClientSession()
        self._task = asyncio.create_task(self._run())
        log.info("Device link started for %s -> %s", self._device_id, self._url)

    async def stop(self, final_status: str | None = None) -> None:
        """Stop reconnecting and close the connection.

        If ``final_status`` is given and the link is up, a last
        status_update is sent before closing.
        """
        if final_status is not None and self.connected:
            await self.emit(MessageType.STATUS_UPDATE, status=final_status)

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None
        if self._session is not None:
            await self._session.close()
            self._session = None
        self._set_link_state(LinkState.DISCONNECTED)
        log.info("Device link stopped")

    async def wait_connected(self, timeout: float | None = None) -> bool:
        """Wait until the link is connected. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._connected.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def _set_link_state(self, new: LinkState) -> None:
        old = self._link_state
        self._link_state = new
        if new is LinkState.CONNECTED:
            self._connected.set()
        else:
            self._connected.clear()
        if old is not new:
            log.debug("Link state: %s -> %s", old.value, new.value)

    async def _run(self) -> None:
        """Connect, serve until closed, back off, repeat."""
        while self._running:
            self._set_link_state(LinkState.CONNECTING)
            try:
                await self._serve_connection()
            except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
                log.warning("Relay connection failed: %s", exc)
            except Exception as exc:
                log.error("Device link error: %s", exc, exc_info=True)

            self._ws = None
            self._set_link_state(LinkState.DISCONNECTED)
            if not self._running:
                break
            log.info("Reconnecting in %.1fs", self._reconnect_delay)
            await asyncio.sleep(self._reconnect_delay)

    async def _serve_connection(self) -> None:
        assert self._session is not None
        async with self._session.ws_connect(self._url) as ws:
            self._ws = ws
            self.connect_count += 1
            self._set_link_state(LinkState.CONNECTED)
            log.info("Connected to relay as %s", self._device_id)

            await self.emit(MessageType.DEVICE_CONNECTED, status=self._state.status())

            heartbeat: asyncio.Task | None = None
            if self._ping_interval > 0:
                heartbeat = asyncio.create_task(self._heartbeat())
            try:
                async for frame in ws:
                    if frame.type == aiohttp.WSMsgType.TEXT:
                        await self.handle_frame(frame.data)
                    elif frame.type == aiohttp.WSMsgType.ERROR:
                        log.warning("Websocket error: %s", ws.exception())
                        break
            finally:
                if heartbeat:
                    heartbeat.cancel()
                    try:
                        await heartbeat
                    except asyncio.CancelledError:
                        pass
            log.info("Relay connection closed (code=%s)", ws.close_code)

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self._ping_interval)
            await self.emit(MessageType.PING)

    # ── Inbound ───────────────────────────────────────────

    async def handle_frame(self, text: str) -> None:
        """Decode and dispatch one inbound frame. Bad frames are dropped."""
        try:
            msg = Message.decode(text)
        except UnknownMessageType as exc:
            log.debug("Ignoring frame: %s", exc)
            return
        except MessageError as exc:
            log.warning("Dropping malformed frame: %s", exc)
            return
        await self.handle_message(msg)

    async def handle_message(self, msg: Message) -> None:
        match msg.type:
            case MessageType.UPDATE_RULES:
                rules = msg.payload.get("rules")
                if not isinstance(rules, dict):
                    log.warning("update_rules without a rules object, dropped")
                    return
                try:
                    self._state.apply_rules_payload(rules)
                except ValueError as exc:
                    log.warning("Invalid rules dropped: %s", exc)
                    return
                await self.report_status()

            case MessageType.TOGGLE_SERVICE:
                enabled = msg.payload.get("enabled")
                if not isinstance(enabled, bool):
                    log.warning("toggle_service without a boolean 'enabled', dropped")
                    return
                self._state.set_enabled(enabled)
                await self.report_status()

            case MessageType.PING:
                await self.emit(MessageType.PONG)

            case _:
                log.debug("Ignoring %s message", msg.type.value)

    # ── Outbound ──────────────────────────────────────────

    async def send(self, msg: Message) -> bool:
        """Send a message if connected. Never raises, never retries."""
        ws = self._ws
        if ws is None or ws.closed:
            log.debug("Not connected, dropping %s", msg.type.value)
            return False
        try:
            async with self._send_lock:
                await ws.send_str(msg.encode())
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as exc:
            log.warning("Failed to send %s: %s", msg.type.value, exc)
            return False
        return True

    async def emit(self, msg_type: MessageType, **payload) -> bool:
        return await self.send(Message.build(msg_type, **payload))

    async def report_status(self, status: str | None = None) -> bool:
        return await self.emit(
            MessageType.STATUS_UPDATE, status=status or self._state.status(),
        )
