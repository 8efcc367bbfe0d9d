"""Relay - routes messages between paired device and console sessions."""

from __future__ import annotations

import logging

from dasher_automate.errors import MessageError, UnknownMessageType
from dasher_automate.models.messages import FORWARDED_TYPES, Message, MessageType
from dasher_automate.models.rules import RuleSet
from dasher_automate.models.session import Session, SessionStatus
from dasher_automate.relay.registry import Connection, SessionRegistry, Socket

log = logging.getLogger(__name__)

WELCOME_TEXT = "Connected to Dasher Automate relay"
TOGGLE_ACTION = "toggle"


class Relay:
    """Server-side router.

    A device session is addressed by its device id; the console watching it
    connects as ``console_prefix + device_id``. Device-origin events are
    forwarded verbatim to that console only. Commands are fire-and-forget:
    nothing is queued for a device that is not connected.
    """

    def __init__(self, registry: SessionRegistry | None = None, console_prefix: str = "web-") -> None:
        self.registry = registry or SessionRegistry()
        self.console_prefix = console_prefix

    # ── Pairing ───────────────────────────────────────────

    def is_console(self, session_id: str) -> bool:
        return bool(self.console_prefix) and session_id.startswith(self.console_prefix)

    def console_for(self, device_id: str) -> str:
        return f"{self.console_prefix}{device_id}"

    # ── Connection events ─────────────────────────────────

    async def on_connect(self, session_id: str, socket: Socket) -> Connection:
        conn = await self.registry.register(session_id, socket)
        log.info(
            "%s connected: %s",
            "Console" if self.is_console(session_id) else "Device", session_id,
        )
        conn.send(Message.build(MessageType.WELCOME, message=WELCOME_TEXT).encode())
        return conn

    async def on_disconnect(self, session_id: str, conn: Connection) -> None:
        if await self.registry.unregister(session_id, conn):
            log.info("Session disconnected: %s", session_id)

    async def on_message(self, session_id: str, text: str) -> None:
        """Handle one inbound frame from ``session_id``."""
        try:
            msg = Message.decode(text)
        except UnknownMessageType as exc:
            log.debug("Dropping frame from %s: %s", session_id, exc)
            self.registry.touch(session_id)
            return
        except MessageError as exc:
            log.warning("Dropping malformed frame from %s: %s", session_id, exc)
            return

        log.debug("Message from %s: %s", session_id, msg.type.value)

        if msg.type is MessageType.PING:
            self.registry.touch(session_id)
            self.registry.send(session_id, Message.build(MessageType.PONG).encode())
            return

        if self.is_console(session_id) or msg.type not in FORWARDED_TYPES:
            log.debug("Dropping %s from %s", msg.type.value, session_id)
            self.registry.touch(session_id)
            return

        status = None
        if msg.type in (MessageType.STATUS_UPDATE, MessageType.DEVICE_CONNECTED):
            reported = msg.payload.get("status")
            if isinstance(reported, str) and reported:
                status = reported
        self.registry.touch(session_id, status=status)
        self._forward_to_console(session_id, text)

    def _forward_to_console(self, device_id: str, text: str) -> bool:
        console_id = self.console_for(device_id)
        if self.registry.send(console_id, text):
            return True
        log.debug("No console connected for %s", device_id)
        return False

    # ── Commands ──────────────────────────────────────────

    def push_rules(self, device_id: str, rules: RuleSet | dict) -> bool:
        """Send update_rules to a connected device. False if not connected."""
        payload = rules.to_dict() if isinstance(rules, RuleSet) else rules
        sent = self.registry.send(
            device_id, Message.build(MessageType.UPDATE_RULES, rules=payload).encode(),
        )
        if sent:
            log.info("Rules pushed to %s", device_id)
        else:
            log.info("Rules not pushed, device %s not connected", device_id)
        return sent

    def push_control(self, device_id: str, action: str, enabled: bool) -> bool:
        """Send toggle_service (action "toggle") or a generic control message."""
        if action == TOGGLE_ACTION:
            msg = Message.build(MessageType.TOGGLE_SERVICE, enabled=enabled)
        else:
            msg = Message.build(MessageType.CONTROL, action=action, enabled=enabled)
        sent = self.registry.send(device_id, msg.encode())
        if sent:
            log.info("Control %s(enabled=%s) sent to %s", action, enabled, device_id)
        else:
            log.info("Control not sent, device %s not connected", device_id)
        return sent

    def query_status(self, device_id: str) -> Session:
        """Last known record for the device, or an offline default."""
        record = self.registry.session(device_id)
        if record is not None:
            return record
        return Session(
            session_id=device_id,
            status=SessionStatus.OFFLINE.value,
            connected=False,
            last_seen_at=0,
        )
