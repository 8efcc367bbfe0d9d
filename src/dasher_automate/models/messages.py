"""Wire messages exchanged between devices, the relay and consoles.

Frames are flat JSON objects: ``{"type": ..., <payload fields>, "timestamp": ms}``.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from enum import Enum

from dasher_automate.errors import MessageError, UnknownMessageType


class MessageType(str, Enum):
    """Closed set of message tags."""

    # device -> relay
    DEVICE_CONNECTED = "device_connected"
    STATUS_UPDATE = "status_update"
    OFFER_RECEIVED = "offer_received"
    ACTION_TAKEN = "action_taken"
    # either direction
    PING = "ping"
    PONG = "pong"
    # relay -> device
    UPDATE_RULES = "update_rules"
    TOGGLE_SERVICE = "toggle_service"
    CONTROL = "control"
    # relay -> any, on connect
    WELCOME = "welcome"


# Device-origin types the relay forwards to the paired console.
FORWARDED_TYPES = frozenset({
    MessageType.DEVICE_CONNECTED,
    MessageType.STATUS_UPDATE,
    MessageType.OFFER_RECEIVED,
    MessageType.ACTION_TAKEN,
})


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Message:
    """A single protocol message. Frozen once built."""

    type: MessageType
    payload: dict = field(default_factory=dict)
    timestamp: int = field(default_factory=now_ms)

    def to_wire(self) -> dict:
        data = {"type": self.type.value}
        data.update(self.payload)
        data["timestamp"] = self.timestamp
        return data

    def encode(self) -> str:
        return json.dumps(self.to_wire(), separators=(",", ":"))

    @classmethod
    def build(cls, type: MessageType, **payload) -> Message:
        return cls(type=type, payload=payload)

    @classmethod
    def decode(cls, text: str | bytes) -> Message:
        """Parse a wire frame. Raises MessageError if it is not a known message."""
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise MessageError(f"invalid JSON frame: {exc}") from exc
        if not isinstance(data, dict):
            raise MessageError("frame is not a JSON object")

        raw_type = data.pop("type", None)
        if not isinstance(raw_type, str):
            raise MessageError("frame has no type")
        try:
            msg_type = MessageType(raw_type)
        except ValueError as exc:
            raise UnknownMessageType(f"unknown message type: {raw_type}") from exc

        timestamp = data.pop("timestamp", None)
        if not isinstance(timestamp, int) or isinstance(timestamp, bool):
            timestamp = now_ms()
        return cls(type=msg_type, payload=data, timestamp=timestamp)
