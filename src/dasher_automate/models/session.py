"""Relay session records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionStatus(str, Enum):
    """Connection lifecycle states tracked by the relay."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    OFFLINE = "offline"  # never seen


@dataclass(frozen=True)
class Session:
    """Registry entry for one logical endpoint (device or console).

    ``status`` is the lifecycle state, or the last status string the device
    reported through status_update/device_connected while connected.
    """

    session_id: str
    status: str
    connected: bool
    last_seen_at: int  # epoch ms

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "status": self.status,
            "connected": self.connected,
            "lastSeenAt": self.last_seen_at,
        }
