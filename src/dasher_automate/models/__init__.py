"""Data models for dasher_automate."""

from dasher_automate.models.offer import Decision, Offer, Verdict
from dasher_automate.models.rules import RuleSet
from dasher_automate.models.messages import FORWARDED_TYPES, Message, MessageType
from dasher_automate.models.session import Session, SessionStatus
from dasher_automate.models.config import AppConfig, BusyPolicy, DeviceConfig, RelayConfig

__all__ = [
    "Decision", "Offer", "Verdict",
    "RuleSet",
    "FORWARDED_TYPES", "Message", "MessageType",
    "Session", "SessionStatus",
    "AppConfig", "BusyPolicy", "DeviceConfig", "RelayConfig",
]
