"""Configuration models for the relay and the device."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from dasher_automate.models.rules import RuleSet


class BusyPolicy(str, Enum):
    """What to do when an offer screen appears while another is being handled."""

    QUEUE = "queue"  # wait for the click resource
    DROP = "drop"  # skip the new screen with a warning


@dataclass
class RelayConfig:
    """Relay server configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    console_prefix: str = "web-"  # console session id = prefix + device id


@dataclass
class DeviceConfig:
    """Device link and decision pipeline configuration."""

    relay_url: str = "ws://127.0.0.1:3000"
    device_id: str = ""  # generated when empty
    reconnect_delay: float = 5.0  # seconds
    ping_interval: float = 30.0  # seconds, 0 disables heartbeat
    action_timeout: float = 10.0  # seconds per accept/decline gesture
    busy_policy: BusyPolicy = BusyPolicy.QUEUE
    start_enabled: bool = False


@dataclass
class AppConfig:
    """Complete configuration."""

    relay: RelayConfig = field(default_factory=RelayConfig)
    device: DeviceConfig = field(default_factory=DeviceConfig)
    rules: RuleSet = field(default_factory=RuleSet)
    log_level: str = "info"
