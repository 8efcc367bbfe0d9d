"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import hashlib
import os
import socket
import uuid
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from dasher_automate.errors import ConfigError
from dasher_automate.models.config import AppConfig, BusyPolicy, DeviceConfig, RelayConfig
from dasher_automate.models.rules import RuleSet

DEVICE_ID_PREFIX = "DASHER-"

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def generate_device_id() -> str:
    """Stable per-host device id, e.g. ``DASHER-3f9a1c2b``."""
    seed = f"{socket.gethostname()}-{uuid.getnode():012x}"
    return DEVICE_ID_PREFIX + hashlib.sha256(seed.encode("utf-8")).hexdigest()[:8]


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "DASHER_",
) -> AppConfig:
    """Load configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (DASHER_PORT, DASHER_RELAY_URL, ...)
        2. TOML config file
        3. Defaults from AppConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            try:
                with open(p, "rb") as f:
                    raw = tomllib.load(f)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigError(f"{p}: {exc}") from exc

    try:
        cfg = AppConfig(
            relay=_relay_section(raw.get("relay", {})),
            device=_device_section(raw.get("device", {})),
            rules=_rules_section(raw.get("rules", {})),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc

    if v := raw.get("logging", {}).get("log_level"):
        cfg.log_level = str(v)

    # ── Environment variable overrides (highest priority) ──
    if port := os.environ.get(f"{env_prefix}PORT"):
        try:
            cfg.relay.port = int(port)
        except ValueError as exc:
            raise ConfigError(f"{env_prefix}PORT must be an integer") from exc
    if url := os.environ.get(f"{env_prefix}RELAY_URL"):
        cfg.device.relay_url = url
    if device_id := os.environ.get(f"{env_prefix}DEVICE_ID"):
        cfg.device.device_id = device_id
    if level := os.environ.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = level

    if cfg.log_level.lower() not in LOG_LEVELS:
        raise ConfigError(
            f"log_level must be one of {', '.join(LOG_LEVELS)}, got {cfg.log_level!r}"
        )
    cfg.log_level = cfg.log_level.lower()

    if not cfg.device.device_id:
        cfg.device.device_id = generate_device_id()

    return cfg


def _relay_section(relay: dict) -> RelayConfig:
    cfg = RelayConfig()
    if v := relay.get("host"):
        cfg.host = str(v)
    if v := relay.get("port"):
        cfg.port = int(v)
    if "console_prefix" in relay:
        cfg.console_prefix = str(relay["console_prefix"])
    return cfg


def _device_section(device: dict) -> DeviceConfig:
    cfg = DeviceConfig()
    if v := device.get("relay_url"):
        cfg.relay_url = str(v)
    if v := device.get("device_id"):
        cfg.device_id = str(v)
    if (v := device.get("reconnect_delay")) is not None:
        cfg.reconnect_delay = float(v)
    if (v := device.get("ping_interval")) is not None:
        cfg.ping_interval = float(v)
    if (v := device.get("action_timeout")) is not None:
        cfg.action_timeout = float(v)
    if v := device.get("busy_policy"):
        cfg.busy_policy = BusyPolicy(v)
    if (v := device.get("start_enabled")) is not None:
        if not isinstance(v, bool):
            raise ValueError(f"start_enabled must be a boolean, got {v!r}")
        cfg.start_enabled = v
    if cfg.reconnect_delay < 0 or cfg.ping_interval < 0 or cfg.action_timeout < 0:
        raise ValueError("device intervals must be >= 0")
    return cfg


def _rules_section(rules: dict) -> RuleSet:
    """The [rules] table uses snake_case keys; RuleSet.from_dict accepts them."""
    return RuleSet.from_dict(rules)
