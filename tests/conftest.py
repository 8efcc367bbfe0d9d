"""Shared fixtures for dasher_automate tests."""

from __future__ import annotations

from decimal import Decimal

import pytest
from aiohttp.test_utils import TestClient, TestServer
from pytest_metadata.plugin import metadata_key

from dasher_automate.daemon import DeviceDaemon
from dasher_automate.device.state import DeviceState
from dasher_automate.models.config import AppConfig, BusyPolicy, DeviceConfig, RelayConfig
from dasher_automate.models.rules import RuleSet
from dasher_automate.relay.router import Relay
from dasher_automate.relay.server import create_app

from tests.mocks import MockExecutor, MockLink, MockOfferSource

DEVICE_ID = "DASHER-test01"
CONSOLE_PREFIX = "web-"
CONSOLE_ID = f"{CONSOLE_PREFIX}{DEVICE_ID}"


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add protocol info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Device ID"] = DEVICE_ID
    meta["Console session"] = CONSOLE_ID


def make_rules(**overrides) -> RuleSet:
    """The reference rule set: min pay 6.50, max 10 mi, 1.00 per mile, enabled."""
    defaults = dict(
        min_pay=Decimal("6.5"),
        max_distance=Decimal("10"),
        min_pay_per_mile=Decimal("1.0"),
        blacklisted_stores=(),
        enabled=True,
    )
    defaults.update(overrides)
    return RuleSet(**defaults)


def make_test_config(**device_overrides) -> AppConfig:
    """Build an AppConfig suitable for testing (fast reconnects, no heartbeat)."""
    device = dict(
        relay_url="ws://127.0.0.1:1",
        device_id=DEVICE_ID,
        reconnect_delay=0.05,
        ping_interval=0,
        action_timeout=1.0,
        busy_policy=BusyPolicy.QUEUE,
        start_enabled=True,
    )
    device.update(device_overrides)
    return AppConfig(
        relay=RelayConfig(host="127.0.0.1", port=0, console_prefix=CONSOLE_PREFIX),
        device=DeviceConfig(**device),
        rules=make_rules(),
    )


@pytest.fixture
def rules():
    return make_rules()


@pytest.fixture
def test_config():
    return make_test_config()


@pytest.fixture
async def relay():
    r = Relay(console_prefix=CONSOLE_PREFIX)
    yield r
    await r.registry.close_all()


@pytest.fixture
async def relay_client(relay):
    """In-process relay HTTP/websocket server with a client bound to it."""
    async with TestClient(TestServer(create_app(relay))) as client:
        yield client


@pytest.fixture
def relay_base_url(relay_client):
    return f"http://{relay_client.host}:{relay_client.port}"


@pytest.fixture
def mock_source():
    return MockOfferSource()


@pytest.fixture
def mock_executor():
    return MockExecutor(succeed=True)


@pytest.fixture
def mock_link(rules):
    return MockLink(DeviceState(rules), device_id=DEVICE_ID)


@pytest.fixture
def daemon(test_config, mock_source, mock_executor, mock_link):
    """DeviceDaemon wired to mocks; no network."""
    return DeviceDaemon(test_config, mock_source, mock_executor, link=mock_link)
