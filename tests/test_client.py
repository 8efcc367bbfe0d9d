"""RelayClient against a mocked HTTP transport and against the in-process relay."""

from __future__ import annotations

import json

import httpx
import pytest

from dasher_automate.api.client import RelayClient
from dasher_automate.errors import RelayCommandError
from dasher_automate.models.rules import RuleSet
from tests.conftest import DEVICE_ID
from tests.mocks import wait_until


class Recorder:
    """httpx MockTransport handler that records requests and replays canned responses."""

    def __init__(self, status: int = 200, body: dict | None = None) -> None:
        self.status = status
        self.body = body if body is not None else {"success": True}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)


def _client(recorder: Recorder) -> RelayClient:
    return RelayClient("http://relay.test", transport=httpx.MockTransport(recorder))


async def test_get_status():
    recorder = Recorder(body={"deviceId": DEVICE_ID, "status": "active", "timestamp": 1})
    async with _client(recorder) as client:
        body = await client.get_status(DEVICE_ID)

    assert body["status"] == "active"
    (req,) = recorder.requests
    assert req.method == "GET"
    assert req.url.path == f"/status/{DEVICE_ID}"


async def test_push_rules_wraps_payload():
    recorder = Recorder()
    rules = RuleSet(blacklisted_stores=("kfc",))
    async with _client(recorder) as client:
        assert await client.push_rules(DEVICE_ID, rules) == {"success": True}

    (req,) = recorder.requests
    assert req.url.path == f"/rules/{DEVICE_ID}"
    assert json.loads(req.content) == {"rules": rules.to_dict()}


async def test_toggle_sends_control():
    recorder = Recorder()
    async with _client(recorder) as client:
        await client.toggle(DEVICE_ID, False)

    (req,) = recorder.requests
    assert req.url.path == f"/control/{DEVICE_ID}"
    assert json.loads(req.content) == {"action": "toggle", "enabled": False}


async def test_not_connected_raises():
    recorder = Recorder(status=404, body={"error": "Device not connected"})
    async with _client(recorder) as client:
        with pytest.raises(RelayCommandError) as excinfo:
            await client.push_rules(DEVICE_ID, {"minPay": 7})

    assert excinfo.value.status_code == 404
    assert "Device not connected" in str(excinfo.value)


async def test_error_without_json_body():
    def handler(request):
        return httpx.Response(500, text="boom")

    async with RelayClient("http://relay.test", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(RelayCommandError) as excinfo:
            await client.get_status(DEVICE_ID)

    assert excinfo.value.status_code == 500


async def test_against_live_relay(relay, relay_client, relay_base_url):
    device = await relay_client.ws_connect(f"/ws/{DEVICE_ID}")
    await device.receive_json(timeout=2)  # welcome
    await wait_until(lambda: relay.registry.is_connected(DEVICE_ID))

    async with RelayClient(relay_base_url) as client:
        status = await client.get_status(DEVICE_ID)
        assert status["status"] == "connected"

        await client.toggle(DEVICE_ID, True)
        msg = await device.receive_json(timeout=2)
        assert msg["type"] == "toggle_service"

        sessions = await client.list_sessions()
        assert [s["sessionId"] for s in sessions] == [DEVICE_ID]

        with pytest.raises(RelayCommandError):
            await client.toggle("DASHER-missing", True)

    await device.close()
