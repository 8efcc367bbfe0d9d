"""Relay command client - the console side of the REST command surface."""

from __future__ import annotations

import logging

import httpx

from dasher_automate.errors import RelayCommandError
from dasher_automate.models.rules import RuleSet

log = logging.getLogger(__name__)


class RelayClient:
    """Issues status queries, rule pushes and control commands over HTTP.

    Commands are fire-and-forget on the relay side: a device that is not
    connected yields RelayCommandError(404), nothing is queued.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:3000",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout, connect=5),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RelayClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        resp = await self._client.request(method, path, json=json)
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400:
            message = body.get("error") if isinstance(body, dict) else None
            raise RelayCommandError(resp.status_code, message or resp.reason_phrase)
        return body

    async def get_status(self, device_id: str) -> dict:
        return await self._request("GET", f"/status/{device_id}")

    async def push_rules(self, device_id: str, rules: RuleSet | dict) -> dict:
        payload = rules.to_dict() if isinstance(rules, RuleSet) else rules
        log.debug("Pushing rules to %s: %s", device_id, payload)
        return await self._request("POST", f"/rules/{device_id}", json={"rules": payload})

    async def control(self, device_id: str, action: str, enabled: bool) -> dict:
        return await self._request(
            "POST", f"/control/{device_id}", json={"action": action, "enabled": enabled},
        )

    async def toggle(self, device_id: str, enabled: bool) -> dict:
        return await self.control(device_id, "toggle", enabled)

    async def list_sessions(self) -> list[dict]:
        body = await self._request("GET", "/sessions")
        return body.get("sessions", [])
