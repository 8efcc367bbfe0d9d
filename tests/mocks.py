"""Mock implementations of the external collaborators and transport pieces."""

from __future__ import annotations

import asyncio
import json

from dasher_automate.device.state import DeviceState
from dasher_automate.models.messages import Message, MessageType
from dasher_automate.models.offer import Offer, Verdict


async def settle(rounds: int = 5) -> None:
    """Let queued tasks (connection writers, emit tasks) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_until(predicate, timeout: float = 3.0, interval: float = 0.01) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


class FakeSocket:
    """Implements the registry's Socket protocol. Records every frame sent."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[str] = []
        self.closed = False
        self.close_calls = 0
        self._fail = fail

    async def send_str(self, data: str) -> None:
        if self.closed:
            raise ConnectionResetError("socket closed")
        if self._fail:
            raise ConnectionResetError("mock send failure")
        self.sent.append(data)

    async def close(self) -> bool:
        self.close_calls += 1
        was_open = not self.closed
        self.closed = True
        return was_open

    def frames(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]

    def types(self) -> list[str]:
        return [f["type"] for f in self.frames()]


class FakeClientWS:
    """Stands in for the device link's aiohttp client websocket."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False

    async def send_str(self, data: str) -> None:
        if self.closed:
            raise ConnectionResetError("socket closed")
        self.sent.append(data)

    async def close(self) -> bool:
        self.closed = True
        return True

    def frames(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]


class MockOfferSource:
    """Implements OfferSource. Returns staged offers in order, then None."""

    def __init__(self, *offers: Offer) -> None:
        self.offers: list[Offer] = list(offers)
        self.calls = 0

    async def extract_current_offer(self) -> Offer | None:
        self.calls += 1
        if not self.offers:
            return None
        return self.offers.pop(0)

    def enqueue(self, *offers: Offer) -> None:
        """Test helper: stage offers for the next screens."""
        self.offers.extend(offers)


class MockExecutor:
    """Implements ActionExecutor. Tracks calls and peak concurrency."""

    def __init__(self, succeed: bool = True, delay: float = 0.0, error: Exception | None = None) -> None:
        self.succeed = succeed
        self.delay = delay
        self._error = error
        self.performed: list[Verdict] = []
        self.active = 0
        self.max_active = 0

    async def perform(self, verdict: Verdict) -> bool:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self._error is not None:
                raise self._error
            self.performed.append(verdict)
            return self.succeed
        finally:
            self.active -= 1


class MockLink:
    """Stands in for DeviceLink in daemon tests. Records emitted messages."""

    def __init__(self, state: DeviceState, device_id: str = "DASHER-test01") -> None:
        self.state = state
        self.device_id = device_id
        self.url = f"ws://relay.invalid/ws/{device_id}"
        self.emitted: list[Message] = []
        self.started = False
        self.final_status: str | None = None

    async def start(self) -> None:
        self.started = True

    async def stop(self, final_status: str | None = None) -> None:
        self.started = False
        self.final_status = final_status

    async def emit(self, msg_type: MessageType, **payload) -> bool:
        self.emitted.append(Message.build(msg_type, **payload))
        return True

    def types(self) -> list[MessageType]:
        return [m.type for m in self.emitted]
