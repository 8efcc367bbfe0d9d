"""ActionExecutor protocol - performs the accept/decline gesture on the device."""

from __future__ import annotations

from typing import Protocol

from dasher_automate.models.offer import Verdict


class ActionExecutor(Protocol):
    """Executes a verdict on the device UI. Only one action may run at a time."""

    async def perform(self, verdict: Verdict) -> bool:
        """Tap accept or decline. Returns True if the gesture was performed."""
        ...
