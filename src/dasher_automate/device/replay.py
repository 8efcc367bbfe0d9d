"""Offline collaborators: replay offers from a file and log actions instead of tapping.

Used by ``dasher-automate device`` to exercise the pipeline without a phone.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from pathlib import Path

from dasher_automate.models.offer import Offer, Verdict

log = logging.getLogger(__name__)


class JsonlOfferSource:
    """Implements OfferSource. Each line of the file is one offer object."""

    def __init__(self, path: str | Path | None = None, offers: list[Offer] | None = None) -> None:
        self._pending: deque[Offer] = deque(offers or [])
        if path is not None:
            self._pending.extend(self._load(Path(path).expanduser()))

    @staticmethod
    def _load(path: Path) -> list[Offer]:
        offers: list[Offer] = []
        with open(path, encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                try:
                    data = json.loads(line)
                except ValueError as exc:
                    log.warning("%s:%d: skipping unparsable offer: %s", path, lineno, exc)
                    continue
                if not isinstance(data, dict):
                    log.warning("%s:%d: skipping non-object offer", path, lineno)
                    continue
                offers.append(Offer.from_dict(data))
        log.info("Loaded %d offer(s) from %s", len(offers), path)
        return offers

    @property
    def remaining(self) -> int:
        return len(self._pending)

    async def extract_current_offer(self) -> Offer | None:
        if not self._pending:
            return None
        return self._pending.popleft()


class DryRunExecutor:
    """Implements ActionExecutor. Records verdicts instead of performing gestures."""

    def __init__(self) -> None:
        self.performed: list[Verdict] = []

    async def perform(self, verdict: Verdict) -> bool:
        self.performed.append(verdict)
        log.info(
            "[dry-run] %s (%s) pay=%s miles=%s",
            verdict.action_label, verdict.reason, verdict.pay, verdict.miles,
        )
        return True
