"""OfferSource protocol - supplies offers scraped from the driver app screen."""

from __future__ import annotations

from typing import Protocol

from dasher_automate.models.offer import Offer


class OfferSource(Protocol):
    """Reads the offer currently shown on the device screen."""

    async def extract_current_offer(self) -> Offer | None:
        """Return the offer on the active screen, or None if there is none."""
        ...
