"""Offer and verdict models exchanged between the scraper, engine and executor."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


@dataclass(frozen=True)
class Offer:
    """A scraped snapshot of a job offer, exactly as shown on screen.

    All fields are raw text; numeric interpretation happens in the engine.
    """

    pay: str = ""
    distance: str = ""
    time_estimate: str = ""  # informational only
    store_name: str = ""

    def to_dict(self) -> dict:
        return {
            "pay": self.pay,
            "distance": self.distance,
            "timeEstimate": self.time_estimate,
            "storeName": self.store_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Offer:
        def _text(*keys: str) -> str:
            for key in keys:
                value = data.get(key)
                if value is not None:
                    return str(value)
            return ""

        return cls(
            pay=_text("pay"),
            distance=_text("distance"),
            time_estimate=_text("timeEstimate", "time_estimate"),
            store_name=_text("storeName", "store_name"),
        )


class Decision(str, Enum):
    """Binary outcome of evaluating an offer."""

    ACCEPT = "accept"
    DECLINE = "decline"


@dataclass(frozen=True)
class Verdict:
    """Result of DecisionEngine evaluation."""

    decision: Decision
    reason: str  # "pay_too_low", "distance_too_far", ..., or "all_passed"
    pay: Decimal = Decimal("0")
    miles: Decimal = Decimal("0")
    pay_per_mile: Decimal | None = None  # None when miles == 0

    @property
    def accepted(self) -> bool:
        return self.decision is Decision.ACCEPT

    @property
    def action_label(self) -> str:
        """Label reported in action_taken events."""
        return "ACCEPTED" if self.accepted else "DECLINED"

    def to_dict(self) -> dict:
        return {
            "decision": self.decision.value,
            "reason": self.reason,
            "pay": str(self.pay),
            "miles": str(self.miles),
            "payPerMile": None if self.pay_per_mile is None else str(self.pay_per_mile),
        }
