"""Decision engine - evaluates a scraped offer against the active RuleSet."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from dasher_automate.models.offer import Decision, Offer, Verdict
from dasher_automate.models.rules import RuleSet

# Reasons, in the order the checks run
PAY_TOO_LOW = "pay_too_low"
DISTANCE_TOO_FAR = "distance_too_far"
DISTANCE_UNKNOWN = "distance_unknown"
PAY_PER_MILE_TOO_LOW = "pay_per_mile_too_low"
STORE_BLACKLISTED = "store_blacklisted"
ALL_PASSED = "all_passed"

ZERO = Decimal("0")

_MAGNITUDE_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")


def parse_pay(text: str | None) -> Decimal:
    """Keep digits and decimal points; anything unparsable is 0.

    Text holding more than one decimal point ("$7.00 (was $4.50)") is
    ambiguous and parses as 0, so the offer declines.
    """
    if not text:
        return ZERO
    kept = [ch for ch in text if (ch.isdigit() and ch.isascii()) or ch == "."]
    if kept.count(".") > 1:
        return ZERO
    try:
        return Decimal("".join(kept))
    except InvalidOperation:
        return ZERO


def parse_miles(text: str | None) -> Decimal:
    """Leading numeric magnitude of a distance string ("5.2 mi" -> 5.2)."""
    if not text:
        return ZERO
    match = _MAGNITUDE_RE.search(text)
    if match is None:
        return ZERO
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return ZERO


def _blacklisted(store_name: str, blacklist: tuple[str, ...]) -> bool:
    name = store_name.casefold()
    return any(entry.casefold() in name for entry in blacklist if entry)


def evaluate(offer: Offer, rules: RuleSet) -> Verdict:
    """Evaluate an offer. Pure and deterministic; never raises.

    Checks run in a fixed order and the first failure decides:
    1. pay >= min_pay
    2. miles <= max_distance
    3. pay / miles >= min_pay_per_mile (zero miles declines unless
       ``rules.allow_zero_distance``)
    4. store name matches no blacklist entry

    ``rules.enabled`` is not consulted here; callers gate automatic action.
    """
    pay = parse_pay(offer.pay)
    miles = parse_miles(offer.distance)
    ratio = pay / miles if miles > 0 else None

    def _verdict(decision: Decision, reason: str) -> Verdict:
        return Verdict(
            decision=decision, reason=reason, pay=pay, miles=miles, pay_per_mile=ratio,
        )

    # 1. Pay
    if pay < rules.min_pay:
        return _verdict(Decision.DECLINE, PAY_TOO_LOW)

    # 2. Distance
    if miles > rules.max_distance:
        return _verdict(Decision.DECLINE, DISTANCE_TOO_FAR)

    # 3. Pay per mile
    if ratio is None:
        if not rules.allow_zero_distance:
            return _verdict(Decision.DECLINE, DISTANCE_UNKNOWN)
    elif ratio < rules.min_pay_per_mile:
        return _verdict(Decision.DECLINE, PAY_PER_MILE_TOO_LOW)

    # 4. Store blacklist
    if _blacklisted(offer.store_name, rules.blacklisted_stores):
        return _verdict(Decision.DECLINE, STORE_BLACKLISTED)

    return _verdict(Decision.ACCEPT, ALL_PASSED)
