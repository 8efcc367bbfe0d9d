"""Per-device rule state, owned by the device link and read by the daemon."""

from __future__ import annotations

import logging

from dasher_automate.models.rules import RuleSet

log = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
STATUS_STOPPED = "stopped"


class DeviceState:
    """Holds the active RuleSet (including the enabled flag).

    Every change swaps in a new frozen RuleSet with a single assignment, so
    a reader always sees one complete snapshot.
    """

    def __init__(self, rules: RuleSet | None = None) -> None:
        self._rules = rules or RuleSet()

    @property
    def rules(self) -> RuleSet:
        return self._rules

    @property
    def enabled(self) -> bool:
        return self._rules.enabled

    def status(self) -> str:
        return STATUS_ACTIVE if self._rules.enabled else STATUS_INACTIVE

    def replace_rules(self, rules: RuleSet) -> None:
        old = self._rules
        self._rules = rules
        log.info(
            "Rules replaced: min_pay=%s max_distance=%s min_pay_per_mile=%s "
            "blacklist=%d enabled=%s",
            rules.min_pay, rules.max_distance, rules.min_pay_per_mile,
            len(rules.blacklisted_stores), rules.enabled,
        )
        if old.enabled != rules.enabled:
            log.info("Service %s", "enabled" if rules.enabled else "disabled")

    def apply_rules_payload(self, payload: dict) -> RuleSet:
        """Replace the rules from a console payload.

        The payload replaces every threshold. When it carries no ``enabled``
        key the current flag is kept, since toggle_service owns that flag.
        Raises ValueError on malformed payloads, leaving state untouched.
        """
        keep = None if "enabled" in payload else self._rules.enabled
        rules = RuleSet.from_dict(payload, enabled=keep)
        self.replace_rules(rules)
        return rules

    def set_enabled(self, enabled: bool) -> None:
        if self._rules.enabled == enabled:
            return
        self._rules = self._rules.with_enabled(enabled)
        log.info("Service %s", "enabled" if enabled else "disabled")
