"""RuleSet - operator-configured thresholds for automatic accept/decline."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation

DEFAULT_MIN_PAY = Decimal("6.50")
DEFAULT_MAX_DISTANCE = Decimal("10.0")
DEFAULT_MIN_PAY_PER_MILE = Decimal("1.50")


def _to_decimal(name: str, value) -> Decimal:
    """Convert a JSON/TOML number (or numeric text) to a non-negative Decimal."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc
    if not result.is_finite() or result < 0:
        raise ValueError(f"{name} must be a finite number >= 0, got {value!r}")
    return result


def _to_bool(name: str, value) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass(frozen=True)
class RuleSet:
    """Immutable rule snapshot.

    Updates from the console replace the whole instance; fields are never
    edited in place.
    """

    min_pay: Decimal = DEFAULT_MIN_PAY
    max_distance: Decimal = DEFAULT_MAX_DISTANCE
    min_pay_per_mile: Decimal = DEFAULT_MIN_PAY_PER_MILE
    blacklisted_stores: tuple[str, ...] = ()
    enabled: bool = False
    allow_zero_distance: bool = False  # pass the ratio check when miles == 0

    def with_enabled(self, enabled: bool) -> RuleSet:
        return replace(self, enabled=enabled)

    def to_dict(self) -> dict:
        return {
            "minPay": float(self.min_pay),
            "maxDistance": float(self.max_distance),
            "minPayPerMile": float(self.min_pay_per_mile),
            "blacklistedStores": list(self.blacklisted_stores),
            "enabled": self.enabled,
            "allowZeroDistance": self.allow_zero_distance,
        }

    @classmethod
    def from_dict(cls, data: dict, enabled: bool | None = None) -> RuleSet:
        """Build a RuleSet from a console payload.

        Accepts camelCase (wire) and snake_case keys. Missing keys take
        defaults. Raises ValueError on malformed values.

        ``enabled`` overrides the payload's flag when given.
        """
        if not isinstance(data, dict):
            raise ValueError(f"rules must be an object, got {type(data).__name__}")

        def _get(camel: str, snake: str):
            if camel in data:
                return data[camel]
            return data.get(snake)

        kwargs: dict = {}
        for camel, snake in (
            ("minPay", "min_pay"),
            ("maxDistance", "max_distance"),
            ("minPayPerMile", "min_pay_per_mile"),
        ):
            value = _get(camel, snake)
            if value is not None:
                kwargs[snake] = _to_decimal(camel, value)

        stores = _get("blacklistedStores", "blacklisted_stores")
        if stores is not None:
            if isinstance(stores, str) or not isinstance(stores, (list, tuple)):
                raise ValueError("blacklistedStores must be a list of strings")
            if not all(isinstance(s, str) for s in stores):
                raise ValueError("blacklistedStores entries must be strings")
            kwargs["blacklisted_stores"] = tuple(s.strip() for s in stores if s.strip())

        if (v := _get("enabled", "enabled")) is not None:
            kwargs["enabled"] = _to_bool("enabled", v)
        if (v := _get("allowZeroDistance", "allow_zero_distance")) is not None:
            kwargs["allow_zero_distance"] = _to_bool("allowZeroDistance", v)
        if enabled is not None:
            kwargs["enabled"] = enabled

        return cls(**kwargs)
