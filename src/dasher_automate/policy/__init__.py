"""Offer decision policy."""

from dasher_automate.policy.engine import evaluate, parse_miles, parse_pay

__all__ = ["evaluate", "parse_miles", "parse_pay"]
