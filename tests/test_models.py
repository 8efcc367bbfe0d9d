"""RuleSet, Offer and Message parsing."""

from __future__ import annotations

import json
from decimal import Decimal

import pytest

from dasher_automate.errors import MessageError, UnknownMessageType
from dasher_automate.models.messages import Message, MessageType
from dasher_automate.models.offer import Offer
from dasher_automate.models.rules import RuleSet


# ── RuleSet ──────────────────────────────────────────────────────


def test_rules_from_camel_case_payload():
    rules = RuleSet.from_dict({
        "minPay": 6.5,
        "maxDistance": 10,
        "minPayPerMile": 1.0,
        "blacklistedStores": ["Wendy", "  ", "KFC "],
        "enabled": True,
    })
    assert rules.min_pay == Decimal("6.5")
    assert rules.max_distance == Decimal("10")
    assert rules.min_pay_per_mile == Decimal("1.0")
    assert rules.blacklisted_stores == ("Wendy", "KFC")
    assert rules.enabled is True
    assert rules.allow_zero_distance is False


def test_rules_from_snake_case_payload():
    rules = RuleSet.from_dict({"min_pay": "8", "allow_zero_distance": True})
    assert rules.min_pay == Decimal("8")
    assert rules.allow_zero_distance is True


def test_rules_missing_keys_take_defaults():
    """A payload replaces the whole set; absent fields are defaults, not merged."""
    rules = RuleSet.from_dict({"minPay": 9})
    default = RuleSet()
    assert rules.max_distance == default.max_distance
    assert rules.min_pay_per_mile == default.min_pay_per_mile
    assert rules.blacklisted_stores == ()


def test_rules_enabled_override():
    assert RuleSet.from_dict({"enabled": False}, enabled=True).enabled is True


@pytest.mark.parametrize(
    "payload",
    [
        {"minPay": -1},
        {"maxDistance": "far"},
        {"minPayPerMile": True},
        {"minPay": float("nan")},
        {"blacklistedStores": "wendy"},
        {"blacklistedStores": [None]},
        {"blacklistedStores": ["kfc", 7]},
        {"enabled": "yes"},
    ],
)
def test_rules_invalid_values_raise(payload):
    with pytest.raises(ValueError):
        RuleSet.from_dict(payload)


def test_rules_not_an_object_raises():
    with pytest.raises(ValueError):
        RuleSet.from_dict(["minPay", 5])


def test_rules_to_dict_round_trips_through_from_dict():
    rules = RuleSet(min_pay=Decimal("7.25"), blacklisted_stores=("a", "b"), enabled=True)
    assert RuleSet.from_dict(rules.to_dict()) == rules


def test_rules_are_immutable():
    rules = RuleSet()
    with pytest.raises(AttributeError):
        rules.min_pay = Decimal("1")  # type: ignore[misc]
    assert rules.with_enabled(True) is not rules
    assert rules.enabled is False


# ── Offer ────────────────────────────────────────────────────────


def test_offer_wire_keys():
    offer = Offer(pay="$7", distance="5 mi", time_estimate="20 min", store_name="Subway")
    data = offer.to_dict()
    assert data == {
        "pay": "$7", "distance": "5 mi", "timeEstimate": "20 min", "storeName": "Subway",
    }
    assert Offer.from_dict(data) == offer


def test_offer_from_partial_dict():
    offer = Offer.from_dict({"pay": 7.5, "store_name": "Subway"})
    assert offer.pay == "7.5"
    assert offer.distance == ""
    assert offer.store_name == "Subway"


# ── Message ──────────────────────────────────────────────────────


def test_message_encodes_flat_frame():
    msg = Message(MessageType.TOGGLE_SERVICE, {"enabled": True}, timestamp=123)
    assert json.loads(msg.encode()) == {"type": "toggle_service", "enabled": True, "timestamp": 123}


def test_message_decode_splits_payload():
    msg = Message.decode('{"type":"update_rules","rules":{"minPay":7},"timestamp":55}')
    assert msg.type is MessageType.UPDATE_RULES
    assert msg.payload == {"rules": {"minPay": 7}}
    assert msg.timestamp == 55


def test_message_decode_defaults_timestamp():
    msg = Message.decode('{"type":"ping"}')
    assert msg.type is MessageType.PING
    assert msg.timestamp > 0


def test_message_decode_unknown_type():
    with pytest.raises(UnknownMessageType):
        Message.decode('{"type":"reboot"}')


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"no_type": 1}', '{"type": 5}', ""])
def test_message_decode_malformed(text):
    with pytest.raises(MessageError):
        Message.decode(text)


def test_pong_carries_timestamp():
    frame = json.loads(Message.build(MessageType.PONG).encode())
    assert frame["type"] == "pong"
    assert isinstance(frame["timestamp"], int)
