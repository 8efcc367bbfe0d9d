"""Offline offer source and dry-run executor."""

from __future__ import annotations

from dasher_automate.device.replay import DryRunExecutor, JsonlOfferSource
from dasher_automate.models.offer import Decision, Verdict
from tests.factories import make_offer


async def test_jsonl_source_replays_in_order(tmp_path):
    path = tmp_path / "offers.jsonl"
    path.write_text(
        '{"pay": "$7.00", "distance": "5 mi", "storeName": "Chipotle"}\n'
        "\n"
        "# comment\n"
        "not json\n"
        "[1, 2]\n"
        '{"pay": "$4.00", "distance": "2 mi", "store_name": "KFC"}\n',
        encoding="utf-8",
    )

    source = JsonlOfferSource(path)
    assert source.remaining == 2

    first = await source.extract_current_offer()
    second = await source.extract_current_offer()

    assert first.store_name == "Chipotle"
    assert second.pay == "$4.00"
    assert await source.extract_current_offer() is None


async def test_jsonl_source_from_offers():
    source = JsonlOfferSource(offers=[make_offer(store_name="Subway")])
    assert (await source.extract_current_offer()).store_name == "Subway"
    assert source.remaining == 0


async def test_dry_run_executor_records():
    executor = DryRunExecutor()
    verdict = Verdict(decision=Decision.DECLINE, reason="pay_too_low")

    assert await executor.perform(verdict) is True
    assert executor.performed == [verdict]
