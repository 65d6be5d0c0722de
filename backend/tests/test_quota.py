"""Tests for calendar-month quota windows."""

import asyncio
from datetime import datetime, timezone

import pytest

from sparkblaze.domain.models import KUDOS
from sparkblaze.ledger.quota import QuotaGuard, counter_id, month_key, month_window
from sparkblaze.store import DocumentStore

UTC = timezone.utc


def test_month_window_utc():
    start, end = month_window(datetime(2024, 2, 15, 12, 0, tzinfo=UTC))
    assert start == datetime(2024, 2, 1, tzinfo=UTC)
    assert end == datetime(2024, 3, 1, tzinfo=UTC)


def test_month_window_wraps_december():
    start, end = month_window(datetime(2024, 12, 31, 23, 59, 59, tzinfo=UTC))
    assert start == datetime(2024, 12, 1, tzinfo=UTC)
    assert end == datetime(2025, 1, 1, tzinfo=UTC)


def test_naive_datetimes_are_utc():
    assert month_window(datetime(2024, 5, 1)) == month_window(
        datetime(2024, 5, 1, tzinfo=UTC)
    )


def test_one_second_apart_across_month_boundary():
    last = datetime(2024, 1, 31, 23, 59, 59, tzinfo=UTC)
    first = datetime(2024, 2, 1, 0, 0, 0, tzinfo=UTC)
    assert month_window(last) != month_window(first)
    assert counter_id("A", last) == "A:2024-01"
    assert counter_id("A", first) == "A:2024-02"


def test_reference_zone_moves_the_boundary():
    # 2024-02-01 02:00 UTC is still January in New York.
    at = datetime(2024, 2, 1, 2, 0, tzinfo=UTC)
    assert month_key(at, "America/New_York") == "2024-01"
    start, _ = month_window(at, "America/New_York")
    assert start == datetime(2024, 1, 1, 5, 0, tzinfo=UTC)


def _store_with_history(*created: datetime) -> DocumentStore:
    store = DocumentStore()
    asyncio.run(store.create("employees", {"name": "Alice", "points": 0}, "A"))
    for at in created:
        asyncio.run(
            store.create(KUDOS, {"sender_id": "A", "receiver_id": "B", "created_at": at})
        )
    return store


def test_check_counts_current_month_only():
    store = _store_with_history(
        datetime(2024, 1, 31, 23, 59, 59, tzinfo=UTC),
        datetime(2024, 2, 2, tzinfo=UTC),
    )
    guard = QuotaGuard(store, limit=3)
    decision = asyncio.run(guard.check("A", datetime(2024, 2, 10, tzinfo=UTC)))
    assert decision.allowed
    assert decision.count == 1
    assert decision.remaining == 2
    assert decision.resets_at == datetime(2024, 3, 1, tzinfo=UTC)


def test_check_denies_at_limit():
    store = _store_with_history(*(datetime(2024, 2, d, tzinfo=UTC) for d in (1, 2, 3)))
    decision = asyncio.run(
        QuotaGuard(store, limit=3).check("A", datetime(2024, 2, 4, tzinfo=UTC))
    )
    assert not decision.allowed
    assert decision.count == 3
    assert decision.remaining == 0


def test_check_denies_unknown_sender():
    decision = asyncio.run(
        QuotaGuard(DocumentStore()).check("ghost", datetime(2024, 2, 4, tzinfo=UTC))
    )
    assert not decision.allowed
    assert not decision.sender_known


def test_check_has_no_side_effects():
    store = _store_with_history(datetime(2024, 2, 1, tzinfo=UTC))
    before = {k: (d.version, d.data) for k, d in store._docs.items()}
    asyncio.run(QuotaGuard(store).check("A", datetime(2024, 2, 4, tzinfo=UTC)))
    assert {k: (d.version, d.data) for k, d in store._docs.items()} == before


def test_check_and_reserve_takes_a_slot():
    store = _store_with_history()
    guard = QuotaGuard(store, limit=2)
    at = datetime(2024, 2, 4, tzinfo=UTC)

    async def reserve(txn):
        return await guard.check_and_reserve(txn, "A", at)

    results = [asyncio.run(store.run_transaction(reserve)) for _ in range(3)]
    assert [r.allowed for r in results] == [True, True, False]
    assert [r.count for r in results] == [0, 1, 2]
    counter = asyncio.run(store.get("kudo_quotas", "A:2024-02"))
    assert counter.data["count"] == 2


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        QuotaGuard(DocumentStore(), limit=0)


def test_check_tolerates_naive_creation_times():
    store = _store_with_history(datetime(2024, 2, 2, 8, 30))
    stored = asyncio.run(store.query(KUDOS))[0]
    assert stored.data["created_at"] == datetime(2024, 2, 2, 8, 30, tzinfo=UTC)

    guard = QuotaGuard(store, limit=3)
    decision = asyncio.run(guard.check("A", datetime(2024, 2, 10, tzinfo=UTC)))
    assert decision.count == 1
