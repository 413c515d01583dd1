from datetime import date
from decimal import Decimal

import pytest

from spend_rewards import (
    ALL_BUCKETS,
    Bucket,
    MonthKey,
    Statement,
    aggregate_month,
    months_covered,
    normalize_statements,
)
from spend_rewards.aggregate import aggregate_all, dedupe


def _example_statement(statement_id: str = "hdfc-2025-03") -> Statement:
    return Statement(
        bank_code="hdfc",
        statement_id=statement_id,
        card_last4="1234",
        transactions=[
            {"description": "SWIGGY ORDER", "amount": 500, "date": "05/03/2025", "type": "Dr"},
            {"description": "PAYMENT RECEIVED", "amount": 2000, "date": "10/03/2025", "type": "Cr"},
            {"description": "AMAZON.IN", "amount": 1200, "date": "12/03/2025", "type": "Dr"},
        ],
    )


def test_example_month_snapshot():
    txns, issues = normalize_statements([_example_statement()])
    assert issues == []

    snap = aggregate_month(txns, user_id="u1", month="2025-03")

    assert snap.nonzero() == {
        Bucket.FOOD_DELIVERY: Decimal("500.00"),
        Bucket.ONLINE_RETAIL: Decimal("1200.00"),
    }
    assert snap.total == Decimal("1700.00")
    assert snap.transaction_count == 2
    assert tuple(snap.buckets) == ALL_BUCKETS
    assert snap.buckets[Bucket.DINING] == Decimal("0.00")


def test_resupplied_statement_does_not_double_count():
    once, _ = normalize_statements([_example_statement()])
    twice, _ = normalize_statements([_example_statement(), _example_statement()])

    a = aggregate_month(once, user_id="u1", month="2025-03")
    b = aggregate_month(twice, user_id="u1", month="2025-03")

    assert a.buckets == b.buckets
    assert b.duplicates_dropped == 3


def test_statements_for_different_cards_are_additive():
    other = Statement(
        bank_code="icici",
        statement_id="icici-2025-03",
        transactions=[
            {"description": "ZOMATO", "amount": "250.25", "date": "15/03/2025"},
        ],
    )
    txns, _ = normalize_statements([_example_statement(), other])
    snap = aggregate_month(txns, user_id="u1", month="2025-03")
    assert snap.buckets[Bucket.FOOD_DELIVERY] == Decimal("750.25")


def test_month_bounds_are_inclusive():
    st = Statement(
        bank_code="sbi",
        statement_id="s",
        transactions=[
            {"description": "ZEPTO", "amount": "1", "date": "28/02/2025"},
            {"description": "ZEPTO", "amount": "2", "date": "01/03/2025"},
            {"description": "ZEPTO", "amount": "4", "date": "31/03/2025"},
            {"description": "ZEPTO", "amount": "8", "date": "01/04/2025"},
        ],
    )
    txns, _ = normalize_statements([st])
    snap = aggregate_month(txns, user_id="u1", month=MonthKey(2025, 3))
    assert snap.buckets[Bucket.GROCERIES] == Decimal("6.00")


def test_decimal_sums_do_not_drift():
    st = Statement(
        bank_code="sbi",
        statement_id="s",
        transactions=[
            {"description": "ZEPTO", "amount": "0.10", "date": "02/03/2025"},
            {"description": "ZEPTO", "amount": "0.20", "date": "03/03/2025"},
        ]
        * 5,
    )
    txns, _ = normalize_statements([st])
    snap = aggregate_month(txns, user_id="u1", month="2025-03")
    assert snap.buckets[Bucket.GROCERIES] == Decimal("1.50")


def test_empty_month_is_zero_snapshot():
    snap = aggregate_month([], user_id="u1", month="2025-03")
    assert snap.total == Decimal("0.00")
    assert snap.nonzero() == {}
    assert len(snap.buckets) == len(ALL_BUCKETS)


def test_aggregation_is_idempotent():
    txns, _ = normalize_statements([_example_statement()])
    assert aggregate_month(txns, user_id="u", month="2025-03") == aggregate_month(
        txns, user_id="u", month="2025-03"
    )


@pytest.mark.parametrize("bad", ["2025-13", "2025/03", "25-03", "", "2025-3"])
def test_malformed_month_is_rejected(bad):
    with pytest.raises(ValueError):
        aggregate_month([], user_id="u", month=bad)


def test_month_key_helpers():
    mk = MonthKey.parse("2024-02")
    assert mk.start == date(2024, 2, 1)
    assert mk.end == date(2024, 2, 29)
    assert str(mk) == "2024-02"
    assert mk.contains(date(2024, 2, 29))
    assert not mk.contains(date(2024, 3, 1))


def test_months_covered_and_aggregate_all():
    st = Statement(
        bank_code="sbi",
        statement_id="s",
        transactions=[
            {"description": "ZEPTO", "amount": "10", "date": "05/04/2025"},
            {"description": "ZEPTO", "amount": "20", "date": "05/03/2025"},
            {"description": "REFUND", "amount": "5", "date": "05/05/2025", "type": "Cr"},
        ],
    )
    txns, _ = normalize_statements([st])
    assert [str(m) for m in months_covered(txns)] == ["2025-03", "2025-04"]

    snaps = aggregate_all(txns, user_id="u")
    assert list(snaps) == ["2025-03", "2025-04"]
    assert snaps["2025-04"].total == Decimal("10.00")


def test_dedupe_keeps_first_occurrence():
    txns, _ = normalize_statements([_example_statement(), _example_statement()])
    unique, dropped = dedupe(txns)
    assert dropped == 3
    assert unique == txns[:3]


def test_snapshot_record_shape():
    txns, _ = normalize_statements([_example_statement()])
    rec = aggregate_month(txns, user_id="u1", month="2025-03").to_record()
    assert rec["user_id"] == "u1"
    assert rec["month"] == "2025-03"
    assert rec["buckets"]["food-delivery"] == "500.00"
    assert rec["buckets"]["rent"] == "0.00"
    assert list(rec["buckets"]) == [b.value for b in ALL_BUCKETS]
