from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from spend_rewards import Bucket, Direction, RawTransaction, Statement
from spend_rewards.errors import MalformedAmount, MalformedDate
from spend_rewards.normalizers import (
    GENERIC_PROFILE,
    infer_direction,
    normalize_statement,
    normalize_transaction,
    parse_amount,
    parse_date,
    profile_for,
)
from spend_rewards.text import merchant_key


# ---- parse_amount -------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "magnitude", "negative"),
    [
        ("500", Decimal("500.00"), False),
        ("1,23,456.00", Decimal("123456.00"), False),
        ("Rs. 1,000", Decimal("1000.00"), False),
        ("INR 2,500.75", Decimal("2500.75"), False),
        ("₹ 99.5", Decimal("99.50"), False),
        ("+42", Decimal("42.00"), False),
        ("-100", Decimal("100.00"), True),
        ("(250.50)", Decimal("250.50"), True),
        ("12.345", Decimal("12.35"), False),
        ("0.005", Decimal("0.01"), False),
    ],
)
def test_parse_amount_magnitude_and_sign(raw, magnitude, negative):
    parsed = parse_amount(raw)
    assert parsed.magnitude == magnitude
    assert parsed.negative is negative
    assert parsed.marker is None


def test_parse_amount_trailing_markers():
    assert parse_amount("500.00 Cr").marker is Direction.CREDIT
    assert parse_amount("1,200.00 Dr").marker is Direction.DEBIT
    assert parse_amount("100Cr").marker is Direction.CREDIT
    assert parse_amount("75.00 CR.").magnitude == Decimal("75.00")


@pytest.mark.parametrize("raw", ["", "   ", "abc", "12..5", "Rs.", "NaN", "Infinity", None])
def test_parse_amount_rejects_garbage(raw):
    with pytest.raises(MalformedAmount) as exc:
        parse_amount(raw)
    assert exc.value.kind == "malformed_amount"


# ---- parse_date ---------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("05/03/2025", date(2025, 3, 5)),
        ("05-03-2025", date(2025, 3, 5)),
        ("05.03.2025", date(2025, 3, 5)),
        ("05/03/25", date(2025, 3, 5)),
        ("05 Mar 2025", date(2025, 3, 5)),
        ("05-Mar-25", date(2025, 3, 5)),
        ("05032025", date(2025, 3, 5)),
        ("2025-03-05", date(2025, 3, 5)),
        ("2025-03-05T10:00:00", date(2025, 3, 5)),
        ("05/03/2025 10:22", date(2025, 3, 5)),
    ],
)
def test_parse_date_day_first_by_default(raw, expected):
    assert parse_date(raw) == expected


def test_month_first_profile_resolves_ambiguity():
    assert parse_date("05/03/2025", profile_for("us")) == date(2025, 5, 3)
    assert parse_date("05/03/2025", profile_for("hdfc")) == date(2025, 3, 5)


def test_unknown_bank_uses_generic_profile():
    assert profile_for("nobank") is GENERIC_PROFILE
    assert profile_for(None) is GENERIC_PROFILE


@pytest.mark.parametrize("raw", ["", "not a date", "31/02/2025", "2025-13-01", None])
def test_parse_date_rejects_garbage(raw):
    with pytest.raises(MalformedDate):
        parse_date(raw)


# ---- direction ----------------------------------------------------------------


def test_explicit_flag_wins_over_description():
    parsed = parse_amount("300")
    assert (
        infer_direction(flag="Dr", parsed=parsed, description_key="refund amazon")
        is Direction.DEBIT
    )


def test_explicit_flag_with_negative_amount_is_malformed():
    with pytest.raises(MalformedAmount):
        infer_direction(flag="Dr", parsed=parse_amount("-300"), description_key="swiggy")


def test_negative_without_flag_is_credit():
    assert (
        infer_direction(flag=None, parsed=parse_amount("-300"), description_key="swiggy")
        is Direction.CREDIT
    )


def test_credit_marker_in_description():
    parsed = parse_amount("2000")
    assert (
        infer_direction(flag=None, parsed=parsed, description_key="payment received thank you")
        is Direction.CREDIT
    )
    assert infer_direction(flag=None, parsed=parsed, description_key="swiggy") is Direction.DEBIT


def test_credit_markers_match_whole_words():
    parsed = parse_amount("2000")
    for key in ("refundable deposit", "cashbacks store", "nonrefund fee"):
        assert infer_direction(flag=None, parsed=parsed, description_key=key) is Direction.DEBIT
    credit = infer_direction(flag=None, parsed=parsed, description_key="amazon refund")
    assert credit is Direction.CREDIT


def test_out_of_range_amount_is_malformed():
    for raw in ("1e30", "1E+27", "9" * 29):
        with pytest.raises(MalformedAmount):
            parse_amount(raw)


def test_unrecognized_flag_is_ignored():
    parsed = parse_amount("500 Cr")
    assert infer_direction(flag="XYZ", parsed=parsed, description_key="x") is Direction.CREDIT


# ---- merchant key and records -------------------------------------------------


def test_merchant_key_normalization():
    assert merchant_key("  AMAZON.IN  ") == "amazon in"
    assert merchant_key("Swiggy*Order_123") == "swiggy order 123"
    assert merchant_key("ＮＥＴＦＬＩＸ") == "netflix"
    assert merchant_key(None) == ""


def test_normalize_transaction_builds_classified_value():
    raw = RawTransaction(description="SWIGGY ORDER", amount=500, date="05/03/2025", type="Dr")
    t = normalize_transaction(raw, source_id="st-1", ordinal=0, bank_code="hdfc")
    assert t.amount == Decimal("500.00")
    assert t.direction is Direction.DEBIT
    assert t.bucket is Bucket.FOOD_DELIVERY
    assert t.merchant_key == "swiggy order"
    assert t.date == date(2025, 3, 5)
    assert len(t.txn_id) == 64
    assert t.dedup_key == ("st-1", t.txn_id)


def test_external_id_is_used_as_txn_id():
    raw = RawTransaction(description="X", amount="1", date="2025-03-01", id="ref-9")
    t = normalize_transaction(raw, source_id="s", ordinal=3)
    assert t.txn_id == "ref-9"


def test_fingerprint_is_stable_and_ordinal_sensitive():
    raw = RawTransaction(description="ZOMATO", amount="250", date="2025-03-02")
    a = normalize_transaction(raw, source_id="s", ordinal=0)
    b = normalize_transaction(raw, source_id="s", ordinal=0)
    c = normalize_transaction(raw, source_id="s", ordinal=1)
    assert a.txn_id == b.txn_id
    assert a.txn_id != c.txn_id


def test_normalize_statement_collects_issues():
    st = Statement(
        bank_code="HDFC",
        statement_id="hdfc-2025-03",
        card_last4="XXXX XXXX XXXX 1234",
        transactions=[
            {"description": "SWIGGY", "amount": "500", "date": "05/03/2025", "type": "Dr"},
            {"description": "BROKEN", "amount": "n/a", "date": "06/03/2025"},
            {"description": "BAD DATE", "amount": "10", "date": "yesterday"},
            {"description": "CONFLICT", "amount": "-10", "date": "07/03/2025", "type": "Dr"},
            {"description": "HUGE", "amount": "1e30", "date": "08/03/2025"},
            {"description": "HUGE FLOAT", "amount": 1e30, "date": "08/03/2025"},
        ],
    )
    ns = normalize_statement(st)

    assert [t.raw_description for t in ns.transactions] == ["SWIGGY"]
    assert ns.transactions[0].card_last4 == "1234"
    assert ns.transactions[0].bank_code == "hdfc"
    assert [(i.ordinal, i.kind) for i in ns.issues] == [
        (1, "malformed_amount"),
        (2, "malformed_date"),
        (3, "malformed_amount"),
        (4, "malformed_amount"),
        (5, "malformed_amount"),
    ]
    assert ns.issues[0].raw["description"] == "BROKEN"
    assert ns.issues[0].source_id == "hdfc-2025-03"


def test_statement_source_id_fallback():
    st = Statement(
        bank_code="sbi",
        card_last4="9876",
        period_start=date(2025, 3, 1),
        period_end=date(2025, 3, 31),
    )
    assert st.source_id == "sbi:9876:2025-03-01:2025-03-31"
    assert Statement(bank_code="sbi", statement_id="abc").source_id == "abc"


def test_statement_validation():
    with pytest.raises(ValidationError):
        Statement(bank_code="  ")
    with pytest.raises(ValidationError):
        Statement(bank_code="sbi", card_last4="12")
    with pytest.raises(ValidationError):
        RawTransaction(description="x", date="2025-03-01")
    with pytest.raises(ValidationError):
        RawTransaction(description="x", amount=True, date="2025-03-01")
