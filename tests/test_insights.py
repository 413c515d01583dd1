from decimal import Decimal

from spend_rewards import Bucket, CurrentCards, MonthlySpendSnapshot, RewardCatalog, optimize
from spend_rewards.catalog import parse_catalog
from spend_rewards.config import Settings
from spend_rewards.insights import detect_all, detect_cap_hits, detect_category_mismatches

CATALOG = RewardCatalog.from_rates(
    {
        "CardA": {"food-delivery": "0.01", "online-retail": "0.02"},
        "CardB": {"food-delivery": "0.05", "online-retail": "0.01"},
    }
)

CAPPED = parse_catalog(
    {
        "version": "capped",
        "cards": [
            {
                "card_id": "CardA",
                "name": "Card A",
                "rules": [{"bucket": "online-retail", "rate": "0.05", "cap": "100"}],
            },
            {
                "card_id": "CardS",
                "name": "Card S",
                "rules": [
                    {"bucket": "fuel", "rate": "0.04", "cap": "5000", "cap_kind": "spend"}
                ],
            },
        ],
    }
)


def _snapshot(buckets: dict[Bucket, str]) -> MonthlySpendSnapshot:
    return MonthlySpendSnapshot(
        user_id="u1",
        month="2025-03",
        source="test",
        buckets={b: Decimal(v) for b, v in buckets.items()},
    )


def test_mismatch_reported_when_both_thresholds_met():
    result = optimize(
        _snapshot({Bucket.FOOD_DELIVERY: "500"}), CurrentCards("CardA"), CATALOG
    )
    found = detect_category_mismatches(
        result, CATALOG, min_amount=Decimal("10"), min_pct=Decimal("20")
    )
    assert len(found) == 1
    insight = found[0]
    assert insight.kind == "category_mismatch"
    assert insight.bucket == "food-delivery"
    assert insight.amount == Decimal("20.00")
    assert insight.detail["best_card_id"] == "CardB"
    assert insight.detail["percentage_increase"] == "400"
    assert "Missed: ₹20.00 (400% more rewards)" in insight.message


def test_mismatch_below_absolute_threshold_is_ignored():
    result = optimize(
        _snapshot({Bucket.FOOD_DELIVERY: "500"}), CurrentCards("CardA"), CATALOG
    )
    assert detect_category_mismatches(result, CATALOG) == []


def test_mismatch_below_relative_threshold_is_ignored():
    catalog = RewardCatalog.from_rates({"A": {"fuel": "0.10"}, "B": {"fuel": "0.11"}})
    result = optimize(_snapshot({Bucket.FUEL: "100000"}), CurrentCards("A"), catalog)
    # Missed 1000.00 on an actual 10000.00 is a 10% improvement.
    assert detect_category_mismatches(result, catalog, min_amount=Decimal("1")) == []
    assert detect_category_mismatches(
        result, catalog, min_amount=Decimal("1"), min_pct=Decimal("10")
    )


def test_mismatch_without_current_card_meets_relative_threshold():
    result = optimize(_snapshot({Bucket.FOOD_DELIVERY: "500"}), CurrentCards(), CATALOG)
    found = detect_category_mismatches(result, CATALOG, min_amount=Decimal("10"))
    assert [i.detail["percentage_increase"] for i in found] == [None]
    assert "You used no card" in found[0].message


def test_mismatches_sorted_by_missed_amount():
    snap = _snapshot({Bucket.FOOD_DELIVERY: "500", Bucket.ONLINE_RETAIL: "10000"})
    result = optimize(snap, CurrentCards("CardB"), CATALOG)
    found = detect_category_mismatches(result, CATALOG, min_amount=Decimal("1"))
    assert [i.bucket for i in found] == ["online-retail"]

    result = optimize(snap, CurrentCards(), CATALOG)
    found = detect_category_mismatches(result, CATALOG, min_amount=Decimal("1"))
    assert [i.bucket for i in found] == ["online-retail", "food-delivery"]


def test_reward_cap_hit():
    result = optimize(_snapshot({Bucket.ONLINE_RETAIL: "5000"}), CurrentCards("CardA"), CAPPED)
    hits = detect_cap_hits(result, CurrentCards("CardA"), CAPPED)
    assert len(hits) == 1
    hit = hits[0]
    assert hit.kind == "cap_hit"
    assert hit.amount == Decimal("3000.00")
    assert hit.detail["eligible_spend"] == "2000.00"
    assert hit.detail["cap_kind"] == "reward"
    assert "gives 5% on the first ₹2,000.00 (₹100.00 reward cap)" in hit.message
    assert "not earning rewards on ₹3,000.00" in hit.message


def test_spend_cap_hit():
    current = CurrentCards("CardS")
    result = optimize(_snapshot({Bucket.FUEL: "8000"}), current, CAPPED)
    hits = detect_cap_hits(result, current, CAPPED)
    assert [h.amount for h in hits] == [Decimal("3000.00")]
    assert hits[0].detail["cap_kind"] == "spend"


def test_spend_under_cap_is_not_reported():
    current = CurrentCards("CardA")
    result = optimize(_snapshot({Bucket.ONLINE_RETAIL: "1999.99"}), current, CAPPED)
    assert detect_cap_hits(result, current, CAPPED) == []


def test_detect_all_uses_settings_thresholds():
    current = CurrentCards("CardA")
    result = optimize(_snapshot({Bucket.FOOD_DELIVERY: "500"}), current, CATALOG)
    assert detect_all(result, current, CATALOG) == []

    loose = Settings(mismatch_min_amount=Decimal("1"), mismatch_min_pct=Decimal("1"))
    kinds = [i.kind for i in detect_all(result, current, CATALOG, loose)]
    assert kinds == ["category_mismatch"]


def test_insight_record_is_flat():
    current = CurrentCards("CardA")
    result = optimize(_snapshot({Bucket.ONLINE_RETAIL: "5000"}), current, CAPPED)
    rec = detect_cap_hits(result, current, CAPPED)[0].to_record()
    assert rec["amount"] == "3000.00"
    assert rec["bucket"] == "online-retail"
    assert rec["cap"] == "100.00"
