import json

import pytest

from spend_rewards import Bucket, Statement, normalize_statements
from spend_rewards.cards import CardRegistry, RegisteredCard, infer_current_cards
from spend_rewards.errors import RegistryError


def _registry() -> CardRegistry:
    return CardRegistry(
        [
            RegisteredCard(card_id="food-plus", bank_code="HDFC", last4="1111"),
            RegisteredCard(card_id="shop-max", bank_code="hdfc", last4="2222"),
            RegisteredCard(card_id="fuel-saver", bank_code="icici"),
            RegisteredCard(card_id="old", bank_code="sbi", last4="9999", status="closed"),
        ]
    )


def test_exact_match_is_high_confidence():
    match = _registry().resolve("hdfc", "2222")
    assert match.card_id == "shop-max"
    assert match.confidence == "high"


def test_only_card_for_bank_is_medium_confidence():
    match = _registry().resolve("ICICI", "5555")
    assert match.card_id == "fuel-saver"
    assert match.confidence == "medium"


def test_ambiguous_or_unknown_bank_does_not_match():
    reg = _registry()
    assert reg.resolve("hdfc", None).card_id is None
    assert reg.resolve("axis", "1111").confidence == "none"
    assert reg.resolve(None, "1111").card_id is None


def test_inactive_cards_are_ignored():
    reg = _registry()
    assert len(reg) == 3
    assert reg.resolve("sbi", "9999").card_id is None


def test_registered_card_validation():
    with pytest.raises(ValueError):
        RegisteredCard(card_id="x", bank_code="hdfc", last4="12")


def test_load_registry(tmp_path):
    path = tmp_path / "cards.json"
    path.write_text(
        json.dumps({"cards": [{"card_id": "food-plus", "bank_code": "hdfc", "last4": "1111"}]}),
        encoding="utf-8",
    )
    reg = CardRegistry.load(path)
    assert reg.resolve("hdfc", "1111").card_id == "food-plus"

    with pytest.raises(RegistryError):
        CardRegistry.load(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"cards": [{"bank_code": "hdfc"}]}), encoding="utf-8")
    with pytest.raises(RegistryError):
        CardRegistry.load(bad)


def test_infer_current_cards_per_bucket():
    statements = [
        Statement(
            bank_code="hdfc",
            statement_id="a",
            card_last4="1111",
            transactions=[
                {"description": "SWIGGY", "amount": "900", "date": "02/03/2025"},
                {"description": "AMAZON.IN", "amount": "100", "date": "03/03/2025"},
                {"description": "REFUND", "amount": "5000", "date": "04/03/2025", "type": "Cr"},
            ],
        ),
        Statement(
            bank_code="hdfc",
            statement_id="b",
            card_last4="2222",
            transactions=[
                {"description": "AMAZON.IN", "amount": "400", "date": "05/03/2025"},
            ],
        ),
        Statement(
            bank_code="axis",
            statement_id="c",
            transactions=[
                {"description": "ZEPTO", "amount": "99999", "date": "05/03/2025"},
            ],
        ),
    ]
    txns, _ = normalize_statements(statements)
    current = infer_current_cards(txns, _registry())

    assert current.card_for(Bucket.FOOD_DELIVERY) == "food-plus"
    assert current.card_for(Bucket.ONLINE_RETAIL) == "shop-max"
    # The unresolved axis spend does not count toward any card.
    assert current.default_card_id == "food-plus"
    assert current.card_for(Bucket.GROCERIES) == "food-plus"


def test_infer_with_no_resolved_spend():
    current = infer_current_cards([], _registry())
    assert current.default_card_id is None
    assert current.card_ids() == ()
