"""Tests for the small support modules."""

import logging
import threading
import time
from decimal import Decimal

import pytest

from spend_rewards.config import Settings, load_settings
from spend_rewards.money import fmt_money, money_sum, to_money
from spend_rewards.pmap import p_map


def test_to_money_rounds_half_up():
    assert to_money(Decimal("0.005")) == Decimal("0.01")
    assert to_money(Decimal("2.345")) == Decimal("2.35")
    assert to_money("10") == Decimal("10.00")
    assert str(to_money(Decimal("-0.001"))) == "0.00"


def test_fmt_money_and_sum():
    assert fmt_money(Decimal("1200")) == "1200.00"
    assert money_sum([Decimal("0.10"), Decimal("0.20")]) == Decimal("0.30")
    assert money_sum([]) == Decimal("0.00")


def test_load_settings_from_mapping():
    s = load_settings(
        {
            "DATABASE_URL": "sqlite:///x.db",
            "SPEND_REWARDS_CATALOG": "/tmp/cat.json",
            "SPEND_REWARDS_MAX_WORKERS": "3",
            "SPEND_REWARDS_MISMATCH_MIN_AMOUNT": "100",
            "SPEND_REWARDS_MISMATCH_MIN_PCT": "oops",
        }
    )
    assert s.database_url == "sqlite:///x.db"
    assert s.catalog_path == "/tmp/cat.json"
    assert s.max_workers == 3
    assert s.mismatch_min_amount == Decimal("100")
    assert s.mismatch_min_pct == Decimal("20")


def test_load_settings_defaults():
    s = load_settings({})
    assert s == Settings()


@pytest.mark.parametrize(
    ("configured", "items", "expected"),
    [(None, 12, 4), (None, 2, 2), (8, 3, 3), (100, 50, 32), (0, 5, 4), (2, 0, 1)],
)
def test_resolve_workers(configured, items, expected):
    assert Settings(max_workers=configured).resolve_workers(items) == expected


def test_p_map_preserves_input_order():
    def slow_square(n: int) -> int:
        time.sleep(0.01 * (5 - n))
        return n * n

    assert p_map(range(5), slow_square, concurrency=3) == [0, 1, 4, 9, 16]


def test_p_map_bounds_concurrency():
    lock = threading.Lock()
    active = 0
    peak = 0

    def work(_: int) -> None:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01)
        with lock:
            active -= 1

    p_map(range(10), work, concurrency=2)
    assert peak <= 2


def test_p_map_stop_on_error_raises_first_failure():
    def boom(n: int) -> int:
        if n == 1:
            raise ValueError("bad item")
        return n

    with pytest.raises(ValueError, match="bad item"):
        p_map([0, 1, 2], boom, concurrency=1)


def test_p_map_collects_all_failures():
    def boom(n: int) -> int:
        if n % 2:
            raise ValueError(str(n))
        return n

    with pytest.raises(ExceptionGroup) as excinfo:
        p_map(range(5), boom, concurrency=2, stop_on_error=False)
    assert sorted(str(e) for e in excinfo.value.exceptions) == ["1", "3"]


def test_p_map_rejects_bad_concurrency():
    with pytest.raises(ValueError):
        p_map([1], lambda x: x, concurrency=0)


def test_resolve_level(monkeypatch):
    from spend_rewards.logging_setup import resolve_level

    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(30) == logging.WARNING
    monkeypatch.setenv("SPEND_REWARDS_LOG_LEVEL", "ERROR")
    assert resolve_level() == logging.ERROR
    assert resolve_level("nonsense") == logging.ERROR
    monkeypatch.delenv("SPEND_REWARDS_LOG_LEVEL")
    assert resolve_level() == logging.INFO
