"""
Unit tests for the price model

Tests cover:
- Mean reversion toward base price and event-shifted targets
- Price floor under extreme shocks
- Bounded history window
- Percent-change display edge case
"""

import numpy as np
import pytest

from catalog import ALL_CATEGORIES, Commodity, CommodityCategory, DEFAULT_CATALOG
from events import GlobalEvent
from market import MarketPrice, initial_prices, next_price, price_change_percent, reprice_all


class FixedRng:
    """Stand-in random source returning a fixed uniform draw."""

    def __init__(self, uniform=0.0):
        self._uniform = uniform

    def uniform(self, low, high):
        return self._uniform


OIL = DEFAULT_CATALOG.get("oil")


def energy_event(multiplier=2.0, category=CommodityCategory.ENERGY):
    return GlobalEvent("Test", "test event", category, multiplier, 5, 5)


class TestNextPrice:
    def test_reverts_toward_base_without_shock(self):
        """Gravity pulls 10% of the gap to base price per day"""
        prev = MarketPrice("oil", 100.0, (100.0,))
        new = next_price(OIL, prev, None, FixedRng(0.0))

        assert abs(new.current_price - 98.0) < 1e-9
        assert new.trend == "down"

    def test_event_shifts_target(self):
        """A matching event multiplies the target price"""
        prev = MarketPrice("oil", 80.0, (80.0,))
        new = next_price(OIL, prev, energy_event(2.0), FixedRng(0.0))

        # target 160, gravity (160 - 80) * 0.1 = 8
        assert abs(new.current_price - 88.0) < 1e-9
        assert new.trend == "up"

    def test_event_for_other_category_is_ignored(self):
        prev = MarketPrice("oil", 80.0, (80.0,))
        new = next_price(OIL, prev, energy_event(2.0, CommodityCategory.METAL), FixedRng(0.0))

        assert abs(new.current_price - 80.0) < 1e-9

    def test_wildcard_event_applies_to_everything(self):
        prev = MarketPrice("oil", 80.0, (80.0,))
        new = next_price(OIL, prev, energy_event(0.5, ALL_CATEGORIES), FixedRng(0.0))

        # target 40, gravity -4
        assert abs(new.current_price - 76.0) < 1e-9

    def test_shock_scales_with_volatility(self):
        """A +1 draw moves the price up by exactly the volatility fraction"""
        prev = MarketPrice("oil", 80.0, (80.0,))
        new = next_price(OIL, prev, None, FixedRng(1.0))

        assert abs(new.current_price - 80.0 * 1.15) < 1e-9

    def test_price_floor(self):
        """A full-volatility crash cannot push price below 10% of base"""
        wild = Commodity("wild", "Wild", CommodityCategory.ENERGY, 100.0, 1.0, 10.0, 1)
        prev = MarketPrice("wild", 100.0, (100.0,))
        new = next_price(wild, prev, None, FixedRng(-1.0))

        assert abs(new.current_price - 10.0) < 1e-9

    def test_history_is_capped(self):
        rng = np.random.default_rng(7)
        price = MarketPrice("oil", 80.0, (80.0,))
        for _ in range(50):
            price = next_price(OIL, price, None, rng)

        assert len(price.history) == 20
        assert price.history[-1] == price.current_price

    def test_previous_quote_untouched(self):
        prev = MarketPrice("oil", 80.0, (80.0,))
        next_price(OIL, prev, None, np.random.default_rng(1))

        assert prev.current_price == 80.0
        assert prev.history == (80.0,)


class TestPriceInvariants:
    def test_floor_holds_under_prolonged_crash(self):
        """Even a long 0.4x event never breaks the floor"""
        rng = np.random.default_rng(2024)
        prices = initial_prices(DEFAULT_CATALOG)
        crash = GlobalEvent("Crash", "crash", ALL_CATEGORIES, 0.4, 500, 500)

        for _ in range(500):
            prices = reprice_all(prices, DEFAULT_CATALOG, crash, rng)
            for commodity in DEFAULT_CATALOG:
                assert prices[commodity.id].current_price >= commodity.base_price * 0.1
                assert len(prices[commodity.id].history) <= 20

    def test_non_positive_price_is_rejected(self):
        with pytest.raises(ValueError):
            MarketPrice("oil", 0.0, (0.0,))


class TestPriceChangePercent:
    def test_single_point_history_is_zero(self):
        price = MarketPrice("oil", 80.0, (80.0,))
        assert price_change_percent(price) == 0.0

    def test_change_against_previous_point(self):
        price = MarketPrice("oil", 88.0, (80.0, 88.0), "up")
        assert abs(price_change_percent(price) - 10.0) < 1e-9

    def test_initial_prices_start_at_base(self):
        prices = initial_prices(DEFAULT_CATALOG)
        assert set(prices) == set(DEFAULT_CATALOG.ids)
        assert prices["gold"].current_price == 2000.0
        assert prices["gold"].history == (2000.0,)
        assert prices["gold"].trend == "stable"
