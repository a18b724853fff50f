"""
Price Model

Each commodity's price follows a mean-reverting random walk around its
base price. An active global event shifts the target the walk reverts to.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from catalog import Catalog, Commodity
from config import CONFIG, MarketConfig
from events import GlobalEvent, event_applies_to


@dataclass(frozen=True, slots=True)
class MarketPrice:
    """Current quote for one commodity plus its recent history (oldest first)."""

    commodity_id: str
    current_price: float
    history: Tuple[float, ...]
    trend: str = "stable"  # up / down / stable, informational only

    def __post_init__(self):
        if not self.current_price > 0:
            raise ValueError(
                f"{self.commodity_id}: current_price must be positive, got {self.current_price}"
            )

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.commodity_id,
            "currentPrice": self.current_price,
            "history": list(self.history),
            "trend": self.trend,
            "changePercent": price_change_percent(self),
        }


def initial_prices(catalog: Catalog) -> Dict[str, MarketPrice]:
    """Every commodity starts at its base price with a one-point history."""
    return {
        c.id: MarketPrice(c.id, c.base_price, (c.base_price,), "stable")
        for c in catalog
    }


def target_price(commodity: Commodity, active_event: Optional[GlobalEvent]) -> float:
    """Base price, scaled by the active event's multiplier when it applies."""
    target = commodity.base_price
    if active_event is not None and event_applies_to(active_event, commodity):
        target *= active_event.multiplier
    return target


def next_price(
    commodity: Commodity,
    prev: MarketPrice,
    active_event: Optional[GlobalEvent],
    rng: np.random.Generator,
    config: MarketConfig = CONFIG.market,
) -> MarketPrice:
    """
    Draw tomorrow's price.

    new = max(floor, (prev + gravity) * (1 + shock)) where
    gravity = (target - prev) * mean_reversion_rate and
    shock ~ U(-1, 1) * volatility.

    Args:
        commodity: Catalog entry being priced
        prev: Yesterday's quote
        active_event: Event in force after today's event update
        rng: Seedable random source
        config: Market constants

    Returns:
        New MarketPrice with the history window advanced
    """
    shock = rng.uniform(-1.0, 1.0) * commodity.volatility
    gravity = (target_price(commodity, active_event) - prev.current_price) * config.mean_reversion_rate
    floor = commodity.base_price * config.price_floor_fraction
    new_price = float(max(floor, (prev.current_price + gravity) * (1.0 + shock)))

    history = (prev.history + (new_price,))[-config.history_length:]
    trend = "up" if new_price > prev.current_price else "down"
    return MarketPrice(commodity.id, new_price, history, trend)


def reprice_all(
    prices: Dict[str, MarketPrice],
    catalog: Catalog,
    active_event: Optional[GlobalEvent],
    rng: np.random.Generator,
    config: MarketConfig = CONFIG.market,
) -> Dict[str, MarketPrice]:
    """Advance every quote by one day, in catalog order."""
    return {
        c.id: next_price(c, prices[c.id], active_event, rng, config)
        for c in catalog
    }


def price_change_percent(price: MarketPrice) -> float:
    """Percent move versus the previous history point (0.0 without one)."""
    if len(price.history) < 2:
        return 0.0
    previous = price.history[-2]
    if previous == 0:
        return 0.0
    return (price.current_price - previous) / previous * 100.0
