"""
Production Engine

Facilities turn cash into inventory. Each running facility pays a daily
operating cost and advances its progress bar; a full bar credits the
commodity's yield and wraps around.

All capital figures (unlock, upgrade, resale, replacement value) derive from
one geometric series so that every caller agrees on them.
"""

import math
from dataclasses import dataclass, replace
from typing import Dict

from catalog import Catalog, Commodity
from config import CONFIG, ProductionConfig


@dataclass(frozen=True, slots=True)
class ProductionFacility:
    """A player-owned production site for one commodity."""

    commodity_id: str
    level: int = 1
    is_producing: bool = True
    progress: float = 0.0  # [0, cycle_length)

    def __post_init__(self):
        if self.level < 1:
            raise ValueError(f"{self.commodity_id}: level must be >= 1, got {self.level}")
        if self.progress < 0:
            raise ValueError(f"{self.commodity_id}: progress cannot be negative, got {self.progress}")

    def to_dict(self) -> Dict[str, object]:
        return {
            "commodityId": self.commodity_id,
            "level": self.level,
            "isProducing": self.is_producing,
            "progress": self.progress,
        }


@dataclass(frozen=True)
class ProductionResult:
    """Outcome of one day of production across all facilities."""

    facilities: Dict[str, ProductionFacility]
    inventory: Dict[str, int]
    total_cost: float  # Not yet debited
    units_produced: Dict[str, int]


def unlock_cost(commodity: Commodity, config: ProductionConfig = CONFIG.production) -> float:
    return commodity.base_price * config.unlock_cost_multiplier


def upgrade_cost(
    commodity: Commodity,
    level: int,
    config: ProductionConfig = CONFIG.production,
) -> int:
    """Cost of going from ``level`` to ``level + 1``."""
    return math.floor(unlock_cost(commodity, config) * config.upgrade_cost_growth ** level)


def total_invested(
    commodity: Commodity,
    level: int,
    config: ProductionConfig = CONFIG.production,
) -> float:
    """Unlock cost plus every upgrade paid to reach ``level``."""
    total = unlock_cost(commodity, config)
    for i in range(1, level):
        total += upgrade_cost(commodity, i, config)
    return total


def sell_refund(
    commodity: Commodity,
    level: int,
    config: ProductionConfig = CONFIG.production,
) -> int:
    return math.floor(total_invested(commodity, level, config) * config.sell_refund_fraction)


def daily_operating_cost(
    commodity: Commodity,
    level: int,
    config: ProductionConfig = CONFIG.production,
) -> int:
    return math.floor(commodity.production_cost * config.operating_cost_growth ** (level - 1))


def progress_increment(level: int, config: ProductionConfig = CONFIG.production) -> float:
    """Higher levels fill the bar faster."""
    return config.base_progress_per_day + level * config.progress_per_level


def run_production(
    facilities: Dict[str, ProductionFacility],
    inventory: Dict[str, int],
    cash_available: float,
    catalog: Catalog,
    config: ProductionConfig = CONFIG.production,
) -> ProductionResult:
    """
    Run one day of production.

    Facilities only run while the player has positive cash. With no cash,
    running facilities are force-paused; manually paused ones stay paused.
    A facility completes at most one cycle per day, however large its
    increment.

    Args:
        facilities: Facilities by commodity id
        inventory: Quantities by commodity id
        cash_available: Cash after today's earlier deductions
        catalog: Commodity lookup
        config: Production constants

    Returns:
        ProductionResult with new facilities/inventory and the day's total cost
    """
    has_cash = cash_available > 0
    next_facilities: Dict[str, ProductionFacility] = {}
    next_inventory = dict(inventory)
    produced: Dict[str, int] = {}
    total_cost = 0.0

    for commodity_id, facility in facilities.items():
        commodity = catalog.get(commodity_id)

        if not (facility.is_producing and has_cash):
            if facility.is_producing:
                # Insolvent: pause until the player restarts it
                facility = replace(facility, is_producing=False)
            next_facilities[commodity_id] = facility
            continue

        total_cost += daily_operating_cost(commodity, facility.level, config)
        progress = facility.progress + progress_increment(facility.level, config)
        if progress >= config.cycle_length:
            next_inventory[commodity_id] = next_inventory.get(commodity_id, 0) + commodity.production_yield
            produced[commodity_id] = commodity.production_yield
            progress = progress % config.cycle_length
        next_facilities[commodity_id] = replace(facility, progress=progress)

    return ProductionResult(
        facilities=next_facilities,
        inventory=next_inventory,
        total_cost=total_cost,
        units_produced=produced,
    )


def describe_facility(
    facility: ProductionFacility,
    commodity: Commodity,
    config: ProductionConfig = CONFIG.production,
) -> Dict[str, object]:
    """Facility plus the cost figures the production panel shows."""
    details = facility.to_dict()
    details.update({
        "upgradeCost": upgrade_cost(commodity, facility.level, config),
        "sellValue": sell_refund(commodity, facility.level, config),
        "dailyCost": daily_operating_cost(commodity, facility.level, config),
        "dailyProgress": progress_increment(facility.level, config),
    })
    return details


