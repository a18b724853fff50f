"""
Commodity Catalog

Static reference data: the tradeable goods, their economic constants,
and the pool of market-wide events that can hit them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Sequence, Tuple, Union


class CommodityCategory(str, Enum):
    ENERGY = "Energy"
    METAL = "Metal"
    AGRICULTURE = "Agriculture"
    LIVESTOCK = "Livestock"


ALL_CATEGORIES = "ALL"

EventScope = Union[CommodityCategory, str]


@dataclass(frozen=True, slots=True)
class Commodity:
    """
    A tradeable good.

    Production cost is charged per day while a facility is running;
    production yield is credited once per completed production cycle.
    """

    id: str
    name: str
    category: CommodityCategory
    base_price: float
    volatility: float  # [0,1], bounds the daily random shock
    production_cost: float
    production_yield: int
    icon: str = ""

    def __post_init__(self):
        """Validate invariants after initialization."""
        if not self.id:
            raise ValueError("commodity id cannot be empty")
        if not isinstance(self.category, CommodityCategory):
            raise ValueError(f"{self.id}: unknown category {self.category!r}")
        if self.base_price <= 0:
            raise ValueError(f"{self.id}: base_price must be positive, got {self.base_price}")
        if not (0.0 <= self.volatility <= 1.0):
            raise ValueError(f"{self.id}: volatility must be in [0,1], got {self.volatility}")
        if self.production_cost < 0:
            raise ValueError(
                f"{self.id}: production_cost cannot be negative, got {self.production_cost}"
            )
        if self.production_yield < 1:
            raise ValueError(
                f"{self.id}: production_yield must be at least 1, got {self.production_yield}"
            )


@dataclass(frozen=True, slots=True)
class EventTemplate:
    """A global event before it has been given a duration."""

    name: str
    description: str
    category: EventScope  # CommodityCategory or ALL_CATEGORIES
    multiplier: float

    def __post_init__(self):
        if self.multiplier <= 0:
            raise ValueError(f"{self.name}: multiplier must be positive, got {self.multiplier}")
        if self.category != ALL_CATEGORIES and not isinstance(self.category, CommodityCategory):
            raise ValueError(f"{self.name}: unknown category {self.category!r}")


class Catalog:
    """
    Ordered, read-only lookup of commodities by id.

    Iteration order is the order the commodities were supplied in, which is
    also the order prices are drawn each day.
    """

    def __init__(self, commodities: Sequence[Commodity]):
        self._commodities: Tuple[Commodity, ...] = tuple(commodities)
        self._by_id: Dict[str, Commodity] = {}
        for commodity in self._commodities:
            if commodity.id in self._by_id:
                raise ValueError(f"duplicate commodity id {commodity.id!r}")
            self._by_id[commodity.id] = commodity
        if not self._by_id:
            raise ValueError("catalog must contain at least one commodity")

    def __iter__(self) -> Iterator[Commodity]:
        return iter(self._commodities)

    def __len__(self) -> int:
        return len(self._commodities)

    def __contains__(self, commodity_id: object) -> bool:
        return commodity_id in self._by_id

    def get(self, commodity_id: str) -> Commodity:
        """Return the commodity with this id (KeyError if unknown)."""
        return self._by_id[commodity_id]

    @property
    def ids(self) -> List[str]:
        return [c.id for c in self._commodities]


COMMODITIES: Tuple[Commodity, ...] = (
    Commodity("oil", "Crude Oil", CommodityCategory.ENERGY, 80.0, 0.15, 50.0, 10, "🛢️"),
    Commodity("gas", "Natural Gas", CommodityCategory.ENERGY, 4.0, 0.25, 2.0, 50, "🔥"),
    Commodity("gold", "Gold", CommodityCategory.METAL, 2000.0, 0.05, 1500.0, 1, "✨"),
    Commodity("steel", "Steel", CommodityCategory.METAL, 600.0, 0.10, 400.0, 5, "🏗️"),
    Commodity("wheat", "Wheat", CommodityCategory.AGRICULTURE, 250.0, 0.12, 150.0, 20, "🌾"),
    Commodity("corn", "Corn", CommodityCategory.AGRICULTURE, 180.0, 0.10, 100.0, 25, "🌽"),
    Commodity("beef", "Beef", CommodityCategory.LIVESTOCK, 450.0, 0.08, 300.0, 8, "🥩"),
    Commodity("pork", "Pork", CommodityCategory.LIVESTOCK, 320.0, 0.09, 200.0, 12, "🥓"),
)

EVENT_TEMPLATES: Tuple[EventTemplate, ...] = (
    EventTemplate(
        "OPEC Production Cut",
        "Energy prices surge as oil supply is restricted.",
        CommodityCategory.ENERGY,
        2.1,
    ),
    EventTemplate(
        "Global Drought",
        "Crop failures leading to massive grain shortages.",
        CommodityCategory.AGRICULTURE,
        1.8,
    ),
    EventTemplate(
        "Financial Safe Haven",
        "Investors rush to precious metals amid uncertainty.",
        CommodityCategory.METAL,
        1.6,
    ),
    EventTemplate(
        "Livestock Epidemic",
        "Supply chain collapse in meat production.",
        CommodityCategory.LIVESTOCK,
        2.3,
    ),
    EventTemplate(
        "Technological Breakthrough",
        "Efficiency gains lead to market surplus and price drops.",
        ALL_CATEGORIES,
        0.5,
    ),
    EventTemplate(
        "Trade War Escalation",
        "Global tariffs crush industrial demand.",
        CommodityCategory.METAL,
        0.6,
    ),
    EventTemplate(
        "Energy Discovery",
        "New shale reserves discovered, energy prices tank.",
        CommodityCategory.ENERGY,
        0.4,
    ),
)

DEFAULT_CATALOG = Catalog(COMMODITIES)
