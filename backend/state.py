"""
Game State

The single root snapshot of a game. Snapshots are immutable: every
transition builds a new GameState and leaves the previous one untouched,
so callers can keep and diff old snapshots freely.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from catalog import Catalog, DEFAULT_CATALOG
from config import CONFIG, SimulationConfig
from events import GlobalEvent
from ledger import CycleLedger, LedgerSnapshot, LifetimeStats
from market import MarketPrice, initial_prices
from production import ProductionFacility, describe_facility, total_invested


@dataclass(frozen=True)
class GameState:
    """Everything the simulation knows about one session."""

    cash: float
    debt: float
    day: int
    cycle_progress: int  # [0, cycle_length)
    inventory: Dict[str, int]
    facilities: Dict[str, ProductionFacility]
    prices: Dict[str, MarketPrice]
    cycle_ledger: CycleLedger = field(default_factory=CycleLedger)
    last_ledger: LedgerSnapshot = field(default_factory=LedgerSnapshot)
    lifetime: LifetimeStats = field(default_factory=LifetimeStats)
    active_event: Optional[GlobalEvent] = None
    tax_rate: float = 0.15
    next_tax_day: int = 30
    last_tax_bill: Optional[float] = None
    last_tax_day: Optional[int] = None
    is_game_over: bool = False

    def __post_init__(self):
        """Validate invariants after initialization."""
        if self.debt < 0:
            raise ValueError(f"debt cannot be negative, got {self.debt}")
        if self.day < 1:
            raise ValueError(f"day must be >= 1, got {self.day}")
        for commodity_id, quantity in self.inventory.items():
            if quantity < 0:
                raise ValueError(f"inventory of {commodity_id} cannot be negative, got {quantity}")


def init_state(
    catalog: Catalog = DEFAULT_CATALOG,
    initial_cash: Optional[float] = None,
    config: SimulationConfig = CONFIG,
) -> GameState:
    """
    Create the day-1 snapshot of a new session.

    Args:
        catalog: Commodities in play
        initial_cash: Starting cash (defaults to the session config)
        config: Simulation configuration

    Returns:
        Fresh GameState with zeroed inventory, facilities and stats
    """
    if initial_cash is None:
        initial_cash = config.session.initial_cash
    return GameState(
        cash=float(initial_cash),
        debt=0.0,
        day=1,
        cycle_progress=0,
        inventory={c.id: 0 for c in catalog},
        facilities={},
        prices=initial_prices(catalog),
        tax_rate=config.fiscal.initial_tax_rate,
        next_tax_day=config.fiscal.tax_cycle_days,
    )


# ---------- Derived figures ----------

def inventory_value(state: GameState, prices: Optional[Dict[str, MarketPrice]] = None) -> float:
    """Held quantities at current prices (or at ``prices`` when given)."""
    if prices is None:
        prices = state.prices
    return sum(qty * prices[cid].current_price for cid, qty in state.inventory.items())


def infrastructure_value(
    state: GameState,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> float:
    """Replacement cost of every facility at its current level."""
    return sum(
        total_invested(catalog.get(cid), facility.level, config.production)
        for cid, facility in state.facilities.items()
    )


def net_equity(
    state: GameState,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> float:
    """cash + inventory value + infrastructure value - debt."""
    return (
        state.cash
        + inventory_value(state)
        + infrastructure_value(state, catalog, config)
        - state.debt
    )


def to_dict(
    state: GameState,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> Dict[str, Any]:
    """
    Serialize a snapshot for the view layer.

    Includes the derived figures so the client never recomputes them.
    """
    return {
        "cash": state.cash,
        "debt": state.debt,
        "day": state.day,
        "cycleProgress": state.cycle_progress,
        "inventory": [
            {"commodityId": cid, "quantity": qty} for cid, qty in state.inventory.items()
        ],
        "facilities": [
            describe_facility(f, catalog.get(cid), config.production)
            for cid, f in state.facilities.items()
        ],
        "prices": {cid: p.to_dict() for cid, p in state.prices.items()},
        "lastLedger": state.last_ledger.to_dict(),
        "lifetime": state.lifetime.to_dict(),
        "activeEvent": state.active_event.to_dict() if state.active_event else None,
        "taxRate": state.tax_rate,
        "nextTaxDay": state.next_tax_day,
        "lastTaxBill": state.last_tax_bill,
        "isGameOver": state.is_game_over,
        "inventoryValue": inventory_value(state),
        "infrastructureValue": infrastructure_value(state, catalog, config),
        "netEquity": net_equity(state, catalog, config),
        "estimatedTax": max(0.0, net_equity(state, catalog, config) * state.tax_rate),
    }
