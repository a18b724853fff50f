"""
Economy Simulation Engine

Transition functions over GameState snapshots:

- advance_day: the per-tick transition, called once per simulated day
- trade / unlock_facility / upgrade_facility / sell_facility /
  toggle_production / take_loan / repay: player actions

Every function is total. An action whose preconditions fail returns the very
same snapshot it was given; nothing raises for bad player input. Once a
snapshot is marked game over, every transition returns it unchanged.

Randomness only enters through the ``rng`` argument, so a seeded
numpy Generator replays a session exactly.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Mapping, Optional

import numpy as np

from catalog import Catalog, DEFAULT_CATALOG, EVENT_TEMPLATES
from config import CONFIG, SimulationConfig
from credit import accrue_interest, can_take_loan, is_valid_repayment
from events import maybe_trigger_event, tick_event
from fiscal import assess_tax, is_tax_due
from ledger import roll_cycle
from market import reprice_all
from production import (
    ProductionFacility,
    run_production,
    sell_refund,
    unlock_cost,
    upgrade_cost,
)
from state import GameState, infrastructure_value, inventory_value, net_equity

logger = logging.getLogger(__name__)


def _reject(state: GameState, action: str, reason: str) -> GameState:
    logger.debug(f"Rejected {action} on day {state.day}: {reason}")
    return state


def check_bankruptcy(
    state: GameState,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> GameState:
    """Mark the snapshot game over once net equity falls below the threshold."""
    if state.is_game_over:
        return state
    if net_equity(state, catalog, config) < config.session.bankruptcy_threshold:
        return replace(state, is_game_over=True)
    return state


# ---------- Tick ----------

def advance_day(
    state: GameState,
    rng: Optional[np.random.Generator] = None,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> GameState:
    """
    Advance the simulation by one day.

    Order of operations (fixed, for reproducibility):
        1. day counter
        2. event countdown, then possible new event
        3. reprice every commodity under the updated event
        4. wealth tax, if due
        5. interest on debt
        6. production for every facility
        7. debit the day's total production cost once
        8. roll the cycle ledger at the end of a cycle
        9. bankruptcy check

    Args:
        state: Previous snapshot (not modified)
        rng: Seedable random source; a fresh unseeded one if omitted
        catalog: Commodities in play
        config: Simulation configuration

    Returns:
        New snapshot for the next day
    """
    if state.is_game_over:
        return state
    if rng is None:
        rng = np.random.default_rng()

    # 1. Calendar
    day = state.day + 1
    cycle_length = config.ledger.cycle_length_days
    cycle_progress = state.cycle_progress + 1

    # 2. Events
    event = tick_event(state.active_event)
    event = maybe_trigger_event(
        event, cycle_progress, cycle_length, rng, EVENT_TEMPLATES, config.events
    )

    # 3. Prices
    prices = reprice_all(state.prices, catalog, event, rng, config.market)

    cash = state.cash
    lifetime = state.lifetime
    tax_rate = state.tax_rate
    next_tax_day = state.next_tax_day
    last_tax_bill = state.last_tax_bill
    last_tax_day = state.last_tax_day

    # 4. Tax on net worth, valued at today's prices
    if is_tax_due(day, next_tax_day):
        net_worth = (
            cash
            + inventory_value(state, prices)
            + infrastructure_value(state, catalog, config)
            - state.debt
        )
        assessment = assess_tax(net_worth, tax_rate, next_tax_day, rng, config.fiscal)
        cash -= assessment.amount
        lifetime = lifetime.add(total_taxes_paid=assessment.amount)
        tax_rate = assessment.next_rate
        next_tax_day = assessment.next_tax_day
        last_tax_bill = assessment.amount
        last_tax_day = day

    # 5. Interest
    debt, interest = accrue_interest(state.debt, config.credit)
    lifetime = lifetime.add(total_interest_paid=interest)

    # 6-7. Production, debited once
    result = run_production(state.facilities, state.inventory, cash, catalog, config.production)
    cash -= result.total_cost
    lifetime = lifetime.add(total_production_costs=result.total_cost)
    cycle_ledger = state.cycle_ledger.record_production(result.total_cost)

    # 8. Accounting cycle
    last_ledger = state.last_ledger
    if cycle_progress >= cycle_length:
        cycle_ledger, last_ledger = roll_cycle(cycle_ledger)
        cycle_progress = 0

    next_state = replace(
        state,
        cash=cash,
        debt=debt,
        day=day,
        cycle_progress=cycle_progress,
        inventory=result.inventory,
        facilities=result.facilities,
        prices=prices,
        cycle_ledger=cycle_ledger,
        last_ledger=last_ledger,
        lifetime=lifetime,
        active_event=event,
        tax_rate=tax_rate,
        next_tax_day=next_tax_day,
        last_tax_bill=last_tax_bill,
        last_tax_day=last_tax_day,
    )
    return check_bankruptcy(next_state, catalog, config)


# ---------- Player actions ----------

def trade(
    state: GameState,
    commodity_id: str,
    quantity: int,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> GameState:
    """
    Buy (quantity > 0) or sell (quantity < 0) at the current price.

    Trades fill completely or not at all.
    """
    if state.is_game_over:
        return _reject(state, "trade", "game over")
    if commodity_id not in state.prices or commodity_id not in state.inventory:
        return _reject(state, "trade", f"unknown commodity {commodity_id!r}")
    if isinstance(quantity, bool) or not isinstance(quantity, (int, np.integer)) or quantity == 0:
        return _reject(state, "trade", f"invalid quantity {quantity!r}")

    quantity = int(quantity)
    price = state.prices[commodity_id].current_price
    owned = state.inventory[commodity_id]
    inventory = dict(state.inventory)

    if quantity > 0:
        cost = quantity * price
        if state.cash < cost:
            return _reject(state, "trade", f"cash {state.cash:.2f} < cost {cost:.2f}")
        inventory[commodity_id] = owned + quantity
        next_state = replace(
            state,
            cash=state.cash - cost,
            inventory=inventory,
            cycle_ledger=state.cycle_ledger.record_purchase(cost),
            lifetime=state.lifetime.add(total_market_purchases=cost),
        )
    else:
        sold = -quantity
        if owned < sold:
            return _reject(state, "trade", f"owned {owned} < {sold} {commodity_id}")
        proceeds = sold * price
        inventory[commodity_id] = owned - sold
        next_state = replace(
            state,
            cash=state.cash + proceeds,
            inventory=inventory,
            cycle_ledger=state.cycle_ledger.record_sale(proceeds),
            lifetime=state.lifetime.add(total_sales=proceeds),
        )
    return check_bankruptcy(next_state, catalog, config)


def unlock_facility(
    state: GameState,
    commodity_id: str,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> GameState:
    """Build a level-1 facility, running from day one."""
    if state.is_game_over:
        return _reject(state, "unlock_facility", "game over")
    if commodity_id not in catalog:
        return _reject(state, "unlock_facility", f"unknown commodity {commodity_id!r}")
    if commodity_id in state.facilities:
        return _reject(state, "unlock_facility", f"{commodity_id} facility already exists")

    cost = unlock_cost(catalog.get(commodity_id), config.production)
    if state.cash < cost:
        return _reject(state, "unlock_facility", f"cash {state.cash:.2f} < cost {cost:.2f}")

    facilities = dict(state.facilities)
    facilities[commodity_id] = ProductionFacility(commodity_id, level=1, is_producing=True, progress=0.0)
    next_state = replace(
        state,
        cash=state.cash - cost,
        facilities=facilities,
        lifetime=state.lifetime.add(total_construction=cost),
    )
    return check_bankruptcy(next_state, catalog, config)


def upgrade_facility(
    state: GameState,
    commodity_id: str,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> GameState:
    """Raise a facility one level; progress carries over."""
    if state.is_game_over:
        return _reject(state, "upgrade_facility", "game over")
    facility = state.facilities.get(commodity_id)
    if facility is None:
        return _reject(state, "upgrade_facility", f"no {commodity_id!r} facility")

    cost = upgrade_cost(catalog.get(commodity_id), facility.level, config.production)
    if state.cash < cost:
        return _reject(state, "upgrade_facility", f"cash {state.cash:.2f} < cost {cost}")

    facilities = dict(state.facilities)
    facilities[commodity_id] = replace(facility, level=facility.level + 1)
    next_state = replace(
        state,
        cash=state.cash - cost,
        facilities=facilities,
        lifetime=state.lifetime.add(total_upgrades=cost),
    )
    return check_bankruptcy(next_state, catalog, config)


def sell_facility(
    state: GameState,
    commodity_id: str,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> GameState:
    """Demolish a facility for 70% of everything invested in it."""
    if state.is_game_over:
        return _reject(state, "sell_facility", "game over")
    facility = state.facilities.get(commodity_id)
    if facility is None:
        return _reject(state, "sell_facility", f"no {commodity_id!r} facility")

    refund = sell_refund(catalog.get(commodity_id), facility.level, config.production)
    facilities = {cid: f for cid, f in state.facilities.items() if cid != commodity_id}
    next_state = replace(state, cash=state.cash + refund, facilities=facilities)
    return check_bankruptcy(next_state, catalog, config)


def toggle_production(
    state: GameState,
    commodity_id: str,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> GameState:
    if state.is_game_over:
        return _reject(state, "toggle_production", "game over")
    facility = state.facilities.get(commodity_id)
    if facility is None:
        return _reject(state, "toggle_production", f"no {commodity_id!r} facility")

    facilities = dict(state.facilities)
    facilities[commodity_id] = replace(facility, is_producing=not facility.is_producing)
    return replace(state, facilities=facilities)


def take_loan(
    state: GameState,
    amount: float,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> GameState:
    """Borrow a menu amount; only one loan may be outstanding."""
    if state.is_game_over:
        return _reject(state, "take_loan", "game over")
    if not can_take_loan(state.debt, amount, config.credit):
        return _reject(state, "take_loan", f"amount {amount} with debt {state.debt:.2f}")

    next_state = replace(state, cash=state.cash + amount, debt=state.debt + amount)
    return check_bankruptcy(next_state, catalog, config)


def repay(
    state: GameState,
    amount: float,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> GameState:
    """Pay down principal; amount must lie in (0, min(cash, debt)]."""
    if state.is_game_over:
        return _reject(state, "repay", "game over")
    if not is_valid_repayment(state.cash, state.debt, amount):
        return _reject(state, "repay", f"amount {amount} (cash {state.cash:.2f}, debt {state.debt:.2f})")

    next_state = replace(
        state,
        cash=state.cash - amount,
        debt=max(0.0, state.debt - amount),
    )
    return check_bankruptcy(next_state, catalog, config)


# ---------- Reducer ----------

_COMMODITY_ACTIONS: Dict[str, Callable[..., GameState]] = {
    "unlock_facility": unlock_facility,
    "upgrade_facility": upgrade_facility,
    "sell_facility": sell_facility,
    "toggle_production": toggle_production,
}

ACTION_TYPES = ("advance_day", "trade", "take_loan", "repay") + tuple(_COMMODITY_ACTIONS)


def apply_action(
    state: GameState,
    action: Mapping[str, Any],
    rng: Optional[np.random.Generator] = None,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> GameState:
    """
    Reducer form: (state, action) -> state.

    ``action`` is a mapping with a ``type`` key naming one of ACTION_TYPES,
    plus ``commodity_id``, ``quantity`` or ``amount`` as the action needs.
    The tick itself is the ``advance_day`` action.
    """
    kind = action.get("type")
    if kind == "advance_day":
        return advance_day(state, rng, catalog, config)
    if kind == "trade":
        return trade(state, action.get("commodity_id", ""), action.get("quantity", 0), catalog, config)
    if kind == "take_loan":
        return take_loan(state, action.get("amount", 0.0), catalog, config)
    if kind == "repay":
        return repay(state, action.get("amount", 0.0), catalog, config)
    if kind in _COMMODITY_ACTIONS:
        return _COMMODITY_ACTIONS[kind](state, action.get("commodity_id", ""), catalog, config)
    raise ValueError(f"unknown action type {kind!r}")
