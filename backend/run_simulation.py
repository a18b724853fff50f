"""
Run a headless TradeSim session.

A scripted trader plays the game for a number of days: it buys commodities
trading well below base price, sells into rallies, builds facilities when it
can comfortably afford them, and borrows once when cash runs thin.
Progress is printed every 10 days and daily KPIs are exported to SQLite.
"""

import argparse
import json
import logging
import math
import sqlite3
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from catalog import Catalog, DEFAULT_CATALOG
from config import CONFIG, SimulationConfig
from economy import advance_day, take_loan, trade, unlock_facility
from ledger import lifetime_net
from production import unlock_cost
from state import GameState, infrastructure_value, init_state, inventory_value, net_equity

logger = logging.getLogger(__name__)


def scripted_trader(
    state: GameState,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
    buy_below: float = 0.85,
    sell_above: float = 1.15,
    budget_fraction: float = 0.1,
) -> GameState:
    """
    One day of decisions for the headless player.

    Args:
        state: Snapshot after today's tick
        catalog: Commodities in play
        config: Simulation configuration
        buy_below: Buy when price < base * buy_below
        sell_above: Sell everything when price > base * sell_above
        budget_fraction: Share of cash spent per buy order

    Returns:
        Snapshot after all of today's actions
    """
    for commodity in catalog:
        price = state.prices[commodity.id].current_price
        owned = state.inventory[commodity.id]

        if owned > 0 and (price > commodity.base_price * sell_above or state.cash <= 0):
            state = trade(state, commodity.id, -owned, catalog, config)
        elif price < commodity.base_price * buy_below and state.cash > 0:
            quantity = math.floor(state.cash * budget_fraction / price)
            if quantity > 0:
                state = trade(state, commodity.id, quantity, catalog, config)

    # Build the cheapest missing facility once it costs under a third of cash
    missing = [c for c in catalog if c.id not in state.facilities]
    if missing:
        cheapest = min(missing, key=lambda c: unlock_cost(c, config.production))
        if unlock_cost(cheapest, config.production) * 3 < state.cash:
            state = unlock_facility(state, cheapest.id, catalog, config)

    if state.cash < 500 and state.debt <= 0:
        state = take_loan(state, config.credit.loan_options[0], catalog, config)

    return state


def compute_day_metrics(
    state: GameState,
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> Dict[str, float]:
    """Snapshot of the headline figures for one day."""
    price_ratios = np.array(
        [state.prices[c.id].current_price / c.base_price for c in catalog], dtype=float
    )
    return {
        "day": state.day,
        "cash": state.cash,
        "debt": state.debt,
        "inventory_value": inventory_value(state),
        "infrastructure_value": infrastructure_value(state, catalog, config),
        "net_equity": net_equity(state, catalog, config),
        "lifetime_net": lifetime_net(state.lifetime),
        "mean_price_ratio": float(price_ratios.mean()),
        "facilities": len(state.facilities),
        "tax_rate": state.tax_rate,
        "event": state.active_event.name if state.active_event else None,
    }


def init_database(db_path: str):
    """Initialize SQLite database with schema."""
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS daily_metrics (
            day INTEGER PRIMARY KEY,
            cash REAL,
            debt REAL,
            inventory_value REAL,
            infrastructure_value REAL,
            net_equity REAL,
            lifetime_net REAL,
            mean_price_ratio REAL,
            facilities INTEGER,
            tax_rate REAL,
            event TEXT
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS prices (
            day INTEGER,
            commodity_id TEXT,
            price REAL,
            PRIMARY KEY (day, commodity_id)
        )
    """)

    conn.commit()
    conn.close()


def export_day(conn: sqlite3.Connection, state: GameState, metrics: Dict[str, float]) -> None:
    conn.execute(
        """
        INSERT OR REPLACE INTO daily_metrics VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            metrics["day"],
            metrics["cash"],
            metrics["debt"],
            metrics["inventory_value"],
            metrics["infrastructure_value"],
            metrics["net_equity"],
            metrics["lifetime_net"],
            metrics["mean_price_ratio"],
            metrics["facilities"],
            metrics["tax_rate"],
            metrics["event"],
        ),
    )
    conn.executemany(
        "INSERT OR REPLACE INTO prices VALUES (?, ?, ?)",
        [(state.day, cid, p.current_price) for cid, p in state.prices.items()],
    )
    conn.commit()


def summarize(history: List[Dict[str, float]]) -> Dict[str, float]:
    """Aggregate statistics over a run."""
    equity = np.array([h["net_equity"] for h in history], dtype=float)
    cash = np.array([h["cash"] for h in history], dtype=float)
    running_peak = np.maximum.accumulate(equity)
    return {
        "days": len(history),
        "final_net_equity": float(equity[-1]),
        "peak_net_equity": float(equity.max()),
        "mean_cash": float(cash.mean()),
        "median_cash": float(np.median(cash)),
        "max_drawdown": float((running_peak - equity).max()),
    }


def run(
    num_days: int = 365,
    seed: Optional[int] = 42,
    initial_cash: Optional[float] = None,
    export_every: int = 1,
    output_tag: str = "default",
    output_dir: str = "sample_data",
    catalog: Catalog = DEFAULT_CATALOG,
    config: SimulationConfig = CONFIG,
) -> Dict[str, object]:
    """
    Run a headless session and export its metrics.

    Returns:
        Summary dictionary (also written as JSON next to the database)
    """
    print("=" * 80)
    print(f"TRADESIM HEADLESS RUN ({num_days} days, seed={seed})")
    print("=" * 80)

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    db_path = out / f"tradesim_{output_tag}.db"
    if db_path.exists():
        db_path.unlink()
    init_database(str(db_path))
    db_conn = sqlite3.connect(str(db_path))

    rng = np.random.default_rng(seed)
    state = init_state(catalog, initial_cash, config)
    history = [compute_day_metrics(state, catalog, config)]
    export_day(db_conn, state, history[-1])

    print("Day  |      Cash |      Debt | Net Equity | Facilities | Event")
    print("-" * 80)

    start_time = time.time()
    try:
        for _ in range(num_days):
            state = advance_day(state, rng, catalog, config)
            state = scripted_trader(state, catalog, config)
            metrics = compute_day_metrics(state, catalog, config)
            history.append(metrics)

            if state.day % export_every == 0 or state.is_game_over:
                export_day(db_conn, state, metrics)

            if state.day % 10 == 0 or state.is_game_over:
                print(
                    f"{state.day:4d} | {state.cash:9,.0f} | {state.debt:9,.0f} | "
                    f"{metrics['net_equity']:10,.0f} | {len(state.facilities):10d} | "
                    f"{metrics['event'] or '-'}"
                )

            if state.is_game_over:
                print(f"\nBankrupt on day {state.day}")
                break
    finally:
        db_conn.close()

    summary = summarize(history)
    summary.update({
        "seed": seed,
        "bankrupt": state.is_game_over,
        "elapsed_seconds": time.time() - start_time,
        "lifetime": state.lifetime.to_dict(),
    })
    summary_path = out / f"tradesim_{output_tag}_summary.json"
    with open(summary_path, "w") as f:
        json.dump(summary, f, indent=2)

    print()
    print(f"  Database:  {db_path}")
    print(f"  Summary:   {summary_path}")
    return summary


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Run a headless TradeSim session.")
    parser.add_argument("--days", type=int, default=365, help="Number of days to simulate")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--initial-cash", type=float, default=None, help="Starting cash")
    parser.add_argument("--export-every", type=int, default=1, help="Export interval (days)")
    parser.add_argument("--tag", type=str, default="default", help="Output tag for DB/summary filenames")
    parser.add_argument("--output-dir", type=str, default="sample_data", help="Output directory")
    args = parser.parse_args()

    run(
        num_days=args.days,
        seed=args.seed,
        initial_cash=args.initial_cash,
        export_every=args.export_every,
        output_tag=args.tag,
        output_dir=args.output_dir,
    )
