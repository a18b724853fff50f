"""
Ledger / Accounting

Two views of the player's cash flows:
- a cycle ledger of running counters, snapshotted and reset every cycle
- lifetime totals that never reset
"""

from dataclasses import dataclass, replace
from typing import Dict, Tuple


@dataclass(frozen=True, slots=True)
class CycleLedger:
    """Running counters for the current accounting cycle."""

    sales: float = 0.0
    purchases: float = 0.0
    production_costs: float = 0.0

    def record_sale(self, amount: float) -> "CycleLedger":
        return replace(self, sales=self.sales + amount)

    def record_purchase(self, amount: float) -> "CycleLedger":
        return replace(self, purchases=self.purchases + amount)

    def record_production(self, amount: float) -> "CycleLedger":
        return replace(self, production_costs=self.production_costs + amount)


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    """Totals of the last completed cycle."""

    sales: float = 0.0
    purchases: float = 0.0
    production_costs: float = 0.0
    net: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "sales": self.sales,
            "purchases": self.purchases,
            "productionCosts": self.production_costs,
            "net": self.net,
        }


@dataclass(frozen=True, slots=True)
class LifetimeStats:
    total_sales: float = 0.0
    total_market_purchases: float = 0.0
    total_production_costs: float = 0.0
    total_construction: float = 0.0
    total_upgrades: float = 0.0
    total_interest_paid: float = 0.0
    total_taxes_paid: float = 0.0

    def add(self, **amounts: float) -> "LifetimeStats":
        """Accumulate into the named totals; negative amounts are rejected."""
        updates = {}
        for name, amount in amounts.items():
            if amount < 0:
                raise ValueError(f"lifetime {name} cannot decrease, got {amount}")
            updates[name] = getattr(self, name) + amount
        return replace(self, **updates)

    @property
    def total_costs(self) -> float:
        return (
            self.total_market_purchases
            + self.total_production_costs
            + self.total_construction
            + self.total_upgrades
            + self.total_interest_paid
            + self.total_taxes_paid
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalSales": self.total_sales,
            "totalMarketPurchases": self.total_market_purchases,
            "totalProductionCosts": self.total_production_costs,
            "totalConstruction": self.total_construction,
            "totalUpgrades": self.total_upgrades,
            "totalInterestPaid": self.total_interest_paid,
            "totalTaxesPaid": self.total_taxes_paid,
            "lifetimeNet": lifetime_net(self),
        }


def lifetime_net(stats: LifetimeStats) -> float:
    return stats.total_sales - stats.total_costs


def roll_cycle(ledger: CycleLedger) -> Tuple[CycleLedger, LedgerSnapshot]:
    """Close the cycle: snapshot the counters and start a fresh ledger."""
    snapshot = LedgerSnapshot(
        sales=ledger.sales,
        purchases=ledger.purchases,
        production_costs=ledger.production_costs,
        net=ledger.sales - ledger.purchases - ledger.production_costs,
    )
    return CycleLedger(), snapshot
