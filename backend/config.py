"""
Simulation Configuration

Centralizes all tunable parameters for the trading simulation.
Every subsystem reads its constants from here instead of hard-coding them.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass
class MarketConfig:
    """Price model constants."""
    history_length: int = 20  # Sliding window kept for charting
    price_floor_fraction: float = 0.1  # Price never drops below 10% of base
    mean_reversion_rate: float = 0.1  # Gravity toward target, per day


@dataclass
class EventConfig:
    """Global event scheduling."""
    trigger_threshold: float = 0.3  # Draw must exceed this (~70% chance)
    min_duration_days: int = 3
    max_duration_days: int = 7


@dataclass
class ProductionConfig:
    """Facility construction and output parameters."""

    # Capital costs
    unlock_cost_multiplier: float = 25.0  # unlock = base_price * 25
    upgrade_cost_growth: float = 1.8  # upgrade(level) = unlock * 1.8^level
    sell_refund_fraction: float = 0.7

    # Operating costs
    operating_cost_growth: float = 1.4  # +40% daily cost per level

    # Output cycle
    base_progress_per_day: float = 5.0
    progress_per_level: float = 10.0
    cycle_length: float = 100.0


@dataclass
class FiscalConfig:
    """Wealth tax parameters."""
    initial_tax_rate: float = 0.15
    tax_cycle_days: int = 30
    min_tax_rate: float = 0.10
    max_tax_rate: float = 0.20
    notification_seconds: float = 5.0  # How long the view shows a tax bill


@dataclass
class CreditConfig:
    """Loan menu and interest."""
    daily_interest_rate: float = 0.015  # 1.5% compounded daily
    loan_options: Tuple[float, ...] = (5000.0, 10000.0, 25000.0)


@dataclass
class LedgerConfig:
    """Accounting window."""
    cycle_length_days: int = 10


@dataclass
class SessionConfig:
    """Game session and scheduler settings."""
    initial_cash: float = 5000.0
    tick_rate_ms: int = 3000  # Wall-clock period of one simulated day
    bankruptcy_threshold: float = -1000.0  # Net equity below this ends the game
    seed: Optional[int] = None


@dataclass
class SimulationConfig:
    """Master configuration for the entire simulation."""

    market: MarketConfig = field(default_factory=MarketConfig)
    events: EventConfig = field(default_factory=EventConfig)
    production: ProductionConfig = field(default_factory=ProductionConfig)
    fiscal: FiscalConfig = field(default_factory=FiscalConfig)
    credit: CreditConfig = field(default_factory=CreditConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    def __post_init__(self):
        """Validation of cross-field bounds."""
        if self.market.history_length < 2:
            raise ValueError("history_length must be at least 2")
        if not (0.0 < self.market.price_floor_fraction <= 1.0):
            raise ValueError("price_floor_fraction must be in (0, 1]")
        if not (0.0 <= self.market.mean_reversion_rate <= 1.0):
            raise ValueError("mean_reversion_rate must be in [0, 1]")

        if not (0.0 <= self.events.trigger_threshold <= 1.0):
            raise ValueError("trigger_threshold must be in [0, 1]")
        if self.events.min_duration_days < 1:
            raise ValueError("min_duration_days must be positive")
        if self.events.max_duration_days < self.events.min_duration_days:
            raise ValueError("max_duration_days cannot be below min_duration_days")

        if self.production.cycle_length <= 0:
            raise ValueError("cycle_length must be positive")
        if not (0.0 <= self.production.sell_refund_fraction <= 1.0):
            raise ValueError("sell_refund_fraction must be in [0, 1]")

        if not (0.0 <= self.fiscal.min_tax_rate <= self.fiscal.max_tax_rate <= 1.0):
            raise ValueError("tax rate band must satisfy 0 <= min <= max <= 1")
        if not (0.0 <= self.fiscal.initial_tax_rate <= 1.0):
            raise ValueError("initial_tax_rate must be in [0, 1]")
        if self.fiscal.tax_cycle_days <= 0:
            raise ValueError("tax_cycle_days must be positive")

        if self.credit.daily_interest_rate < 0:
            raise ValueError("daily_interest_rate cannot be negative")
        if any(amount <= 0 for amount in self.credit.loan_options):
            raise ValueError("loan_options must all be positive")

        if self.ledger.cycle_length_days <= 0:
            raise ValueError("cycle_length_days must be positive")

        if self.session.initial_cash < 0:
            raise ValueError("initial_cash cannot be negative")
        if self.session.tick_rate_ms <= 0:
            raise ValueError("tick_rate_ms must be positive")


# Global configuration instance
CONFIG = SimulationConfig()
