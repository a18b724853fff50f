"""
Fiscal Subsystem

A wealth tax billed every ``tax_cycle_days`` against net worth. The rate for
the following cycle is redrawn after each bill.
"""

import logging
from dataclasses import dataclass

import numpy as np

from config import CONFIG, FiscalConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaxAssessment:
    """A posted tax bill and the schedule for the next one."""

    amount: float
    next_rate: float
    next_tax_day: int


def is_tax_due(day: int, next_tax_day: int) -> bool:
    """``day`` is the day counter after today's increment."""
    return day >= next_tax_day


def compute_tax_bill(net_worth: float, tax_rate: float) -> float:
    """Negative net worth is never billed."""
    return max(0.0, net_worth * tax_rate)


def next_tax_rate(rng: np.random.Generator, config: FiscalConfig = CONFIG.fiscal) -> float:
    return float(rng.uniform(config.min_tax_rate, config.max_tax_rate))


def assess_tax(
    net_worth: float,
    tax_rate: float,
    next_tax_day: int,
    rng: np.random.Generator,
    config: FiscalConfig = CONFIG.fiscal,
) -> TaxAssessment:
    """
    Bill the current cycle and schedule the next.

    Args:
        net_worth: Tax base (cash + inventory + infrastructure - debt)
        tax_rate: Rate in force for this cycle
        next_tax_day: Day this bill was scheduled for
        rng: Seedable random source for the next rate
        config: Fiscal constants

    Returns:
        TaxAssessment with the amount to debit
    """
    amount = compute_tax_bill(net_worth, tax_rate)
    assessment = TaxAssessment(
        amount=amount,
        next_rate=next_tax_rate(rng, config),
        next_tax_day=next_tax_day + config.tax_cycle_days,
    )
    logger.info(
        f"Tax billed: {amount:.2f} at {tax_rate:.1%}; next rate {assessment.next_rate:.1%} "
        f"due day {assessment.next_tax_day}"
    )
    return assessment
