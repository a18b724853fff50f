"""
Credit Subsystem

One loan at a time, picked from a fixed menu. Interest compounds onto the
outstanding debt every day; repayments reduce principal.
"""

from typing import Tuple

from config import CONFIG, CreditConfig


def daily_interest(debt: float, config: CreditConfig = CONFIG.credit) -> float:
    return debt * config.daily_interest_rate


def accrue_interest(debt: float, config: CreditConfig = CONFIG.credit) -> Tuple[float, float]:
    """Return (new_debt, interest_charged) after one day."""
    interest = daily_interest(debt, config)
    return debt + interest, interest


def can_take_loan(debt: float, amount: float, config: CreditConfig = CONFIG.credit) -> bool:
    """Only menu amounts, and only while nothing is owed."""
    return debt <= 0 and amount in config.loan_options


def max_repayment(cash: float, debt: float) -> float:
    return max(0.0, min(cash, debt))


def is_valid_repayment(cash: float, debt: float, amount: float) -> bool:
    return 0 < amount <= max_repayment(cash, debt)
