"""
Unit tests for the fiscal, credit and ledger subsystems
"""

import numpy as np
import pytest

from credit import accrue_interest, can_take_loan, is_valid_repayment, max_repayment
from fiscal import assess_tax, compute_tax_bill, is_tax_due
from ledger import CycleLedger, LifetimeStats, lifetime_net, roll_cycle


class TestFiscal:
    def test_due_on_and_after_tax_day(self):
        assert not is_tax_due(29, 30)
        assert is_tax_due(30, 30)
        assert is_tax_due(31, 30)

    def test_bill_is_never_negative(self):
        assert compute_tax_bill(-5000.0, 0.15) == 0.0
        assert abs(compute_tax_bill(10000.0, 0.15) - 1500.0) < 1e-9

    def test_assessment_schedules_next_cycle(self):
        rng = np.random.default_rng(5)
        assessment = assess_tax(5000.0, 0.15, 30, rng)

        assert abs(assessment.amount - 750.0) < 1e-9
        assert assessment.next_tax_day == 60
        assert 0.10 <= assessment.next_rate <= 0.20


class TestCredit:
    def test_interest_compounds(self):
        debt = 5000.0
        for _ in range(10):
            debt, _ = accrue_interest(debt)
        assert abs(debt - 5000.0 * 1.015 ** 10) < 1e-6

    def test_zero_debt_is_noop(self):
        assert accrue_interest(0.0) == (0.0, 0.0)

    def test_loan_menu_and_single_loan(self):
        assert can_take_loan(0.0, 5000.0)
        assert can_take_loan(0.0, 25000)
        assert not can_take_loan(0.0, 7000.0)
        assert not can_take_loan(100.0, 5000.0)

    def test_repayment_bounds(self):
        assert max_repayment(300.0, 1000.0) == 300.0
        assert is_valid_repayment(300.0, 1000.0, 300.0)
        assert not is_valid_repayment(300.0, 1000.0, 301.0)
        assert not is_valid_repayment(300.0, 1000.0, 0.0)
        assert not is_valid_repayment(-50.0, 1000.0, 10.0)


class TestLedger:
    def test_roll_cycle_snapshots_and_resets(self):
        ledger = CycleLedger().record_sale(500.0).record_purchase(200.0).record_production(50.0)
        fresh, snapshot = roll_cycle(ledger)

        assert fresh == CycleLedger()
        assert snapshot.sales == 500.0
        assert snapshot.purchases == 200.0
        assert snapshot.production_costs == 50.0
        assert abs(snapshot.net - 250.0) < 1e-9

    def test_lifetime_add_and_net(self):
        stats = LifetimeStats().add(total_sales=1000.0, total_market_purchases=300.0)
        stats = stats.add(total_taxes_paid=100.0, total_interest_paid=50.0)

        assert stats.total_sales == 1000.0
        assert abs(lifetime_net(stats) - 550.0) < 1e-9

    def test_lifetime_never_decreases(self):
        with pytest.raises(ValueError):
            LifetimeStats().add(total_sales=-1.0)
