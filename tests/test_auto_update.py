"""
Test suite for the monthly auto-update

The billing date is always passed in, so every test pins the calendar.
"""

import pytest
from decimal import Decimal
from datetime import date

from debt_engine.currency import Money, Currency
from debt_engine.storage import InMemoryStorage
from debt_engine.config import load_config
from debt_engine.engine import DebtEngine
from debt_engine.amortization import LoanTerms, PaymentType
from debt_engine.ledger import LedgerEntryKind
from debt_engine.auto_update import payment_day_in_month, same_billing_period
from debt_engine.exceptions import StateError, NotFoundError


def usd(amount: str) -> Money:
    return Money(Decimal(amount), Currency.USD)


def short_loan(origination=date(2024, 1, 15), apr="0.12") -> LoanTerms:
    return LoanTerms(
        original_balance=usd("1000.00"),
        apr_rate=Decimal(apr) if apr is not None else None,
        term_months=3,
        payment_type=PaymentType.FIXED,
        origination_date=origination
    )


class TestAutoUpdate:
    """Test advancing one account by one billing period"""

    def setup_method(self):
        self.engine = DebtEngine(storage=InMemoryStorage(), config=load_config())
        self.account = self.engine.create_account(
            "Personal Loan", short_loan(), auto_update_enabled=True
        )

    def test_first_update_posts_scheduled_payment(self):
        """Test the first period's interest and principal are posted"""
        result = self.engine.apply_auto_update(self.account.id, date(2024, 2, 20))

        assert result.applied
        assert result.interest_added == usd("10.00")
        assert result.principal_applied == usd("330.02")
        assert result.new_balance == usd("669.98")
        assert result.remaining_months == 2
        assert result.payment_date == date(2024, 2, 15)

        account = self.engine.get_account(self.account.id)
        assert account.state.current_balance == usd("669.98")
        assert account.state.last_auto_update_date == date(2024, 2, 15)

    def test_second_update_in_same_month_is_noop(self):
        """Test idempotency within one billing period"""
        self.engine.apply_auto_update(self.account.id, date(2024, 2, 15))
        result = self.engine.apply_auto_update(self.account.id, date(2024, 2, 28))

        assert not result.applied
        assert result.interest_added.is_zero()
        assert result.new_balance == usd("669.98")
        assert self.engine.get_account(self.account.id).state.remaining_months == 2

    def test_runs_to_payoff(self):
        """Test three monthly updates retire the loan"""
        for billing_date in (date(2024, 2, 15), date(2024, 3, 15), date(2024, 4, 15)):
            result = self.engine.apply_auto_update(self.account.id, billing_date)

        assert result.interest_added == usd("3.37")
        assert result.principal_applied == usd("336.66")
        assert result.new_balance.is_zero()
        assert result.remaining_months == 0

        with pytest.raises(StateError):
            self.engine.apply_auto_update(self.account.id, date(2024, 5, 15))

    def test_ledger_entry_recorded(self):
        """Test an auto-update ledger entry with an APR note"""
        self.engine.apply_auto_update(self.account.id, date(2024, 2, 15))

        entries = self.engine.ledger.history(self.account.id)
        assert len(entries) == 1
        assert entries[0].kind == LedgerEntryKind.AUTO_UPDATE
        assert entries[0].entry_date == date(2024, 2, 15)
        assert entries[0].notes == "Automatic monthly payment applied on 2024-02-15: 12.00% APR"
        # Auto-updates are not user payments
        assert self.engine.payment_history(self.account.id) == []

    def test_before_payment_day_raises(self):
        """Test the update waits for the loan's payment day"""
        with pytest.raises(StateError, match="due in 5 days"):
            self.engine.apply_auto_update(self.account.id, date(2024, 2, 10))

    def test_payment_day_not_enforced(self):
        """Test the payment-day wait can be switched off"""
        engine = DebtEngine(storage=InMemoryStorage(), config=load_config(enforce_payment_day=False))
        account = engine.create_account("Personal Loan", short_loan(), auto_update_enabled=True)

        result = engine.apply_auto_update(account.id, date(2024, 2, 1))
        assert result.applied
        assert result.payment_date == date(2024, 2, 15)

    def test_origination_month_raises(self):
        """Test nothing is due in the month the loan started"""
        with pytest.raises(StateError):
            self.engine.apply_auto_update(self.account.id, date(2024, 1, 31))

    def test_disabled_account_raises(self):
        account = self.engine.create_account("Manual Loan", short_loan())
        with pytest.raises(StateError, match="not enabled"):
            self.engine.apply_auto_update(account.id, date(2024, 2, 15))

    def test_missing_apr_raises(self):
        account = self.engine.create_account("Family Loan", short_loan(apr=None), auto_update_enabled=True)
        with pytest.raises(StateError, match="APR"):
            self.engine.apply_auto_update(account.id, date(2024, 2, 15))

    def test_unknown_account(self):
        with pytest.raises(NotFoundError):
            self.engine.apply_auto_update("missing", date(2024, 2, 15))

    def test_follows_manual_prepayment(self):
        """Test the update projects from the drifted balance"""
        self.engine.apply_payment(self.account.id, usd("500.00"), date(2024, 1, 20), intent="principal")
        result = self.engine.apply_auto_update(self.account.id, date(2024, 2, 15))

        # remaining months dropped to 2 after the prepayment, so this is period 2
        assert result.interest_added == usd("5.00")
        assert result.principal_applied == usd("335.02")
        assert result.new_balance == usd("164.98")
        assert result.remaining_months == 1


class TestBatchAutoUpdate:
    """Test running the update over every eligible account"""

    def setup_method(self):
        self.engine = DebtEngine(storage=InMemoryStorage(), config=load_config())
        self.first = self.engine.create_account("A Loan", short_loan(), auto_update_enabled=True)
        self.second = self.engine.create_account(
            "B Loan", short_loan(origination=date(2024, 1, 25)), auto_update_enabled=True
        )
        self.manual = self.engine.create_account("C Loan", short_loan())

    def test_eligible_accounts(self):
        eligible = self.engine.auto_update_processor.eligible_accounts()
        assert [a.id for a in eligible] == [self.first.id, self.second.id]

    def test_one_failure_does_not_stop_others(self):
        """Test per-account errors are collected"""
        report = self.engine.run_auto_updates(date(2024, 2, 20))

        assert report.updated == [self.first.id]
        assert self.second.id in report.errors
        assert "due in 5 days" in report.errors[self.second.id]
        assert self.manual.id not in report.errors

    def test_rerun_skips_updated_accounts(self):
        """Test a second run in the same month skips"""
        self.engine.run_auto_updates(date(2024, 2, 26))
        report = self.engine.run_auto_updates(date(2024, 2, 27))

        assert report.updated == []
        assert report.skipped == [self.first.id, self.second.id]

    def test_explicit_account_ids(self):
        report = self.engine.run_auto_updates(date(2024, 2, 26), account_ids=[self.manual.id])
        assert report.updated == []
        assert self.manual.id in report.errors


class TestBillingPeriodHelpers:
    """Test date helpers"""

    def test_payment_day_clamps(self):
        assert payment_day_in_month(date(2024, 1, 31), date(2024, 2, 10)) == date(2024, 2, 29)
        assert payment_day_in_month(date(2023, 11, 5), date(2024, 2, 1)) == date(2024, 2, 5)

    def test_same_billing_period(self):
        assert same_billing_period(date(2024, 2, 1), date(2024, 2, 29))
        assert not same_billing_period(date(2024, 1, 31), date(2024, 2, 1))
        assert not same_billing_period(None, date(2024, 2, 1))
