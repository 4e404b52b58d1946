"""
Tests for the account store and ledger persistence
"""

import pytest
from decimal import Decimal
from datetime import date

from debt_engine.currency import Money, Currency
from debt_engine.storage import InMemoryStorage
from debt_engine.accounts import AccountStore, AccountCategory
from debt_engine.amortization import LoanTerms, LoanState, PaymentType
from debt_engine.ledger import LedgerStore, LedgerEntryKind
from debt_engine.exceptions import NotFoundError, ValidationError


def usd(amount: str) -> Money:
    return Money(Decimal(amount), Currency.USD)


def car_loan_terms(apr="0.06") -> LoanTerms:
    return LoanTerms(
        original_balance=usd("18000.00"),
        apr_rate=Decimal(apr) if apr is not None else None,
        term_months=60,
        payment_type=PaymentType.FIXED,
        origination_date=date(2023, 6, 10),
        fixed_monthly_payment=usd("348.00")
    )


class TestAccountStore:
    """Test debt account creation and loading"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.store = AccountStore(self.storage)

    def test_create_defaults_to_original_terms(self):
        """Test a new account starts at the original balance and full term"""
        account = self.store.create_account("Car Loan", car_loan_terms())

        assert account.is_debt
        assert account.state.current_balance == usd("18000.00")
        assert account.state.remaining_months == 60
        assert account.state.last_auto_update_date is None
        assert not account.auto_update_enabled

    def test_round_trip_through_storage(self):
        """Test every field survives persistence"""
        account = self.store.create_account(
            "Car Loan", car_loan_terms(),
            current_balance=usd("12500.55"),
            remaining_months=40,
            auto_update_enabled=True
        )
        account.state = LoanState(
            current_balance=account.state.current_balance,
            remaining_months=40,
            last_auto_update_date=date(2024, 5, 10)
        )
        self.store.save(account)

        loaded = self.store.get_debt_account(account.id)
        assert loaded.name == "Car Loan"
        assert loaded.terms == account.terms
        assert loaded.state == account.state
        assert loaded.auto_update_enabled

    def test_missing_apr_is_stored_as_none(self):
        """Test a debt without a rate can still be tracked"""
        account = self.store.create_account("Family Loan", car_loan_terms(apr=None))
        assert self.store.get_debt_account(account.id).terms.apr_rate is None

    def test_balance_above_original_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.store.create_account("Car Loan", car_loan_terms(), current_balance=usd("18000.01"))
        assert exc_info.value.field == "current_balance"

    def test_balance_currency_must_match(self):
        with pytest.raises(ValidationError):
            self.store.create_account(
                "Car Loan", car_loan_terms(),
                current_balance=Money(Decimal('100'), Currency.EUR)
            )

    def test_negative_remaining_months_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.store.create_account("Car Loan", car_loan_terms(), remaining_months=-1)
        assert exc_info.value.field == "remaining_months"

    def test_invalid_terms_rejected(self):
        """Test terms are validated on creation"""
        terms = LoanTerms(
            original_balance=usd("1000.00"),
            apr_rate=Decimal('0.05'),
            term_months=0,
            payment_type=PaymentType.FIXED,
            origination_date=date(2024, 1, 1)
        )
        with pytest.raises(ValidationError):
            self.store.create_account("Bad", terms)

    def test_unknown_account(self):
        assert self.store.get("missing") is None
        with pytest.raises(NotFoundError):
            self.store.get_debt_account("missing")

    def test_non_debt_account_is_not_found(self):
        """Test banking accounts are not debt accounts"""
        account = self.store.create_account("Checking", None, category=AccountCategory.BANKING)

        assert not account.is_debt
        with pytest.raises(NotFoundError):
            self.store.get_debt_account(account.id)

    def test_list_debt_accounts_sorted_by_name(self):
        """Test listing skips other categories and sorts"""
        self.store.create_account("Student Loan", car_loan_terms())
        self.store.create_account("Car Loan", car_loan_terms())
        self.store.create_account("Savings", None, category=AccountCategory.INVESTMENT)

        names = [account.name for account in self.store.list_debt_accounts()]
        assert names == ["Car Loan", "Student Loan"]


class TestLedgerStore:
    """Test the append-only ledger"""

    def setup_method(self):
        self.ledger = LedgerStore(InMemoryStorage())

    def _append(self, entry_date, kind, account_id="acct_1"):
        return self.ledger.append(
            account_id=account_id,
            entry_date=entry_date,
            total_amount=usd("100.00"),
            principal_portion=usd("90.00"),
            interest_portion=usd("10.00"),
            resulting_balance=usd("910.00"),
            kind=kind,
            notes="memo"
        )

    def test_history_oldest_first(self):
        """Test entries sort by date"""
        self._append(date(2024, 3, 1), LedgerEntryKind.MANUAL_PAYMENT)
        self._append(date(2024, 1, 1), LedgerEntryKind.AUTO_UPDATE)
        self._append(date(2024, 2, 1), LedgerEntryKind.SCHEDULED_PAYMENT)
        self._append(date(2024, 2, 1), LedgerEntryKind.MANUAL_PAYMENT, account_id="acct_2")

        history = self.ledger.history("acct_1")
        assert [e.entry_date for e in history] == [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)]
        assert history[0].notes == "memo"
        assert history[0].principal_portion == usd("90.00")

    def test_payment_history_newest_first_without_auto_updates(self):
        """Test payment history order, filter and limit"""
        self._append(date(2024, 1, 1), LedgerEntryKind.MANUAL_PAYMENT)
        self._append(date(2024, 2, 1), LedgerEntryKind.AUTO_UPDATE)
        self._append(date(2024, 3, 1), LedgerEntryKind.SCHEDULED_PAYMENT)
        self._append(date(2024, 4, 1), LedgerEntryKind.MANUAL_PAYMENT)

        payments = self.ledger.payment_history("acct_1")
        assert [e.entry_date for e in payments] == [date(2024, 4, 1), date(2024, 3, 1), date(2024, 1, 1)]
        assert len(self.ledger.payment_history("acct_1", limit=2)) == 2
