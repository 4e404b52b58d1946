"""
Debt Engine Facade

Wires the stores, appliers and aggregator around one storage backend and one
explicitly passed configuration.
"""

from decimal import Decimal
from datetime import date
from typing import Iterable, List, Optional, Union

from .currency import Money
from .storage import StorageInterface, InMemoryStorage
from .config import EngineConfig, load_config
from .accounts import AccountStore, AccountCategory, DebtAccount
from .amortization import (
    AmortizationSchedule, LoanTerms, ScheduledPayment,
    generate_schedule, next_payment, project_schedule, summarize_schedule
)
from .ledger import LedgerStore, LedgerEntry
from .payments import PaymentProcessor, PaymentIntent, PaymentSplit, PaymentResult
from .auto_update import AutoUpdateProcessor, AutoUpdateResult, AutoUpdateRunReport
from .summary import SummaryAggregator, PortfolioSummary
from .exceptions import StateError


class DebtEngine:
    """Debt amortization engine with all components initialized"""

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        config: Optional[EngineConfig] = None
    ):
        self.storage = storage or InMemoryStorage()
        self.config = config or load_config()

        self.account_store = AccountStore(self.storage)
        self.ledger = LedgerStore(self.storage)
        self.payment_processor = PaymentProcessor(self.storage, self.account_store, self.ledger)
        self.auto_update_processor = AutoUpdateProcessor(
            self.storage, self.account_store, self.ledger, self.config
        )
        self.summary_aggregator = SummaryAggregator(self.account_store, self.ledger, self.config)

    # Pure calculations

    def generate_schedule(self, terms: LoanTerms) -> List[ScheduledPayment]:
        return generate_schedule(terms)

    def next_payment(
        self,
        terms: Optional[LoanTerms],
        current_balance: Union[Money, Decimal, str]
    ) -> Optional[ScheduledPayment]:
        return next_payment(terms, current_balance)

    # Accounts

    def create_account(
        self,
        name: str,
        terms: Optional[LoanTerms],
        category: AccountCategory = AccountCategory.DEBT,
        current_balance: Optional[Money] = None,
        remaining_months: Optional[int] = None,
        auto_update_enabled: bool = False
    ) -> DebtAccount:
        return self.account_store.create_account(
            name=name,
            terms=terms,
            category=category,
            current_balance=current_balance,
            remaining_months=remaining_months,
            auto_update_enabled=auto_update_enabled,
            currency=self.config.currency
        )

    def get_account(self, account_id: str) -> DebtAccount:
        return self.account_store.get_debt_account(account_id)

    def account_schedule(self, account_id: str) -> AmortizationSchedule:
        """
        Projected schedule from the account's current balance

        Raises:
            NotFoundError: Unknown or non-debt account
            StateError: APR not configured
        """
        account = self.account_store.get_debt_account(account_id)
        if account.terms.apr_rate is None:
            raise StateError(f"APR is not set for account {account_id}")
        return summarize_schedule(account.terms, project_schedule(account.terms, account.state))

    def account_next_payment(self, account_id: str) -> Optional[ScheduledPayment]:
        """Next period from the account's current position in its term"""
        account = self.account_store.get_debt_account(account_id)
        period = max(1, account.terms.term_months - account.state.remaining_months + 1)
        return next_payment(account.terms, account.state.current_balance, period=period)

    # Mutations

    def apply_payment(
        self,
        account_id: str,
        amount: Union[Money, Decimal, str],
        payment_date: Union[date, str],
        intent: Union[PaymentIntent, str] = PaymentIntent.MIXED,
        split: Optional[PaymentSplit] = None,
        notes: Optional[str] = None
    ) -> PaymentResult:
        return self.payment_processor.apply_payment(
            account_id, amount, payment_date, intent=intent, split=split, notes=notes
        )

    def payment_history(self, account_id: str, limit: Optional[int] = None) -> List[LedgerEntry]:
        if limit is None:
            limit = self.config.payment_history_limit
        return self.payment_processor.payment_history(account_id, limit=limit)

    def apply_auto_update(self, account_id: str, billing_date: date) -> AutoUpdateResult:
        return self.auto_update_processor.apply_auto_update(account_id, billing_date)

    def run_auto_updates(
        self,
        billing_date: date,
        account_ids: Optional[List[str]] = None
    ) -> AutoUpdateRunReport:
        return self.auto_update_processor.run_auto_updates(billing_date, account_ids)

    # Reporting

    def summarize(self, account_ids: Iterable[str]) -> PortfolioSummary:
        return self.summary_aggregator.summarize(account_ids)

    def summarize_all(self) -> PortfolioSummary:
        return self.summary_aggregator.summarize_all()
