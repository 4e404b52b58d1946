"""
Debt Summary Module

Read-only folds over persisted debt accounts and their ledgers: amounts paid
to date, payoff progress and a projected payoff date per account, plus
portfolio totals across accounts.
"""

from decimal import Decimal, ROUND_HALF_UP
from datetime import date
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .currency import Money
from .accounts import AccountStore, DebtAccount
from .amortization import ScheduledPayment, next_payment, project_schedule
from .ledger import LedgerEntry, LedgerStore
from .config import EngineConfig
from .exceptions import ComputationError
from .logging_config import get_logger

logger = get_logger("debt_engine.summary")


@dataclass(frozen=True)
class DebtSummary:
    """Payoff progress of one debt account"""
    account_id: str
    account_name: str
    current_balance: Money
    original_balance: Money
    total_principal_paid: Money
    total_interest_paid: Money
    percent_paid_off: Decimal
    projected_payoff_date: Optional[date]
    monthly_payment: Money
    interest_this_month: Money
    principal_this_month: Money
    total_interest_remaining: Money
    auto_update_enabled: bool
    last_auto_update: Optional[date]


@dataclass(frozen=True)
class PortfolioSummary:
    """Totals across a set of debt accounts"""
    account_count: int
    total_original_balance: Decimal
    total_current_balance: Decimal
    total_principal_paid: Decimal
    total_interest_paid: Decimal
    total_interest_remaining: Decimal
    percent_paid_off: Decimal
    projected_payoff_date: Optional[date]
    summaries: List[DebtSummary] = field(default_factory=list)


def percent_paid_off(original: Money, current: Money, precision: int = 4) -> Decimal:
    """(original - current) / original, as a fraction; 0 for a zero original"""
    if not original.is_positive():
        return Decimal('0')
    fraction = (original.amount - current.amount) / original.amount
    return fraction.quantize(Decimal('0.1') ** precision, rounding=ROUND_HALF_UP)


def projected_payoff_date(projection: List[ScheduledPayment]) -> Optional[date]:
    """Due date of the first projected period that leaves a zero balance"""
    for payment in projection:
        if payment.remaining_balance_after.is_zero():
            return payment.due_date
    return None


def summarize_account(
    account: DebtAccount,
    entries: Iterable[LedgerEntry],
    precision: int = 4
) -> DebtSummary:
    """Fold one account's ledger and projected schedule into a DebtSummary"""
    terms = account.terms
    state = account.state
    zero = Money.zero(account.currency)

    entries = list(entries)
    principal_paid = sum((e.principal_portion for e in entries), zero)
    interest_paid = sum((e.interest_portion for e in entries), zero)

    projection: List[ScheduledPayment] = []
    upcoming: Optional[ScheduledPayment] = None
    if terms.apr_rate is not None and state.current_balance.is_positive():
        period = max(1, terms.term_months - state.remaining_months + 1)
        try:
            projection = project_schedule(terms, state)
            upcoming = next_payment(terms, state.current_balance, period=period)
        except ComputationError as e:
            logger.warning(f"Cannot project payoff for account {account.id}: {e}")
            projection = []
            upcoming = None

    if terms.apr_rate is not None:
        monthly_payment = terms.monthly_payment
    else:
        monthly_payment = terms.fixed_monthly_payment or zero

    return DebtSummary(
        account_id=account.id,
        account_name=account.name,
        current_balance=state.current_balance,
        original_balance=terms.original_balance,
        total_principal_paid=principal_paid,
        total_interest_paid=interest_paid,
        percent_paid_off=percent_paid_off(terms.original_balance, state.current_balance, precision),
        projected_payoff_date=projected_payoff_date(projection),
        monthly_payment=monthly_payment,
        interest_this_month=upcoming.interest_payment if upcoming else zero,
        principal_this_month=upcoming.principal_payment if upcoming else zero,
        total_interest_remaining=sum((p.interest_payment for p in projection), zero),
        auto_update_enabled=account.auto_update_enabled,
        last_auto_update=state.last_auto_update_date
    )


def aggregate(summaries: List[DebtSummary], precision: int = 4) -> PortfolioSummary:
    """
    Sum per-account summaries

    Amounts are summed as plain Decimals, so accounts in different
    currencies are added at face value. Percent paid off is weighted by
    original balance; the projected payoff date is the latest one.
    """
    total_original = sum((s.original_balance.amount for s in summaries), Decimal('0'))
    total_current = sum((s.current_balance.amount for s in summaries), Decimal('0'))

    payoff_dates = [s.projected_payoff_date for s in summaries if s.projected_payoff_date]

    percent = Decimal('0')
    if total_original > 0:
        percent = ((total_original - total_current) / total_original).quantize(
            Decimal('0.1') ** precision, rounding=ROUND_HALF_UP
        )

    return PortfolioSummary(
        account_count=len(summaries),
        total_original_balance=total_original,
        total_current_balance=total_current,
        total_principal_paid=sum((s.total_principal_paid.amount for s in summaries), Decimal('0')),
        total_interest_paid=sum((s.total_interest_paid.amount for s in summaries), Decimal('0')),
        total_interest_remaining=sum((s.total_interest_remaining.amount for s in summaries), Decimal('0')),
        percent_paid_off=percent,
        projected_payoff_date=max(payoff_dates) if payoff_dates else None,
        summaries=list(summaries)
    )


class SummaryAggregator:
    """Builds debt summaries from the account and ledger stores. Never writes."""

    def __init__(self, account_store: AccountStore, ledger: LedgerStore, config: EngineConfig):
        self.account_store = account_store
        self.ledger = ledger
        self.config = config

    def summarize_account(self, account_id: str) -> DebtSummary:
        account = self.account_store.get_debt_account(account_id)
        return summarize_account(
            account, self.ledger.history(account.id), self.config.percent_precision
        )

    def summarize(self, account_ids: Iterable[str]) -> PortfolioSummary:
        """
        Summaries for the given debt accounts plus their totals

        Raises:
            NotFoundError: If any id is unknown or not a debt account
        """
        summaries = [self.summarize_account(account_id) for account_id in account_ids]
        return aggregate(summaries, self.config.percent_precision)

    def summarize_all(self) -> PortfolioSummary:
        """Summaries for every debt account in the store"""
        summaries = [
            summarize_account(account, self.ledger.history(account.id), self.config.percent_precision)
            for account in self.account_store.list_debt_accounts()
        ]
        return aggregate(summaries, self.config.percent_precision)
