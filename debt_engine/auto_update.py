"""
Auto-Update Module

Advances debt accounts by one billing period on an external cadence: posts
that period's scheduled interest and principal, shortens the remaining term
and stamps the period so a second run in the same month does nothing.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .currency import Money
from .storage import StorageInterface
from .accounts import AccountStore, DebtAccount
from .amortization import LoanState, next_payment, add_months
from .ledger import LedgerStore, LedgerEntryKind
from .config import EngineConfig
from .exceptions import DebtEngineError, StateError
from .logging_config import get_logger, log_action


@dataclass(frozen=True)
class AutoUpdateResult:
    """Outcome of one auto-update call"""
    new_balance: Money
    interest_added: Money
    principal_applied: Money
    applied: bool                       # False when the period was already posted
    payment_date: Optional[date] = None
    remaining_months: int = 0


@dataclass
class AutoUpdateRunReport:
    """Outcome of a batch run over many accounts"""
    updated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)


def payment_day_in_month(origination_date: date, billing_date: date) -> date:
    """The loan's payment day within billing_date's month, clamped to month end"""
    months = (billing_date.year - origination_date.year) * 12 + (billing_date.month - origination_date.month)
    return add_months(origination_date, months)


def same_billing_period(first: Optional[date], second: date) -> bool:
    """Billing periods are calendar months"""
    return first is not None and (first.year, first.month) == (second.year, second.month)


class AutoUpdateProcessor:
    """
    Posts the monthly scheduled payment for accounts with auto-update enabled

    The billing date is always supplied by the caller; nothing here reads the
    wall clock.
    """

    def __init__(
        self,
        storage: StorageInterface,
        account_store: AccountStore,
        ledger: LedgerStore,
        config: EngineConfig
    ):
        self.storage = storage
        self.account_store = account_store
        self.ledger = ledger
        self.config = config
        self.logger = get_logger("debt_engine.auto_update")

    def apply_auto_update(self, account_id: str, billing_date: date) -> AutoUpdateResult:
        """
        Advance one debt account by one billing period

        Args:
            account_id: Debt account ID
            billing_date: Any date inside the billing period being processed

        Returns:
            AutoUpdateResult; applied is False (and interest_added zero) when
            the period had already been posted

        Raises:
            NotFoundError: Unknown or non-debt account
            StateError: Auto-update disabled, APR missing, loan paid off, or
                the payment day has not arrived yet
            ComputationError: Payment does not cover the period's interest
        """
        with self.storage.account_lock(account_id), self.storage.atomic():
            account = self.account_store.get_debt_account(account_id)
            state = account.state
            zero = Money.zero(account.currency)

            if not account.auto_update_enabled:
                raise StateError(f"Auto-update is not enabled for account {account_id}")
            if account.terms.apr_rate is None:
                raise StateError(f"APR is not set for account {account_id}")

            if same_billing_period(state.last_auto_update_date, billing_date):
                self.logger.debug(
                    f"Account {account_id} already updated for "
                    f"{billing_date.year}-{billing_date.month:02d}"
                )
                return AutoUpdateResult(
                    new_balance=state.current_balance,
                    interest_added=zero,
                    principal_applied=zero,
                    applied=False,
                    payment_date=state.last_auto_update_date,
                    remaining_months=state.remaining_months
                )

            if state.remaining_months <= 0 or state.current_balance.is_zero():
                raise StateError(f"Account {account_id} has no remaining term or balance")

            payment_date = payment_day_in_month(account.terms.origination_date, billing_date)
            if payment_date <= account.terms.origination_date:
                raise StateError(
                    f"First payment for account {account_id} is not due before "
                    f"{add_months(account.terms.origination_date, 1).isoformat()}"
                )
            if self.config.enforce_payment_day and billing_date < payment_date:
                days_until = (payment_date - billing_date).days
                raise StateError(
                    f"Next payment for account {account_id} due in {days_until} days "
                    f"({payment_date.isoformat()})"
                )

            period = account.terms.term_months - state.remaining_months + 1
            scheduled = next_payment(account.terms, state.current_balance, period=max(1, period))

            new_state = LoanState(
                current_balance=scheduled.remaining_balance_after,
                remaining_months=state.remaining_months - 1,
                last_auto_update_date=payment_date
            )
            self.ledger.append(
                account_id=account.id,
                entry_date=payment_date,
                total_amount=scheduled.total_payment,
                principal_portion=scheduled.principal_payment,
                interest_portion=scheduled.interest_payment,
                resulting_balance=new_state.current_balance,
                kind=LedgerEntryKind.AUTO_UPDATE,
                notes=(
                    f"Automatic monthly payment applied on {payment_date.isoformat()}: "
                    f"{account.terms.apr_rate * Decimal('100'):.2f}% APR"
                )
            )
            self.account_store.update_state(account, new_state)

        log_action(
            self.logger, "info",
            f"Applied monthly update for account \"{account.name}\": "
            f"{scheduled.interest_payment.to_string()} interest",
            account_id=account_id,
            action="apply_auto_update",
            extra={
                "old_balance": str(state.current_balance.amount),
                "new_balance": str(new_state.current_balance.amount),
                "interest_added": str(scheduled.interest_payment.amount),
                "principal_applied": str(scheduled.principal_payment.amount),
                "remaining_months": new_state.remaining_months,
                "apr_rate": str(account.terms.apr_rate),
                "payment_date": payment_date.isoformat()
            }
        )

        return AutoUpdateResult(
            new_balance=new_state.current_balance,
            interest_added=scheduled.interest_payment,
            principal_applied=scheduled.principal_payment,
            applied=True,
            payment_date=payment_date,
            remaining_months=new_state.remaining_months
        )

    def eligible_accounts(self) -> List[DebtAccount]:
        """Debt accounts with auto-update on, an APR, and months left"""
        return [
            account for account in self.account_store.list_debt_accounts()
            if account.auto_update_enabled
            and account.terms.apr_rate is not None
            and account.state.remaining_months > 0
        ]

    def run_auto_updates(
        self,
        billing_date: date,
        account_ids: Optional[List[str]] = None
    ) -> AutoUpdateRunReport:
        """
        Apply the monthly update to many accounts

        One account failing never stops the others; its error message is
        collected in the report.
        """
        if account_ids is None:
            account_ids = [account.id for account in self.eligible_accounts()]

        report = AutoUpdateRunReport()
        for account_id in account_ids:
            try:
                result = self.apply_auto_update(account_id, billing_date)
            except DebtEngineError as e:
                report.errors[account_id] = str(e)
                continue
            if result.applied:
                report.updated.append(account_id)
            else:
                report.skipped.append(account_id)

        log_action(
            self.logger, "info",
            f"Monthly debt updates completed: {len(report.updated)} accounts updated, "
            f"{len(report.errors)} errors",
            action="run_auto_updates",
            extra={
                "billing_date": billing_date.isoformat(),
                "eligible_accounts": len(account_ids),
                "updated_accounts": len(report.updated),
                "skipped_accounts": len(report.skipped),
                "errors": report.errors or None
            }
        )
        return report
