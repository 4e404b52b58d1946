"""
Payment Module

Records real-world payments against a debt account: splits the amount into
principal and interest according to the payment intent, reduces the balance,
approximates the remaining term and appends a ledger entry.
"""

from decimal import Decimal
from datetime import datetime, date
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union
from enum import Enum

from .currency import Money, money_from
from .storage import StorageInterface
from .accounts import AccountStore, DebtAccount
from .amortization import LoanState, PaymentType, next_payment
from .ledger import LedgerStore, LedgerEntry, LedgerEntryKind
from .exceptions import ValidationError
from .logging_config import get_logger, log_action


class PaymentIntent(Enum):
    """What the payer meant the money to cover"""
    PRINCIPAL = "principal"
    INTEREST = "interest"
    MIXED = "mixed"


@dataclass(frozen=True)
class PaymentSplit:
    """Caller-supplied principal/interest breakdown"""
    principal: Money
    interest: Money


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of a posted payment"""
    new_balance: Money
    principal_paid: Money
    interest_paid: Money
    total_paid: Money
    remaining_months: int
    ledger_entry_id: str


def parse_payment_date(value: Union[date, str]) -> date:
    """Accept a date or an ISO YYYY-MM-DD string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise ValidationError("date", f"Expected a YYYY-MM-DD date, got {value!r}")


def allocate_payment(
    account: DebtAccount,
    amount: Money,
    intent: PaymentIntent,
    split: Optional[PaymentSplit] = None
) -> Tuple[Money, Money, bool]:
    """
    Split a payment into principal and interest

    Returns:
        (principal, interest, matches_schedule). Principal is always clamped
        to the current balance; matches_schedule is True when a Mixed amount
        equals the next scheduled payment exactly.
    """
    balance = account.state.current_balance
    zero = Money.zero(amount.currency)

    if intent == PaymentIntent.PRINCIPAL:
        return min(amount, balance), zero, False

    if intent == PaymentIntent.INTEREST:
        return zero, amount, False

    if split is not None:
        return min(split.principal, balance), split.interest, False

    period = account.terms.term_months - account.state.remaining_months + 1
    projected = next_payment(account.terms, balance, period=max(1, period))
    if projected is None or projected.total_payment.is_zero():
        # Nothing to prorate against: principal first, remainder is interest
        principal = min(amount, balance)
        return principal, amount - principal, False

    ratio = amount.ratio(projected.total_payment)
    principal = min(projected.principal_payment * ratio, balance)
    return principal, amount - principal, amount == projected.total_payment


def approximate_remaining_months(account: DebtAccount, principal_paid: Money) -> int:
    """
    Shorten the remaining term by whole monthly payments covered by principal

    This is floor(principal / monthly_payment), an estimate that drifts from
    the true remaining term; it is not recomputed from the schedule.
    """
    months = account.state.remaining_months
    if not principal_paid.is_positive() or months <= 0:
        return months

    terms = account.terms
    if terms.fixed_monthly_payment is not None:
        monthly_payment = terms.fixed_monthly_payment
    elif terms.payment_type == PaymentType.FIXED and terms.apr_rate is not None:
        monthly_payment = terms.monthly_payment
    else:
        return months

    if not monthly_payment.is_positive():
        return months
    return max(0, months - principal_paid.whole_multiples_of(monthly_payment))


class PaymentProcessor:
    """
    Applies payments to debt accounts

    Each payment is one read-modify-write of the account, serialized per
    account with storage.account_lock.
    """

    def __init__(
        self,
        storage: StorageInterface,
        account_store: AccountStore,
        ledger: LedgerStore
    ):
        self.storage = storage
        self.account_store = account_store
        self.ledger = ledger
        self.logger = get_logger("debt_engine.payments")

    def apply_payment(
        self,
        account_id: str,
        amount: Union[Money, Decimal, str],
        payment_date: Union[date, str],
        intent: Union[PaymentIntent, str] = PaymentIntent.MIXED,
        split: Optional[PaymentSplit] = None,
        notes: Optional[str] = None
    ) -> PaymentResult:
        """
        Record a payment against a debt account

        Args:
            account_id: Debt account ID
            amount: Amount paid, must be positive
            payment_date: Date the payment was made
            intent: Principal, Interest or Mixed (default)
            split: Explicit principal/interest breakdown for Mixed payments
            notes: Memo stored on the ledger entry

        Returns:
            PaymentResult with the new balance and the split applied

        Raises:
            NotFoundError: Unknown or non-debt account
            ValidationError: Non-positive amount, malformed date or split
        """
        payment_date = parse_payment_date(payment_date)
        if not isinstance(intent, PaymentIntent):
            try:
                intent = PaymentIntent(intent)
            except ValueError:
                raise ValidationError("intent", f"Unknown payment intent {intent!r}")

        with self.storage.account_lock(account_id), self.storage.atomic():
            account = self.account_store.get_debt_account(account_id)
            amount = self._validate_amount(account, amount)
            split = self._validate_split(account, amount, split)

            principal, interest, matches_schedule = allocate_payment(account, amount, intent, split)
            balance = account.state.current_balance
            new_balance = max(Money.zero(balance.currency), balance - principal)
            remaining_months = approximate_remaining_months(account, principal)

            kind = LedgerEntryKind.SCHEDULED_PAYMENT if matches_schedule else LedgerEntryKind.MANUAL_PAYMENT
            entry = self.ledger.append(
                account_id=account.id,
                entry_date=payment_date,
                total_amount=amount,
                principal_portion=principal,
                interest_portion=interest,
                resulting_balance=new_balance,
                kind=kind,
                notes=notes or (
                    f"Payment: {principal.to_string()} principal, "
                    f"{interest.to_string()} interest"
                )
            )

            self.account_store.update_state(account, LoanState(
                current_balance=new_balance,
                remaining_months=remaining_months,
                last_auto_update_date=account.state.last_auto_update_date
            ))

        log_action(
            self.logger, "info",
            f"Payment of {amount.to_string()} recorded",
            account_id=account_id,
            action="apply_payment",
            extra={
                "intent": intent.value,
                "kind": kind.value,
                "principal_paid": str(principal.amount),
                "interest_paid": str(interest.amount),
                "old_balance": str(balance.amount),
                "new_balance": str(new_balance.amount),
                "remaining_months": remaining_months,
                "payment_date": payment_date.isoformat()
            }
        )

        return PaymentResult(
            new_balance=new_balance,
            principal_paid=principal,
            interest_paid=interest,
            total_paid=amount,
            remaining_months=remaining_months,
            ledger_entry_id=entry.id
        )

    def payment_history(self, account_id: str, limit: Optional[int] = None) -> List[LedgerEntry]:
        """Recorded payments for a debt account, newest first"""
        self.account_store.get_debt_account(account_id)
        return self.ledger.payment_history(account_id, limit=limit)

    def _validate_amount(self, account: DebtAccount, amount) -> Money:
        try:
            amount = money_from(amount, account.currency)
        except ValueError as e:
            raise ValidationError("amount", str(e))
        if not amount.is_positive():
            raise ValidationError("amount", "Payment amount must be positive")
        return amount

    def _validate_split(
        self,
        account: DebtAccount,
        amount: Money,
        split: Optional[PaymentSplit]
    ) -> Optional[PaymentSplit]:
        if split is None:
            return None
        try:
            principal = money_from(split.principal, account.currency)
            interest = money_from(split.interest, account.currency)
        except ValueError as e:
            raise ValidationError("split", str(e))
        if principal.is_negative() or interest.is_negative():
            raise ValidationError("split", "Principal and interest portions cannot be negative")
        if principal + interest != amount:
            raise ValidationError(
                "split",
                f"Principal {principal.to_string()} and interest {interest.to_string()} "
                f"must add up to the amount paid {amount.to_string()}"
            )
        return PaymentSplit(principal=principal, interest=interest)
