"""
Amortization Module

Pure schedule math for fixed-rate monthly loans: the closed-form payment,
the full amortization schedule, projections from a current balance and the
single next-payment step. No I/O and no shared state.

Every schedule row and every ad-hoc projection goes through _period_step, so
a projection at balance B always agrees with the schedule row seeded at B.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union
from enum import Enum
import calendar

from .currency import Money, money_from, to_decimal
from .exceptions import ComputationError, ValidationError


class PaymentType(Enum):
    """How a debt is repaid"""
    FIXED = "fixed"                   # Equal installments, French method
    INTEREST_ONLY = "interest_only"   # Interest each period, balloon at term end


@dataclass(frozen=True)
class LoanTerms:
    """Origination terms of a debt account. Immutable."""
    original_balance: Money
    apr_rate: Optional[Decimal]         # e.g. 0.035 for 3.5%; None = not configured
    term_months: int
    payment_type: PaymentType
    origination_date: date
    fixed_monthly_payment: Optional[Money] = None

    def __post_init__(self):
        if self.apr_rate is not None and not isinstance(self.apr_rate, Decimal):
            try:
                object.__setattr__(self, 'apr_rate', to_decimal(self.apr_rate))
            except ValueError as e:
                raise ValidationError("apr_rate", str(e))
        if not isinstance(self.payment_type, PaymentType):
            try:
                object.__setattr__(self, 'payment_type', PaymentType(self.payment_type))
            except ValueError:
                raise ValidationError("payment_type", f"Unknown payment type {self.payment_type!r}")

    @property
    def currency(self):
        return self.original_balance.currency

    @property
    def periodic_rate(self) -> Decimal:
        """Monthly rate, APR / 12"""
        if self.apr_rate is None:
            raise ValidationError("apr_rate", "APR is not set")
        return self.apr_rate / Decimal('12')

    @property
    def monthly_payment(self) -> Money:
        """Scheduled payment: the supplied one, else derived from the terms"""
        if self.fixed_monthly_payment is not None:
            return self.fixed_monthly_payment
        if self.payment_type == PaymentType.INTEREST_ONLY:
            return self.original_balance * self.periodic_rate
        return calculate_fixed_monthly_payment(
            self.original_balance, self.apr_rate, self.term_months
        )

    def validate(self) -> None:
        """
        Check the terms can drive a schedule

        Raises:
            ValidationError: naming the first offending field
        """
        if isinstance(self.term_months, bool) or not isinstance(self.term_months, int):
            raise ValidationError("term_months", "Term must be an integer number of months")
        if self.term_months <= 0:
            raise ValidationError("term_months", f"Term must be positive, got {self.term_months}")
        if self.original_balance.is_negative():
            raise ValidationError("original_balance", "Original balance cannot be negative")
        if self.apr_rate is None:
            raise ValidationError("apr_rate", "APR is required")
        if self.apr_rate < 0:
            raise ValidationError("apr_rate", f"APR cannot be negative, got {self.apr_rate}")
        if self.fixed_monthly_payment is not None:
            if self.fixed_monthly_payment.currency != self.currency:
                raise ValidationError(
                    "fixed_monthly_payment",
                    "Payment currency must match original balance currency"
                )
            if self.fixed_monthly_payment.is_negative():
                raise ValidationError("fixed_monthly_payment", "Payment cannot be negative")


@dataclass
class LoanState:
    """Mutable repayment state of a debt account"""
    current_balance: Money
    remaining_months: int
    last_auto_update_date: Optional[date] = None


@dataclass(frozen=True)
class ScheduledPayment:
    """Single period of an amortization schedule"""
    index: int
    due_date: date
    principal_payment: Money
    interest_payment: Money
    total_payment: Money
    remaining_balance_after: Money


@dataclass(frozen=True)
class AmortizationSchedule:
    """Schedule rows plus their totals"""
    payments: List[ScheduledPayment]
    monthly_payment: Money
    total_interest: Money
    total_principal: Money
    total_payments: Money
    periodic_rate: Decimal


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping the day to the target month's length"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def due_date_for_period(terms: LoanTerms, period: int) -> date:
    """Due date of a 1-based period: `period` months after origination"""
    return add_months(terms.origination_date, period)


def calculate_fixed_monthly_payment(principal: Money, apr_rate: Decimal, term_months: int) -> Money:
    """
    Equal-installment payment for a fully amortizing loan

    payment = P * r / (1 - (1 + r) ** -n), or P / n when r == 0

    Args:
        principal: Amount borrowed
        apr_rate: Annual rate as a decimal fraction
        term_months: Number of monthly periods

    Returns:
        Payment rounded to the currency minor unit
    """
    if term_months <= 0:
        raise ValidationError("term_months", f"Term must be positive, got {term_months}")

    periodic_rate = apr_rate / Decimal('12')
    if periodic_rate == Decimal('0'):
        payment = principal / Decimal(term_months)
    else:
        discount = (Decimal('1') + periodic_rate) ** -term_months
        payment = Money(principal.amount * periodic_rate / (Decimal('1') - discount), principal.currency)

    if principal.is_positive():
        # A tiny balance over a long term must not round down to a zero payment
        payment = max(payment, Money(principal.currency.minor_unit, principal.currency))
    return payment


def _period_step(
    terms: LoanTerms,
    balance: Money,
    payment: Money,
    is_final: bool
) -> Tuple[Money, Money]:
    """
    One period of the recurrence: returns (principal, interest)

    Interest accrues on the opening balance. Principal never exceeds the
    balance, and the final period retires whatever is left. Only a supplied
    fixed payment can fail to cover the interest; a computed one amortizes by
    construction.
    """
    interest = balance * terms.periodic_rate

    if terms.payment_type == PaymentType.INTEREST_ONLY:
        principal = balance if is_final else Money.zero(balance.currency)
        return principal, interest

    supplied = terms.fixed_monthly_payment is not None
    if supplied and balance.is_positive() and payment <= interest:
        raise ComputationError(
            f"Payment {payment.to_string()} does not cover interest "
            f"{interest.to_string()} on balance {balance.to_string()}; "
            f"the loan would never amortize"
        )

    if is_final:
        # Rounding residual from earlier periods is absorbed here
        return balance, interest
    principal = min(payment - interest, balance)
    return max(principal, Money.zero(balance.currency)), interest


def _run_schedule(
    terms: LoanTerms,
    start_balance: Money,
    first_period: int,
    last_period: int
) -> List[ScheduledPayment]:
    payment = terms.monthly_payment
    balance = start_balance
    schedule = []

    for period in range(first_period, last_period + 1):
        principal, interest = _period_step(terms, balance, payment, period == last_period)
        balance = balance - principal
        schedule.append(ScheduledPayment(
            index=period,
            due_date=due_date_for_period(terms, period),
            principal_payment=principal,
            interest_payment=interest,
            total_payment=principal + interest,
            remaining_balance_after=balance
        ))

    return schedule


def generate_schedule(terms: LoanTerms) -> List[ScheduledPayment]:
    """
    Full theoretical payment table from origination

    Args:
        terms: Loan terms

    Returns:
        term_months ScheduledPayment rows, the last one leaving a zero balance

    Raises:
        ValidationError: Non-positive term, negative balance or rate
        ComputationError: Fixed payment does not cover first-period interest
    """
    terms.validate()
    return _run_schedule(terms, terms.original_balance, 1, terms.term_months)


def build_schedule(terms: LoanTerms) -> AmortizationSchedule:
    """Generate the schedule and total it"""
    return summarize_schedule(terms, generate_schedule(terms))


def project_schedule(terms: LoanTerms, state: LoanState) -> List[ScheduledPayment]:
    """
    Re-run the recurrence from the current balance over the remaining months

    Period numbers and due dates continue from where the loan stands, so the
    projection lines up with the origination schedule.
    """
    terms.validate()
    if state.remaining_months <= 0:
        return []
    first_period = max(1, terms.term_months - state.remaining_months + 1)
    last_period = first_period + state.remaining_months - 1
    return _run_schedule(terms, state.current_balance, first_period, last_period)


def summarize_schedule(terms: LoanTerms, payments: List[ScheduledPayment]) -> AmortizationSchedule:
    zero = Money.zero(terms.currency)
    total_interest = sum((p.interest_payment for p in payments), zero)
    total_principal = sum((p.principal_payment for p in payments), zero)
    return AmortizationSchedule(
        payments=payments,
        monthly_payment=terms.monthly_payment,
        total_interest=total_interest,
        total_principal=total_principal,
        total_payments=total_interest + total_principal,
        periodic_rate=terms.periodic_rate
    )


def next_payment(
    terms: Optional[LoanTerms],
    current_balance: Union[Money, Decimal, str],
    period: int = 1
) -> Optional[ScheduledPayment]:
    """
    Interest/principal split of the next period from an arbitrary balance

    Args:
        terms: Loan terms, or None for an account not configured as a debt
        current_balance: Outstanding balance, which may have drifted from the
            schedule because of manual payments
        period: 1-based period number, used for the due date and to decide
            whether this is the final (balloon/residual) period

    Returns:
        The next ScheduledPayment, or None when the terms lack an APR

    Raises:
        ComputationError: Fixed payment does not cover the interest
    """
    if terms is None or terms.apr_rate is None:
        return None
    terms.validate()

    balance = money_from(current_balance, terms.currency)
    if balance.is_negative():
        raise ValidationError("current_balance", "Balance cannot be negative")

    principal, interest = _period_step(
        terms, balance, terms.monthly_payment, period >= terms.term_months
    )
    return ScheduledPayment(
        index=period,
        due_date=due_date_for_period(terms, period),
        principal_payment=principal,
        interest_payment=interest,
        total_payment=principal + interest,
        remaining_balance_after=balance - principal
    )
