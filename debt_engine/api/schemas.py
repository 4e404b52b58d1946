"""
Pydantic schemas for API requests and responses
"""

from datetime import date
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from ..currency import Money, Currency, to_decimal
from ..amortization import LoanTerms, ScheduledPayment
from ..ledger import LedgerEntry
from ..payments import PaymentSplit, parse_payment_date
from ..exceptions import ValidationError


def parse_iso_date(value: str, field: str) -> date:
    """ISO YYYY-MM-DD string to date, reporting failures against `field`"""
    try:
        return parse_payment_date(value)
    except ValidationError as e:
        raise ValidationError(field, e.message)


class MoneyModel(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    currency: str = Field(..., description="Currency code (USD, EUR, etc.)")

    def to_money(self, field: str = "amount") -> Money:
        if self.currency.upper() not in Currency.__members__:
            raise ValidationError(field, f"Unsupported currency {self.currency}")
        try:
            amount = to_decimal(self.amount)
        except ValueError as e:
            raise ValidationError(field, str(e))
        return Money(amount, Currency[self.currency.upper()])

    @classmethod
    def from_money(cls, money: Money) -> 'MoneyModel':
        return cls(amount=str(money.amount), currency=money.currency.code)


def money_dict(money: Optional[Money]) -> Optional[Dict[str, str]]:
    if money is None:
        return None
    return MoneyModel.from_money(money).model_dump()


# Account schemas
class LoanTermsModel(BaseModel):
    original_balance: MoneyModel
    apr_rate: Optional[str] = Field(None, description="Annual rate as a decimal fraction, e.g. \"0.035\"")
    term_months: int
    payment_type: str = Field("fixed", description="Payment type (fixed, interest_only)")
    origination_date: str  # ISO date string
    fixed_monthly_payment: Optional[MoneyModel] = None

    def to_loan_terms(self) -> LoanTerms:
        apr_rate = None
        if self.apr_rate is not None:
            try:
                apr_rate = to_decimal(self.apr_rate)
            except ValueError as e:
                raise ValidationError("apr_rate", str(e))

        return LoanTerms(
            original_balance=self.original_balance.to_money("original_balance"),
            apr_rate=apr_rate,
            term_months=self.term_months,
            payment_type=self.payment_type,
            origination_date=parse_iso_date(self.origination_date, "origination_date"),
            fixed_monthly_payment=(
                self.fixed_monthly_payment.to_money("fixed_monthly_payment")
                if self.fixed_monthly_payment else None
            )
        )


class CreateAccountRequest(BaseModel):
    name: str
    terms: LoanTermsModel
    current_balance: Optional[MoneyModel] = None
    remaining_months: Optional[int] = None
    auto_update_enabled: bool = False


# Payment schemas
class RecordPaymentRequest(BaseModel):
    amount: MoneyModel
    date: str  # ISO date string
    payment_type: str = Field("mixed", description="Payment intent (principal, interest, mixed)")
    principal_amount: Optional[MoneyModel] = None
    interest_amount: Optional[MoneyModel] = None
    notes: Optional[str] = None

    def to_split(self) -> Optional[PaymentSplit]:
        """Explicit breakdown; both portions must be given together"""
        if self.principal_amount is None and self.interest_amount is None:
            return None
        if self.principal_amount is None or self.interest_amount is None:
            raise ValidationError(
                "split", "principal_amount and interest_amount must be given together"
            )
        return PaymentSplit(
            principal=self.principal_amount.to_money("principal_amount"),
            interest=self.interest_amount.to_money("interest_amount")
        )


class AutoUpdateRequest(BaseModel):
    billing_date: str  # ISO date string


# Response helpers
def scheduled_payment_dict(payment: Optional[ScheduledPayment]) -> Optional[Dict[str, Any]]:
    if payment is None:
        return None
    return {
        "index": payment.index,
        "due_date": payment.due_date.isoformat(),
        "principal_payment": money_dict(payment.principal_payment),
        "interest_payment": money_dict(payment.interest_payment),
        "total_payment": money_dict(payment.total_payment),
        "remaining_balance_after": money_dict(payment.remaining_balance_after)
    }


def ledger_entry_dict(entry: LedgerEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "date": entry.entry_date.isoformat(),
        "kind": entry.kind.value,
        "amount": money_dict(entry.total_amount),
        "principal_portion": money_dict(entry.principal_portion),
        "interest_portion": money_dict(entry.interest_portion),
        "resulting_balance": money_dict(entry.resulting_balance),
        "notes": entry.notes,
        "created_at": entry.created_at.isoformat()
    }
