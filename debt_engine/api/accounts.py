"""
Debt account endpoints
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query, status

from .deps import get_engine
from .schemas import (
    AutoUpdateRequest, CreateAccountRequest, RecordPaymentRequest,
    ledger_entry_dict, money_dict, parse_iso_date, scheduled_payment_dict
)
from ..accounts import DebtAccount
from ..engine import DebtEngine


router = APIRouter()


def account_dict(account: DebtAccount) -> Dict[str, Any]:
    terms = account.terms
    return {
        "id": account.id,
        "name": account.name,
        "category": account.category.value,
        "current_balance": money_dict(account.state.current_balance),
        "remaining_months": account.state.remaining_months,
        "auto_update_enabled": account.auto_update_enabled,
        "last_auto_update_date": (
            account.state.last_auto_update_date.isoformat()
            if account.state.last_auto_update_date else None
        ),
        "terms": {
            "original_balance": money_dict(terms.original_balance),
            "apr_rate": str(terms.apr_rate) if terms.apr_rate is not None else None,
            "term_months": terms.term_months,
            "payment_type": terms.payment_type.value,
            "origination_date": terms.origination_date.isoformat(),
            "fixed_monthly_payment": money_dict(terms.fixed_monthly_payment)
        },
        "created_at": account.created_at.isoformat(),
        "updated_at": account.updated_at.isoformat()
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_account(
    request: CreateAccountRequest,
    engine: DebtEngine = Depends(get_engine)
):
    """Create a debt account"""
    account = engine.create_account(
        name=request.name,
        terms=request.terms.to_loan_terms(),
        current_balance=(
            request.current_balance.to_money("current_balance")
            if request.current_balance else None
        ),
        remaining_months=request.remaining_months,
        auto_update_enabled=request.auto_update_enabled
    )
    return account_dict(account)


@router.get("/{account_id}")
async def get_account(
    account_id: str,
    engine: DebtEngine = Depends(get_engine)
):
    """Get debt account details"""
    return account_dict(engine.get_account(account_id))


@router.get("/{account_id}/amortization")
async def get_amortization(
    account_id: str,
    engine: DebtEngine = Depends(get_engine)
):
    """Projected schedule from the current balance plus the next payment"""
    account = engine.get_account(account_id)
    schedule = engine.account_schedule(account_id)
    upcoming = engine.account_next_payment(account_id)

    return {
        "account_id": account.id,
        "current_balance": money_dict(account.state.current_balance),
        "remaining_months": account.state.remaining_months,
        "periodic_rate": str(schedule.periodic_rate),
        "monthly_payment": money_dict(schedule.monthly_payment),
        "total_interest": money_dict(schedule.total_interest),
        "total_principal": money_dict(schedule.total_principal),
        "total_payments": money_dict(schedule.total_payments),
        "next_payment": scheduled_payment_dict(upcoming),
        "schedule": [scheduled_payment_dict(p) for p in schedule.payments]
    }


@router.post("/{account_id}/payment")
async def record_payment(
    account_id: str,
    request: RecordPaymentRequest,
    engine: DebtEngine = Depends(get_engine)
):
    """Record a payment against a debt account"""
    result = engine.apply_payment(
        account_id,
        request.amount.to_money("amount"),
        parse_iso_date(request.date, "date"),
        intent=request.payment_type,
        split=request.to_split(),
        notes=request.notes
    )
    return {
        "ledger_entry_id": result.ledger_entry_id,
        "new_balance": money_dict(result.new_balance),
        "principal_paid": money_dict(result.principal_paid),
        "interest_paid": money_dict(result.interest_paid),
        "total_paid": money_dict(result.total_paid),
        "remaining_months": result.remaining_months,
        "message": "Payment recorded successfully"
    }


@router.get("/{account_id}/payment")
async def get_payment_history(
    account_id: str,
    limit: Optional[int] = Query(None, ge=1),
    engine: DebtEngine = Depends(get_engine)
):
    """Recorded payments, newest first"""
    entries = engine.payment_history(account_id, limit=limit)
    return {
        "account_id": account_id,
        "payments": [ledger_entry_dict(entry) for entry in entries]
    }


@router.post("/{account_id}/auto-update")
async def apply_auto_update(
    account_id: str,
    request: AutoUpdateRequest,
    engine: DebtEngine = Depends(get_engine)
):
    """Post the monthly scheduled payment for one billing period"""
    result = engine.apply_auto_update(
        account_id, parse_iso_date(request.billing_date, "billing_date")
    )
    return {
        "account_id": account_id,
        "applied": result.applied,
        "new_balance": money_dict(result.new_balance),
        "interest_added": money_dict(result.interest_added),
        "principal_applied": money_dict(result.principal_applied),
        "payment_date": result.payment_date.isoformat() if result.payment_date else None,
        "remaining_months": result.remaining_months
    }
