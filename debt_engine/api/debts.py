"""
Portfolio endpoints across debt accounts
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from .deps import get_engine
from .schemas import AutoUpdateRequest, money_dict, parse_iso_date
from ..engine import DebtEngine


router = APIRouter()


@router.get("/summary")
async def get_debt_summary(
    account_id: Optional[List[str]] = Query(None),
    engine: DebtEngine = Depends(get_engine)
):
    """Payoff progress per account plus portfolio totals"""
    if account_id:
        portfolio = engine.summarize(account_id)
    else:
        portfolio = engine.summarize_all()

    debts = []
    for summary in portfolio.summaries:
        debts.append({
            "account_id": summary.account_id,
            "name": summary.account_name,
            "current_balance": money_dict(summary.current_balance),
            "original_balance": money_dict(summary.original_balance),
            "total_principal_paid": money_dict(summary.total_principal_paid),
            "total_interest_paid": money_dict(summary.total_interest_paid),
            "percent_paid_off": str(summary.percent_paid_off),
            "projected_payoff_date": (
                summary.projected_payoff_date.isoformat()
                if summary.projected_payoff_date else None
            ),
            "monthly_payment": money_dict(summary.monthly_payment),
            "interest_this_month": money_dict(summary.interest_this_month),
            "principal_this_month": money_dict(summary.principal_this_month),
            "total_interest_remaining": money_dict(summary.total_interest_remaining),
            "auto_update_enabled": summary.auto_update_enabled,
            "last_auto_update": (
                summary.last_auto_update.isoformat() if summary.last_auto_update else None
            )
        })

    return {
        "debts": debts,
        "totals": {
            "account_count": portfolio.account_count,
            "total_original_balance": str(portfolio.total_original_balance),
            "total_current_balance": str(portfolio.total_current_balance),
            "total_principal_paid": str(portfolio.total_principal_paid),
            "total_interest_paid": str(portfolio.total_interest_paid),
            "total_interest_remaining": str(portfolio.total_interest_remaining),
            "percent_paid_off": str(portfolio.percent_paid_off),
            "projected_payoff_date": (
                portfolio.projected_payoff_date.isoformat()
                if portfolio.projected_payoff_date else None
            )
        }
    }


@router.post("/auto-update")
async def run_auto_updates(
    request: AutoUpdateRequest,
    engine: DebtEngine = Depends(get_engine)
):
    """Apply the monthly update to every eligible debt account"""
    report = engine.run_auto_updates(parse_iso_date(request.billing_date, "billing_date"))
    return {
        "billing_date": request.billing_date,
        "updated": report.updated,
        "skipped": report.skipped,
        "errors": report.errors,
        "message": f"{len(report.updated)} accounts updated"
    }
