"""
Account Store Module

Debt account records (loan terms plus repayment state) and their
persistence over a StorageInterface.
"""

from decimal import Decimal
from datetime import datetime, timezone, date
from dataclasses import dataclass
from typing import Dict, List, Optional
from enum import Enum
import uuid

from .currency import Money, Currency
from .storage import StorageInterface, StorageRecord
from .amortization import LoanTerms, LoanState, PaymentType
from .exceptions import NotFoundError, ValidationError


class AccountCategory(Enum):
    """Account categories; only DEBT accounts carry amortization state"""
    BANKING = "banking"
    INVESTMENT = "investment"
    DEBT = "debt"


@dataclass
class DebtAccount(StorageRecord):
    """Account with optional loan terms and current repayment state"""
    name: str
    category: AccountCategory
    terms: Optional[LoanTerms]
    state: LoanState
    auto_update_enabled: bool = False

    @property
    def is_debt(self) -> bool:
        """Debt category with loan terms configured"""
        return self.category == AccountCategory.DEBT and self.terms is not None

    @property
    def currency(self) -> Currency:
        return self.state.current_balance.currency


class AccountStore:
    """
    Reads and writes debt accounts

    Callers that read-modify-write an account hold
    storage.account_lock(account_id) for the whole cycle.
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.accounts_table = "debt_accounts"

    def create_account(
        self,
        name: str,
        terms: Optional[LoanTerms],
        category: AccountCategory = AccountCategory.DEBT,
        current_balance: Optional[Money] = None,
        remaining_months: Optional[int] = None,
        auto_update_enabled: bool = False,
        currency: Optional[Currency] = None
    ) -> DebtAccount:
        """
        Create and persist an account

        Args:
            name: Display name
            terms: Loan terms; None for non-debt or unconfigured accounts
            category: Account category
            current_balance: Opening balance (defaults to the original balance)
            remaining_months: Months left (defaults to the full term)
            auto_update_enabled: Whether the monthly auto-update may run
            currency: Currency when no terms are given

        Returns:
            Created DebtAccount
        """
        if terms is not None:
            if terms.apr_rate is not None:
                terms.validate()
            elif terms.original_balance.is_negative():
                raise ValidationError("original_balance", "Original balance cannot be negative")
            balance = current_balance if current_balance is not None else terms.original_balance
            months = remaining_months if remaining_months is not None else terms.term_months
            if balance.currency != terms.currency:
                raise ValidationError("current_balance", "Balance currency must match loan currency")
            if balance.is_negative() or balance > terms.original_balance:
                raise ValidationError(
                    "current_balance",
                    "Balance must be between zero and the original balance"
                )
        else:
            balance = current_balance or Money.zero(currency or Currency.USD)
            months = remaining_months or 0

        if months < 0:
            raise ValidationError("remaining_months", "Remaining months cannot be negative")

        now = datetime.now(timezone.utc)
        account = DebtAccount(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            name=name,
            category=category,
            terms=terms,
            state=LoanState(current_balance=balance, remaining_months=months),
            auto_update_enabled=auto_update_enabled
        )
        self.save(account)
        return account

    def get(self, account_id: str) -> Optional[DebtAccount]:
        """Get account by ID"""
        data = self.storage.load(self.accounts_table, account_id)
        if data:
            return self._account_from_dict(data)
        return None

    def get_debt_account(self, account_id: str) -> DebtAccount:
        """
        Get a configured debt account

        Raises:
            NotFoundError: If the account is absent or is not a debt account
        """
        account = self.get(account_id)
        if account is None:
            raise NotFoundError(account_id)
        if not account.is_debt:
            raise NotFoundError(account_id, f"Account {account_id} is not a debt account")
        return account

    def list_debt_accounts(self) -> List[DebtAccount]:
        """All debt accounts, ordered by name"""
        records = self.storage.find(self.accounts_table, {"category": AccountCategory.DEBT.value})
        accounts = [self._account_from_dict(data) for data in records]
        accounts = [account for account in accounts if account.is_debt]
        accounts.sort(key=lambda a: a.name)
        return accounts

    def save(self, account: DebtAccount) -> None:
        self.storage.save(self.accounts_table, account.id, self._account_to_dict(account))

    def update_state(self, account: DebtAccount, state: LoanState) -> DebtAccount:
        """Persist new repayment state for an account"""
        account.state = state
        account.updated_at = datetime.now(timezone.utc)
        self.save(account)
        return account

    def _account_to_dict(self, account: DebtAccount) -> Dict:
        result = {
            'id': account.id,
            'created_at': account.created_at.isoformat(),
            'updated_at': account.updated_at.isoformat(),
            'name': account.name,
            'category': account.category.value,
            'auto_update_enabled': account.auto_update_enabled,
            'terms': None,
            'current_balance_amount': str(account.state.current_balance.amount),
            'current_balance_currency': account.state.current_balance.currency.code,
            'remaining_months': account.state.remaining_months,
            'last_auto_update_date': None,
        }

        if account.state.last_auto_update_date:
            result['last_auto_update_date'] = account.state.last_auto_update_date.isoformat()

        terms = account.terms
        if terms is not None:
            result['terms'] = {
                'original_balance': str(terms.original_balance.amount),
                'currency': terms.currency.code,
                'apr_rate': str(terms.apr_rate) if terms.apr_rate is not None else None,
                'term_months': terms.term_months,
                'payment_type': terms.payment_type.value,
                'origination_date': terms.origination_date.isoformat(),
                'fixed_monthly_payment': (
                    str(terms.fixed_monthly_payment.amount)
                    if terms.fixed_monthly_payment is not None else None
                ),
            }

        return result

    def _account_from_dict(self, data: Dict) -> DebtAccount:
        terms = None
        terms_data = data.get('terms')
        if terms_data:
            currency = Currency[terms_data['currency']]
            fixed_payment = None
            if terms_data.get('fixed_monthly_payment') is not None:
                fixed_payment = Money(Decimal(terms_data['fixed_monthly_payment']), currency)
            apr_rate = None
            if terms_data.get('apr_rate') is not None:
                apr_rate = Decimal(terms_data['apr_rate'])
            terms = LoanTerms(
                original_balance=Money(Decimal(terms_data['original_balance']), currency),
                apr_rate=apr_rate,
                term_months=terms_data['term_months'],
                payment_type=PaymentType(terms_data['payment_type']),
                origination_date=date.fromisoformat(terms_data['origination_date']),
                fixed_monthly_payment=fixed_payment
            )

        last_update = None
        if data.get('last_auto_update_date'):
            last_update = date.fromisoformat(data['last_auto_update_date'])

        return DebtAccount(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            name=data['name'],
            category=AccountCategory(data['category']),
            terms=terms,
            state=LoanState(
                current_balance=Money(
                    Decimal(data['current_balance_amount']),
                    Currency[data['current_balance_currency']]
                ),
                remaining_months=data['remaining_months'],
                last_auto_update_date=last_update
            ),
            auto_update_enabled=data.get('auto_update_enabled', False)
        )
