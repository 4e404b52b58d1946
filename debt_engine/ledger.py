"""
Debt Ledger Module

Append-only history of balance-changing events on debt accounts: manual
payments, payments matching the schedule, and automatic monthly updates.
Entries are never modified once written.
"""

from decimal import Decimal
from datetime import datetime, timezone, date
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
from enum import Enum
import uuid

from .currency import Money, Currency
from .storage import StorageInterface, StorageRecord


class LedgerEntryKind(Enum):
    """What produced a ledger entry"""
    SCHEDULED_PAYMENT = "scheduled_payment"  # Payment equal to the scheduled amount
    MANUAL_PAYMENT = "manual_payment"        # Any other user-recorded payment
    AUTO_UPDATE = "auto_update"              # Posted by the monthly auto-update


PAYMENT_KINDS = (LedgerEntryKind.SCHEDULED_PAYMENT, LedgerEntryKind.MANUAL_PAYMENT)


@dataclass
class LedgerEntry(StorageRecord):
    """One posted event and the balance it left behind"""
    account_id: str
    entry_date: date
    total_amount: Money
    principal_portion: Money
    interest_portion: Money
    resulting_balance: Money
    kind: LedgerEntryKind
    notes: Optional[str] = None


class LedgerStore:
    """Append-only ledger over a StorageInterface"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.entries_table = "debt_ledger"

    def append(
        self,
        account_id: str,
        entry_date: date,
        total_amount: Money,
        principal_portion: Money,
        interest_portion: Money,
        resulting_balance: Money,
        kind: LedgerEntryKind,
        notes: Optional[str] = None
    ) -> LedgerEntry:
        """Write a new entry; existing entries are never touched"""
        now = datetime.now(timezone.utc)
        entry = LedgerEntry(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            account_id=account_id,
            entry_date=entry_date,
            total_amount=total_amount,
            principal_portion=principal_portion,
            interest_portion=interest_portion,
            resulting_balance=resulting_balance,
            kind=kind,
            notes=notes
        )
        self.storage.save(self.entries_table, entry.id, self._entry_to_dict(entry))
        return entry

    def history(
        self,
        account_id: str,
        kinds: Optional[Iterable[LedgerEntryKind]] = None
    ) -> List[LedgerEntry]:
        """Entries for an account, oldest first (by date, then insertion time)"""
        records = self.storage.find(self.entries_table, {"account_id": account_id})
        entries = [self._entry_from_dict(data) for data in records]
        if kinds is not None:
            wanted = set(kinds)
            entries = [entry for entry in entries if entry.kind in wanted]
        entries.sort(key=lambda e: (e.entry_date, e.created_at))
        return entries

    def payment_history(self, account_id: str, limit: Optional[int] = None) -> List[LedgerEntry]:
        """Payment entries, newest first"""
        entries = self.history(account_id, kinds=PAYMENT_KINDS)
        entries.reverse()
        if limit is not None:
            entries = entries[:limit]
        return entries

    def _entry_to_dict(self, entry: LedgerEntry) -> Dict:
        result = {
            'id': entry.id,
            'created_at': entry.created_at.isoformat(),
            'updated_at': entry.updated_at.isoformat(),
            'account_id': entry.account_id,
            'entry_date': entry.entry_date.isoformat(),
            'kind': entry.kind.value,
            'notes': entry.notes,
            'currency': entry.total_amount.currency.code,
        }
        for field in ['total_amount', 'principal_portion', 'interest_portion', 'resulting_balance']:
            result[field] = str(getattr(entry, field).amount)
        return result

    def _entry_from_dict(self, data: Dict) -> LedgerEntry:
        currency = Currency[data['currency']]

        def get_money(field: str) -> Money:
            return Money(Decimal(data[field]), currency)

        return LedgerEntry(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            account_id=data['account_id'],
            entry_date=date.fromisoformat(data['entry_date']),
            total_amount=get_money('total_amount'),
            principal_portion=get_money('principal_portion'),
            interest_portion=get_money('interest_portion'),
            resulting_balance=get_money('resulting_balance'),
            kind=LedgerEntryKind(data['kind']),
            notes=data.get('notes')
        )
