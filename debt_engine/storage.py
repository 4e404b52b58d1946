"""
Storage Backend Module

Abstract storage interface consumed by the account and ledger stores, plus an
in-memory implementation. All monetary values are stored as Decimal strings.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any
from datetime import datetime
import json
import threading
from dataclasses import dataclass
from contextlib import contextmanager


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: str
    created_at: datetime
    updated_at: datetime


class StorageInterface(ABC):
    """Record store keyed by table and id, with per-account locking"""

    def __init__(self):
        self._key_locks: Dict[str, threading.RLock] = {}
        self._key_locks_guard = threading.Lock()

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Insert or replace a record"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record, or None if absent"""
        pass

    @abstractmethod
    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Records whose fields equal every filter value"""
        pass

    def begin_transaction(self) -> None:
        """Start a transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager for atomic operations"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise

    @contextmanager
    def account_lock(self, key: str):
        """
        Hold an exclusive, re-entrant lock for one key (usually an account id)

        Read-modify-write cycles on the same account serialize here; different
        keys never block each other. One lock is kept per key for the life of
        the storage object and never pruned, which assumes a bounded set of
        accounts per process.
        """
        with self._key_locks_guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._key_locks[key] = lock
        with lock:
            yield


class InMemoryStorage(StorageInterface):
    """In-memory storage; records are JSON-copied on the way in and out"""

    def __init__(self):
        super().__init__()
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._data.setdefault(table, {})

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            # Deep copy to prevent external mutation
            self._table(table)[record_id] = json.loads(json.dumps(data, default=str))

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._table(table).get(record_id)
            if record:
                return json.loads(json.dumps(record))
            return None

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                json.loads(json.dumps(record))
                for record in self._table(table).values()
                if all(key in record and record[key] == value for key, value in filters.items())
            ]
