"""
In-Memory Storage

Reference backend for the repository interfaces, used by the tests and
by anyone embedding the core without a database.

Each run_atomic call opens a session:
- Reads return deep copies, so mutating an entity never touches the store
- Writes are staged in the session and invisible to everyone else
- Commit takes the store lock, checks that every transaction and account
  the session read or wrote still has the version it saw, checks that
  every date range it scanned still holds the same transactions, then
  applies all staged writes at once

A failed version check raises ConcurrencyConflictError and applies
nothing. Categories and settings are read-only here and not versioned.
"""

import threading
from datetime import datetime
from typing import Callable, Optional, TypeVar
from uuid import UUID

from finance_tracker.errors import ConcurrencyConflictError, NotFoundError, StorageError
from finance_tracker.models.account import FinancialAccount
from finance_tracker.models.base import as_aware
from finance_tracker.models.category import FinancialCategory
from finance_tracker.models.finance_settings import UserFinanceSettings
from finance_tracker.models.transaction import Transaction
from finance_tracker.services.storage.interface import (
    FinancialAccountRepository,
    FinancialCategoryRepository,
    Repositories,
    TransactionRepository,
    UnitOfWork,
    UserFinanceSettingsRepository,
)


T = TypeVar("T")

TRANSACTIONS = "transaction"
ACCOUNTS = "account"

# Marks a row deleted inside a session
_DELETED = object()


class InMemoryDatabase:
    """
    Thread-safe store of versioned rows.

    The seeding helpers write directly, outside any unit of work.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._rows: dict[str, dict[UUID, object]] = {TRANSACTIONS: {}, ACCOUNTS: {}}
        self._versions: dict[str, dict[UUID, int]] = {TRANSACTIONS: {}, ACCOUNTS: {}}
        self._categories: dict[UUID, FinancialCategory] = {}
        self._settings: dict[str, UserFinanceSettings] = {}

    # -------------------------------------------------------------------------
    # Seeding and inspection
    # -------------------------------------------------------------------------

    def add_account(self, account: FinancialAccount) -> FinancialAccount:
        with self._lock:
            self._put(ACCOUNTS, account.id, account.model_copy(deep=True))
        return account

    def add_transaction(self, transaction: Transaction) -> Transaction:
        with self._lock:
            self._put(TRANSACTIONS, transaction.id, transaction.model_copy(deep=True))
        return transaction

    def remove_account(self, account_id: UUID) -> None:
        with self._lock:
            self._rows[ACCOUNTS].pop(account_id, None)
            self._versions[ACCOUNTS].pop(account_id, None)

    def add_category(self, category: FinancialCategory) -> FinancialCategory:
        with self._lock:
            self._categories[category.id] = category.model_copy(deep=True)
        return category

    def put_settings(self, settings: UserFinanceSettings) -> UserFinanceSettings:
        with self._lock:
            self._settings[settings.user_id] = settings.model_copy(deep=True)
        return settings

    def get_account(self, account_id: UUID) -> Optional[FinancialAccount]:
        row, _ = self.read(ACCOUNTS, account_id)
        return row

    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        row, _ = self.read(TRANSACTIONS, transaction_id)
        return row

    def list_transactions(self) -> list[Transaction]:
        with self._lock:
            return [row.model_copy(deep=True) for row in self._rows[TRANSACTIONS].values()]

    # -------------------------------------------------------------------------
    # Session primitives
    # -------------------------------------------------------------------------

    def read(self, table: str, row_id: UUID) -> tuple[Optional[object], Optional[int]]:
        """Copy of a row and its version; (None, None) if absent."""
        with self._lock:
            row = self._rows[table].get(row_id)
            if row is None:
                return None, None
            return row.model_copy(deep=True), self._versions[table][row_id]

    def scan_transactions(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[tuple[Transaction, int]]:
        with self._lock:
            return [
                (self._rows[TRANSACTIONS][row_id].model_copy(deep=True),
                 self._versions[TRANSACTIONS][row_id])
                for row_id in self._ids_in_range(user_id, start, end)
            ]

    def categories_for(self, user_id: str) -> list[FinancialCategory]:
        with self._lock:
            return [
                category.model_copy(deep=True)
                for category in self._categories.values()
                if category.belongs_to_user(user_id)
            ]

    def settings_for(self, user_id: str) -> Optional[UserFinanceSettings]:
        with self._lock:
            settings = self._settings.get(user_id)
            return settings.model_copy(deep=True) if settings else None

    def commit(
        self,
        read_versions: dict[tuple[str, UUID], Optional[int]],
        staged: dict[tuple[str, UUID], object],
        range_reads: Optional[list[tuple[str, datetime, datetime, frozenset]]] = None,
    ) -> None:
        """
        Apply staged writes if everything the session read is unchanged.

        Args:
            read_versions: Version seen for each row read or written
            staged: Rows to write, or _DELETED
            range_reads: (user_id, start, end, ids) for each range scanned

        Raises:
            ConcurrencyConflictError: If any row changed since it was read,
                or a scanned range gained or lost a transaction
        """
        with self._lock:
            for (table, row_id), version in read_versions.items():
                if self._versions[table].get(row_id) != version:
                    raise ConcurrencyConflictError(table, row_id)

            for user_id, start, end, ids in range_reads or ():
                current = self._ids_in_range(user_id, start, end)
                if current != ids:
                    changed = next(iter(current ^ ids))
                    raise ConcurrencyConflictError(TRANSACTIONS, changed)

            for (table, row_id), row in staged.items():
                if row is _DELETED:
                    self._rows[table].pop(row_id, None)
                    self._versions[table].pop(row_id, None)
                else:
                    self._put(table, row_id, row)

    def _ids_in_range(self, user_id: str, start: datetime, end: datetime) -> frozenset:
        # Caller holds the lock
        return frozenset(
            row_id
            for row_id, row in self._rows[TRANSACTIONS].items()
            if row.user_id == user_id and start <= row.data <= end
        )

    def _put(self, table: str, row_id: UUID, row: object) -> None:
        self._rows[table][row_id] = row
        self._versions[table][row_id] = self._versions[table].get(row_id, 0) + 1


class _Session:
    """Read set and staged writes of one run_atomic attempt."""

    def __init__(self, database: InMemoryDatabase):
        self.database = database
        self.read_versions: dict[tuple[str, UUID], Optional[int]] = {}
        self.staged: dict[tuple[str, UUID], object] = {}
        self.range_reads: list[tuple[str, datetime, datetime, frozenset]] = []

    def load(self, table: str, row_id: UUID) -> Optional[object]:
        key = (table, row_id)
        if key in self.staged:
            row = self.staged[key]
            return None if row is _DELETED else row.model_copy(deep=True)

        row, version = self.database.read(table, row_id)
        self.read_versions.setdefault(key, version)
        return row

    def track(self, table: str, row_id: UUID, version: Optional[int]) -> None:
        self.read_versions.setdefault((table, row_id), version)

    def exists(self, table: str, row_id: UUID) -> bool:
        return self.load(table, row_id) is not None

    def stage(self, table: str, row_id: UUID, row: object) -> None:
        key = (table, row_id)
        if key not in self.read_versions:
            _, version = self.database.read(table, row_id)
            self.read_versions[key] = version
        self.staged[key] = row

    def commit(self) -> None:
        self.database.commit(self.read_versions, self.staged, self.range_reads)


class InMemoryTransactionRepository(TransactionRepository):

    def __init__(self, session: _Session):
        self._session = session

    def find_by_id(self, transaction_id: UUID) -> Optional[Transaction]:
        return self._session.load(TRANSACTIONS, transaction_id)

    def find_by_user_and_date_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Transaction]:
        start, end = as_aware(start), as_aware(end)
        found: dict[UUID, Transaction] = {}

        scanned = self._session.database.scan_transactions(user_id, start, end)
        for row, version in scanned:
            self._session.track(TRANSACTIONS, row.id, version)
            found[row.id] = row
        # Inserts into the range by other sessions are caught at commit
        self._session.range_reads.append(
            (user_id, start, end, frozenset(row.id for row, _ in scanned))
        )

        # Overlay this session's own writes
        for (table, row_id), row in self._session.staged.items():
            if table != TRANSACTIONS:
                continue
            if row is _DELETED:
                found.pop(row_id, None)
            elif row.user_id == user_id and start <= row.data <= end:
                found[row_id] = row.model_copy(deep=True)
            else:
                found.pop(row_id, None)

        return sorted(found.values(), key=lambda t: t.data)

    def create(self, transaction: Transaction) -> Transaction:
        if self._session.exists(TRANSACTIONS, transaction.id):
            raise StorageError(f"Transaction {transaction.id} already exists")
        self._session.stage(TRANSACTIONS, transaction.id, transaction.model_copy(deep=True))
        return transaction

    def update(self, transaction: Transaction) -> Transaction:
        if not self._session.exists(TRANSACTIONS, transaction.id):
            raise NotFoundError("Transaction", transaction.id)
        self._session.stage(TRANSACTIONS, transaction.id, transaction.model_copy(deep=True))
        return transaction

    def delete(self, transaction_id: UUID) -> bool:
        if not self._session.exists(TRANSACTIONS, transaction_id):
            return False
        self._session.stage(TRANSACTIONS, transaction_id, _DELETED)
        return True


class InMemoryAccountRepository(FinancialAccountRepository):

    def __init__(self, session: _Session):
        self._session = session

    def find_by_user_and_id(
        self,
        user_id: str,
        account_id: UUID,
    ) -> Optional[FinancialAccount]:
        account = self._session.load(ACCOUNTS, account_id)
        if account is None or not account.belongs_to_user(user_id):
            return None
        return account

    def update(self, account: FinancialAccount) -> FinancialAccount:
        if not self._session.exists(ACCOUNTS, account.id):
            raise NotFoundError("FinancialAccount", account.id)
        self._session.stage(ACCOUNTS, account.id, account.model_copy(deep=True))
        return account


class InMemoryCategoryRepository(FinancialCategoryRepository):

    def __init__(self, database: InMemoryDatabase):
        self._database = database

    def find_by_user(self, user_id: str) -> list[FinancialCategory]:
        return self._database.categories_for(user_id)


class InMemorySettingsRepository(UserFinanceSettingsRepository):

    def __init__(self, database: InMemoryDatabase):
        self._database = database

    def find_by_user_id(self, user_id: str) -> Optional[UserFinanceSettings]:
        return self._database.settings_for(user_id)


class InMemoryUnitOfWork(UnitOfWork):
    """
    Optimistic unit of work over an InMemoryDatabase.

    Safe to share between threads; every run_atomic call gets its own
    session.
    """

    def __init__(self, database: Optional[InMemoryDatabase] = None):
        self.database = database or InMemoryDatabase()

    def run_atomic(self, fn: Callable[[Repositories], T]) -> T:
        session = _Session(self.database)
        repos = Repositories(
            transactions=InMemoryTransactionRepository(session),
            accounts=InMemoryAccountRepository(session),
            categories=InMemoryCategoryRepository(self.database),
            settings=InMemorySettingsRepository(self.database),
        )
        # An exception from fn leaves the session uncommitted
        result = fn(repos)
        session.commit()
        return result
