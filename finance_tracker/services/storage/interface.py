"""
Abstract Storage Interface

The orchestrators depend only on these repository contracts and on
UnitOfWork. A backend (SQL database, document store, the in-memory
reference backend) implements them.

The interface is intentionally small: just the reads and writes the
transaction lifecycle needs.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, TypeVar
from uuid import UUID

from finance_tracker.models.account import FinancialAccount
from finance_tracker.models.category import FinancialCategory
from finance_tracker.models.finance_settings import UserFinanceSettings
from finance_tracker.models.transaction import Transaction


T = TypeVar("T")


class TransactionRepository(ABC):
    """Storage operations for transactions."""

    @abstractmethod
    def find_by_id(self, transaction_id: UUID) -> Optional[Transaction]:
        """
        Retrieve a transaction by its ID, whoever owns it.

        Returns:
            The transaction if found, None otherwise
        """
        pass

    @abstractmethod
    def find_by_user_and_date_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[Transaction]:
        """
        List a user's transactions whose date falls in [start, end].

        Returns:
            Matching transactions, oldest first
        """
        pass

    @abstractmethod
    def create(self, transaction: Transaction) -> Transaction:
        """
        Insert a new transaction.

        Raises:
            StorageError: If a transaction with the same ID exists
        """
        pass

    @abstractmethod
    def update(self, transaction: Transaction) -> Transaction:
        """
        Overwrite an existing transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    def delete(self, transaction_id: UUID) -> bool:
        """
        Hard-delete a transaction.

        Returns:
            True if a row was deleted
        """
        pass


class FinancialAccountRepository(ABC):
    """Storage operations for financial accounts."""

    @abstractmethod
    def find_by_user_and_id(
        self,
        user_id: str,
        account_id: UUID,
    ) -> Optional[FinancialAccount]:
        """
        Retrieve an account owned by the user.

        Returns:
            The account, or None if it doesn't exist or belongs to someone else
        """
        pass

    @abstractmethod
    def update(self, account: FinancialAccount) -> FinancialAccount:
        """
        Overwrite an existing account (balance included).

        Raises:
            NotFoundError: If the account doesn't exist
        """
        pass


class FinancialCategoryRepository(ABC):
    """Read access to categories."""

    @abstractmethod
    def find_by_user(self, user_id: str) -> list[FinancialCategory]:
        """All of the user's categories, active or not."""
        pass


class UserFinanceSettingsRepository(ABC):
    """Read access to budget settings."""

    @abstractmethod
    def find_by_user_id(self, user_id: str) -> Optional[UserFinanceSettings]:
        pass


@dataclass
class Repositories:
    """The repositories bound to one unit of work."""

    transactions: TransactionRepository
    accounts: FinancialAccountRepository
    categories: FinancialCategoryRepository
    settings: UserFinanceSettingsRepository


class UnitOfWork(ABC):
    """
    Atomic scope for one lifecycle operation.

    Everything fn reads and writes through the given repositories commits
    together, or not at all.
    """

    @abstractmethod
    def run_atomic(self, fn: Callable[[Repositories], T]) -> T:
        """
        Run fn inside a fresh atomic scope and commit if it returns.

        Raises:
            Whatever fn raises (after discarding its writes)
            ConcurrencyConflictError: If commit finds a concurrent change
            StorageError: If the backend fails
        """
        pass
