"""
Storage Services Package

Repository and unit-of-work interfaces, plus the in-memory backend.
Any database backend implements the same interfaces.
"""

from finance_tracker.services.storage.interface import (
    FinancialAccountRepository,
    FinancialCategoryRepository,
    Repositories,
    TransactionRepository,
    UnitOfWork,
    UserFinanceSettingsRepository,
)
from finance_tracker.services.storage.memory import (
    InMemoryDatabase,
    InMemoryUnitOfWork,
)

__all__ = [
    # Interfaces
    "FinancialAccountRepository",
    "FinancialCategoryRepository",
    "Repositories",
    "TransactionRepository",
    "UnitOfWork",
    "UserFinanceSettingsRepository",
    # In-memory implementation
    "InMemoryDatabase",
    "InMemoryUnitOfWork",
]
