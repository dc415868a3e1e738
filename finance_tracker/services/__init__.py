"""Domain services: budget arithmetic, balance reconciliation, storage."""

from finance_tracker.services.budget import BudgetService
from finance_tracker.services.reconciliation import BalanceReconciliation

__all__ = ["BalanceReconciliation", "BudgetService"]
