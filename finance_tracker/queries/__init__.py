"""Read-only queries."""

from finance_tracker.queries.budget import BudgetQueryExecutor

__all__ = ["BudgetQueryExecutor"]
