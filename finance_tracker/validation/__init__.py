"""Budget policy enforcement for lifecycle operations."""

from finance_tracker.validation.budget_gate import BudgetGate

__all__ = ["BudgetGate"]
