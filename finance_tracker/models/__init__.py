"""
Data Models Package

Entities and value objects of the transaction core.
All of them are Pydantic models.
"""

from finance_tracker.models.account import AccountType, FinancialAccount
from finance_tracker.models.budget import (
    BucketSummary,
    BudgetCalculation,
    BudgetPeriod,
    BudgetReport,
    BudgetStatus,
    BudgetTotals,
    BudgetWarning,
    ExpenseValidation,
)
from finance_tracker.models.category import (
    CategoryById,
    CategoryByName,
    CategoryRef,
    CategoryStatus,
    CategoryType,
    FinancialCategory,
    RuleCategory,
    category_ref_from,
    resolve_category,
)
from finance_tracker.models.events import (
    LifecycleEvent,
    LifecycleEventBuilder,
    LifecycleEventType,
    LifecycleSeverity,
)
from finance_tracker.models.finance_settings import BudgetCaps, UserFinanceSettings
from finance_tracker.models.transaction import (
    Transaction,
    TransactionCreate,
    TransactionPatch,
    TransactionReplace,
    TransactionResult,
    TransactionStatus,
    TransactionType,
)

__all__ = [
    # Entities
    "AccountType",
    "FinancialAccount",
    "CategoryStatus",
    "CategoryType",
    "FinancialCategory",
    "RuleCategory",
    "BudgetCaps",
    "UserFinanceSettings",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    # Category references
    "CategoryById",
    "CategoryByName",
    "CategoryRef",
    "category_ref_from",
    "resolve_category",
    # Payloads and results
    "TransactionCreate",
    "TransactionPatch",
    "TransactionReplace",
    "TransactionResult",
    # Budget
    "BucketSummary",
    "BudgetCalculation",
    "BudgetPeriod",
    "BudgetReport",
    "BudgetStatus",
    "BudgetTotals",
    "BudgetWarning",
    "ExpenseValidation",
    # Lifecycle events
    "LifecycleEvent",
    "LifecycleEventBuilder",
    "LifecycleEventType",
    "LifecycleSeverity",
]
