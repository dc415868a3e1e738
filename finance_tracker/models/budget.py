"""
Budget Models

Value objects produced by the budget service. None of them are persisted.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BudgetStatus(str, Enum):
    """How much of a bucket has been used."""
    SAFE = "safe"          # below 70%
    WARNING = "warning"    # 70% up to 90%
    DANGER = "danger"      # 90% and above


class BudgetPeriod(BaseModel):
    """Inclusive date/time range a budget is evaluated over."""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode='after')
    def validate_range(self) -> 'BudgetPeriod':
        if self.end < self.start:
            raise ValueError("Budget period end cannot be before start")
        return self

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


class BucketSummary(BaseModel):
    """
    Spend against one bucket.

    percentage is the bucket's share of the salary (from settings);
    usage_percentage is spent / budget * 100.
    """

    budget: Decimal
    spent: Decimal
    remaining: Decimal
    percentage: int = Field(..., description="Allocation % from settings")
    usage_percentage: Decimal
    status: BudgetStatus


class BudgetTotals(BaseModel):
    """Totals across all three buckets."""

    budget: Decimal
    spent: Decimal
    remaining: Decimal


class BudgetCalculation(BaseModel):
    """Per-bucket breakdown for one period."""

    necessidades: BucketSummary
    desejos: BucketSummary
    futuro: BucketSummary
    total: BudgetTotals

    def bucket(self, name: str) -> BucketSummary:
        return getattr(self, name)


class BudgetWarning(BaseModel):
    """
    Non-fatal annotation on an accepted expense.

    Returned next to a successful result; never raised.
    """
    model_config = ConfigDict(frozen=True)

    bucket: str
    percentage: Decimal
    message: str


class ExpenseValidation(BaseModel):
    """
    Outcome of checking one candidate expense against its bucket.

    bucket is None when the category does not map to a bucket, in which
    case the expense is always accepted.
    """

    accepted: bool
    percentage_after: Decimal = Decimal("0")
    bucket: Optional[str] = None
    message: Optional[str] = None
    is_warning: bool = False

    @property
    def warning(self) -> Optional[BudgetWarning]:
        """The warning to hand back to the caller, if any."""
        if not (self.accepted and self.is_warning and self.bucket):
            return None
        return BudgetWarning(
            bucket=self.bucket,
            percentage=self.percentage_after,
            message=self.message or "",
        )


class BudgetReport(BaseModel):
    """Budget snapshot for a user and period."""

    period: BudgetPeriod
    budget: BudgetCalculation
    has_valid_settings: bool
    message: Optional[str] = None
