"""
User Finance Settings Model

Salary plus the three allocation percentages of the budgeting policy.

RULES:
- salary > 0
- fixed + variable + investments == 100
- fixed (necessidades) in [40, 60]
- variable (desejos) in [10, 50]
- investments (futuro) in [10, 30]
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError
from pydantic import model_validator

from finance_tracker.models.base import DomainModel, to_domain_error, utcnow
from finance_tracker.models.category import RuleCategory


class BudgetCaps(BaseModel):
    """Monetary ceiling per bucket, derived from settings."""

    fixed: Decimal
    variable: Decimal
    investments: Decimal
    total: Decimal

    def for_bucket(self, bucket: RuleCategory) -> Decimal:
        return {
            RuleCategory.NECESSIDADES: self.fixed,
            RuleCategory.DESEJOS: self.variable,
            RuleCategory.FUTURO: self.investments,
        }[bucket]


class UserFinanceSettings(DomainModel):
    """Salary and allocation policy for one user."""

    id: UUID = Field(default_factory=uuid4)
    salary: Decimal = Field(..., gt=0, description="Monthly salary")
    fixed: int = Field(..., ge=40, le=60, description="% for necessidades")
    variable: int = Field(..., ge=10, le=50, description="% for desejos")
    investments: int = Field(..., ge=10, le=30, description="% for futuro")
    user_id: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_total(self) -> 'UserFinanceSettings':
        total = self.fixed + self.variable + self.investments
        if total != 100:
            raise ValueError(f"The sum of percentages must equal 100 (got {total})")
        return self

    @classmethod
    def create(cls, **fields) -> "UserFinanceSettings":
        return cls._build(**fields)

    def calculate_budgets(self) -> BudgetCaps:
        """Bucket caps: salary * percentage / 100."""
        return BudgetCaps(
            fixed=self.salary * self.fixed / 100,
            variable=self.salary * self.variable / 100,
            investments=self.salary * self.investments / 100,
            total=self.salary,
        )

    def percentage_for(self, bucket: RuleCategory) -> int:
        return {
            RuleCategory.NECESSIDADES: self.fixed,
            RuleCategory.DESEJOS: self.variable,
            RuleCategory.FUTURO: self.investments,
        }[bucket]

    def update(
        self,
        salary: Optional[Decimal] = None,
        fixed: Optional[int] = None,
        variable: Optional[int] = None,
        investments: Optional[int] = None,
    ) -> None:
        """
        Change salary and/or percentages.

        The full rule set is checked against the combined result before
        anything is applied, so percentages can be moved together.
        """
        changes = {
            key: value
            for key, value in (
                ("salary", salary),
                ("fixed", fixed),
                ("variable", variable),
                ("investments", investments),
            )
            if value is not None
        }
        if not changes:
            return
        try:
            candidate = type(self).model_validate(
                {**self.model_dump(), **changes, "updated_at": utcnow()}
            )
        except PydanticValidationError as e:
            raise to_domain_error(e) from e

        # candidate passed every field rule and the total; adopt its state whole
        for key, value in candidate:
            object.__setattr__(self, key, value)
