"""
Financial Category Models

A category classifies transactions for reporting and maps expense
categories onto one of the three budget buckets.

Transactions reference categories in two ways: the current foreign key
(categoria_id) and a legacy free-text label (categoria). Both are folded
into a single CategoryRef variant, resolved once per operation.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finance_tracker.models.base import DomainModel, utcnow


# =============================================================================
# ENUMS
# =============================================================================

class RuleCategory(str, Enum):
    """
    Budget buckets of the salary allocation policy.

    necessidades <-> fixed, desejos <-> variable, futuro <-> investments.
    """
    NECESSIDADES = "necessidades"
    DESEJOS = "desejos"
    FUTURO = "futuro"


class CategoryType(str, Enum):
    """Which side of the ledger a category belongs to."""
    RECEITA = "receita"
    DESPESA = "despesa"


class CategoryStatus(str, Enum):
    """Publication status of a category."""
    PUBLISHED = "published"
    DRAFT = "draft"
    ARCHIVED = "archived"


# Categories every user has; they cannot be deleted
DEFAULT_CATEGORY_NAMES = frozenset({"Outros", "Transferência", "Ajuste"})

_HEX_COLOR = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")


# =============================================================================
# ENTITY
# =============================================================================

class FinancialCategory(DomainModel):
    """A user-owned category, optionally tied to a budget bucket."""

    id: UUID = Field(default_factory=uuid4)
    nome: str = Field(..., min_length=1, max_length=100)
    tipo: CategoryType
    rule_category: Optional[RuleCategory] = Field(
        default=None,
        description="Budget bucket; None means the category is not policed"
    )
    descricao: Optional[str] = Field(default=None, max_length=500)
    icone: Optional[str] = None
    cor: Optional[str] = None
    ativa: bool = True
    status: CategoryStatus = CategoryStatus.PUBLISHED
    sort: int = 0
    user_id: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator('cor')
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        if v and not _HEX_COLOR.match(v):
            raise ValueError("Invalid color format. Use hex color format (#RRGGBB)")
        return v

    @classmethod
    def create(cls, **fields) -> "FinancialCategory":
        return cls._build(**fields)

    def update_rule_category(self, rule_category: Optional[RuleCategory]) -> None:
        self._assign("rule_category", rule_category)

    def activate(self) -> None:
        self._assign("ativa", True)

    def deactivate(self) -> None:
        self._assign("ativa", False)

    def archive(self) -> None:
        self._assign("status", CategoryStatus.ARCHIVED)
        self._assign("ativa", False)

    def is_active(self) -> bool:
        """Active and published."""
        return self.ativa and self.status == CategoryStatus.PUBLISHED

    def is_default(self) -> bool:
        return self.nome in DEFAULT_CATEGORY_NAMES

    def belongs_to_user(self, user_id: str) -> bool:
        return self.user_id == user_id


# =============================================================================
# CATEGORY REFERENCE
# =============================================================================

class CategoryById(BaseModel):
    """Reference through the categoria_id foreign key."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["id"] = "id"
    id: UUID

    def matches(self, category: FinancialCategory) -> bool:
        return category.id == self.id

    def __str__(self) -> str:
        return str(self.id)


class CategoryByName(BaseModel):
    """Reference through the legacy free-text label."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["name"] = "name"
    name: str

    def matches(self, category: FinancialCategory) -> bool:
        return category.nome == self.name

    def __str__(self) -> str:
        return self.name


CategoryRef = Annotated[
    Union[CategoryById, CategoryByName],
    Field(discriminator="kind"),
]


def category_ref_from(
    categoria_id: Optional[UUID],
    categoria: Optional[str],
) -> Optional[CategoryRef]:
    """
    Build the reference for a transaction's category fields.

    categoria_id wins when present. A legacy label that is itself a UUID
    is treated as an id reference.
    """
    if categoria_id is not None:
        return CategoryById(id=categoria_id)
    if not categoria:
        return None
    try:
        return CategoryById(id=UUID(categoria))
    except ValueError:
        return CategoryByName(name=categoria)


def resolve_category(
    ref: Optional[CategoryRef],
    categories: list[FinancialCategory],
) -> Optional[FinancialCategory]:
    """Find the category a reference points to, or None."""
    if ref is None:
        return None
    for category in categories:
        if ref.matches(category):
            return category
    return None
