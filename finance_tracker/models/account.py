"""
Financial Account Model

An account owns a live balance (saldo_atual). The balance moves only
through credit() and debit(), or through update_balance() for an
explicit administrative correction.

The entity never decides *why* a balance moves, and it does not refuse
to go negative: the orchestrators check funds before debiting.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import Field, model_validator

from finance_tracker.errors import ValidationError
from finance_tracker.models.base import DomainModel, utcnow


class AccountType(str, Enum):
    """Supported account kinds."""
    CONTA_CORRENTE = "conta_corrente"
    CONTA_POUPANCA = "conta_poupanca"
    CARTEIRA = "carteira"
    INVESTIMENTO = "investimento"
    OUTRAS = "outras"


class FinancialAccount(DomainModel):
    """A user's account with a mutable current balance."""

    id: UUID = Field(default_factory=uuid4)
    nome: str = Field(..., min_length=1, max_length=100)
    tipo: AccountType
    instituicao: Optional[str] = Field(default=None, max_length=100)
    saldo_inicial: Decimal = Field(
        ...,
        ge=0,
        description="Opening balance snapshot"
    )
    saldo_atual: Optional[Decimal] = Field(
        default=None,
        description="Live balance; starts at saldo_inicial"
    )
    ativa: bool = True
    observacoes: Optional[str] = Field(default=None, max_length=1000)
    user_id: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='before')
    @classmethod
    def default_current_balance(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("saldo_atual") is None:
            data = {**data, "saldo_atual": data.get("saldo_inicial")}
        return data

    @classmethod
    def create(cls, **fields) -> "FinancialAccount":
        return cls._build(**fields)

    # -------------------------------------------------------------------------
    # Balance primitives
    # -------------------------------------------------------------------------

    def credit(self, valor: Decimal) -> None:
        """saldo_atual += valor"""
        self._require_positive(valor)
        self._assign("saldo_atual", self.saldo_atual + valor)

    def debit(self, valor: Decimal) -> None:
        """saldo_atual -= valor (may go negative)"""
        self._require_positive(valor)
        self._assign("saldo_atual", self.saldo_atual - valor)

    def update_balance(self, valor: Decimal) -> None:
        """Administrative correction of the live balance."""
        self._assign("saldo_atual", valor)

    def has_sufficient_balance(self, valor: Decimal) -> bool:
        return self.saldo_atual >= valor

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def is_active(self) -> bool:
        return self.ativa

    def activate(self) -> None:
        self._assign("ativa", True)

    def deactivate(self) -> None:
        self._assign("ativa", False)

    def belongs_to_user(self, user_id: str) -> bool:
        return self.user_id == user_id

    @staticmethod
    def _require_positive(valor: Decimal) -> None:
        if valor <= 0:
            raise ValidationError("valor", "valor: balance movements must be positive")
