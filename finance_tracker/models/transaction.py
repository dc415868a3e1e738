"""
Transaction Models

The Transaction entity owns its own field invariants and its status.
It never touches account balances: applying or reverting a transaction's
effect on an account is the job of the lifecycle orchestrators.

Also defines the input payloads accepted by the orchestrators
(create, full replace, partial patch) and the result they return.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finance_tracker.errors import (
    InvalidStatusTransitionError,
    TransactionAlreadyCompletedError,
    ValidationError,
)
from finance_tracker.models.base import DomainModel, as_aware, utcnow
from finance_tracker.models.budget import BudgetWarning
from finance_tracker.models.category import CategoryRef, category_ref_from


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Kind of money movement."""
    RECEITA = "receita"
    DESPESA = "despesa"
    TRANSFERENCIA = "transferencia"


class TransactionStatus(str, Enum):
    """
    Lifecycle status.

    Only completed transactions affect an account balance.
    """
    PENDING = "pending"
    COMPLETED = "completed"


# =============================================================================
# ENTITY
# =============================================================================

class Transaction(DomainModel):
    """
    A validated record of a money movement.

    Invariants:
    - valor > 0
    - descricao is not blank
    - data is not in the future
    - status only flips pending <-> completed
    """

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    descricao: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="What the movement was"
    )
    valor: Decimal = Field(
        ...,
        gt=0,
        description="Amount, always positive"
    )
    tipo: TransactionType
    categoria: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Legacy free-text category label"
    )
    categoria_id: Optional[UUID] = Field(
        default=None,
        description="FinancialCategory reference (preferred over categoria)"
    )
    subcategoria: Optional[str] = Field(default=None, max_length=100)
    data: datetime = Field(
        ...,
        description="When the movement happened"
    )
    status: TransactionStatus = TransactionStatus.PENDING
    observacoes: Optional[str] = Field(default=None, max_length=1000)
    conta_financeira_id: Optional[UUID] = Field(
        default=None,
        description="Account the movement is booked against, if any"
    )
    user_id: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator('categoria', 'subcategoria', 'observacoes')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator('data')
    @classmethod
    def validate_not_future(cls, v: datetime) -> datetime:
        v = as_aware(v)
        if v > utcnow():
            raise ValueError("Transaction date cannot be in the future")
        return v

    @classmethod
    def create(cls, **fields) -> "Transaction":
        """
        Validate fields and build a transaction.

        New transactions are always pending; completing one goes through
        mark_completed so the balance effect is booked with it.

        Raises:
            ValidationError: naming the first invalid field, or `status`
                if anything other than pending is requested
        """
        status = fields.pop("status", TransactionStatus.PENDING)
        if status != TransactionStatus.PENDING:
            raise ValidationError("status", "status: new transactions must start pending")
        return cls._build(**fields)

    # -------------------------------------------------------------------------
    # Setters
    # -------------------------------------------------------------------------

    def update_descricao(self, descricao: str) -> None:
        self._assign("descricao", descricao)

    def update_valor(self, valor: Decimal) -> None:
        self._assign("valor", valor)

    def update_tipo(self, tipo: TransactionType) -> None:
        self._assign("tipo", tipo)

    def update_categoria(self, categoria: Optional[str]) -> None:
        self._assign("categoria", categoria)

    def update_categoria_id(self, categoria_id: Optional[UUID]) -> None:
        self._assign("categoria_id", categoria_id)

    def update_subcategoria(self, subcategoria: Optional[str]) -> None:
        self._assign("subcategoria", subcategoria)

    def update_data(self, data: datetime) -> None:
        self._assign("data", data)

    def update_observacoes(self, observacoes: Optional[str]) -> None:
        self._assign("observacoes", observacoes)

    def update_conta_financeira(self, conta_financeira_id: Optional[UUID]) -> None:
        self._assign("conta_financeira_id", conta_financeira_id)

    def update_status(self, status: TransactionStatus) -> None:
        """Set status; keeping the current status is allowed."""
        self._assign("status", status)

    def update_fields(self, **changes) -> None:
        """
        Apply several non-status field updates, validating each one.

        Raises:
            ValidationError: on the first invalid value; fields applied
                before it keep their new values
        """
        for name, value in changes.items():
            if name in ("id", "user_id", "status", "created_at", "updated_at"):
                raise ValidationError(name, f"{name}: cannot be updated")
            self._assign(name, value)

    # -------------------------------------------------------------------------
    # Status flips (no balance side effects)
    # -------------------------------------------------------------------------

    def mark_completed(self) -> None:
        if self.is_completed():
            raise TransactionAlreadyCompletedError()
        self._assign("status", TransactionStatus.COMPLETED)

    def mark_pending(self) -> None:
        if self.is_pending():
            raise InvalidStatusTransitionError("pending", "pending")
        self._assign("status", TransactionStatus.PENDING)

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    def is_receita(self) -> bool:
        return self.tipo == TransactionType.RECEITA

    def is_despesa(self) -> bool:
        return self.tipo == TransactionType.DESPESA

    def is_transferencia(self) -> bool:
        return self.tipo == TransactionType.TRANSFERENCIA

    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED

    def belongs_to_user(self, user_id: str) -> bool:
        return self.user_id == user_id

    def belongs_to_account(self, account_id: UUID) -> bool:
        return self.conta_financeira_id == account_id

    def category_ref(self) -> Optional[CategoryRef]:
        """Category reference, preferring categoria_id over the legacy label."""
        return category_ref_from(self.categoria_id, self.categoria)


# =============================================================================
# INPUT PAYLOADS
# =============================================================================

class TransactionCreate(BaseModel):
    """
    Payload for creating a transaction.

    status=completed makes the create also complete the transaction,
    atomically.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    descricao: str
    valor: Decimal
    tipo: TransactionType
    categoria: Optional[str] = None
    categoria_id: Optional[UUID] = None
    subcategoria: Optional[str] = None
    data: datetime
    status: TransactionStatus = TransactionStatus.PENDING
    observacoes: Optional[str] = None
    conta_financeira_id: Optional[UUID] = None


class TransactionReplace(BaseModel):
    """
    Payload for a full update.

    Every field is overwritten. status=None keeps the current status.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    descricao: str
    valor: Decimal
    tipo: TransactionType
    categoria: Optional[str] = None
    categoria_id: Optional[UUID] = None
    subcategoria: Optional[str] = None
    data: datetime
    status: Optional[TransactionStatus] = None
    observacoes: Optional[str] = None
    conta_financeira_id: Optional[UUID] = None


class TransactionPatch(BaseModel):
    """
    Payload for a partial update.

    Only fields explicitly set (model_fields_set) are applied, so passing
    categoria=None clears the category while omitting it keeps it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    descricao: Optional[str] = None
    valor: Optional[Decimal] = None
    tipo: Optional[TransactionType] = None
    categoria: Optional[str] = None
    categoria_id: Optional[UUID] = None
    subcategoria: Optional[str] = None
    data: Optional[datetime] = None
    status: Optional[TransactionStatus] = None
    observacoes: Optional[str] = None
    conta_financeira_id: Optional[UUID] = None

    def provided(self) -> dict:
        """Explicitly provided fields and their values."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# =============================================================================
# RESULT
# =============================================================================

class TransactionResult(BaseModel):
    """
    Successful outcome of a lifecycle operation.

    budget_warning is set when the expense was accepted but pushed its
    bucket above the warning threshold.
    """

    transaction: Transaction
    budget_warning: Optional[BudgetWarning] = None

    @property
    def has_warning(self) -> bool:
        return self.budget_warning is not None
