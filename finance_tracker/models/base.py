"""
Shared base for domain entities.

Entities are Pydantic v2 models with assignment validation turned on, so
every setter re-runs the field's invariant. Pydantic's own error type never
leaves this package: it is translated into the domain ValidationError,
naming the offending field.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from finance_tracker.errors import ValidationError


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_aware(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_domain_error(
    error: PydanticValidationError,
    default_field: Optional[str] = None,
) -> ValidationError:
    """Convert the first Pydantic error into a domain ValidationError."""
    first = error.errors()[0]
    loc = first.get("loc") or ()
    field = str(loc[0]) if loc else (default_field or "__root__")
    message = first.get("msg", str(error))
    # Messages from our own validators arrive as "Value error, <text>"
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return ValidationError(field, f"{field}: {message}")


class DomainModel(BaseModel):
    """Base class for entities that own their invariants."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    @classmethod
    def _build(cls, **data: Any):
        try:
            return cls(**data)
        except PydanticValidationError as e:
            raise to_domain_error(e) from e

    def _assign(self, field: str, value: Any) -> None:
        """Set one field, re-validate it and bump updated_at."""
        try:
            setattr(self, field, value)
        except PydanticValidationError as e:
            raise to_domain_error(e, default_field=field) from e
        if "updated_at" in type(self).model_fields:
            self.updated_at = utcnow()
