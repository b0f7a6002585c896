"""Domain exceptions for Trove.

Services raise these; the API layer turns them into structured responses.
Field-level problems are collected as ``FieldViolation`` values so a single
``ValidationError`` can report every problem of a request at once.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class FieldViolation:
    """A single field-level validation problem."""

    field: str
    message: str
    code: str = "invalid"

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass
class SchemaViolation(FieldViolation):
    """A template definition rule was broken."""

    code: str = "schema_invalid"


@dataclass
class MissingRequired(FieldViolation):
    """A required attribute was absent or empty."""

    code: str = "required_missing"


@dataclass
class TypeMismatch(FieldViolation):
    """A value could not be coerced to the declared field type."""

    code: str = "type_mismatch"


@dataclass
class InvalidOption(FieldViolation):
    """A select value is not one of the field's options."""

    code: str = "invalid_option"


@dataclass
class NegativeValue(FieldViolation):
    """A currency value was negative."""

    code: str = "negative_value"


class TroveError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(TroveError):
    """One or more field-level violations.

    Args:
        errors: Every violation found, never just the first one.
        message: Optional summary; built from the violations when omitted.
    """

    def __init__(self, errors: list[FieldViolation], message: str | None = None) -> None:
        self.errors = list(errors)
        if message is None:
            message = "Validation failed: " + "; ".join(
                f"{e.field}: {e.message}" for e in self.errors
            )
        super().__init__(message)

    def codes(self) -> list[str]:
        return [e.code for e in self.errors]


class QuotaExceededError(TroveError):
    """Admission denied by the user's tier.

    Carries the limit that was hit and the usage it was compared against so
    callers can tell the user what to upgrade.
    """

    def __init__(
        self,
        operation: str,
        limit_name: str,
        limit: Any,
        current: Any,
        message: str | None = None,
    ) -> None:
        self.operation = operation
        self.limit_name = limit_name
        self.limit = limit
        self.current = current
        super().__init__(
            message
            or f"Quota exceeded for {operation}: {limit_name} is {limit}, current usage {current}"
        )


class NotFoundError(TroveError):
    """A referenced template, collection or item does not exist."""


class UnauthorizedError(TroveError):
    """The caller does not own the resource it tried to act on."""


class StoreUnavailableError(TroveError):
    """The document store could not be reached."""
