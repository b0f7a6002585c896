"""Record validation service for item attributes.

Validates raw item attributes against a template and coerces every value to
the runtime type its field declares. The template is authoritative: unknown
keys are dropped and every violation is collected before returning.
"""

import math
from datetime import date, datetime
from typing import Any

from trove.domain.entities.field_spec import FieldSpec, FieldType, parse_flag
from trove.domain.entities.template import Template
from trove.domain.exceptions import (
    FieldViolation,
    InvalidOption,
    MissingRequired,
    NegativeValue,
    TypeMismatch,
    ValidationError,
)

# Empty value per field type, used for blank optional input and required checks
EMPTY_VALUES: dict[FieldType, Any] = {
    FieldType.TEXT: "",
    FieldType.PARAGRAPH: "",
    FieldType.URL: "",
    FieldType.NUMBER: None,
    FieldType.CURRENCY: None,
    FieldType.DATE: None,
    FieldType.SELECT: None,
    FieldType.BOOLEAN: False,
    FieldType.TAGS: [],
}

CoercionResult = tuple[Any, FieldViolation | None]


def is_blank(value: Any) -> bool:
    """Whether a raw or coerced value counts as "no value"."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


class RecordValidator:
    """Validator and coercer for item attributes.

    Each ``coerce_*`` method takes a non-blank raw value and returns the
    coerced value together with a violation (or None).
    """

    COERCERS: dict[FieldType, str] = {
        FieldType.TEXT: "coerce_text",
        FieldType.PARAGRAPH: "coerce_text",
        FieldType.URL: "coerce_text",
        FieldType.NUMBER: "coerce_number",
        FieldType.CURRENCY: "coerce_currency",
        FieldType.BOOLEAN: "coerce_boolean",
        FieldType.DATE: "coerce_date",
        FieldType.SELECT: "coerce_select",
        FieldType.TAGS: "coerce_tags",
    }

    @classmethod
    def coerce_text(cls, value: Any, spec: FieldSpec) -> CoercionResult:
        """Coerce to string. URL format is not enforced."""
        return str(value), None

    @classmethod
    def coerce_number(cls, value: Any, spec: FieldSpec) -> CoercionResult:
        """Parse a number; integral input becomes int, anything else float."""
        mismatch = TypeMismatch(
            field=spec.name,
            message=f"Expected a number, got {value!r}",
        )
        if isinstance(value, bool):
            return None, mismatch

        if isinstance(value, int):
            return value, None

        if isinstance(value, float):
            number = value
        elif isinstance(value, str):
            text = value.strip()
            try:
                return int(text), None
            except ValueError:
                pass
            try:
                number = float(text)
            except ValueError:
                return None, mismatch
        else:
            return None, mismatch

        if not math.isfinite(number):
            return None, mismatch
        if number.is_integer():
            return int(number), None
        return number, None

    @classmethod
    def coerce_currency(cls, value: Any, spec: FieldSpec) -> CoercionResult:
        """Parse a number that must not be negative."""
        number, error = cls.coerce_number(value, spec)
        if error:
            return None, error
        if number < 0:
            return None, NegativeValue(
                field=spec.name,
                message=f"'{spec.name}' cannot be negative",
            )
        return number, None

    @classmethod
    def coerce_boolean(cls, value: Any, spec: FieldSpec) -> CoercionResult:
        """Truthy-equivalence; never fails."""
        return parse_flag(value), None

    @classmethod
    def coerce_date(cls, value: Any, spec: FieldSpec) -> CoercionResult:
        """Parse an ISO 8601 date or datetime into a date.

        Accepts date and datetime objects as well.
        """
        if isinstance(value, datetime):
            return value.date(), None
        if isinstance(value, date):
            return value, None

        mismatch = TypeMismatch(
            field=spec.name,
            message="Invalid date format. Use ISO 8601 format (e.g., 2024-01-31)",
        )
        if not isinstance(value, str):
            return None, mismatch

        text = value.strip()
        try:
            return date.fromisoformat(text), None
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date(), None
        except ValueError:
            return None, mismatch

    @classmethod
    def coerce_select(cls, value: Any, spec: FieldSpec) -> CoercionResult:
        """Require an exact, case-sensitive option match."""
        if isinstance(value, str) and value in spec.options:
            return value, None
        return None, InvalidOption(
            field=spec.name,
            message=f"'{value}' is not a valid option. Valid options: {', '.join(spec.options)}",
        )

    @classmethod
    def coerce_tags(cls, value: Any, spec: FieldSpec) -> CoercionResult:
        """Split comma-separated tags, trimming and dropping empty segments."""
        if isinstance(value, str):
            segments = value.split(",")
        elif isinstance(value, (list, tuple)):
            segments = [str(segment) for segment in value if segment is not None]
        else:
            return None, TypeMismatch(
                field=spec.name,
                message=f"Expected tags as text or a list, got {type(value).__name__}",
            )
        return [tag.strip() for tag in segments if tag.strip()], None

    @classmethod
    def coerce_field_value(cls, value: Any, spec: FieldSpec) -> CoercionResult:
        """Coerce a single raw value against its field spec.

        Blank values coerce to the type's empty value without error.
        """
        if spec.type is FieldType.BOOLEAN:
            return cls.coerce_boolean(value, spec)
        if is_blank(value):
            empty = EMPTY_VALUES[spec.type]
            return (list(empty) if isinstance(empty, list) else empty), None
        coercer = getattr(cls, cls.COERCERS[spec.type])
        return coercer(value, spec)

    @classmethod
    def validate_and_coerce(
        cls, template: Template, raw_attributes: dict[str, Any]
    ) -> tuple[dict[str, Any], list[FieldViolation]]:
        """Validate raw attributes against a template and coerce them.

        Args:
            template: The resolved template.
            raw_attributes: Attribute values as received from the caller.

        Returns:
            Tuple of (coerced, errors).
            coerced holds one entry per template field present in the input,
            plus ``False`` for absent boolean fields.
            errors is empty list if validation passed.
        """
        if not isinstance(raw_attributes, dict):
            return {}, [
                TypeMismatch(
                    field="attributes",
                    message=f"Expected an object of attributes, got {type(raw_attributes).__name__}",
                )
            ]

        errors: list[FieldViolation] = []
        coerced: dict[str, Any] = {}

        for spec in template.fields:
            present = spec.name in raw_attributes

            if not present:
                if spec.required:
                    errors.append(
                        MissingRequired(
                            field=spec.name,
                            message=f"Required field '{spec.name}' is missing",
                        )
                    )
                elif spec.type is FieldType.BOOLEAN:
                    coerced[spec.name] = False
                continue

            value, error = cls.coerce_field_value(raw_attributes[spec.name], spec)
            if error:
                errors.append(error)
                continue

            # A present boolean always satisfies required
            if spec.required and spec.type is not FieldType.BOOLEAN and is_blank(value):
                errors.append(
                    MissingRequired(
                        field=spec.name,
                        message=f"Required field '{spec.name}' cannot be empty",
                    )
                )
                continue

            coerced[spec.name] = value

        return coerced, errors

    @classmethod
    def coerce(cls, template: Template, raw_attributes: dict[str, Any]) -> dict[str, Any]:
        """Like validate_and_coerce, but raise ValidationError on any violation."""
        coerced, errors = cls.validate_and_coerce(template, raw_attributes)
        if errors:
            raise ValidationError(errors)
        return coerced


_missing_coercers = set(FieldType) - set(RecordValidator.COERCERS)
if _missing_coercers:
    raise RuntimeError(
        f"No coercer registered for field types: {sorted(t.value for t in _missing_coercers)}"
    )
