"""Template validation service for attribute schema definitions.

Validates template names, descriptions and field definitions before a custom
template is saved. Every rule is checked so a single request reports all of
its problems.
"""

from typing import Any

from trove.domain.entities.field_spec import (
    TRUTHY_VALUES,
    FieldSpec,
    FieldType,
    parse_field_type,
    parse_flag,
)
from trove.domain.exceptions import SchemaViolation

FALSY_VALUES = frozenset({"false", "0", "no", "off", ""})


class TemplateValidator:
    """Validator for template create and update requests.

    Works on raw definition dicts as received from callers:
    ``{"name", "description", "icon", "fields": [{"name", "type", "required",
    "options", "description"}]}``.
    """

    MAX_NAME_LENGTH = 100
    MAX_FIELD_NAME_LENGTH = 64

    @staticmethod
    def raw_fields(definition: dict[str, Any]) -> Any:
        """Return the field list of a definition, honoring the legacy ``attributes`` key."""
        fields = definition.get("fields")
        if fields is None:
            fields = definition.get("attributes")
        return fields

    @staticmethod
    def normalize_options(options: Any) -> list[str]:
        """Trim select options and drop blank ones."""
        if not isinstance(options, (list, tuple)):
            return []
        return [str(option).strip() for option in options if str(option).strip()]

    @staticmethod
    def is_flag(value: Any) -> bool:
        """Whether a ``required`` value reads unambiguously as a boolean."""
        if value is None or isinstance(value, bool):
            return True
        if isinstance(value, int):
            return value in (0, 1)
        if isinstance(value, str):
            return value.strip().lower() in TRUTHY_VALUES | FALSY_VALUES
        return False

    @classmethod
    def validate_name(cls, name: Any) -> list[SchemaViolation]:
        """Validate a template name.

        Args:
            name: The template name to validate.

        Returns:
            List of validation errors (empty if valid).
        """
        if not isinstance(name, str) or not name.strip():
            return [
                SchemaViolation(
                    field="name",
                    message="Template name is required",
                    code="name_required",
                )
            ]

        if len(name.strip()) > cls.MAX_NAME_LENGTH:
            return [
                SchemaViolation(
                    field="name",
                    message=f"Template name must be at most {cls.MAX_NAME_LENGTH} characters",
                    code="name_too_long",
                )
            ]

        return []

    @classmethod
    def validate_description(cls, description: Any) -> list[SchemaViolation]:
        """Validate a template description (required, unlike field descriptions)."""
        if not isinstance(description, str) or not description.strip():
            return [
                SchemaViolation(
                    field="description",
                    message="Template description is required",
                    code="description_required",
                )
            ]
        return []

    @classmethod
    def validate_field(cls, field: Any, field_index: int) -> list[SchemaViolation]:
        """Validate a single field definition.

        Args:
            field: The field definition dict.
            field_index: Index of the field in the template (for error messages).

        Returns:
            List of validation errors (empty if valid).
        """
        field_path = f"fields[{field_index}]"
        if not isinstance(field, dict):
            return [
                SchemaViolation(
                    field=field_path,
                    message="Field definition must be an object",
                    code="field_invalid",
                )
            ]

        errors: list[SchemaViolation] = []

        name = field.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(
                SchemaViolation(
                    field=f"{field_path}.name",
                    message="Field name is required",
                    code="field_name_required",
                )
            )
        elif len(name.strip()) > cls.MAX_FIELD_NAME_LENGTH:
            errors.append(
                SchemaViolation(
                    field=f"{field_path}.name",
                    message=f"Field name must be at most {cls.MAX_FIELD_NAME_LENGTH} characters",
                    code="field_name_too_long",
                )
            )

        raw_type = field.get("type")
        field_type = parse_field_type(raw_type) if raw_type else None
        if not raw_type:
            errors.append(
                SchemaViolation(
                    field=f"{field_path}.type",
                    message="Field type is required",
                    code="field_type_required",
                )
            )
        elif field_type is None:
            valid_types = ", ".join(t.value for t in FieldType)
            errors.append(
                SchemaViolation(
                    field=f"{field_path}.type",
                    message=f"Invalid field type '{raw_type}'. Valid types: {valid_types}",
                    code="field_type_invalid",
                )
            )

        if not cls.is_flag(field.get("required")):
            errors.append(
                SchemaViolation(
                    field=f"{field_path}.required",
                    message="Field 'required' must be true or false",
                    code="field_required_invalid",
                )
            )

        if field_type is FieldType.SELECT and not cls.normalize_options(field.get("options")):
            errors.append(
                SchemaViolation(
                    field=f"{field_path}.options",
                    message="Select field requires at least one option",
                    code="select_options_required",
                )
            )

        return errors

    @classmethod
    def validate_fields(cls, fields: Any) -> list[SchemaViolation]:
        """Validate the field list of a template.

        Field names must be unique; the comparison is case-sensitive.
        """
        if not isinstance(fields, (list, tuple)) or not fields:
            return [
                SchemaViolation(
                    field="fields",
                    message="Template must define at least one field",
                    code="fields_empty",
                )
            ]

        errors: list[SchemaViolation] = []
        seen_names: set[str] = set()
        for i, field in enumerate(fields):
            errors.extend(cls.validate_field(field, i))

            if not isinstance(field, dict):
                continue
            name = field.get("name")
            if not isinstance(name, str) or not name.strip():
                continue
            name = name.strip()
            if name in seen_names:
                errors.append(
                    SchemaViolation(
                        field=f"fields[{i}].name",
                        message=f"Duplicate field name '{name}'",
                        code="field_name_duplicate",
                    )
                )
            seen_names.add(name)

        return errors

    @classmethod
    def validate(cls, definition: dict[str, Any]) -> list[SchemaViolation]:
        """Validate a complete template definition.

        Returns:
            List of validation errors (empty if valid).
        """
        errors: list[SchemaViolation] = []
        errors.extend(cls.validate_name(definition.get("name")))
        errors.extend(cls.validate_description(definition.get("description")))
        errors.extend(cls.validate_fields(cls.raw_fields(definition)))
        return errors

    @classmethod
    def build_fields(cls, definition: dict[str, Any]) -> list[FieldSpec]:
        """Turn the fields of an already validated definition into FieldSpecs."""
        specs = []
        for field in cls.raw_fields(definition):
            field_type = parse_field_type(field["type"])
            specs.append(
                FieldSpec(
                    name=field["name"].strip(),
                    type=field_type,
                    required=parse_flag(field.get("required", False)),
                    options=tuple(cls.normalize_options(field.get("options")))
                    if field_type is FieldType.SELECT
                    else (),
                    description=(field.get("description") or "").strip(),
                )
            )
        return specs
