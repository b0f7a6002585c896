"""Unit tests for TemplateValidator."""

from trove.domain.entities.field_spec import FieldType
from trove.domain.exceptions import SchemaViolation
from trove.domain.services.template_validator import TemplateValidator


def valid_definition(**overrides):
    definition = {
        "name": "Coins",
        "description": "World coins",
        "icon": "🪙",
        "fields": [
            {"name": "Country", "type": "text", "required": True},
            {"name": "Grade", "type": "select", "options": ["MS", "AU", "VF"]},
        ],
    }
    definition.update(overrides)
    return definition


class TestTemplateValidator:

    # --- Name and description ---

    def test_valid_definition_has_no_errors(self):
        assert TemplateValidator.validate(valid_definition()) == []

    def test_name_required(self):
        errors = TemplateValidator.validate_name("   ")
        assert len(errors) == 1
        assert errors[0].code == "name_required"

    def test_name_too_long(self):
        errors = TemplateValidator.validate_name("a" * 101)
        assert errors[0].code == "name_too_long"

    def test_description_required(self):
        errors = TemplateValidator.validate(valid_definition(description=""))
        assert [e.code for e in errors] == ["description_required"]

    # --- Fields ---

    def test_at_least_one_field(self):
        errors = TemplateValidator.validate(valid_definition(fields=[]))
        assert [e.code for e in errors] == ["fields_empty"]

    def test_missing_fields_key(self):
        definition = valid_definition()
        del definition["fields"]
        errors = TemplateValidator.validate(definition)
        assert [e.code for e in errors] == ["fields_empty"]

    def test_legacy_attributes_key_accepted(self):
        definition = valid_definition()
        definition["attributes"] = definition.pop("fields")
        assert TemplateValidator.validate(definition) == []

    def test_field_name_required(self):
        errors = TemplateValidator.validate_fields([{"name": "", "type": "text"}])
        assert len(errors) == 1
        assert errors[0].code == "field_name_required"
        assert errors[0].field == "fields[0].name"

    def test_duplicate_field_names_rejected(self):
        errors = TemplateValidator.validate_fields(
            [{"name": "Year", "type": "number"}, {"name": "Year", "type": "text"}]
        )
        assert len(errors) == 1
        assert errors[0].code == "field_name_duplicate"
        assert errors[0].field == "fields[1].name"

    def test_duplicate_check_is_case_sensitive(self):
        errors = TemplateValidator.validate_fields(
            [{"name": "Year", "type": "number"}, {"name": "year", "type": "number"}]
        )
        assert errors == []

    def test_invalid_field_type(self):
        errors = TemplateValidator.validate_fields([{"name": "Weight", "type": "grams"}])
        assert errors[0].code == "field_type_invalid"

    def test_missing_field_type(self):
        errors = TemplateValidator.validate_fields([{"name": "Weight"}])
        assert errors[0].code == "field_type_required"

    def test_legacy_type_names_accepted(self):
        errors = TemplateValidator.validate_fields(
            [
                {"name": "Notes", "type": "textarea"},
                {"name": "Grade", "type": "dropdown", "options": ["A"]},
            ]
        )
        assert errors == []

    def test_select_requires_option(self):
        errors = TemplateValidator.validate_fields([{"name": "Grade", "type": "select", "options": []}])
        assert [e.code for e in errors] == ["select_options_required"]

    def test_select_blank_options_do_not_count(self):
        errors = TemplateValidator.validate_fields(
            [{"name": "Grade", "type": "select", "options": ["  ", ""]}]
        )
        assert [e.code for e in errors] == ["select_options_required"]

    def test_non_object_field(self):
        errors = TemplateValidator.validate_fields(["Year"])
        assert errors[0].code == "field_invalid"

    def test_all_violations_reported(self):
        definition = {
            "name": "",
            "description": "",
            "fields": [
                {"name": "", "type": "text"},
                {"name": "Grade", "type": "select"},
                {"name": "Grade", "type": "bogus"},
            ],
        }
        errors = TemplateValidator.validate(definition)
        codes = [e.code for e in errors]
        assert codes == [
            "name_required",
            "description_required",
            "field_name_required",
            "select_options_required",
            "field_type_invalid",
            "field_name_duplicate",
        ]
        assert all(isinstance(e, SchemaViolation) for e in errors)

    # --- Building field specs ---

    def test_build_fields_normalizes(self):
        definition = valid_definition(
            fields=[
                {"name": " Notes ", "type": "textarea", "options": ["ignored"]},
                {"name": "Grade", "type": "select", "options": [" MS ", "", "AU"], "required": True},
            ]
        )
        specs = TemplateValidator.build_fields(definition)
        assert specs[0].name == "Notes"
        assert specs[0].type is FieldType.PARAGRAPH
        assert specs[0].options == ()
        assert specs[1].options == ("MS", "AU")
        assert specs[1].required is True

    def test_build_fields_reads_string_flags(self):
        definition = valid_definition(
            fields=[
                {"name": "Country", "type": "text", "required": "false"},
                {"name": "Year", "type": "number", "required": "Yes"},
                {"name": "Mint", "type": "text", "required": 0},
            ]
        )
        assert TemplateValidator.validate(definition) == []
        specs = TemplateValidator.build_fields(definition)
        assert [spec.required for spec in specs] == [False, True, False]

    def test_ambiguous_required_flag_rejected(self):
        errors = TemplateValidator.validate_fields(
            [
                {"name": "Country", "type": "text", "required": "sometimes"},
                {"name": "Year", "type": "number", "required": ["yes"]},
            ]
        )
        assert [e.code for e in errors] == ["field_required_invalid", "field_required_invalid"]
        assert errors[0].field == "fields[0].required"
