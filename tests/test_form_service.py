"""Tests for FormService - add-row form model, validation and construction."""

import pytest

from journaltable.errors import FormValidationError
from journaltable.models.schema import Field, FieldType, Schema
from journaltable.services.form_service import FormService, new_record_id


@pytest.fixture
def schema():
    return Schema(
        id="tpl:test",
        fields=(
            Field("name", label="Name", required=True),
            Field("qty", type=FieldType.NUMBER, default=1),
            Field("done", type=FieldType.BOOLEAN, default=False),
        ),
    )


class TestGetAddFormModel:
    """Tests for get_add_form_model()."""

    def test_one_field_per_schema_field(self, schema):
        form = FormService.get_add_form_model(schema)
        assert [f.key for f in form] == ["name", "qty", "done"]
        assert form[0].label == "Name"
        assert form[0].required is True
        assert form[1].type == FieldType.NUMBER
        assert form[1].default == 1

    def test_empty_schema(self):
        assert FormService.get_add_form_model(Schema(id="tpl:x")) == []


class TestValidateAddForm:
    """Tests for validate_add_form()."""

    def test_valid(self, schema):
        result = FormService.validate_add_form(schema, {"name": "Ann", "qty": "3"})
        assert result.valid is True
        assert result.errors == {}

    def test_missing_required(self, schema):
        result = FormService.validate_add_form(schema, {"qty": "3"})
        assert result.valid is False
        assert result.errors == {"name": "Required"}

    def test_type_errors_per_field(self, schema):
        result = FormService.validate_add_form(schema, {"name": "", "qty": "many"})
        assert result.errors == {"name": "Required", "qty": "Not a number"}


class TestBuildRecordFromForm:
    """Tests for build_record_from_form()."""

    def test_coerces_and_applies_defaults(self, schema):
        record = FormService.build_record_from_form(
            schema, {"name": "Ann", "qty": ""}, id_factory=lambda: "new"
        )
        assert record.id == "new"
        assert record.parent_id is None
        assert record.cells == {"name": "Ann", "qty": 1, "done": False}

    def test_parent_id(self, schema):
        record = FormService.build_record_from_form(
            schema, {"name": "Child", "qty": "2,5"}, parent_id="1", id_factory=lambda: "c"
        )
        assert record.parent_id == "1"
        assert record.cells["qty"] == 2.5

    def test_invalid_raises(self, schema):
        with pytest.raises(FormValidationError) as exc_info:
            FormService.build_record_from_form(schema, {})
        assert exc_info.value.errors == {"name": "Required"}

    def test_generated_ids_are_unique(self, schema):
        first = FormService.build_record_from_form(schema, {"name": "a"})
        second = FormService.build_record_from_form(schema, {"name": "b"})
        assert first.id != second.id
        assert len(new_record_id()) == 32
