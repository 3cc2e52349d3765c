"""Add-row form: field model, validation and record construction.

The service is stateless; every method takes the schema it works against.
Record construction never touches the dataset, the caller appends the result.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..errors import FormValidationError
from ..models.mutable_record_builder import MutableRecordBuilder
from ..models.record import Record
from ..models.schema import FieldType, Schema
from ..models.validation import coerce_value, is_blank, validate_field_value


@dataclass(frozen=True)
class FormField:
    """Descriptor for one input of the add-row form."""

    key: str
    label: str
    type: FieldType
    required: bool = False
    default: Any = None


@dataclass(frozen=True)
class FormValidation:
    """Result of validate_add_form()."""

    valid: bool
    errors: dict[str, str] = field(default_factory=dict)


def new_record_id() -> str:
    """Generate a fresh unique record id."""
    return uuid.uuid4().hex


class FormService:
    """Builds, validates and materializes add-row forms.

    All methods are static as the service is stateless.
    """

    @staticmethod
    def get_add_form_model(schema: Schema) -> list[FormField]:
        """One descriptor per schema field, in schema order."""
        return [
            FormField(
                key=f.key,
                label=f.display_label,
                type=f.type,
                required=f.required,
                default=f.default,
            )
            for f in schema.fields
        ]

    @staticmethod
    def validate_add_form(schema: Schema, values: Mapping[str, Any]) -> FormValidation:
        """Check required fields and type coercion.

        Args:
            schema: The active schema
            values: Raw submitted values keyed by field key

        Returns:
            FormValidation with field-level errors when invalid
        """
        errors: dict[str, str] = {}
        for f in schema.fields:
            is_valid, error = validate_field_value(values.get(f.key), f)
            if not is_valid:
                errors[f.key] = error
        return FormValidation(valid=not errors, errors=errors)

    @staticmethod
    def build_record_from_form(
        schema: Schema,
        values: Mapping[str, Any],
        parent_id: str | None = None,
        id_factory: Callable[[], str] = new_record_id,
    ) -> Record:
        """Construct a new Record from a valid submission.

        Blank values fall back to the field default.

        Raises:
            FormValidationError: If the submission does not validate.
        """
        validation = FormService.validate_add_form(schema, values)
        if not validation.valid:
            raise FormValidationError(validation.errors)

        builder = MutableRecordBuilder()
        for f in schema.fields:
            raw = values.get(f.key)
            if is_blank(raw):
                raw = f.default
            _is_valid, value, _error = coerce_value(raw, f)
            builder.set_cell(f.key, value)

        return builder.build_record(id_factory(), parent_id=parent_id)
