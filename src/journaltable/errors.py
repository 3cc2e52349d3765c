"""Exceptions raised by the table engine and its ports."""

from __future__ import annotations


class TableError(Exception):
    """Base class for all journaltable errors."""


class StorageAdapterError(TableError, TypeError):
    """A storage adapter is missing a required method (raised at wiring time)."""


class UnknownRecordError(TableError, KeyError):
    """No record with the given id exists in the dataset."""

    def __init__(self, record_id: str):
        super().__init__(record_id)
        self.record_id = record_id

    def __str__(self) -> str:
        return f"Unknown record: {self.record_id!r}"


class UnknownFieldError(TableError, KeyError):
    """The column key is not a field of the active schema."""

    def __init__(self, field_key: str):
        super().__init__(field_key)
        self.field_key = field_key

    def __str__(self) -> str:
        return f"Unknown field: {self.field_key!r}"


class CellNotEditableError(TableError):
    """The cell is covered by another cell's merge."""

    def __init__(self, cell_key: str, covered_by: str):
        super().__init__(f"Cell {cell_key} is covered by {covered_by}")
        self.cell_key = cell_key
        self.covered_by = covered_by


class NoActiveEditError(TableError, RuntimeError):
    """apply_edit() was called while no edit session is active."""


class InvalidValueError(TableError, ValueError):
    """A value could not be coerced to its field type."""

    def __init__(self, field_key: str, reason: str):
        super().__init__(f"{field_key}: {reason}")
        self.field_key = field_key
        self.reason = reason


class FormValidationError(TableError, ValueError):
    """An add-row submission failed validation."""

    def __init__(self, errors: dict[str, str]):
        super().__init__("Invalid form: " + ", ".join(f"{k} ({v})" for k, v in errors.items()))
        self.errors = dict(errors)
