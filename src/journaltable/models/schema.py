"""Schema model: the fields a table can show.

A Schema is derived from an external template. Its id changes whenever the
template changes, which is how the engine knows to throw away derived state.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

EMPTY_SCHEMA_ID = "tpl:__none__"


class FieldType(str, Enum):
    """Value types a field can hold."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"

    @classmethod
    def parse(cls, value: str | FieldType | None) -> FieldType:
        """Parse a type name, degrading unknown names to TEXT."""
        if isinstance(value, FieldType):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.TEXT


@dataclass(frozen=True)
class Field:
    """A single column definition."""

    key: str
    label: str = ""
    type: FieldType = FieldType.TEXT
    required: bool = False
    default: Any = None

    @property
    def display_label(self) -> str:
        """Label to show in headers (falls back to the key)."""
        return self.label or self.key


@dataclass(frozen=True)
class Schema:
    """Ordered set of fields with an identity."""

    id: str = EMPTY_SCHEMA_ID
    fields: tuple[Field, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        """True when there are no columns to show."""
        return not self.fields

    @property
    def field_keys(self) -> list[str]:
        return [f.key for f in self.fields]

    def get_field(self, key: str) -> Field | None:
        """Look up a field by key."""
        for f in self.fields:
            if f.key == key:
                return f
        return None

    def has_field(self, key: str) -> bool:
        return self.get_field(key) is not None


EMPTY_SCHEMA = Schema()


def field_from_dict(data: Mapping[str, Any]) -> Field:
    """Build a Field from a template column mapping."""
    key = str(data["key"])
    return Field(
        key=key,
        label=str(data.get("label") or key),
        type=FieldType.parse(data.get("type")),
        required=bool(data.get("required", False)),
        default=data.get("default"),
    )


def schema_from_template(template: Mapping[str, Any] | None) -> Schema:
    """Convert a template into a Schema.

    Columns without a key are skipped. A missing template (or one without an
    id) yields the empty sentinel.
    """
    if not template or not template.get("id"):
        return EMPTY_SCHEMA

    columns = template.get("columns")
    if not isinstance(columns, list):
        columns = []

    fields = tuple(field_from_dict(col) for col in columns if isinstance(col, Mapping) and col.get("key"))
    return Schema(id=f"tpl:{template['id']}", fields=fields)
