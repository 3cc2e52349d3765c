"""User display settings for a table.

Settings are user-scoped and persisted independently of the dataset, as a
plain dict in the same shape the original storage format used.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .schema import Schema

MIN_COLUMN_WIDTH = 40


@dataclass(frozen=True)
class SortSpec:
    """Sort by one field key."""

    key: str
    direction: str = "asc"

    @property
    def descending(self) -> bool:
        return self.direction == "desc"

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "direction": self.direction}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> SortSpec | None:
        if not data or not data.get("key"):
            return None
        direction = "desc" if str(data.get("direction", "asc")).lower() == "desc" else "asc"
        return cls(key=str(data["key"]), direction=direction)


@dataclass(frozen=True)
class ColumnSettings:
    """Column order, visibility and widths."""

    order: tuple[str, ...] | None = None
    visibility: Mapping[str, bool] = field(default_factory=dict)
    widths: Mapping[str, float | None] = field(default_factory=dict)

    def is_visible(self, key: str) -> bool:
        # Columns are visible unless explicitly hidden
        return self.visibility.get(key) is not False

    def to_dict(self) -> dict[str, Any]:
        return {
            "order": list(self.order) if self.order is not None else None,
            "visibility": dict(self.visibility),
            "widths": dict(self.widths),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ColumnSettings:
        data = data or {}
        order = data.get("order")
        return cls(
            order=tuple(str(k) for k in order) if isinstance(order, (list, tuple)) else None,
            visibility=dict(data.get("visibility") or {}),
            widths=dict(data.get("widths") or {}),
        )


@dataclass(frozen=True)
class TableSettings:
    """All persisted display state for one table."""

    columns: ColumnSettings = field(default_factory=ColumnSettings)
    sort: SortSpec | None = None
    filter_text: str = ""
    expanded_row_ids: tuple[str, ...] = ()
    selected_row_ids: tuple[str, ...] = ()

    @classmethod
    def fresh(cls) -> TableSettings:
        """Create default settings."""
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": self.columns.to_dict(),
            "sort": self.sort.to_dict() if self.sort else None,
            "filter": {"global": self.filter_text},
            "expandedRowIds": list(self.expanded_row_ids),
            "selectedRowIds": list(self.selected_row_ids),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> TableSettings:
        """Load settings, filling any missing part with defaults."""
        data = data or {}
        filter_data = data.get("filter") or {}
        return cls(
            columns=ColumnSettings.from_dict(data.get("columns")),
            sort=SortSpec.from_dict(data.get("sort")),
            filter_text=str(filter_data.get("global") or ""),
            expanded_row_ids=tuple(str(r) for r in data.get("expandedRowIds") or ()),
            selected_row_ids=tuple(str(r) for r in data.get("selectedRowIds") or ()),
        )


# --- Column settings helpers ---


def ordered_column_keys(schema: Schema, settings: TableSettings) -> list[str]:
    """Return every schema key in display order (hidden columns included).

    Keys in the saved order that no longer exist are dropped; schema keys
    missing from the saved order are appended in schema order.
    """
    schema_keys = schema.field_keys
    order = settings.columns.order
    if not order:
        return schema_keys

    known = set(schema_keys)
    ordered = [key for key in dict.fromkeys(order) if key in known]
    ordered.extend(key for key in schema_keys if key not in ordered)
    return ordered


def apply_column_settings(settings: TableSettings, **changes: Any) -> TableSettings:
    """Return settings with the given ColumnSettings fields replaced."""
    return replace(settings, columns=replace(settings.columns, **changes))


def set_column_visibility(settings: TableSettings, key: str, visible: bool) -> TableSettings:
    visibility = {**settings.columns.visibility, key: bool(visible)}
    return apply_column_settings(settings, visibility=visibility)


def set_column_width(
    settings: TableSettings,
    key: str,
    width: float | None,
    min_width: int = MIN_COLUMN_WIDTH,
) -> TableSettings:
    """Set a column width; falsy clears it, small values are clamped up."""
    new_width = max(float(min_width), float(width)) if width else None
    widths = {**settings.columns.widths, key: new_width}
    return apply_column_settings(settings, widths=widths)


def move_column(settings: TableSettings, schema: Schema, key: str, offset: int) -> TableSettings:
    """Swap a column with its neighbour (offset -1 = left, +1 = right)."""
    order = ordered_column_keys(schema, settings)
    if key not in order:
        return settings

    idx = order.index(key)
    target = idx + offset
    if target < 0 or target >= len(order) or offset == 0:
        return settings

    order[idx], order[target] = order[target], order[idx]
    return apply_column_settings(settings, order=tuple(order))
