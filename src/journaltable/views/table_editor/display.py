"""Display formatting for the table panel.

Turns a computed View into plain sheet data (strings, widths, styles) so the
tksheet panel only has to push values into the widget. Nothing in here
imports tkinter, which keeps it testable headless.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from ...models.schema import Field, FieldType
from ...models.view import View, ViewRow
from ...services.span_service import get_renderable_cells

# Tree markers for the row index
MARKER_EXPANDED = "▾"
MARKER_COLLAPSED = "▸"
MARKER_SELECTED = "●"
MARKER_TRUE = "✓"

# Row index indentation per hierarchy level
INDENT = "    "

DEFAULT_DATE_FORMAT = "%d.%m.%Y"

# Background for merged blocks (anchor and covered cells)
COLOR_MERGED_BG = "#eef3fb"
COLOR_SELECTED_INDEX_BG = "#cfe2ff"


@dataclass(frozen=True)
class FormattedCell:
    """Display text and styling for one cell."""

    text: str = ""
    align: str = "w"
    fg: str | None = None
    bg: str | None = None
    bold: bool = False

    @property
    def is_plain(self) -> bool:
        return self.align == "w" and not self.fg and not self.bg and not self.bold


@dataclass(frozen=True)
class SheetSpan:
    """A merged block in sheet coordinates (anchor at row/column)."""

    row: int
    column: int
    row_span: int
    col_span: int

    @property
    def cells(self) -> list[tuple[int, int]]:
        return [
            (r, c)
            for r in range(self.row, self.row + self.row_span)
            for c in range(self.column, self.column + self.col_span)
        ]


@dataclass
class SheetModel:
    """Everything the panel needs to draw one View."""

    headers: list[str] = field(default_factory=list)
    widths: list[int | None] = field(default_factory=list)
    index_labels: list[str] = field(default_factory=list)
    data: list[list[str]] = field(default_factory=list)
    spans: list[SheetSpan] = field(default_factory=list)
    styles: dict[tuple[int, int], FormattedCell] = field(default_factory=dict)
    row_ids: list[str] = field(default_factory=list)
    column_keys: list[str] = field(default_factory=list)
    covered: set[tuple[int, int]] = field(default_factory=set)
    selected_rows: list[int] = field(default_factory=list)


# Map style alignment names onto tksheet anchors
_ALIGN = {"left": "w", "right": "e", "center": "center", "w": "w", "e": "e"}


def _format_date(value: Any, date_format: str) -> str:
    if isinstance(value, datetime):
        return value.strftime(date_format)
    if isinstance(value, date):
        return value.strftime(date_format)
    if isinstance(value, str):
        try:
            return date.fromisoformat(value).strftime(date_format)
        except ValueError:
            return value
    return str(value)


def _format_number(value: Any) -> str:
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_cell(
    value: Any,
    fmt: Mapping[str, Any] | None,
    field: Field | None,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> FormattedCell:
    """Format a raw cell value for display.

    Args:
        value: Stored cell value
        fmt: Per-cell style overrides (color, background, bold, align)
        field: Field the value belongs to (None formats as text)
        date_format: strftime format for date fields

    Returns:
        FormattedCell with display text, alignment and colors
    """
    field_type = field.type if field is not None else FieldType.TEXT
    align = "w"

    if value is None or value == "":
        text = ""
    elif field_type == FieldType.DATE:
        text = _format_date(value, date_format)
    elif field_type == FieldType.NUMBER:
        text = _format_number(value)
        align = "e"
    elif field_type == FieldType.BOOLEAN:
        text = MARKER_TRUE if value is True else ""
        align = "center"
    else:
        text = str(value)

    fmt = fmt or {}
    return FormattedCell(
        text=text,
        align=_ALIGN.get(str(fmt.get("align", "")).lower(), align),
        fg=fmt.get("color") or None,
        bg=fmt.get("background") or None,
        bold=bool(fmt.get("bold", False)),
    )


def build_index_label(row: ViewRow, position: int, selected: bool) -> str:
    """Row index text: indentation, tree marker, selection dot, row number."""
    if row.has_children:
        marker = MARKER_EXPANDED if row.is_expanded else MARKER_COLLAPSED
    else:
        marker = " "
    dot = f" {MARKER_SELECTED}" if selected else ""
    return f"{INDENT * row.depth}{marker}{dot} {position + 1}"


def build_sheet_model(view: View, date_format: str = DEFAULT_DATE_FORMAT) -> SheetModel:
    """Convert a View into sheet data.

    Covered cells are blank; merged blocks are listed in spans and tinted.
    """
    model = SheetModel(
        headers=[col.field.display_label for col in view.columns],
        widths=[int(col.width) if col.width else None for col in view.columns],
        column_keys=view.column_keys,
    )
    col_index = {key: i for i, key in enumerate(model.column_keys)}

    for r, row in enumerate(view.rows):
        selected = row.row_id in view.selection
        model.row_ids.append(row.row_id)
        model.index_labels.append(build_index_label(row, r, selected))
        if selected:
            model.selected_rows.append(r)

        values = [""] * len(view.columns)
        for cell in get_renderable_cells(row, view.columns, view.cell_span_map):
            c = col_index[cell.col_key]
            formatted = format_cell(
                row.record.get_cell(cell.col_key),
                row.record.fmt.get(cell.col_key),
                view.columns[c].field,
                date_format,
            )
            values[c] = formatted.text
            if not formatted.is_plain:
                model.styles[(r, c)] = formatted
            if cell.span.row_span > 1 or cell.span.col_span > 1:
                model.spans.append(SheetSpan(r, c, cell.span.row_span, cell.span.col_span))
        model.data.append(values)

    for span in model.spans:
        model.covered.update(cell for cell in span.cells if cell != (span.row, span.column))

    return model


def build_header_title(journal: Any | None) -> str:
    """Panel title for the active journal."""
    if journal is None:
        return "Table"
    title = getattr(journal, "title", None)
    if title is None and isinstance(journal, Mapping):
        title = journal.get("title")
    return f"Table: {title}" if title else "Table"
