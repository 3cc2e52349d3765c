"""View model: the render-ready projection of schema + dataset + settings.

A View is recomputed on every change and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .record import Record, cell_key
from .schema import EMPTY_SCHEMA_ID, Field


@dataclass(frozen=True)
class ViewColumn:
    """A visible column in display order."""

    column_key: str
    field: Field
    width: float | None = None


@dataclass(frozen=True)
class ViewRow:
    """A flattened row with its tree position."""

    row_id: str
    record: Record
    depth: int = 0
    has_children: bool = False
    is_expanded: bool = False


@dataclass(frozen=True)
class CellSpan:
    """Span entry for one cell.

    Anchors carry their row_span/col_span. Covered cells point back to their
    anchor through covered_by and are not rendered.
    """

    row_span: int = 1
    col_span: int = 1
    covered_by: str | None = None

    @property
    def is_covered(self) -> bool:
        return self.covered_by is not None


@dataclass(frozen=True)
class RenderableCell:
    """A cell the renderer should draw."""

    col_key: str
    span: CellSpan


DEFAULT_SPAN = CellSpan()


@dataclass
class View:
    """Fully derived table view for one render cycle."""

    columns: list[ViewColumn] = field(default_factory=list)
    rows: list[ViewRow] = field(default_factory=list)
    cell_span_map: dict[str, CellSpan] = field(default_factory=dict)
    selection: frozenset[str] = frozenset()
    schema_id: str = EMPTY_SCHEMA_ID

    @property
    def has_columns(self) -> bool:
        """False when the schema has no (visible) columns to render."""
        return bool(self.columns)

    @property
    def column_keys(self) -> list[str]:
        return [c.column_key for c in self.columns]

    def get_row(self, row_id: str) -> ViewRow | None:
        for row in self.rows:
            if row.row_id == row_id:
                return row
        return None

    def get_span(self, row_id: str, col_key: str) -> CellSpan | None:
        return self.cell_span_map.get(cell_key(row_id, col_key))

    def is_covered(self, row_id: str, col_key: str) -> bool:
        span = self.get_span(row_id, col_key)
        return span is not None and span.is_covered
