"""Cell-span resolution: merges to a per-cell coverage map.

Merges are positioned against the *current* view, so the same declaration can
cover different rows depending on filter, sort and expansion. Each merge
registers its anchor plus one covered entry per other cell in its block.

Conflicts: a cell may be registered once. When a merge would claim a cell that
an earlier merge already registered (as anchor or covered), the whole later
merge is dropped and a warning is logged. Declaration order decides.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..debug_trace import get_logger, log_perf
from ..models.record import cell_key
from ..models.view import DEFAULT_SPAN, CellSpan, RenderableCell

if TYPE_CHECKING:
    from ..models.record import Merge
    from ..models.view import ViewColumn, ViewRow

log = get_logger("spans")


@log_perf
def resolve_spans(
    rows: Sequence[ViewRow],
    column_keys: Sequence[str],
    merges: Sequence[Merge],
) -> dict[str, CellSpan]:
    """Build the cell span map for a flattened view.

    Spans that run past the last row or column are clipped to the view.
    Merges whose anchor row or column is not in the view are skipped.

    Args:
        rows: Flattened rows in display order
        column_keys: Visible column keys in display order
        merges: Merge declarations in declaration order

    Returns:
        Dict mapping "rowId:colKey" to CellSpan
    """
    row_pos = {row.row_id: i for i, row in enumerate(rows)}
    col_pos = {key: i for i, key in enumerate(column_keys)}
    span_map: dict[str, CellSpan] = {}

    for merge in merges:
        r0 = row_pos.get(merge.row_id)
        c0 = col_pos.get(merge.col_key)
        if r0 is None or c0 is None:
            log.debug("merge %s is not in the current view; skipped", merge.anchor_key)
            continue

        row_span = max(1, min(merge.row_span, len(rows) - r0))
        col_span = max(1, min(merge.col_span, len(column_keys) - c0))
        anchor = cell_key(merge.row_id, merge.col_key)

        block = [
            cell_key(rows[r].row_id, column_keys[c])
            for r in range(r0, r0 + row_span)
            for c in range(c0, c0 + col_span)
        ]
        clashes = [key for key in block if key in span_map]
        if clashes:
            log.warning(
                "merge %s overlaps an earlier merge at %s; dropped", anchor, ", ".join(clashes)
            )
            continue

        span_map[anchor] = CellSpan(row_span=row_span, col_span=col_span)
        for key in block:
            if key != anchor:
                span_map[key] = CellSpan(covered_by=anchor)

    return span_map


def get_renderable_cells(
    row: ViewRow,
    columns: Sequence[ViewColumn],
    cell_span_map: dict[str, CellSpan],
) -> list[RenderableCell]:
    """Return the cells of row that should be drawn (covered cells are skipped)."""
    cells: list[RenderableCell] = []
    for column in columns:
        span = cell_span_map.get(cell_key(row.row_id, column.column_key))
        if span is not None and span.is_covered:
            continue
        cells.append(RenderableCell(col_key=column.column_key, span=span or DEFAULT_SPAN))
    return cells
