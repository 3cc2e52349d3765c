"""Selection tracking.

The tracker has no notion of selection mode; gating on mode is up to the
caller (see TableSession.selection_mode).
"""

from __future__ import annotations

from collections.abc import Sequence


def toggle_select(selected_row_ids: Sequence[str], row_id: str) -> tuple[str, ...]:
    """Add row_id if absent, remove it if present. Insertion order is kept."""
    if row_id in selected_row_ids:
        return tuple(r for r in selected_row_ids if r != row_id)
    return (*selected_row_ids, row_id)


def prune_selection(selected_row_ids: Sequence[str], existing_ids: set[str]) -> tuple[str, ...]:
    """Drop selected ids that no longer exist in the dataset."""
    return tuple(r for r in selected_row_ids if r in existing_ids)
