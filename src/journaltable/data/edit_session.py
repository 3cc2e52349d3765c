"""Edit session state machine for single-cell edits.

States:
    Idle                      no edit in flight
    Editing(row_id, col_key)  one cell is being edited

Transitions:
    begin_edit   Idle/Editing -> Editing   (a second begin_edit replaces the first)
    apply_edit   Editing -> Idle           (returns a Patch for the cell)
    cancel_edit  Editing -> Idle           (no patch)

There is no queue: only one session exists at a time. The session never
persists anything; the caller merges the returned Patch into the dataset.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..debug_trace import get_logger
from ..errors import InvalidValueError, NoActiveEditError
from ..models.mutable_record_builder import MutableRecordBuilder
from ..models.record import Patch, cell_key
from ..models.schema import Field
from ..models.validation import coerce_value

log = get_logger("edit")


@dataclass(frozen=True)
class EditTarget:
    """The cell being edited."""

    row_id: str
    col_key: str

    @property
    def cell_key(self) -> str:
        return cell_key(self.row_id, self.col_key)


class EditSession:
    """Tracks at most one in-flight cell edit.

    Usage:
        session = EditSession()
        session.begin(row_id, field)
        patch = session.apply("42")   # back to Idle
    """

    def __init__(self):
        self._target: EditTarget | None = None
        self._field: Field | None = None

    @property
    def is_editing(self) -> bool:
        return self._target is not None

    @property
    def target(self) -> EditTarget | None:
        return self._target

    def begin(self, row_id: str, field: Field) -> EditTarget:
        """Enter Editing for (row_id, field.key), discarding any prior edit."""
        if self._target is not None:
            log.debug("begin_edit replaces pending edit of %s", self._target.cell_key)
        self._target = EditTarget(row_id=row_id, col_key=field.key)
        self._field = field
        return self._target

    def apply(self, value: Any) -> Patch:
        """Coerce value and produce a Patch for the edited cell.

        On a coercion failure the session stays in Editing so the caller can
        retry or cancel.

        Raises:
            NoActiveEditError: If no edit is in progress.
            InvalidValueError: If value does not fit the field type.
        """
        if self._target is None or self._field is None:
            raise NoActiveEditError("apply_edit called with no active edit")

        is_valid, coerced, error = coerce_value(value, self._field)
        if not is_valid:
            raise InvalidValueError(self._field.key, error)

        builder = MutableRecordBuilder()
        builder.set_cell(self._target.col_key, coerced)
        patch = builder.to_patch(self._target.row_id)

        self.reset()
        return patch

    def cancel(self) -> None:
        """Discard the current edit (no-op when idle)."""
        self.reset()

    def reset(self) -> None:
        self._target = None
        self._field = None
