"""Table engine: schema + dataset + settings to a renderable View.

The engine is pure computation. It holds the inputs for one rendering context
and recomputes the whole View on every compute() call rather than patching a
previous one. Mutations return Patches or updated settings; persisting them is
the caller's job (see TableController).

Pipeline:
    records -> filter/sort -> hierarchy flattening -> span resolution -> View
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from ..debug_trace import get_logger, perf_timer
from ..errors import CellNotEditableError, UnknownFieldError, UnknownRecordError
from ..models.mutable_record_builder import MutableRecordBuilder
from ..models.record import Dataset, Patch, Record, cell_key, normalize_dataset
from ..models.schema import Schema
from ..models.settings import TableSettings, ordered_column_keys
from ..models.view import View, ViewColumn
from ..services.filter_service import filter_and_sort
from ..services.form_service import FormField, FormService, FormValidation
from ..services.hierarchy_service import flatten_hierarchy, toggle_expand
from ..services.selection_service import prune_selection, toggle_select
from ..services.span_service import resolve_spans
from .edit_session import EditSession, EditTarget

log = get_logger("engine")


class TableEngine:
    """View computation and mutation mediation for one schema.

    Usage:
        engine = TableEngine(schema, settings)
        engine.set_dataset(dataset)
        view = engine.compute()

        engine.begin_edit("1", "name")
        patch = engine.apply_edit("Ann")   # caller persists the patch
    """

    def __init__(self, schema: Schema, settings: TableSettings | Mapping[str, Any] | None = None):
        """Initialize the engine.

        Args:
            schema: Active schema; a schema change needs a new engine.
            settings: Display settings (TableSettings or its dict form).
        """
        self._schema = schema
        self._settings = TableSettings.fresh()
        self._dataset = Dataset()
        self._edit_session = EditSession()
        self._last_view: View | None = None
        self.set_settings(settings)

    # --- Inputs ---

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def settings(self) -> TableSettings:
        """Current settings, including expansion/selection toggles."""
        return self._settings

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    @property
    def last_view(self) -> View | None:
        """The View returned by the most recent compute()."""
        return self._last_view

    def set_settings(self, settings: TableSettings | Mapping[str, Any] | None) -> None:
        if settings is None:
            settings = TableSettings.fresh()
        elif not isinstance(settings, TableSettings):
            settings = TableSettings.from_dict(settings)
        self._settings = settings

    def set_dataset(self, dataset: Dataset | Mapping[str, Any] | None) -> None:
        self._dataset = normalize_dataset(dataset)

    # --- View computation ---

    def visible_columns(self) -> list[ViewColumn]:
        """Visible columns in display order, with their widths."""
        col_settings = self._settings.columns
        columns = []
        for key in ordered_column_keys(self._schema, self._settings):
            if not col_settings.is_visible(key):
                continue
            field = self._schema.get_field(key)
            if field is None:
                continue
            columns.append(ViewColumn(column_key=key, field=field, width=col_settings.widths.get(key)))
        return columns

    def compute(self) -> View:
        """Derive a fresh View from the current inputs."""
        records = self._dataset.records
        with perf_timer("compute", row_count=len(records)):
            columns = self.visible_columns()
            column_keys = [c.column_key for c in columns]

            ordered = filter_and_sort(
                records,
                self._schema,
                column_keys,
                self._settings.filter_text,
                self._settings.sort,
            )
            rows = flatten_hierarchy(ordered, self._settings.expanded_row_ids)
            span_map = resolve_spans(rows, column_keys, self._dataset.merges)

            existing = {r.id for r in records}
            selection = frozenset(prune_selection(self._settings.selected_row_ids, existing))

            view = View(
                columns=columns,
                rows=rows,
                cell_span_map=span_map,
                selection=selection,
                schema_id=self._schema.id,
            )

        self._last_view = view
        return view

    # --- Expansion / selection ---

    def toggle_expand(self, row_id: str) -> TableSettings:
        """Flip expansion of row_id; returns the updated settings to persist."""
        self._settings = replace(
            self._settings,
            expanded_row_ids=toggle_expand(self._settings.expanded_row_ids, row_id),
        )
        return self._settings

    def toggle_select(self, row_id: str) -> TableSettings:
        """Flip selection of row_id; returns the updated settings to persist."""
        self._settings = replace(
            self._settings,
            selected_row_ids=toggle_select(self._settings.selected_row_ids, row_id),
        )
        return self._settings

    # --- Editing ---

    @property
    def edit_target(self) -> EditTarget | None:
        return self._edit_session.target

    @property
    def is_editing(self) -> bool:
        return self._edit_session.is_editing

    def _require_record(self, row_id: str) -> Record:
        record = self._dataset.get_record(row_id)
        if record is None:
            raise UnknownRecordError(row_id)
        return record

    def begin_edit(self, row_id: str, col_key: str) -> EditTarget:
        """Start editing a cell, cancelling any edit already in progress.

        Raises:
            UnknownRecordError: If no record has this id.
            UnknownFieldError: If col_key is not a schema field.
            CellNotEditableError: If the cell is covered by a merge in the last view.
        """
        self._require_record(row_id)
        field = self._schema.get_field(col_key)
        if field is None:
            raise UnknownFieldError(col_key)

        if self._last_view is not None:
            span = self._last_view.get_span(row_id, col_key)
            if span is not None and span.covered_by is not None:
                raise CellNotEditableError(cell_key(row_id, col_key), span.covered_by)

        return self._edit_session.begin(row_id, field)

    def apply_edit(self, value: Any) -> Patch:
        """Finish the current edit and return its Patch (see EditSession.apply)."""
        return self._edit_session.apply(value)

    def cancel_edit(self) -> None:
        self._edit_session.cancel()

    def apply_format(self, row_id: str, col_key: str, style: Mapping[str, Any]) -> Patch:
        """Build a format-only Patch for one cell (does not touch the edit session)."""
        self._require_record(row_id)
        if not self._schema.has_field(col_key):
            raise UnknownFieldError(col_key)

        builder = MutableRecordBuilder()
        builder.set_format(col_key, style)
        return builder.to_patch(row_id)

    # --- Add-row form ---

    def get_add_form_model(self) -> list[FormField]:
        return FormService.get_add_form_model(self._schema)

    def validate_add_form(self, values: Mapping[str, Any]) -> FormValidation:
        return FormService.validate_add_form(self._schema, values)

    def build_record_from_form(
        self, values: Mapping[str, Any], parent_id: str | None = None
    ) -> Record:
        """Construct (but do not append) a new record from form values."""
        record = FormService.build_record_from_form(self._schema, values, parent_id=parent_id)
        log.debug("built record %s from form", record.id)
        return record
