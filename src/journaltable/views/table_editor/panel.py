"""Panel widget for a journal table.

Uses tksheet to display the computed View. The panel holds no table state of
its own: every user action goes through the TableController, which persists
and recomputes, and the panel then redraws from the new View.
"""

from __future__ import annotations

import asyncio
import tkinter as tk
from collections.abc import Callable, Coroutine
from tkinter import ttk
from typing import Any

from ...config import RendererConfig
from ...data.table_controller import TableController
from ...debug_trace import get_logger
from ...errors import InvalidValueError, TableError
from ...models.settings import ordered_column_keys
from ...models.view import View
from .add_record_dialog import AddRecordDialog
from .display import (
    COLOR_MERGED_BG,
    COLOR_SELECTED_INDEX_BG,
    SheetModel,
    build_header_title,
    build_sheet_model,
)
from .sheet import TableSheet

log = get_logger("panel")

# Width used for columns without a saved width
DEFAULT_COLUMN_WIDTH = 120

# Row index width before indentation
BASE_INDEX_WIDTH = 56

TRANSFER_ROW_COMMAND = "table.transferRow"

COLOR_NOTICE_FG = "#666666"
COLOR_ERROR_FG = "#b00020"


class TablePanel(ttk.Frame):
    """Panel rendering one journal table.

    Displays the visible columns with hierarchical rows in the row index.
    Supports in-place editing, add / add child, expand/collapse (double-click
    the row index), selection mode, global search and column settings.
    """

    # --- Async bridge ---

    def _run(self, coro: Coroutine[Any, Any, Any]) -> Any:
        """Run a controller coroutine, reporting failures in the status bar."""
        try:
            return asyncio.run(coro)
        except TableError as e:
            log.debug("table error: %s", e)
            self._set_status(str(e), error=True)
        except Exception as e:
            log.exception("Table action failed")
            self._set_status(f"Error: {e}", error=True)
        return None

    # --- Rendering ---

    def _set_status(self, text: str, error: bool = False) -> None:
        self.status_label.config(text=text, foreground=COLOR_ERROR_FG if error else "")

    def _show_notice(self, visible: bool) -> None:
        if visible:
            self.sheet.pack_forget()
            self.notice_label.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)
        else:
            self.notice_label.pack_forget()
            self.sheet.pack(fill=tk.BOTH, expand=True, padx=5, pady=5, before=self.footer)

    def _apply_styles(self, model: SheetModel) -> None:
        """Apply merge tints, per-cell formats and selection highlights."""
        self.sheet.dehighlight_all()

        # Anchors move with filter and expansion; clear notes from the last render
        for r, c in self._noted_cells:
            if r < len(model.data) and c < len(model.headers):
                self.sheet.note(r, c, note=None)
        self._noted_cells = []

        for span in model.spans:
            for r, c in span.cells:
                self.sheet.highlight_cells(row=r, column=c, bg=COLOR_MERGED_BG)
            self.sheet.note(span.row, span.column, note=f"Merged {span.row_span}×{span.col_span}")
            self._noted_cells.append((span.row, span.column))

        for (r, c), cell in model.styles.items():
            if cell.bg or cell.fg:
                self.sheet.highlight_cells(row=r, column=c, bg=cell.bg, fg=cell.fg)
            if cell.align != "w":
                self.sheet.align_cells(row=r, column=c, align=cell.align)

        for r in model.selected_rows:
            self.sheet.highlight_cells(row=r, bg=COLOR_SELECTED_INDEX_BG, canvas="row_index")

    def _index_width(self, view: View) -> int:
        max_depth = max((row.depth for row in view.rows), default=0)
        return BASE_INDEX_WIDTH + max_depth * self.renderer_config.indent_px

    def render(self, view: View | None) -> None:
        """Redraw the panel from a View."""
        self.title_label.config(text=build_header_title(self.controller.journal))
        self.select_btn.config(
            text="Selection: ON" if self.controller.selection_mode else "Selection"
        )

        if view is None or not view.has_columns:
            self._model = SheetModel()
            self._show_notice(True)
            self._rebuild_column_strip()
            return

        self._show_notice(False)
        model = build_sheet_model(view, self.renderer_config.date_display_format)
        self._model = model

        self._suppress_notifications = True
        try:
            self.sheet.headers(model.headers)
            self.sheet.set_sheet_data(model.data, reset_col_positions=True)
            self.sheet.set_index_data(model.index_labels)
            self.sheet.set_column_widths([w or DEFAULT_COLUMN_WIDTH for w in model.widths])
            self.sheet.row_index(self._index_width(view))
            self._apply_styles(model)
        finally:
            self._suppress_notifications = False

        self._rebuild_column_strip()
        self._set_status(f"Rows: {len(view.rows)}")
        self.sheet.refresh()

    def refresh(self) -> None:
        """Reload from storage and redraw."""
        view = self._run(self.controller.refresh())
        if view is not None:
            self.render(view)

    def _act(self, coro: Coroutine[Any, Any, Any]) -> None:
        """Run a controller action and redraw from the resulting view."""
        result = self._run(coro)
        if isinstance(result, View):
            self.render(result)
        else:
            self.render(self.controller.view)

    # --- Sheet events ---

    def _row_id_at(self, row: int | None) -> str | None:
        if row is None or not 0 <= row < len(self._model.row_ids):
            return None
        return self._model.row_ids[row]

    def _validate_edit(self, event) -> Any:
        """Reject edits of covered cells (returning None cancels the edit)."""
        row = getattr(event, "row", None)
        column = getattr(event, "column", None)
        if (row, column) in self._model.covered:
            return None
        return event.value

    def _on_sheet_modified(self, event) -> None:
        """Route cell edits through the edit session."""
        if self._suppress_notifications:
            return

        cells = getattr(event, "cells", None)
        if not cells:
            return

        table_cells = cells.get("table", {})
        handled = False
        for (row_idx, col), _old_value in table_cells.items():
            row_id = self._row_id_at(row_idx)
            if row_id is None or col >= len(self._model.column_keys):
                continue

            new_value = self.sheet.get_cell_data(row_idx, col)
            handled = True
            try:
                self.controller.begin_edit(row_id, self._model.column_keys[col])
            except TableError as e:
                self._set_status(str(e), error=True)
                continue

            try:
                asyncio.run(self.controller.commit_edit(new_value))
            except InvalidValueError as e:
                # The session stays open on bad input; the sheet has no retry UI
                self.controller.cancel_edit()
                self._set_status(f"{e.field_key}: {e.reason}", error=True)
            except Exception as e:
                log.exception("Saving edit failed")
                self._set_status(f"Error: {e}", error=True)

        if handled:
            # Re-render after tksheet has finished processing the event
            self.after_idle(lambda: self.render(self.controller.view))

    def _on_index_double_click(self, row: int) -> None:
        row_id = self._row_id_at(row)
        if row_id is not None:
            self._act(self.controller.toggle_expand(row_id))

    def _on_row_select(self, event=None) -> None:
        if self._suppress_notifications or not self.controller.selection_mode:
            return
        selected = list(self.sheet.get_selected_rows())
        if not selected:
            return
        row_id = self._row_id_at(min(selected))
        if row_id is not None:
            self._act(self.controller.toggle_select(row_id))

    def _on_right_click(self, event) -> None:
        """Remember which row the context menu refers to."""
        self._context_row = self.sheet.identify_row(event)

    def _context_row_id(self) -> str | None:
        row_id = self._row_id_at(self._context_row)
        if row_id is None:
            selected = list(self.sheet.get_selected_rows())
            if selected:
                row_id = self._row_id_at(min(selected))
        return row_id

    def _menu_toggle_expand(self) -> None:
        row_id = self._context_row_id()
        if row_id is not None:
            self._act(self.controller.toggle_expand(row_id))

    def _menu_add_child(self) -> None:
        row_id = self._context_row_id()
        if row_id is not None:
            self.add_record(parent_id=row_id)

    def _menu_transfer_row(self) -> None:
        row_id = self._context_row_id()
        if row_id is not None and self.run_command is not None:
            self.run_command(TRANSFER_ROW_COMMAND, {"row_id": row_id})

    # --- Controls ---

    def add_record(self, parent_id: str | None = None) -> None:
        """Open the add-record dialog and append the result."""
        if self.controller.view is None or not self.controller.view.has_columns:
            self.refresh()
            return

        view = self.controller.view
        engine = self.controller.engine
        parent_label = None
        if parent_id is not None:
            row = view.get_row(parent_id)
            first_value = row.record.get_cell(view.columns[0].column_key) if row else None
            parent_label = str(first_value or parent_id)

        dialog = AddRecordDialog(
            self,
            engine.get_add_form_model(),
            validate=engine.validate_add_form,
            parent_label=parent_label,
        )
        self.wait_window(dialog)

        if dialog.result is None:
            return
        self._act(self.controller.add_record(dialog.result, parent_id=parent_id))

    def toggle_selection_mode(self) -> None:
        self.controller.toggle_selection_mode()
        self.render(self.controller.view)

    def _on_search(self, event=None) -> None:
        self._act(self.controller.set_filter(self.search_var.get()))

    def _on_column_visibility(self, key: str, var: tk.BooleanVar) -> None:
        self._act(self.controller.set_column_visibility(key, var.get()))

    def _on_column_width(self, key: str, var: tk.StringVar) -> None:
        raw = var.get().strip()
        try:
            width = float(raw) if raw else None
        except ValueError:
            self._set_status(f"Invalid width: {raw}", error=True)
            return
        self._act(self.controller.set_column_width(key, width))

    def _on_move_column(self, key: str, offset: int) -> None:
        self._act(self.controller.move_column(key, offset))

    def _rebuild_column_strip(self) -> None:
        """Recreate the column settings controls for the current schema."""
        for child in self.column_strip.winfo_children():
            child.destroy()

        schema = self.controller.schema
        settings = self.controller.settings
        for key in ordered_column_keys(schema, settings):
            field = schema.get_field(key)
            box = ttk.Frame(self.column_strip, relief=tk.GROOVE, padding=2)
            box.pack(side=tk.LEFT, padx=2)

            visible_var = tk.BooleanVar(value=settings.columns.is_visible(key))
            ttk.Checkbutton(
                box,
                text=field.display_label if field else key,
                variable=visible_var,
                command=lambda k=key, v=visible_var: self._on_column_visibility(k, v),
            ).pack(side=tk.LEFT)

            width = settings.columns.widths.get(key)
            width_var = tk.StringVar(value="" if not width else str(int(width)))
            width_entry = ttk.Entry(box, textvariable=width_var, width=5)
            width_entry.pack(side=tk.LEFT, padx=2)
            width_entry.bind(
                "<Return>", lambda e, k=key, v=width_var: self._on_column_width(k, v)
            )

            ttk.Button(
                box, text="◀", width=2, command=lambda k=key: self._on_move_column(k, -1)
            ).pack(side=tk.LEFT)
            ttk.Button(
                box, text="▶", width=2, command=lambda k=key: self._on_move_column(k, 1)
            ).pack(side=tk.LEFT)

    def _create_widgets(self) -> None:
        """Create all panel widgets."""
        self.title_label = ttk.Label(self, text="Table", font=("Arial", 12, "bold"))
        self.title_label.pack(anchor=tk.W, padx=5, pady=(5, 2))

        # Controls: add, selection mode, search
        controls = ttk.Frame(self)
        controls.pack(fill=tk.X, padx=5, pady=2)

        ttk.Button(controls, text="+ Add", command=self.add_record).pack(side=tk.LEFT)
        self.select_btn = ttk.Button(
            controls, text="Selection", command=self.toggle_selection_mode
        )
        self.select_btn.pack(side=tk.LEFT, padx=(5, 0))

        ttk.Label(controls, text="Search:").pack(side=tk.LEFT, padx=(15, 2))
        self.search_var = tk.StringVar(value=self.controller.settings.filter_text)
        search_entry = ttk.Entry(controls, textvariable=self.search_var, width=30)
        search_entry.pack(side=tk.LEFT)
        search_entry.bind("<Return>", self._on_search)

        self.notice_label = ttk.Label(
            self,
            text=self.renderer_config.empty_schema_message,
            foreground=COLOR_NOTICE_FG,
            wraplength=500,
        )

        self.sheet = TableSheet(self, show_row_index=True, height=400, width=700)

        # Footer with column settings and status
        self.footer = ttk.Frame(self)
        self.footer.pack(side=tk.BOTTOM, fill=tk.X, padx=5, pady=(2, 5))

        self.column_strip = ttk.Frame(self.footer)
        self.column_strip.pack(fill=tk.X)

        self.status_label = ttk.Label(self.footer, text="")
        self.status_label.pack(side=tk.LEFT)

        self.sheet.pack(fill=tk.BOTH, expand=True, padx=5, pady=5, before=self.footer)

        # Enable standard bindings
        self.sheet.enable_bindings()

        # Rows and columns come from the schema and dataset, not the sheet
        self.sheet.disable_bindings(
            "row_drag_and_drop",
            "column_drag_and_drop",
            "rc_insert_row",
            "rc_delete_row",
            "rc_insert_column",
            "rc_delete_column",
            "sort_cells",
            "sort_row",
            "sort_column",
            "sort_rows",
            "sort_columns",
        )

        self.sheet.edit_validation(self._validate_edit)
        self.sheet.bind("<<SheetModified>>", self._on_sheet_modified)
        self.sheet.extra_bindings("row_select", self._on_row_select)
        self.sheet.add_index_double_click(self._on_index_double_click)
        self.sheet.add_begin_right_click(self._on_right_click)

        for label, func in (
            ("Expand / collapse", self._menu_toggle_expand),
            ("Add child…", self._menu_add_child),
            ("Transfer row", self._menu_transfer_row),
        ):
            self.sheet.popup_menu_add_command(
                label=label,
                func=func,
                table_menu=True,
                index_menu=True,
                header_menu=False,
                empty_space_menu=False,
            )

    def __init__(
        self,
        parent: tk.Widget,
        controller: TableController,
        run_command: Callable[[str, dict[str, Any]], Any] | None = None,
        config: RendererConfig | None = None,
    ):
        """Initialize the table panel.

        Args:
            parent: Parent widget
            controller: Controller driving this table
            run_command: Callback to run a host command (command_id, args)
            config: Renderer configuration (defaults to the controller's)
        """
        super().__init__(parent)

        self.controller = controller
        self.run_command = run_command
        self.renderer_config = config or controller.config

        self._model = SheetModel()
        self._context_row: int | None = None
        self._noted_cells: list[tuple[int, int]] = []

        # Suppress notifications during programmatic updates
        self._suppress_notifications = False

        self._create_widgets()
        self.refresh()
