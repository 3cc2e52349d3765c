import tkinter as tk
from collections.abc import Callable
from tkinter import ttk
from typing import Any

from ...models.schema import FieldType
from ...services.form_service import FormField, FormValidation

COLOR_ERROR_FG = "#b00020"


class AddRecordDialog(tk.Toplevel):
    """Dialog for adding a record, one input per schema field."""

    def _collect_values(self) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for form_field in self._form_fields:
            var = self._vars[form_field.key]
            values[form_field.key] = var.get()
        return values

    def _show_errors(self, errors: dict[str, str]) -> None:
        for key, label in self._error_labels.items():
            label.configure(text=errors.get(key, ""))

    def _on_ok(self) -> None:
        """Validate and close; invalid input keeps the dialog open."""
        values = self._collect_values()

        if self._validate is not None:
            validation = self._validate(values)
            if not validation.valid:
                self._show_errors(validation.errors)
                return

        self.result = values
        self.destroy()

    def _on_cancel(self) -> None:
        self.result = None
        self.destroy()

    def _create_widgets(self) -> None:
        """Create dialog widgets."""
        main_frame = ttk.Frame(self, padding=10)
        main_frame.pack(fill=tk.BOTH, expand=True)

        if self._parent_label:
            ttk.Label(main_frame, text=f"Child of: {self._parent_label}").grid(
                row=0, column=0, columnspan=2, sticky=tk.W, pady=(0, 8)
            )

        first_input = None
        for i, form_field in enumerate(self._form_fields):
            row = i * 2 + 1
            label = form_field.label + (" *" if form_field.required else "")
            ttk.Label(main_frame, text=label).grid(row=row, column=0, sticky=tk.W, padx=(0, 8))

            if form_field.type == FieldType.BOOLEAN:
                var = tk.BooleanVar(value=bool(form_field.default))
                widget = ttk.Checkbutton(main_frame, variable=var)
            else:
                default = "" if form_field.default is None else str(form_field.default)
                var = tk.StringVar(value=default)
                widget = ttk.Entry(main_frame, textvariable=var, width=30)
            widget.grid(row=row, column=1, sticky=tk.EW, pady=2)
            self._vars[form_field.key] = var
            first_input = first_input or widget

            error_label = ttk.Label(main_frame, text="", foreground=COLOR_ERROR_FG)
            error_label.grid(row=row + 1, column=1, sticky=tk.W)
            self._error_labels[form_field.key] = error_label

        main_frame.columnconfigure(1, weight=1)

        # Buttons frame
        btn_frame = ttk.Frame(main_frame)
        btn_frame.grid(row=len(self._form_fields) * 2 + 1, column=0, columnspan=2, sticky=tk.EW)

        ttk.Button(btn_frame, text="Add", command=self._on_ok, width=10).pack(
            side=tk.RIGHT, padx=(5, 0)
        )
        ttk.Button(btn_frame, text="Cancel", command=self._on_cancel, width=10).pack(side=tk.RIGHT)

        self._first_input = first_input

    def __init__(
        self,
        parent: tk.Widget,
        form_fields: list[FormField],
        validate: Callable[[dict[str, Any]], FormValidation] | None = None,
        parent_label: str | None = None,
    ):
        """Initialize the Add Record dialog.

        Args:
            parent: Parent widget
            form_fields: Form model (one entry per schema field)
            validate: Callback returning FormValidation for the entered values.
                If None, no validation is performed.
            parent_label: Shown when adding a child record
        """
        super().__init__(parent)
        self.title("Add Record")
        self.resizable(False, False)
        self.transient(parent)
        self.grab_set()

        self.result: dict[str, Any] | None = None  # Entered values or None if cancelled
        self._form_fields = form_fields
        self._validate = validate
        self._parent_label = parent_label
        self._vars: dict[str, tk.Variable] = {}
        self._error_labels: dict[str, ttk.Label] = {}
        self._first_input = None

        self._create_widgets()

        # Center on parent
        self.update_idletasks()
        x = parent.winfo_rootx() + (parent.winfo_width() - self.winfo_width()) // 2
        y = parent.winfo_rooty() + (parent.winfo_height() - self.winfo_height()) // 2
        self.geometry(f"+{x}+{y}")

        if self._first_input is not None:
            self._first_input.focus_set()

        self.bind("<Return>", lambda e: self._on_ok())
        self.bind("<Escape>", lambda e: self._on_cancel())
