"""Sheet subclass for the table panel."""

from __future__ import annotations

from tksheet import Sheet


class TableSheet(Sheet):
    """tksheet Sheet with hooks the table panel needs.

    Usage:
        sheet = TableSheet(parent, show_row_index=True)
        sheet.add_begin_right_click(self._on_right_click)
        sheet.add_index_double_click(self._on_index_double_click)
    """

    def add_begin_right_click(self, callback) -> None:
        """Add a right-click handler that runs BEFORE the popup menu is built.

        Uses bindtag ordering to insert a custom tag at the start, so the
        callback sees the click before tksheet shows its popup.

        Args:
            callback: Function to call on right-click, receives the event.
        """
        custom_tag = f"BeginRC_{id(self)}"
        for widget in (self.MT, self.RI):
            current_tags = widget.bindtags()
            if custom_tag not in current_tags:
                widget.bindtags((custom_tag,) + current_tags)
        self.MT.bind_class(custom_tag, "<Button-3>", callback)

    def add_index_double_click(self, callback) -> None:
        """Call callback(row) when a row index label is double-clicked."""

        def _handler(event):
            row = self.identify_row(event)
            if row is not None:
                callback(row)

        self.RI.bind("<Double-Button-1>", _handler, add="+")
