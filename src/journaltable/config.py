"""Renderer configuration."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RendererConfig:
    """Configuration shared by the controller and the presentation layer."""

    # Fallback single-dataset key (used only when no dataset store is wired)
    dataset_key: str = "@sdo/module-table-renderer:dataset"
    settings_key: str = "@sdo/module-table-renderer:settings"

    # Template preferred when a journal has none assigned
    default_template_id: str = "test"

    # Column widths below this are clamped up
    min_column_width: int = 40

    # Pixels of indentation per hierarchy level
    indent_px: int = 16

    date_display_format: str = "%d.%m.%Y"

    empty_schema_message: str = (
        "No columns: the journal has no template or the template was not found. "
        "Create a journal with a template (for example, test)."
    )

    @classmethod
    def fresh(cls) -> RendererConfig:
        """Create a default configuration."""
        return cls()
