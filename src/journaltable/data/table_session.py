"""Per-context table session.

Holds the engine for one rendering context together with the schema id it
was built for and the selection-mode flag. Nothing here is module-level: each
panel (or test) owns its own session.
"""

from __future__ import annotations

from ..debug_trace import get_logger
from ..models.schema import Schema
from ..models.settings import TableSettings
from .table_engine import TableEngine

log = get_logger("session")


class TableSession:
    """Engine + schema id + selection mode for one rendering context."""

    def __init__(self):
        self.engine: TableEngine | None = None
        self.schema_id: str | None = None
        self.selection_mode = False

    def ensure_engine(self, schema: Schema, settings: TableSettings) -> TableEngine:
        """Return an engine for schema, rebuilding it on schema change.

        Schemas compare by content, so a template whose columns changed under
        the same id also forces a rebuild. A rebuild discards the edit session
        and last view. When the schema is unchanged only the settings are
        updated.
        """
        if self.engine is None or self.engine.schema != schema:
            if self.engine is not None:
                log.debug("schema changed %s -> %s, rebuilding engine", self.schema_id, schema.id)
            self.engine = TableEngine(schema, settings)
            self.schema_id = schema.id
        else:
            self.engine.set_settings(settings)
        return self.engine

    def toggle_selection_mode(self) -> bool:
        self.selection_mode = not self.selection_mode
        return self.selection_mode

    def reset(self) -> None:
        """Forget the engine (next ensure_engine() builds a new one)."""
        self.engine = None
        self.schema_id = None
