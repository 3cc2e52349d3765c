"""Standalone demo host for the table renderer.

Runs the renderer module inside a small Tk window with in-memory storage, a
fixed template registry and two journals, so the table can be used without a
host application.
"""

import asyncio
import copy
import tkinter as tk
from collections.abc import Mapping, Sequence
from tkinter import ttk
from typing import Any

from .config import RendererConfig
from .data.dataset_backend import DatasetStore
from .data.schema_resolver import HostState, JournalState, TemplateSource
from .data.storage import MemoryStorage, Storage
from .debug_trace import get_logger, setup_debug_logging
from .views.table_editor.module import (
    REFRESH_COMMAND,
    ButtonSpec,
    Command,
    HostContext,
    PanelSpec,
    TableRendererModule,
)

log = get_logger("app")

DEMO_TEMPLATES = {
    "test": {
        "id": "test",
        "columns": [
            {"key": "name", "label": "Name", "required": True},
            {"key": "qty", "label": "Quantity", "type": "number"},
            {"key": "due", "label": "Due", "type": "date"},
            {"key": "done", "label": "Done", "type": "boolean", "default": False},
        ],
    },
    "contacts": {
        "id": "contacts",
        "columns": [
            {"key": "name", "label": "Name", "required": True},
            {"key": "phone", "label": "Phone"},
        ],
    },
}

DEMO_DATASET = {
    "records": [
        {"id": "1", "cells": {"name": "Project", "qty": 3, "due": "2026-01-15", "done": False}},
        {"id": "2", "parentId": "1", "cells": {"name": "Design", "qty": 1, "done": True}},
        {"id": "3", "parentId": "1", "cells": {"name": "Build", "qty": 2, "due": "2026-02-01"}},
        {"id": "4", "cells": {"name": "Support", "qty": 5}},
        {"id": "5", "cells": {"name": "Backlog"}, "fmt": {"name": {"color": "#a0a0a0"}}},
    ],
    "merges": [{"rowId": "4", "colKey": "qty", "rowSpan": 2, "colSpan": 1}],
}


def get_version():
    """Get version from package metadata."""
    try:
        from importlib.metadata import version

        return version("journaltable")
    except Exception:
        return "Development"


class DemoTableStore(DatasetStore):
    """Per-journal record store. Merges are fixed at seeding time."""

    def __init__(self, seed: dict[str, dict[str, Any]]):
        self._datasets = copy.deepcopy(seed)

    async def get_dataset(self, context_id: str) -> dict[str, Any]:
        return copy.deepcopy(self._datasets.get(context_id, {"records": [], "merges": []}))

    async def upsert_records(
        self, context_id: str, records: Sequence[Mapping[str, Any]], mode: str
    ) -> None:
        dataset = self._datasets.setdefault(context_id, {"records": [], "merges": []})
        if mode == "replace":
            dataset["records"] = copy.deepcopy(list(records))
        else:
            by_id = {r["id"]: r for r in dataset["records"]}
            by_id.update({r["id"]: copy.deepcopy(dict(r)) for r in records})
            dataset["records"] = list(by_id.values())


class DemoTemplates(TemplateSource):
    async def get_template(self, template_id: str) -> dict[str, Any] | None:
        return DEMO_TEMPLATES.get(template_id)

    async def list_template_entities(self) -> list[dict[str, Any]]:
        return [{"id": tpl_id} for tpl_id in DEMO_TEMPLATES]


class DemoState(HostState):
    """Two journals; the second has no template and gets one assigned."""

    def __init__(self):
        self.state = {
            "activeJournalId": "j1",
            "journals": [
                {"id": "j1", "title": "Tasks", "templateId": "test"},
                {"id": "j2", "title": "Inbox"},
            ],
        }

    def get_state(self) -> JournalState:
        return JournalState.from_dict(self.state)

    async def assign_template(self, journal_id: str, template_id: str) -> None:
        for journal in self.state["journals"]:
            if journal["id"] == journal_id:
                journal["templateId"] = template_id


class DemoHost(HostContext):
    """Minimal Tk host: a toolbar plus a main area."""

    def __init__(self, root: tk.Tk, storage: Storage):
        self.root = root
        self._storage = storage
        self._state = DemoState()
        self._templates = DemoTemplates()
        self._dataset_store = DemoTableStore({"j1": DEMO_DATASET})
        self.commands: dict[str, Command] = {}

        self.toolbar = ttk.Frame(root)
        self.toolbar.pack(fill=tk.X, padx=5, pady=5)
        self.main_area = ttk.Frame(root)
        self.main_area.pack(fill=tk.BOTH, expand=True)

    @property
    def storage(self) -> Storage:
        return self._storage

    @property
    def host_state(self) -> HostState:
        return self._state

    @property
    def templates(self) -> TemplateSource:
        return self._templates

    @property
    def dataset_store(self) -> DatasetStore:
        return self._dataset_store

    def register_commands(self, commands: list[Command]) -> None:
        for command in commands:
            self.commands[command.id] = command

    def register_button(self, button: ButtonSpec) -> None:
        ttk.Button(self.toolbar, text=button.label, command=button.on_click).pack(side=tk.LEFT)

    def register_panel(self, panel: PanelSpec) -> None:
        widget = panel.render(self.main_area)
        widget.pack(fill=tk.BOTH, expand=True)

    def run_command(self, command_id: str, args: dict[str, Any] | None = None) -> Any:
        command = self.commands.get(command_id)
        if command is None:
            log.warning("Unknown command %s", command_id)
            return None
        log.debug("run command %s %s", command_id, args or {})
        return asyncio.run(command.run(args))

    def switch_journal(self) -> None:
        state = self._state.state
        state["activeJournalId"] = "j2" if state["activeJournalId"] == "j1" else "j1"
        self.run_command(REFRESH_COMMAND)


class JournalTableApp:
    """Demo window hosting the table renderer."""

    def __init__(self):
        self.root = tk.Tk()
        self.root.title(f"Journal Table {get_version()}")
        self.root.geometry("900x600")

        self.config = RendererConfig.fresh()
        self.host = DemoHost(self.root, MemoryStorage())

        ttk.Button(self.host.toolbar, text="Switch journal", command=self.host.switch_journal).pack(
            side=tk.RIGHT
        )

        self.module = TableRendererModule(self.config)
        self.module.init(self.host)

    def run(self):
        self.root.mainloop()


def main() -> None:
    """Entry point for the application."""
    setup_debug_logging(False)
    app = JournalTableApp()
    app.run()


def main_dev() -> None:
    """Entry point with console debug logging."""
    setup_debug_logging(True)
    app = JournalTableApp()
    app.run()


if __name__ == "__main__":
    main()
