"""Host integration for the table renderer.

The host application exposes a registration port (HostContext). The module
registers its commands, toolbar buttons and main panel there and wires the
controller from the host's storage, journal state and template ports.
"""

from __future__ import annotations

import tkinter as tk
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from ...config import RendererConfig
from ...data.dataset_backend import DatasetGateway, KeyValueDatasetBackend, TableStoreBackend
from ...data.schema_resolver import HostState, SchemaResolver, TemplateSource
from ...data.storage import Storage, assert_storage
from ...data.table_controller import TableController
from ...debug_trace import get_logger
from .panel import TRANSFER_ROW_COMMAND, TablePanel

log = get_logger("module")

MODULE_ID = "@sdo/module-table-renderer"
MODULE_VERSION = "1.0.0"

REFRESH_COMMAND = f"{MODULE_ID}.refresh"
TOGGLE_SELECTION_COMMAND = f"{MODULE_ID}.toggle-selection-mode"


@dataclass(frozen=True)
class Command:
    """A named host command."""

    id: str
    title: str
    run: Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class ButtonSpec:
    """A toolbar button."""

    id: str
    label: str
    on_click: Callable[[], Any]
    location: str = "toolbar"
    order: int = 0


@dataclass(frozen=True)
class PanelSpec:
    """A panel the host mounts into one of its areas."""

    id: str
    title: str
    render: Callable[[tk.Widget], tk.Widget]
    location: str = "main"
    order: int = 0


class HostContext(ABC):
    """Registration port provided by the host application."""

    @property
    @abstractmethod
    def storage(self) -> Storage:
        """Key/value storage scoped to this module."""

    @property
    def host_state(self) -> HostState | None:
        return None

    @property
    def templates(self) -> TemplateSource | None:
        return None

    @property
    def dataset_store(self) -> Any | None:
        """Host record store (get_dataset / upsert_records), if any."""
        return None

    @abstractmethod
    def register_commands(self, commands: list[Command]) -> None:
        """Register commands under their ids."""

    @abstractmethod
    def register_button(self, button: ButtonSpec) -> None:
        """Add a toolbar button."""

    @abstractmethod
    def register_panel(self, panel: PanelSpec) -> None:
        """Add a panel."""

    @abstractmethod
    def run_command(self, command_id: str, args: dict[str, Any] | None = None) -> Any:
        """Run a registered command."""


class TableRendererModule:
    """Registers the table renderer with a host.

    Usage:
        module = TableRendererModule()
        module.init(host)
    """

    id = MODULE_ID
    version = MODULE_VERSION

    def __init__(self, config: RendererConfig | None = None):
        self.config = config or RendererConfig.fresh()
        self.controller: TableController | None = None
        self.panels: list[TablePanel] = []
        self._host: HostContext | None = None

    def build_controller(self, host: HostContext) -> TableController:
        """Wire a controller from the host's ports.

        Raises:
            StorageAdapterError: If the host storage lacks get/set/delete.
        """
        storage = host.storage
        assert_storage(storage)
        resolver = SchemaResolver(
            host.host_state, host.templates, default_template_id=self.config.default_template_id
        )
        gateway = DatasetGateway(
            [
                TableStoreBackend(host.dataset_store),
                KeyValueDatasetBackend(storage, self.config.dataset_key),
            ]
        )
        return TableController(storage, resolver, gateway=gateway, config=self.config)

    # --- Commands ---

    def _render_panels(self) -> None:
        self.panels = [p for p in self.panels if p.winfo_exists()]
        for panel in self.panels:
            panel.render(self.controller.view)

    async def _cmd_refresh(self, args: dict[str, Any] | None = None) -> bool:
        await self.controller.refresh()
        self._render_panels()
        return True

    async def _cmd_toggle_selection(self, args: dict[str, Any] | None = None) -> bool:
        enabled = self.controller.toggle_selection_mode()
        log.debug("selection mode %s", "on" if enabled else "off")
        self._render_panels()
        return enabled

    async def _cmd_transfer_row(self, args: dict[str, Any] | None = None) -> bool:
        # Placeholder; hosts override this command with their own transfer logic
        return True

    # --- Buttons ---

    def _on_add_clicked(self) -> None:
        if self.panels:
            self.panels[0].add_record()
        else:
            self._host.run_command(REFRESH_COMMAND)

    def _on_selection_clicked(self) -> None:
        self._host.run_command(TOGGLE_SELECTION_COMMAND)

    # --- Panel ---

    def _render_panel(self, mount: tk.Widget) -> TablePanel:
        panel = TablePanel(
            mount, self.controller, run_command=self._host.run_command, config=self.config
        )
        self.panels.append(panel)
        return panel

    def init(self, host: HostContext) -> None:
        """Register commands, buttons and the main panel with host."""
        self._host = host
        self.controller = self.build_controller(host)

        host.register_commands(
            [
                Command(REFRESH_COMMAND, "Refresh table renderer", self._cmd_refresh),
                Command(
                    TOGGLE_SELECTION_COMMAND,
                    "Toggle table selection mode",
                    self._cmd_toggle_selection,
                ),
                Command(TRANSFER_ROW_COMMAND, "Transfer row", self._cmd_transfer_row),
            ]
        )

        host.register_button(
            ButtonSpec(f"{MODULE_ID}:add-row", "+ Add", self._on_add_clicked, order=30)
        )
        host.register_button(
            ButtonSpec(f"{MODULE_ID}:selection", "Selection", self._on_selection_clicked, order=31)
        )

        host.register_panel(
            PanelSpec(f"{MODULE_ID}:panel", "Table", self._render_panel, location="main", order=5)
        )
        log.info("Registered %s %s", MODULE_ID, MODULE_VERSION)
