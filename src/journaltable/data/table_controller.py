"""Async glue between the ports and the table engine.

Every user action follows the same cycle:

    compute next state -> persist through a port -> refresh()

refresh() reloads settings, re-resolves the schema, reloads the dataset and
recomputes the View from scratch. Local state is only replaced by a refresh,
so when a port call fails the previously loaded settings and dataset remain
the source of truth.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from ..config import RendererConfig
from ..debug_trace import get_logger
from ..errors import UnknownRecordError
from ..models.record import Dataset, Patch, apply_patch
from ..models.schema import EMPTY_SCHEMA, Schema
from ..models.settings import (
    SortSpec,
    TableSettings,
    apply_column_settings,
)
from ..models.settings import move_column as _move_column
from ..models.settings import set_column_visibility as _set_column_visibility
from ..models.settings import set_column_width as _set_column_width
from ..models.view import View
from ..services.form_service import FormValidation
from ..services.hierarchy_service import toggle_expand as _toggle_expand
from ..services.selection_service import toggle_select as _toggle_select
from .dataset_backend import DatasetGateway, KeyValueDatasetBackend
from .edit_session import EditTarget
from .schema_resolver import Journal, SchemaResolver
from .storage import Storage, assert_storage
from .table_engine import TableEngine
from .table_session import TableSession

log = get_logger("controller")


class TableController:
    """Drives one table: loads, persists and recomputes.

    Usage:
        controller = TableController(storage, resolver)
        view = await controller.refresh()
        controller.begin_edit(row_id, "name")
        view = await controller.commit_edit("Ann")
    """

    def __init__(
        self,
        storage: Storage,
        resolver: SchemaResolver,
        gateway: DatasetGateway | None = None,
        config: RendererConfig | None = None,
        session: TableSession | None = None,
    ):
        """Wire the controller.

        Args:
            storage: Key/value storage for settings (and the fallback dataset)
            resolver: Schema resolver for the active journal
            gateway: Dataset backends; defaults to the single-key fallback
            config: Renderer configuration
            session: Session to drive; a new one is created if omitted

        Raises:
            StorageAdapterError: If storage lacks get/set/delete.
        """
        assert_storage(storage)
        self._config = config or RendererConfig.fresh()
        self._storage = storage
        self._resolver = resolver
        self._gateway = gateway or DatasetGateway(
            [KeyValueDatasetBackend(storage, self._config.dataset_key)]
        )
        self._session = session or TableSession()

        self._settings = TableSettings.fresh()
        self._dataset = Dataset()
        self._schema: Schema = EMPTY_SCHEMA
        self._journal: Journal | None = None
        self._view: View | None = None

    # --- State accessors ---

    @property
    def config(self) -> RendererConfig:
        return self._config

    @property
    def session(self) -> TableSession:
        return self._session

    @property
    def settings(self) -> TableSettings:
        """Settings as of the last refresh()."""
        return self._settings

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def journal(self) -> Journal | None:
        return self._journal

    @property
    def view(self) -> View | None:
        return self._view

    @property
    def selection_mode(self) -> bool:
        return self._session.selection_mode

    @property
    def context_id(self) -> str | None:
        return self._journal.id if self._journal else None

    @property
    def engine(self) -> TableEngine:
        if self._session.engine is None:
            raise RuntimeError("refresh() must be called before using the engine")
        return self._session.engine

    # --- Loading ---

    async def load_settings(self) -> TableSettings:
        return TableSettings.from_dict(await self._storage.get(self._config.settings_key))

    async def refresh(self) -> View:
        """Reload everything and recompute the View."""
        settings = await self.load_settings()
        resolution = await self._resolver.resolve()
        context_id = resolution.journal.id if resolution.journal else None
        dataset = await self._gateway.load(context_id)

        engine = self._session.ensure_engine(resolution.schema, settings)
        engine.set_dataset(dataset)
        view = engine.compute()

        self._settings = settings
        self._schema = resolution.schema
        self._journal = resolution.journal
        self._dataset = dataset
        self._view = view
        log.debug(
            "refreshed %s: %d rows, %d columns", view.schema_id, len(view.rows), len(view.columns)
        )
        return view

    # --- Settings mutations ---

    async def _commit_settings(self, settings: TableSettings) -> View:
        await self._storage.set(self._config.settings_key, settings.to_dict())
        return await self.refresh()

    async def toggle_expand(self, row_id: str) -> View:
        expanded = _toggle_expand(self._settings.expanded_row_ids, row_id)
        return await self._commit_settings(replace(self._settings, expanded_row_ids=expanded))

    async def toggle_select(self, row_id: str) -> View | None:
        """Toggle row selection; no-op when selection mode is off."""
        if not self._session.selection_mode:
            return self._view
        selected = _toggle_select(self._settings.selected_row_ids, row_id)
        return await self._commit_settings(replace(self._settings, selected_row_ids=selected))

    def toggle_selection_mode(self) -> bool:
        return self._session.toggle_selection_mode()

    async def set_filter(self, text: str) -> View:
        return await self._commit_settings(replace(self._settings, filter_text=text or ""))

    async def set_sort(self, sort: SortSpec | Mapping[str, Any] | None) -> View:
        if sort is not None and not isinstance(sort, SortSpec):
            sort = SortSpec.from_dict(sort)
        return await self._commit_settings(replace(self._settings, sort=sort))

    async def update_columns(self, **changes: Any) -> View:
        return await self._commit_settings(apply_column_settings(self._settings, **changes))

    async def set_column_visibility(self, key: str, visible: bool) -> View:
        return await self._commit_settings(_set_column_visibility(self._settings, key, visible))

    async def set_column_width(self, key: str, width: float | None) -> View:
        return await self._commit_settings(
            _set_column_width(self._settings, key, width, min_width=self._config.min_column_width)
        )

    async def move_column(self, key: str, offset: int) -> View:
        return await self._commit_settings(
            _move_column(self._settings, self._schema, key, offset)
        )

    # --- Editing ---

    @property
    def edit_target(self) -> EditTarget | None:
        if self._session.engine is None:
            return None
        return self._session.engine.edit_target

    def begin_edit(self, row_id: str, col_key: str) -> EditTarget:
        return self.engine.begin_edit(row_id, col_key)

    def cancel_edit(self) -> None:
        if self._session.engine is not None:
            self._session.engine.cancel_edit()

    async def _commit_patch(self, patch: Patch) -> View:
        # Reload so the patch lands on the freshest copy of the dataset
        context_id = self.context_id
        dataset = await self._gateway.load(context_id)
        if dataset.get_record(patch.record_id) is None:
            raise UnknownRecordError(patch.record_id)
        await self._gateway.save(context_id, apply_patch(dataset, patch))
        return await self.refresh()

    async def commit_edit(self, value: Any) -> View:
        """Apply the active edit and persist it.

        Raises:
            NoActiveEditError: If no edit is in progress.
            InvalidValueError: If the value does not coerce (edit stays open).
        """
        patch = self.engine.apply_edit(value)
        return await self._commit_patch(patch)

    async def apply_format(self, row_id: str, col_key: str, style: Mapping[str, Any]) -> View:
        return await self._commit_patch(self.engine.apply_format(row_id, col_key, style))

    # --- Add-row form ---

    async def add_record(
        self, values: Mapping[str, Any], parent_id: str | None = None
    ) -> FormValidation:
        """Validate and append a new record.

        Invalid input is returned as a FormValidation without writing
        anything.
        """
        engine = self.engine
        validation = engine.validate_add_form(values)
        if not validation.valid:
            return validation

        record = engine.build_record_from_form(values, parent_id=parent_id)
        context_id = self.context_id
        dataset = await self._gateway.load(context_id)
        await self._gateway.save(context_id, dataset.with_record(record))
        log.info("Added record %s", record.id)
        await self.refresh()
        return validation
