"""Tests for TableController - the compute, persist, refresh cycle."""

import asyncio

import pytest

from journaltable.config import RendererConfig
from journaltable.data.dataset_backend import (
    DatasetGateway,
    KeyValueDatasetBackend,
    TableStoreBackend,
)
from journaltable.data.schema_resolver import HostState, SchemaResolver, TemplateSource
from journaltable.data.storage import MemoryStorage
from journaltable.data.table_controller import TableController
from journaltable.errors import (
    CellNotEditableError,
    InvalidValueError,
    StorageAdapterError,
    UnknownRecordError,
)
from journaltable.models.settings import SortSpec

CONFIG = RendererConfig.fresh()

TEMPLATE = {
    "id": "test",
    "columns": [
        {"key": "name", "label": "Name", "required": True},
        {"key": "qty", "type": "number"},
    ],
}

DATASET = {
    "records": [
        {"id": "1", "cells": {"name": "Ann", "qty": 1}},
        {"id": "2", "parentId": "1", "cells": {"name": "Bob", "qty": 2}},
        {"id": "3", "cells": {"name": "Cid", "qty": 3}},
    ],
    "merges": [],
}


class MockTemplates(TemplateSource):
    async def get_template(self, template_id):
        return TEMPLATE if template_id == "test" else None

    async def list_template_entities(self):
        return [{"id": "test"}]


class MockHostState(HostState):
    def __init__(self, template_id="test"):
        self.template_id = template_id

    def get_state(self):
        return {
            "activeJournalId": "j1",
            "journals": [{"id": "j1", "title": "Tasks", "templateId": self.template_id}],
        }


class FailingSetStorage(MemoryStorage):
    """Storage whose writes fail."""

    async def set(self, key, value):
        raise OSError("write failed")


class FailingStore:
    """Record store that loads fine but cannot save."""

    def __init__(self, dataset):
        self.dataset = dataset

    async def get_dataset(self, context_id):
        return self.dataset

    async def upsert_records(self, context_id, records, mode):
        raise OSError("store offline")


def make_controller(storage=None, gateway=None, host_state=None):
    storage = storage if storage is not None else MemoryStorage({CONFIG.dataset_key: DATASET})
    resolver = SchemaResolver(host_state or MockHostState(), MockTemplates())
    return TableController(storage, resolver, gateway=gateway, config=CONFIG)


def run(coro):
    return asyncio.run(coro)


def row_ids(view):
    return [r.row_id for r in view.rows]


@pytest.fixture
def storage():
    return MemoryStorage({CONFIG.dataset_key: DATASET})


@pytest.fixture
def controller(storage):
    controller = make_controller(storage)
    run(controller.refresh())
    return controller


class TestWiring:
    """Tests for construction and refresh()."""

    def test_rejects_incomplete_storage(self):
        with pytest.raises(StorageAdapterError):
            TableController(object(), SchemaResolver(None, None))

    def test_engine_requires_refresh(self):
        with pytest.raises(RuntimeError):
            make_controller().engine

    def test_refresh(self, controller):
        view = controller.view
        assert view.schema_id == "tpl:test"
        assert row_ids(view) == ["1", "3"]
        assert controller.context_id == "j1"
        assert controller.journal.title == "Tasks"

    def test_empty_schema_when_template_missing(self):
        controller = make_controller(host_state=MockHostState("gone"))
        view = run(controller.refresh())
        assert view.has_columns is False

    def test_schema_change_rebuilds_engine(self, storage):
        host = MockHostState("gone")
        controller = make_controller(storage, host_state=host)
        run(controller.refresh())
        first = controller.engine
        host.template_id = "test"
        run(controller.refresh())
        assert controller.engine is not first

    def test_prefers_table_store(self, storage):
        class Store:
            async def get_dataset(self, context_id):
                return {"records": [{"id": "from-store", "cells": {"name": "S"}}]}

            async def upsert_records(self, context_id, records, mode):
                pass

        gateway = DatasetGateway(
            [TableStoreBackend(Store()), KeyValueDatasetBackend(storage, CONFIG.dataset_key)]
        )
        controller = make_controller(storage, gateway=gateway)
        assert row_ids(run(controller.refresh())) == ["from-store"]


class TestSettingsActions:
    """Tests for settings mutations and their persistence."""

    def test_toggle_expand_persists(self, controller, storage):
        view = run(controller.toggle_expand("1"))
        assert row_ids(view) == ["1", "2", "3"]
        saved = run(storage.get(CONFIG.settings_key))
        assert saved["expandedRowIds"] == ["1"]

    def test_toggle_select_noop_when_mode_off(self, controller, storage):
        view = run(controller.toggle_select("1"))
        assert view is controller.view
        assert view.selection == frozenset()
        assert run(storage.get(CONFIG.settings_key)) is None

    def test_toggle_select_in_selection_mode(self, controller):
        assert controller.toggle_selection_mode() is True
        view = run(controller.toggle_select("3"))
        assert view.selection == frozenset({"3"})

    def test_filter(self, controller):
        view = run(controller.set_filter("bob"))
        assert row_ids(view) == ["1"]
        assert controller.settings.filter_text == "bob"

    def test_sort(self, controller):
        view = run(controller.set_sort({"key": "qty", "direction": "desc"}))
        assert row_ids(view) == ["3", "1"]
        assert controller.settings.sort == SortSpec("qty", "desc")
        assert run(controller.set_sort(None)) is not None

    def test_column_actions(self, controller):
        run(controller.set_column_width("qty", 10))
        assert controller.view.columns[1].width == CONFIG.min_column_width
        view = run(controller.move_column("qty", -1))
        assert view.column_keys == ["qty", "name"]
        view = run(controller.set_column_visibility("name", False))
        assert view.column_keys == ["qty"]

    def test_failed_write_keeps_previous_settings(self):
        controller = make_controller(FailingSetStorage({CONFIG.dataset_key: DATASET}))
        run(controller.refresh())
        before = controller.view
        with pytest.raises(OSError):
            run(controller.toggle_expand("1"))
        assert controller.settings.expanded_row_ids == ()
        assert controller.view is before


class TestEditing:
    """Tests for cell edits through the controller."""

    def test_commit_edit_persists(self, controller, storage):
        controller.begin_edit("3", "qty")
        view = run(controller.commit_edit("33"))
        saved = run(storage.get(CONFIG.dataset_key))
        assert saved["records"][2]["cells"] == {"name": "Cid", "qty": 33}
        assert saved["records"][0]["cells"] == {"name": "Ann", "qty": 1}
        assert view.get_row("3").record.get_cell("qty") == 33
        assert controller.edit_target is None

    def test_invalid_edit_stays_open(self, controller, storage):
        controller.begin_edit("3", "qty")
        with pytest.raises(InvalidValueError):
            run(controller.commit_edit("lots"))
        assert controller.edit_target is not None
        controller.cancel_edit()
        assert controller.edit_target is None
        assert run(storage.get(CONFIG.dataset_key)) == DATASET

    def test_covered_cell_rejected(self, storage):
        data = dict(DATASET, merges=[{"rowId": "1", "colKey": "name", "rowSpan": 2}])
        run(storage.set(CONFIG.dataset_key, data))
        controller = make_controller(storage)
        run(controller.refresh())
        with pytest.raises(CellNotEditableError):
            controller.begin_edit("3", "name")

    def test_record_deleted_meanwhile(self, controller, storage):
        controller.begin_edit("3", "qty")
        run(storage.set(CONFIG.dataset_key, {"records": [{"id": "1"}]}))
        with pytest.raises(UnknownRecordError):
            run(controller.commit_edit("5"))

    def test_failed_save_keeps_dataset(self):
        store = FailingStore(DATASET)
        storage = MemoryStorage()
        gateway = DatasetGateway([TableStoreBackend(store)])
        controller = make_controller(storage, gateway=gateway)
        run(controller.refresh())
        before = controller.dataset
        controller.begin_edit("1", "name")
        with pytest.raises(OSError):
            run(controller.commit_edit("Anna"))
        assert controller.dataset is before
        assert controller.dataset.get_record("1").get_cell("name") == "Ann"

    def test_apply_format(self, controller, storage):
        run(controller.apply_format("1", "name", {"bold": True}))
        saved = run(storage.get(CONFIG.dataset_key))
        assert saved["records"][0]["fmt"] == {"name": {"bold": True}}


class TestAddRecord:
    """Tests for add_record()."""

    def test_invalid_does_not_write(self, controller, storage):
        validation = run(controller.add_record({"qty": "x"}))
        assert validation.valid is False
        assert validation.errors == {"name": "Required", "qty": "Not a number"}
        assert run(storage.get(CONFIG.dataset_key)) == DATASET

    def test_valid_appends(self, controller, storage):
        validation = run(controller.add_record({"name": "Dee", "qty": "4"}))
        assert validation.valid is True
        saved = run(storage.get(CONFIG.dataset_key))
        assert len(saved["records"]) == 4
        assert saved["records"][-1]["cells"] == {"name": "Dee", "qty": 4}
        assert row_ids(controller.view)[-1] == saved["records"][-1]["id"]

    def test_child_record(self, controller, storage):
        run(controller.toggle_expand("3"))
        run(controller.add_record({"name": "Kid"}, parent_id="3"))
        saved = run(storage.get(CONFIG.dataset_key))
        assert saved["records"][-1]["parentId"] == "3"
        assert controller.view.get_row(saved["records"][-1]["id"]).depth == 1


class EditableTemplates(MockTemplates):
    """Template source whose "test" columns can change between refreshes."""

    def __init__(self):
        self.columns = [{"key": "name", "label": "Name"}]

    async def get_template(self, template_id):
        if template_id != "test":
            return None
        return {"id": "test", "columns": list(self.columns)}


class TestTemplateEdits:
    """Tests for templates whose columns change under the same id."""

    def test_new_column_reaches_view_and_editing(self, storage):
        templates = EditableTemplates()
        resolver = SchemaResolver(MockHostState(), templates)
        controller = TableController(storage, resolver, config=CONFIG)
        run(controller.refresh())
        assert controller.view.column_keys == ["name"]

        templates.columns.append({"key": "qty", "type": "number"})
        view = run(controller.refresh())

        assert controller.schema.field_keys == ["name", "qty"]
        assert view.column_keys == ["name", "qty"]
        assert controller.begin_edit("3", "qty").cell_key == "3:qty"


class TestConfiguredKeys:
    """Tests for storage keys taken from RendererConfig."""

    def test_custom_keys_used_for_settings_and_dataset(self):
        config = RendererConfig(dataset_key="mine:dataset", settings_key="mine:settings")
        storage = MemoryStorage({"mine:dataset": DATASET})
        resolver = SchemaResolver(MockHostState(), MockTemplates())
        controller = TableController(storage, resolver, config=config)

        view = run(controller.refresh())
        assert row_ids(view) == ["1", "3"]

        run(controller.toggle_expand("1"))
        assert run(storage.get("mine:settings"))["expandedRowIds"] == ["1"]
        assert run(storage.get(CONFIG.settings_key)) is None
