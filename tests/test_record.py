"""Tests for records, merges, patches and dataset normalization."""

from journaltable.models.record import (
    Dataset,
    Merge,
    Patch,
    Record,
    apply_patch,
    cell_key,
    normalize_dataset,
)


class TestRecord:
    """Tests for Record serialization."""

    def test_cell_key_format(self):
        assert cell_key("1", "name") == "1:name"

    def test_from_dict_camel_case_parent(self):
        record = Record.from_dict({"id": "2", "parentId": "1", "cells": {"name": "Bob"}})
        assert record.parent_id == "1"
        assert record.get_cell("name") == "Bob"
        assert record.fmt == {}

    def test_from_dict_snake_case_parent(self):
        record = Record.from_dict({"id": 7, "parent_id": 3})
        assert record.id == "7"
        assert record.parent_id == "3"

    def test_to_dict_omits_missing_parent(self):
        data = Record(id="1", cells={"a": 1}).to_dict()
        assert data == {"id": "1", "cells": {"a": 1}, "fmt": {}}

    def test_to_dict_round_trips_parent(self):
        record = Record(id="2", parent_id="1")
        assert Record.from_dict(record.to_dict()) == record


class TestMerge:
    """Tests for Merge normalization."""

    def test_from_dict(self):
        merge = Merge.from_dict({"rowId": "1", "colKey": "name", "rowSpan": 2, "colSpan": 1})
        assert merge == Merge("1", "name", 2, 1)
        assert merge.anchor_key == "1:name"

    def test_spans_clamped_to_one(self):
        merge = Merge.from_dict({"rowId": "1", "colKey": "a", "rowSpan": 0, "colSpan": -3})
        assert merge.row_span == 1
        assert merge.col_span == 1

    def test_missing_spans_default_to_one(self):
        merge = Merge.from_dict({"rowId": "1", "colKey": "a"})
        assert (merge.row_span, merge.col_span) == (1, 1)


class TestPatch:
    """Tests for Patch and apply_patch()."""

    def test_apply_to_merges_cells_and_fmt(self):
        record = Record(id="1", cells={"a": 1, "b": 2}, fmt={"a": {"bold": True}})
        patch = Patch("1", cells_patch={"b": 3}, fmt_patch={"b": {"color": "red"}})
        updated = patch.apply_to(record)
        assert updated.cells == {"a": 1, "b": 3}
        assert updated.fmt == {"a": {"bold": True}, "b": {"color": "red"}}
        # Original untouched
        assert record.cells == {"a": 1, "b": 2}

    def test_empty_patch_returns_same_record(self):
        record = Record(id="1")
        assert Patch("1").is_empty
        assert Patch("1").apply_to(record) is record

    def test_apply_patch_touches_only_target(self):
        r1 = Record(id="1", cells={"name": "Ann"})
        r2 = Record(id="2", cells={"name": "Bob"})
        dataset = Dataset(records=(r1, r2))

        result = apply_patch(dataset, Patch("1", cells_patch={"name": "Anna"}))

        assert result.get_record("1").get_cell("name") == "Anna"
        assert result.records[1] is r2

    def test_apply_patch_unknown_record_changes_nothing(self):
        dataset = Dataset(records=(Record(id="1"),))
        result = apply_patch(dataset, Patch("zzz", cells_patch={"a": 1}))
        assert result.records == dataset.records


class TestNormalizeDataset:
    """Tests for normalize_dataset()."""

    def test_none_is_empty(self):
        assert normalize_dataset(None) == Dataset()

    def test_missing_and_non_list_members(self):
        dataset = normalize_dataset({"records": "nope"})
        assert dataset.records == ()
        assert dataset.merges == ()

    def test_dicts_become_models(self):
        dataset = normalize_dataset(
            {
                "records": [{"id": "1", "cells": {"name": "Ann"}}],
                "merges": [{"rowId": "1", "colKey": "name", "rowSpan": 2}],
            }
        )
        assert isinstance(dataset.records[0], Record)
        assert isinstance(dataset.merges[0], Merge)
        assert dataset.merges[0].row_span == 2

    def test_dataset_passthrough(self):
        dataset = Dataset()
        assert normalize_dataset(dataset) is dataset

    def test_with_record_appends(self):
        dataset = Dataset(records=(Record(id="1"),))
        assert [r.id for r in dataset.with_record(Record(id="2")).records] == ["1", "2"]

    def test_to_dict_shape(self):
        dataset = Dataset(records=(Record(id="1"),), merges=(Merge("1", "a"),))
        assert dataset.to_dict() == {
            "records": [{"id": "1", "cells": {}, "fmt": {}}],
            "merges": [{"rowId": "1", "colKey": "a", "rowSpan": 1, "colSpan": 1}],
        }
