"""Tests for filter_service - global filter and sort."""

import pytest

from journaltable.models.record import Record
from journaltable.models.schema import Field, FieldType, Schema
from journaltable.models.settings import SortSpec
from journaltable.services.filter_service import (
    filter_and_sort,
    filter_records,
    parse_filter_text,
    record_matches,
    sort_records,
    text_matches_filter,
)

SCHEMA = Schema(
    id="tpl:t",
    fields=(
        Field("name"),
        Field("qty", type=FieldType.NUMBER),
        Field("note"),
    ),
)
KEYS = ["name", "qty", "note"]


def ids(records):
    return [r.id for r in records]


@pytest.fixture
def tree():
    """Root 1 with children 2 and 3; 3 has child 4; 5 is a separate root."""
    return [
        Record(id="1", cells={"name": "Projects"}),
        Record(id="2", parent_id="1", cells={"name": "Alpha", "qty": 10}),
        Record(id="3", parent_id="1", cells={"name": "Beta", "qty": 2}),
        Record(id="4", parent_id="3", cells={"name": "Gamma", "note": "needle"}),
        Record(id="5", cells={"name": "Misc", "qty": None}),
    ]


class TestTextMatching:
    """Tests for anchors and parsing."""

    def test_parse_anchors(self):
        assert parse_filter_text("  ^Abc$ ") == ("abc", True, True)
        assert parse_filter_text("abc") == ("abc", False, False)

    def test_substring(self):
        assert text_matches_filter("hello world", "lo w")

    def test_anchor_start(self):
        assert text_matches_filter("alpha", "al", anchor_start=True)
        assert not text_matches_filter("beta alpha", "al", anchor_start=True)

    def test_anchor_end(self):
        assert text_matches_filter("alpha", "ha", anchor_end=True)
        assert not text_matches_filter("hat", "ha", anchor_end=True)

    def test_exact(self):
        assert text_matches_filter("beta", "beta", True, True)
        assert not text_matches_filter("betas", "beta", True, True)

    def test_case_insensitive(self, tree):
        assert record_matches(tree[1], KEYS, "ALPHA")

    def test_only_visible_fields_searched(self, tree):
        """A hidden field does not match."""
        assert not record_matches(tree[3], ["name"], "needle")
        assert record_matches(tree[3], ["name", "note"], "needle")

    def test_numbers_are_stringified(self, tree):
        assert record_matches(tree[1], KEYS, "10")


class TestFilterRecords:
    """Tests for filter_records()."""

    def test_blank_filter_keeps_all(self, tree):
        assert ids(filter_records(tree, KEYS, "   ")) == ["1", "2", "3", "4", "5"]

    def test_keeps_ancestors_of_match(self, tree):
        """Matching a grandchild keeps its parent and grandparent."""
        assert ids(filter_records(tree, KEYS, "needle")) == ["1", "3", "4"]

    def test_does_not_keep_descendants(self, tree):
        """Descendants of a match are dropped unless they match."""
        assert ids(filter_records(tree, KEYS, "beta")) == ["1", "3"]

    def test_preserves_original_order(self, tree):
        assert ids(filter_records(tree, KEYS, "a")) == ["1", "2", "3", "4"]

    def test_no_match(self, tree):
        assert filter_records(tree, KEYS, "zzz") == []

    def test_ancestor_cycle_terminates(self):
        records = [
            Record(id="a", parent_id="b", cells={"name": "x"}),
            Record(id="b", parent_id="a", cells={"name": "match"}),
        ]
        assert ids(filter_records(records, ["name"], "match")) == ["a", "b"]


class TestSortRecords:
    """Tests for sort_records()."""

    def test_no_sort(self, tree):
        assert sort_records(tree, None, SCHEMA) == tree

    def test_text_ascending(self, tree):
        result = sort_records(tree, SortSpec("name"), SCHEMA)
        assert ids(result) == ["2", "3", "4", "5", "1"]

    def test_numbers_numeric_and_blanks_last(self, tree):
        """10 sorts after 2 numerically; records without qty go last."""
        result = sort_records(tree, SortSpec("qty"), SCHEMA)
        assert ids(result) == ["3", "2", "1", "4", "5"]

    def test_blanks_last_descending(self, tree):
        result = sort_records(tree, SortSpec("qty", "desc"), SCHEMA)
        assert ids(result) == ["2", "3", "1", "4", "5"]

    def test_stable_for_ties(self):
        records = [Record(id=str(i), cells={"name": "same"}) for i in range(4)]
        assert ids(sort_records(records, SortSpec("name", "desc"), SCHEMA)) == ["0", "1", "2", "3"]

    def test_unknown_key_ignored(self, tree):
        assert sort_records(tree, SortSpec("nope"), SCHEMA) == tree

    def test_filter_then_sort(self, tree):
        result = filter_and_sort(tree, SCHEMA, KEYS, "a", SortSpec("name", "desc"))
        assert ids(result) == ["1", "4", "3", "2"]
