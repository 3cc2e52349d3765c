"""Tests for span_service - merge resolution against the current view."""

from journaltable.models.record import Merge, Record
from journaltable.models.schema import Field
from journaltable.models.view import CellSpan, ViewColumn, ViewRow
from journaltable.services.span_service import get_renderable_cells, resolve_spans


def make_rows(*ids):
    return [ViewRow(row_id=i, record=Record(id=i)) for i in ids]


def make_columns(*keys):
    return [ViewColumn(column_key=k, field=Field(k)) for k in keys]


class TestResolveSpans:
    """Tests for resolve_spans()."""

    def test_vertical_merge(self):
        span_map = resolve_spans(make_rows("1", "2"), ["name"], [Merge("1", "name", 2, 1)])
        assert span_map["1:name"] == CellSpan(row_span=2, col_span=1)
        assert span_map["2:name"] == CellSpan(covered_by="1:name")

    def test_block_covers_all_but_anchor(self):
        rows = make_rows("1", "2", "3")
        span_map = resolve_spans(rows, ["a", "b", "c"], [Merge("1", "a", 2, 3)])
        covered = [k for k, span in span_map.items() if span.is_covered]
        assert len(covered) == 2 * 3 - 1
        assert all(span_map[k].covered_by == "1:a" for k in covered)
        assert "3:a" not in span_map

    def test_follows_view_position(self):
        """Covered cells are whatever rows sit below the anchor in this view."""
        span_map = resolve_spans(make_rows("5", "1", "9"), ["a"], [Merge("1", "a", 2)])
        assert span_map["9:a"].covered_by == "1:a"
        assert "5:a" not in span_map

    def test_clipped_to_view(self):
        span_map = resolve_spans(make_rows("1", "2"), ["a", "b"], [Merge("2", "b", 5, 5)])
        assert span_map == {"2:b": CellSpan(row_span=1, col_span=1)}

    def test_anchor_not_in_view_is_skipped(self):
        rows = make_rows("1", "2")
        assert resolve_spans(rows, ["a"], [Merge("hidden", "a", 2)]) == {}
        assert resolve_spans(rows, ["a"], [Merge("1", "hidden", 2)]) == {}

    def test_conflict_first_wins(self):
        """An overlapping later merge is dropped entirely."""
        rows = make_rows("1", "2", "3")
        merges = [Merge("1", "a", 2), Merge("2", "a", 2)]
        span_map = resolve_spans(rows, ["a"], merges)
        assert span_map["1:a"].row_span == 2
        assert span_map["2:a"].covered_by == "1:a"
        assert "3:a" not in span_map

    def test_conflict_is_logged(self, caplog):
        rows = make_rows("1", "2")
        with caplog.at_level("WARNING"):
            resolve_spans(rows, ["a"], [Merge("1", "a", 2), Merge("2", "a")])
        assert "overlaps" in caplog.text

    def test_no_merges(self):
        assert resolve_spans(make_rows("1"), ["a"], []) == {}


class TestGetRenderableCells:
    """Tests for get_renderable_cells()."""

    def test_skips_covered_cells(self):
        rows = make_rows("1", "2")
        columns = make_columns("a", "b")
        span_map = resolve_spans(rows, ["a", "b"], [Merge("1", "a", 2)])

        first = get_renderable_cells(rows[0], columns, span_map)
        second = get_renderable_cells(rows[1], columns, span_map)

        assert [c.col_key for c in first] == ["a", "b"]
        assert first[0].span.row_span == 2
        assert [c.col_key for c in second] == ["b"]

    def test_unmerged_cells_get_default_span(self):
        cells = get_renderable_cells(make_rows("1")[0], make_columns("a"), {})
        assert cells[0].span == CellSpan()
