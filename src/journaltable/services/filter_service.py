"""Filter/sort stage: runs before hierarchy flattening.

Filter rules:
-------------
1. The global text is matched case-insensitively as a substring of the
   stringified value of every visible field. Blank text keeps everything.
2. Anchors are supported: "^abc" matches at the start of a value, "abc$" at the
   end, "^abc$" is an exact match.
3. Ancestors of a matching record are kept so the hierarchy stays navigable.
   Descendants of a match are only kept if they match themselves.

Sort rules:
-----------
Sorting applies after filtering and is stable. Empty values (and values of a
number field that are not numbers) sort last in both directions. Number fields
compare numerically; everything else compares by case-folded text.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from ..debug_trace import get_logger, log_perf
from ..models.schema import FieldType, Schema
from ..models.validation import coerce_number, is_blank

if TYPE_CHECKING:
    from ..models.record import Record
    from ..models.settings import SortSpec

log = get_logger("filter")


def text_matches_filter(
    text: str, filter_text: str, anchor_start: bool = False, anchor_end: bool = False
) -> bool:
    """Check a lowercased value against a lowercased filter, honoring anchors."""
    if anchor_start and anchor_end:
        return text == filter_text
    if anchor_start:
        return text.startswith(filter_text)
    if anchor_end:
        return text.endswith(filter_text)
    return filter_text in text


def parse_filter_text(raw: str) -> tuple[str, bool, bool]:
    """Split raw filter text into (needle, anchor_start, anchor_end)."""
    raw = (raw or "").strip()
    anchor_start = raw.startswith("^")
    if anchor_start:
        raw = raw[1:]
    anchor_end = raw.endswith("$")
    if anchor_end:
        raw = raw[:-1]
    return raw.lower(), anchor_start, anchor_end


def stringify(value: Any) -> str:
    """Render a cell value as filterable text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def record_matches(record: Record, field_keys: Sequence[str], raw_filter: str) -> bool:
    """Check if any visible field of record matches the filter."""
    needle, anchor_start, anchor_end = parse_filter_text(raw_filter)
    if not needle and not (anchor_start and anchor_end):
        return True
    return any(
        text_matches_filter(stringify(record.cells.get(key)).lower(), needle, anchor_start, anchor_end)
        for key in field_keys
    )


def _collect_ancestors(record_id: str, parent_of: dict[str, str | None], keep: set[str]) -> None:
    """Add every ancestor of record_id to keep (cycle-safe)."""
    seen = {record_id}
    parent = parent_of.get(record_id)
    while parent is not None and parent in parent_of and parent not in seen:
        keep.add(parent)
        seen.add(parent)
        parent = parent_of.get(parent)


def filter_records(
    records: Sequence[Record], field_keys: Sequence[str], raw_filter: str
) -> list[Record]:
    """Apply the global filter, preserving ancestors of every match.

    Args:
        records: All dataset records in original order
        field_keys: Keys of the visible fields to search
        raw_filter: The global filter text (may contain ^/$ anchors)

    Returns:
        The kept records, in original order
    """
    needle, anchor_start, anchor_end = parse_filter_text(raw_filter)
    if not needle and not (anchor_start and anchor_end):
        return list(records)

    parent_of = {r.id: r.parent_id for r in records}
    keep: set[str] = set()

    for record in records:
        if record_matches(record, field_keys, raw_filter):
            keep.add(record.id)
            _collect_ancestors(record.id, parent_of, keep)

    log.debug("filter %r kept %d of %d records", raw_filter, len(keep), len(records))
    return [r for r in records if r.id in keep]


def _sortable(value: Any, field_type: FieldType) -> tuple[bool, Any]:
    """Return (is_sortable, key). Blank values and non-numbers in number fields are not."""
    if is_blank(value):
        return False, None
    if field_type == FieldType.NUMBER:
        is_valid, number, _ = coerce_number(value)
        return is_valid, number
    return True, stringify(value).casefold()


def sort_records(records: Sequence[Record], sort: SortSpec | None, schema: Schema) -> list[Record]:
    """Stable sort by a single field; unsortable values always last."""
    if sort is None:
        return list(records)

    field = schema.get_field(sort.key)
    if field is None:
        log.debug("ignoring sort on unknown field %r", sort.key)
        return list(records)

    keyed: list[tuple[Any, Record]] = []
    tail: list[Record] = []
    for record in records:
        is_sortable, key = _sortable(record.cells.get(sort.key), field.type)
        if is_sortable:
            keyed.append((key, record))
        else:
            tail.append(record)

    # sorted() with reverse=True keeps ties in original order
    keyed = sorted(keyed, key=lambda item: item[0], reverse=sort.descending)
    return [record for _key, record in keyed] + tail


@log_perf
def filter_and_sort(
    records: Sequence[Record],
    schema: Schema,
    visible_keys: Sequence[str],
    raw_filter: str,
    sort: SortSpec | None,
) -> list[Record]:
    """Run the whole stage: filter, then sort."""
    return sort_records(filter_records(records, visible_keys, raw_filter), sort, schema)
