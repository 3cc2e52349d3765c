"""Mutable builder for accumulating changes to a Record.

MutableRecordBuilder collects cell and format changes, then turns them into a
Patch for the caller to persist, or into a brand new Record.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .record import Patch, Record


@dataclass
class MutableRecordBuilder:
    """Accumulator for changes to one record.

    Keys present in cells/fmt are changes; absent keys mean "no change".

    Usage:
        builder = MutableRecordBuilder()
        builder.set_cell("name", "Ann")
        patch = builder.to_patch("1")
    """

    cells: dict[str, Any] = field(default_factory=dict)
    fmt: dict[str, Mapping[str, Any]] = field(default_factory=dict)

    def set_cell(self, key: str, value: Any) -> None:
        self.cells[key] = value

    def set_format(self, key: str, style: Mapping[str, Any]) -> None:
        self.fmt[key] = dict(style)

    def to_patch(self, record_id: str) -> Patch:
        """Snapshot the accumulated changes as a Patch."""
        return Patch(record_id=record_id, cells_patch=dict(self.cells), fmt_patch=dict(self.fmt))

    def build_record(self, record_id: str, parent_id: str | None = None) -> Record:
        """Create a brand new record from the accumulated cells and formats."""
        return Record(id=record_id, parent_id=parent_id, cells=dict(self.cells), fmt=dict(self.fmt))
