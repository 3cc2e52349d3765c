"""Dataset model: records, merges and patches.

Records are frozen; edits produce Patch objects which apply_patch() merges
into a new Dataset. Normalization accepts the plain dicts the storage ports
return as well as model instances.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any


def cell_key(row_id: str, col_key: str) -> str:
    """Build the "rowId:colKey" lookup key used by the span map."""
    return f"{row_id}:{col_key}"


@dataclass(frozen=True)
class Record:
    """A single table row owned by the dataset."""

    id: str
    parent_id: str | None = None
    cells: Mapping[str, Any] = field(default_factory=dict)
    fmt: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def get_cell(self, key: str) -> Any:
        return self.cells.get(key)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "cells": dict(self.cells), "fmt": dict(self.fmt)}
        if self.parent_id is not None:
            data["parentId"] = self.parent_id
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Record:
        parent_id = data.get("parentId", data.get("parent_id"))
        return cls(
            id=str(data["id"]),
            parent_id=str(parent_id) if parent_id is not None else None,
            cells=dict(data.get("cells") or {}),
            fmt=dict(data.get("fmt") or {}),
        )


@dataclass(frozen=True)
class Merge:
    """Declares that (row_id, col_key) anchors a row_span x col_span block."""

    row_id: str
    col_key: str
    row_span: int = 1
    col_span: int = 1

    @property
    def anchor_key(self) -> str:
        return cell_key(self.row_id, self.col_key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rowId": self.row_id,
            "colKey": self.col_key,
            "rowSpan": self.row_span,
            "colSpan": self.col_span,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Merge:
        return cls(
            row_id=str(data.get("rowId", data.get("row_id"))),
            col_key=str(data.get("colKey", data.get("col_key"))),
            row_span=max(1, int(data.get("rowSpan", data.get("row_span", 1)) or 1)),
            col_span=max(1, int(data.get("colSpan", data.get("col_span", 1)) or 1)),
        )


@dataclass(frozen=True)
class Patch:
    """Minimal per-record delta produced by an edit."""

    record_id: str
    cells_patch: Mapping[str, Any] = field(default_factory=dict)
    fmt_patch: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.cells_patch and not self.fmt_patch

    def apply_to(self, record: Record) -> Record:
        """Return a copy of record with this patch merged in."""
        if self.is_empty:
            return record
        return replace(
            record,
            cells={**record.cells, **self.cells_patch},
            fmt={**record.fmt, **self.fmt_patch},
        )


@dataclass(frozen=True)
class Dataset:
    """All records and merges of one journal."""

    records: tuple[Record, ...] = ()
    merges: tuple[Merge, ...] = ()

    def get_record(self, record_id: str) -> Record | None:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def with_record(self, record: Record) -> Dataset:
        """Return a copy with record appended."""
        return replace(self, records=(*self.records, record))

    def to_dict(self) -> dict[str, Any]:
        return {
            "records": [r.to_dict() for r in self.records],
            "merges": [m.to_dict() for m in self.merges],
        }


def _coerce_records(items: Iterable[Any]) -> tuple[Record, ...]:
    return tuple(item if isinstance(item, Record) else Record.from_dict(item) for item in items)


def _coerce_merges(items: Iterable[Any]) -> tuple[Merge, ...]:
    return tuple(item if isinstance(item, Merge) else Merge.from_dict(item) for item in items)


def normalize_dataset(data: Dataset | Mapping[str, Any] | None) -> Dataset:
    """Build a Dataset from storage output, treating missing parts as empty."""
    if isinstance(data, Dataset):
        return data
    if not data:
        return Dataset()

    records = data.get("records")
    merges = data.get("merges")
    return Dataset(
        records=_coerce_records(records) if isinstance(records, (list, tuple)) else (),
        merges=_coerce_merges(merges) if isinstance(merges, (list, tuple)) else (),
    )


def apply_patch(dataset: Dataset, patch: Patch) -> Dataset:
    """Merge patch into exactly one record; other records are kept as-is."""
    return replace(
        dataset,
        records=tuple(
            patch.apply_to(record) if record.id == patch.record_id else record
            for record in dataset.records
        ),
    )
