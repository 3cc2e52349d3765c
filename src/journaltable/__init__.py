"""Hierarchical, editable journal table with merged cells and pluggable storage."""

from .config import RendererConfig
from .data.storage import MemoryStorage, Storage, assert_storage
from .data.table_controller import TableController
from .data.table_engine import TableEngine
from .data.table_session import TableSession
from .errors import (
    CellNotEditableError,
    FormValidationError,
    InvalidValueError,
    NoActiveEditError,
    StorageAdapterError,
    TableError,
    UnknownFieldError,
    UnknownRecordError,
)
from .models.record import Dataset, Merge, Patch, Record
from .models.schema import EMPTY_SCHEMA, Field, FieldType, Schema
from .models.settings import SortSpec, TableSettings
from .models.view import View

__all__ = [
    "EMPTY_SCHEMA",
    "CellNotEditableError",
    "Dataset",
    "Field",
    "FieldType",
    "FormValidationError",
    "InvalidValueError",
    "MemoryStorage",
    "Merge",
    "NoActiveEditError",
    "Patch",
    "Record",
    "RendererConfig",
    "Schema",
    "SortSpec",
    "Storage",
    "StorageAdapterError",
    "TableController",
    "TableEngine",
    "TableError",
    "TableSession",
    "TableSettings",
    "UnknownFieldError",
    "UnknownRecordError",
    "View",
    "assert_storage",
]
