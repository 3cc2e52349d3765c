"""Dataset persistence backends.

A dataset can live in one of two places:

1. A host record store (``DatasetStore``) that keeps records per journal.
   Preferred whenever one is wired and a journal id is known.
2. A single key in the key/value ``Storage`` (whole dataset under one key).

``DatasetGateway`` holds the backends as an explicit ranked list and uses the
first one that is available for a given context.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from ..debug_trace import get_logger
from ..models.record import Dataset, normalize_dataset
from .storage import Storage

log = get_logger("dataset")

# Upsert mode used when saving: the renderer owns record ordering
REPLACE_MODE = "replace"


class DatasetStore(ABC):
    """Port for a host-side record store keyed by journal id."""

    @abstractmethod
    async def get_dataset(self, context_id: str) -> Mapping[str, Any] | Dataset | None:
        """Return the journal's dataset ({"records": [...], "merges": [...]})."""

    @abstractmethod
    async def upsert_records(
        self, context_id: str, records: Sequence[Mapping[str, Any]], mode: str
    ) -> None:
        """Write records for the journal. mode="replace" replaces all records."""


class DatasetBackend(ABC):
    """One way of loading/saving a dataset."""

    name = "backend"

    @abstractmethod
    def is_available(self, context_id: str | None) -> bool:
        """Return True if this backend can serve the given context."""

    @abstractmethod
    async def load(self, context_id: str | None) -> Dataset:
        """Load and normalize the dataset."""

    @abstractmethod
    async def save(self, context_id: str | None, dataset: Dataset) -> None:
        """Persist the dataset."""


class TableStoreBackend(DatasetBackend):
    """Backend over a host DatasetStore.

    Saving only writes records (``upsert_records`` in replace mode); merges
    are owned by the store.
    """

    name = "table-store"

    def __init__(self, store: Any | None):
        self._store = store

    def is_available(self, context_id: str | None) -> bool:
        if not context_id or self._store is None:
            return False
        return callable(getattr(self._store, "get_dataset", None)) and callable(
            getattr(self._store, "upsert_records", None)
        )

    async def load(self, context_id: str | None) -> Dataset:
        data = await self._store.get_dataset(context_id)
        return normalize_dataset(data)

    async def save(self, context_id: str | None, dataset: Dataset) -> None:
        records = [r.to_dict() for r in dataset.records]
        await self._store.upsert_records(context_id, records, REPLACE_MODE)


class KeyValueDatasetBackend(DatasetBackend):
    """Backend storing the whole dataset under a single storage key."""

    name = "key-value"

    def __init__(self, storage: Storage, key: str):
        self._storage = storage
        self._key = key

    def is_available(self, context_id: str | None) -> bool:
        return True

    async def load(self, context_id: str | None) -> Dataset:
        return normalize_dataset(await self._storage.get(self._key))

    async def save(self, context_id: str | None, dataset: Dataset) -> None:
        await self._storage.set(self._key, dataset.to_dict())


class DatasetGateway:
    """Routes dataset load/save to the first available backend.

    Usage:
        gateway = DatasetGateway([
            TableStoreBackend(host_store),
            KeyValueDatasetBackend(storage, config.dataset_key),
        ])
        dataset = await gateway.load(journal_id)
    """

    def __init__(self, backends: Sequence[DatasetBackend]):
        if not backends:
            raise ValueError("DatasetGateway needs at least one backend")
        self._backends = list(backends)

    @property
    def backends(self) -> list[DatasetBackend]:
        return list(self._backends)

    def select(self, context_id: str | None) -> DatasetBackend:
        """Return the highest-ranked backend available for context_id."""
        for backend in self._backends:
            if backend.is_available(context_id):
                return backend
        raise LookupError(f"No dataset backend available for context {context_id!r}")

    async def load(self, context_id: str | None) -> Dataset:
        backend = self.select(context_id)
        log.debug("loading dataset for %r via %s", context_id, backend.name)
        return await backend.load(context_id)

    async def save(self, context_id: str | None, dataset: Dataset) -> None:
        backend = self.select(context_id)
        log.debug(
            "saving %d records for %r via %s", len(dataset.records), context_id, backend.name
        )
        await backend.save(context_id, dataset)
