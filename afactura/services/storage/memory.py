"""
In-Memory Record Store

Keeps every collection in ordered dicts. Each mutation builds the new
state first and installs it through `_commit`, so a failed write leaves
the previous state untouched. Writes are serialized from the state copy
through the commit, so concurrent writers never start from the same
state. Subclasses persist the state in `_commit`.
"""

import asyncio
import copy
from typing import Any, Optional

import structlog

from afactura.services.storage.interface import (
    AUTO_INCREMENT,
    KEY_FIELDS,
    Collection,
    DuplicateError,
    RecordStoreInterface,
    StorageError,
)

State = dict[Collection, dict[Any, dict[str, Any]]]


def _empty_state() -> State:
    return {collection: {} for collection in Collection}


class InMemoryRecordStore(RecordStoreInterface):
    """Record store held entirely in process memory."""

    def __init__(self, initial: Optional[State] = None):
        self._state: State = initial if initial is not None else _empty_state()
        # Held from copying the state until the commit lands
        self._write_lock = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    # ── Internal helpers ──

    @staticmethod
    def _collection(collection: Collection | str) -> Collection:
        try:
            return Collection(collection)
        except ValueError:
            raise StorageError(f"Unknown collection: {collection}")

    def _next_id(self, rows: dict[Any, dict[str, Any]]) -> int:
        return max((k for k in rows if isinstance(k, int)), default=0) + 1

    def _key_of(
        self,
        collection: Collection,
        rows: dict[Any, dict[str, Any]],
        record: dict[str, Any],
    ) -> Any:
        key_field = KEY_FIELDS[collection]
        key = record.get(key_field)
        if key is None:
            if collection not in AUTO_INCREMENT:
                raise StorageError(
                    f"Record for '{collection.value}' has no '{key_field}'"
                )
            key = self._next_id(rows)
            record[key_field] = key
        return key

    def _insert(
        self,
        collection: Collection,
        rows: dict[Any, dict[str, Any]],
        record: dict[str, Any],
    ) -> Any:
        record = copy.deepcopy(record)
        key = self._key_of(collection, rows, record)
        if key in rows:
            raise DuplicateError(
                f"Key {key!r} already exists in '{collection.value}'"
            )
        rows[key] = record
        return key

    async def _commit(self, state: State) -> None:
        self._state = state

    def _with_collection(self, collection: Collection) -> tuple[State, dict[Any, dict[str, Any]]]:
        """Shallow copy of the state with a private copy of one collection."""
        state = dict(self._state)
        rows = dict(state[collection])
        state[collection] = rows
        return state, rows

    # ── Write ──

    async def add(self, collection: Collection, record: dict[str, Any]) -> Any:
        collection = self._collection(collection)
        async with self._write_lock:
            state, rows = self._with_collection(collection)
            key = self._insert(collection, rows, record)
            await self._commit(state)
        return key

    async def bulk_add(
        self,
        collection: Collection,
        records: list[dict[str, Any]],
    ) -> list[Any]:
        collection = self._collection(collection)
        async with self._write_lock:
            state, rows = self._with_collection(collection)
            keys = [self._insert(collection, rows, record) for record in records]
            await self._commit(state)
        return keys

    async def put(self, collection: Collection, record: dict[str, Any]) -> Any:
        collection = self._collection(collection)
        record = copy.deepcopy(record)
        async with self._write_lock:
            state, rows = self._with_collection(collection)
            key = self._key_of(collection, rows, record)
            rows[key] = record
            await self._commit(state)
        return key

    async def replace_collections(
        self,
        contents: dict[Collection, list[dict[str, Any]]],
    ) -> None:
        async with self._write_lock:
            state = dict(self._state)
            for name, records in contents.items():
                collection = self._collection(name)
                rows: dict[Any, dict[str, Any]] = {}
                for record in records:
                    self._insert(collection, rows, record)
                state[collection] = rows
            await self._commit(state)
        self._logger.info(
            "collections_replaced",
            collections={Collection(c).value: len(r) for c, r in contents.items()},
        )

    # ── Read ──

    async def list_all(self, collection: Collection) -> list[dict[str, Any]]:
        collection = self._collection(collection)
        return copy.deepcopy(list(self._state[collection].values()))

    async def latest(
        self,
        collection: Collection,
        order_by: str,
        limit: int,
    ) -> list[dict[str, Any]]:
        collection = self._collection(collection)
        if limit <= 0:
            return []
        rows = list(self._state[collection].values())
        # Reverse first so that ties keep newest-inserted first (sort is stable)
        rows.reverse()
        try:
            rows.sort(key=lambda r: (r.get(order_by) is not None, r.get(order_by)), reverse=True)
        except TypeError as e:
            raise StorageError(f"Cannot order '{collection.value}' by '{order_by}': {e}")
        return copy.deepcopy(rows[:limit])

    async def get(self, collection: Collection, key: Any) -> Optional[dict[str, Any]]:
        collection = self._collection(collection)
        record = self._state[collection].get(key)
        return copy.deepcopy(record) if record is not None else None
