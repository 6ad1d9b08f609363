"""
Abstract Record Store Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep business logic decoupled from where records live
2. Use the in-memory store for tests and the JSON file store on disk
3. Swap in a real embedded database later

The interface is intentionally simple - four named collections of plain
JSON records and the handful of operations the application needs.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional


class Collection(str, Enum):
    """The named collections of the record store."""
    INVOICES = "invoices"
    CLIENTS = "clients"
    LOGS = "logs"
    SETTINGS = "settings"


# Primary key field of each collection
KEY_FIELDS: dict[Collection, str] = {
    Collection.INVOICES: "id",
    Collection.CLIENTS: "id",
    Collection.LOGS: "id",
    Collection.SETTINGS: "key",
}

# Collections whose key is assigned by the store (increasing integers)
AUTO_INCREMENT: frozenset[Collection] = frozenset({Collection.LOGS})


class RecordStoreInterface(ABC):
    """
    Abstract interface for the record store.

    Records are plain dicts. Stores return copies; mutating a returned
    record never changes stored state.
    """

    @abstractmethod
    async def add(self, collection: Collection, record: dict[str, Any]) -> Any:
        """
        Insert a new record.

        For auto-increment collections a missing key is assigned by the
        store.

        Returns:
            The record's key

        Raises:
            DuplicateError: If a record with the same key exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def bulk_add(
        self,
        collection: Collection,
        records: list[dict[str, Any]],
    ) -> list[Any]:
        """
        Insert several records; either all are stored or none.

        Returns:
            The keys, in input order
        """
        pass

    @abstractmethod
    async def list_all(self, collection: Collection) -> list[dict[str, Any]]:
        """
        Return every record of a collection in insertion order.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def latest(
        self,
        collection: Collection,
        order_by: str,
        limit: int,
    ) -> list[dict[str, Any]]:
        """
        Return up to `limit` records ordered by `order_by`, highest first.

        Records with equal values keep newest-inserted first.
        """
        pass

    @abstractmethod
    async def get(self, collection: Collection, key: Any) -> Optional[dict[str, Any]]:
        """
        Retrieve a record by key.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def put(self, collection: Collection, record: dict[str, Any]) -> Any:
        """
        Insert or replace the record with the same key.

        Returns:
            The record's key
        """
        pass

    @abstractmethod
    async def replace_collections(
        self,
        contents: dict[Collection, list[dict[str, Any]]],
    ) -> None:
        """
        Replace the full contents of the given collections.

        All-or-nothing: on failure the previous contents stay in place.
        Used by backup restore.
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Record not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate record."""
    pass
