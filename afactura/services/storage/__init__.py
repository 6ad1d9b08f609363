"""
Storage Services Package

Provides the abstract record store interface and two implementations:
in-memory (tests, ephemeral sessions) and a single JSON file on disk.
"""

from afactura.services.storage.interface import (
    AUTO_INCREMENT,
    KEY_FIELDS,
    Collection,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)
from afactura.services.storage.memory import InMemoryRecordStore
from afactura.services.storage.json_file import JsonFileRecordStore

__all__ = [
    # Interface
    "AUTO_INCREMENT",
    "Collection",
    "KEY_FIELDS",
    "RecordStoreInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryRecordStore",
    "JsonFileRecordStore",
]
