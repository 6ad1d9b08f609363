"""Services package."""

from afactura.services.export import (
    ExportArtifact,
    export_invoice,
    generate_invoice_json,
    generate_invoice_xml,
)
from afactura.services.storage import (
    Collection,
    DuplicateError,
    InMemoryRecordStore,
    JsonFileRecordStore,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)

__all__ = [
    # Export
    "ExportArtifact",
    "export_invoice",
    "generate_invoice_json",
    "generate_invoice_xml",
    # Storage
    "Collection",
    "DuplicateError",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
    "NotFoundError",
    "RecordStoreInterface",
    "StorageError",
]
