"""Shared fixtures and fakes."""

from typing import Any, Optional

import pytest

from afactura.audit import AuditTrailRecorder
from afactura.models.invoice import Client
from afactura.services.storage import (
    Collection,
    InMemoryRecordStore,
    StorageError,
)

CLIENT_C1 = {
    "id": "c1",
    "name": "Cliente Particular",
    "nif": "999999999",
    "email": "",
    "phone": "",
    "address": "Luanda",
}


class FlakyRecordStore(InMemoryRecordStore):
    """
    In-memory store that raises StorageError on chosen operations.

    fail_on: set of (method, collection) pairs, collection None = any.
    """

    def __init__(self, fail_on: Optional[set[tuple[str, Optional[Collection]]]] = None):
        super().__init__()
        self.fail_on = set(fail_on or ())

    def _maybe_fail(self, method: str, collection: Any) -> None:
        targeted = collection is not None and (method, Collection(collection)) in self.fail_on
        if (method, None) in self.fail_on or targeted:
            raise StorageError(f"injected failure: {method} {collection}")

    async def add(self, collection, record):
        self._maybe_fail("add", collection)
        return await super().add(collection, record)

    async def list_all(self, collection):
        self._maybe_fail("list_all", collection)
        return await super().list_all(collection)

    async def replace_collections(self, contents):
        self._maybe_fail("replace_collections", None)
        return await super().replace_collections(contents)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def audit(store) -> AuditTrailRecorder:
    return AuditTrailRecorder(store)


@pytest.fixture
def client_c1() -> Client:
    return Client.model_validate(CLIENT_C1)
