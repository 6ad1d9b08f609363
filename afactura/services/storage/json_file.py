"""
JSON File Record Store

DESIGN DECISION: The whole store is one JSON document on disk,
rewritten on every mutation through a temporary file and os.replace.
A crash mid-write therefore leaves either the old or the new file,
never a truncated one.

TRADEOFFS:
- Every write rewrites the full file (fine for a small business ledger)
- Single process only; no file locking
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Any

from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from afactura.services.storage.interface import (
    KEY_FIELDS,
    Collection,
    StorageError,
)
from afactura.services.storage.memory import InMemoryRecordStore, State

FILE_FORMAT_VERSION = 1


class JsonFileRecordStore(InMemoryRecordStore):
    """Record store persisted to a single JSON file."""

    def __init__(self, path: Path | str):
        self._path = Path(path)
        super().__init__(self._load())

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> State:
        state: State = {collection: {} for collection in Collection}
        if not self._path.exists():
            return state

        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read record store {self._path}: {e}")

        if not isinstance(document, dict) or not isinstance(document.get("collections"), dict):
            raise StorageError(f"Record store {self._path} is corrupt")

        for name, records in document["collections"].items():
            collection = self._collection(name)
            key_field = KEY_FIELDS[collection]
            state[collection] = {record[key_field]: record for record in records}
        return state

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    )
    def _write(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self._path)

    async def _commit(self, state: State) -> None:
        document: dict[str, Any] = {
            "format": FILE_FORMAT_VERSION,
            "collections": {
                collection.value: list(rows.values())
                for collection, rows in state.items()
            },
        }
        try:
            payload = json.dumps(document, ensure_ascii=False, indent=1)
            await asyncio.to_thread(self._write, payload)
        except RetryError as e:
            raise StorageError(f"Failed to write record store {self._path}: {e}")
        except (TypeError, ValueError) as e:
            raise StorageError(f"Record is not JSON serializable: {e}")
        await super()._commit(state)
