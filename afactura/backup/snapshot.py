"""
Snapshot Assembler

Collects the four record collections into one Snapshot for backup, and
writes a Snapshot back over them on restore.

DESIGN DECISION: The assembler only moves data. Audit entries for the
backup lifecycle are written by the backup flow, never from here.
"""

import json

from pydantic import ValidationError

from afactura.backup.errors import FormatError
from afactura.models.snapshot import SNAPSHOT_VERSION, Snapshot, SnapshotData
from afactura.services.storage import Collection, RecordStoreInterface
from afactura.utils.helper import utc_now_iso


def snapshot_to_bytes(snapshot: Snapshot) -> bytes:
    """Compact UTF-8 JSON in field order: timestamp, version, data."""
    return json.dumps(
        snapshot.model_dump(mode="json"),
        ensure_ascii=False,
        separators=(",", ":"),
    ).encode("utf-8")


def snapshot_from_bytes(payload: bytes) -> Snapshot:
    try:
        document = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise FormatError(f"Backup payload is not valid JSON: {e}")
    try:
        return Snapshot.model_validate(document)
    except ValidationError as e:
        raise FormatError(f"Backup payload has an unexpected shape: {e.error_count()} errors")


class SnapshotAssembler:
    """Moves full record-store contents into and out of a Snapshot."""

    def __init__(self, store: RecordStoreInterface):
        self._store = store

    async def assemble(self) -> Snapshot:
        """
        Read every collection into a new Snapshot.

        Any StorageError propagates unchanged; no partial snapshot is
        ever returned.
        """
        invoices = await self._store.list_all(Collection.INVOICES)
        clients = await self._store.list_all(Collection.CLIENTS)
        logs = await self._store.list_all(Collection.LOGS)
        settings = await self._store.list_all(Collection.SETTINGS)

        return Snapshot(
            timestamp=utc_now_iso(),
            version=SNAPSHOT_VERSION,
            data=SnapshotData(
                invoices=invoices,
                clients=clients,
                logs=logs,
                settings=settings,
            ),
        )

    async def disassemble(self, snapshot: Snapshot) -> None:
        """
        Replace all four collections with the snapshot's contents.

        Full replace, all-or-nothing (the store applies the four
        collections in one call).
        """
        if snapshot.version != SNAPSHOT_VERSION:
            raise FormatError(f"Unsupported backup version: {snapshot.version}")

        await self._store.replace_collections({
            Collection.INVOICES: list(snapshot.data.invoices),
            Collection.CLIENTS: list(snapshot.data.clients),
            Collection.LOGS: list(snapshot.data.logs),
            Collection.SETTINGS: list(snapshot.data.settings),
        })
