"""
Audit Trail Recorder

DESIGN DECISION: Every state-changing action in the system is recorded.
This provides:
1. Complete traceability
2. A history the user can review in the logs viewer
3. Tamper evidence (entries are hash-chained)

The recorder:
- Appends exactly one entry per call and never edits or deletes entries
- Gracefully handles failures (a failed append never breaks the action
  that triggered it; it is reported on the operational log instead)
- Offers a non-blocking `dispatch` that queues entries to a single
  background worker, preserving call order
"""

import asyncio
from enum import Enum
from typing import Optional, Union

import structlog

from afactura.models.audit import (
    MAX_ACTION_LENGTH,
    MAX_DETAIL_LENGTH,
    AuditLogEntry,
    ChainVerification,
    compute_entry_hash,
    verify_chain,
)
from afactura.services.storage import Collection, RecordStoreInterface
from afactura.utils.helper import utc_now_iso

ActionTag = Union[str, Enum]


def _tag(action: ActionTag) -> str:
    return action.value if isinstance(action, Enum) else str(action)


class AuditTrailRecorder:
    """
    Central audit trail service.

    Writes entries both to:
    1. The operational log (structlog, event name 'audit_event')
    2. The 'logs' collection of the record store
    """

    def __init__(
        self,
        store: Optional[RecordStoreInterface] = None,
        default_user: str = "Admin",
    ):
        """
        Initialize the recorder.

        Args:
            store: Record store for persistence.
                   If None, entries are only logged locally.
            default_user: User recorded when the caller gives none.
        """
        self._store = store
        self._default_user = default_user
        self._logger = structlog.get_logger(__name__)
        self._chain_lock = asyncio.Lock()
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    async def _chain_head(self) -> tuple[Optional[str], Optional[str]]:
        """(hash, timestamp) of the newest stored entry."""
        if self._store is None:
            return None, None
        newest = await self._store.latest(Collection.LOGS, order_by="id", limit=1)
        if not newest:
            return None, None
        return newest[0].get("hash"), newest[0].get("timestamp")

    async def _append(self, action: str, detail: str, user: str) -> AuditLogEntry:
        # Oversized text is cut, never a reason to drop the entry
        action = action[:MAX_ACTION_LENGTH]
        detail = detail[:MAX_DETAIL_LENGTH]
        async with self._chain_lock:
            prev_hash, prev_timestamp = await self._chain_head()

            timestamp = utc_now_iso()
            # Keep insertion order == timestamp order if the clock stepped back
            if prev_timestamp and prev_timestamp > timestamp:
                timestamp = prev_timestamp

            entry = AuditLogEntry(
                action=action,
                user=user,
                timestamp=timestamp,
                detail=detail,
                prev_hash=prev_hash,
                hash=compute_entry_hash(prev_hash, action, user, timestamp, detail),
            )
            if self._store is not None:
                key = await self._store.add(Collection.LOGS, entry.to_record())
                entry = entry.model_copy(update={"id": key})
            return entry

    async def record(
        self,
        action: ActionTag,
        detail: str,
        user: Optional[str] = None,
    ) -> Optional[AuditLogEntry]:
        """
        Append one audit entry.

        Returns the persisted entry, or None if the append failed.
        Never raises.
        """
        tag = _tag(action)
        try:
            entry = await self._append(tag, detail, user or self._default_user)
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "audit_storage_failed",
                action=tag,
                detail=detail,
                error=str(e),
            )
            return None

        self._logger.info("audit_event", **entry.to_log_dict())
        return entry

    # ── Non-blocking dispatch ──

    def dispatch(
        self,
        action: ActionTag,
        detail: str,
        user: Optional[str] = None,
    ) -> None:
        """
        Queue an entry for the background worker and return immediately.

        Must be called from inside a running event loop.
        """
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run_worker())
        self._queue.put_nowait((action, detail, user))

    async def _run_worker(self) -> None:
        assert self._queue is not None
        while True:
            action, detail, user = await self._queue.get()
            try:
                await self.record(action, detail, user)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every dispatched entry has been written (or failed)."""
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """Drain the queue and stop the background worker."""
        await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

    # ── Read ──

    async def verify_integrity(self) -> ChainVerification:
        """Walk the stored chain oldest to newest and check every link."""
        if self._store is None:
            return ChainVerification(valid=True, entries_checked=0)
        records = await self._store.list_all(Collection.LOGS)
        entries = [AuditLogEntry.model_validate(r) for r in records]
        return verify_chain(entries)
