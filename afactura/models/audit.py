"""
Audit Models for AFACTURA

Every state-changing action in the system is recorded for audit purposes.
This provides:
1. Complete traceability of all operations
2. A history the user can review in the logs viewer
3. Tamper evidence through a hash chain

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Each entry's `hash` covers the previous entry's hash plus its own content,
so editing or removing any stored entry breaks every later link.
"""

import hashlib
import json
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

MAX_ACTION_LENGTH = 64
MAX_DETAIL_LENGTH = 1000


class AuditAction(str, Enum):
    """
    Action tags we record.

    The recorder accepts any string tag; these are the ones the
    application emits.
    """
    # Session
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"

    # Documents
    INVOICE_CREATE = "INVOICE_CREATE"
    INVOICE_STATUS_CHANGE = "INVOICE_STATUS_CHANGE"
    INVOICE_EXPORT = "INVOICE_EXPORT"

    # Clients
    CLIENT_ADD = "CLIENT_ADD"

    # Settings
    SETTINGS_UPDATE = "SETTINGS_UPDATE"

    # Backup lifecycle
    BACKUP_INIT = "BACKUP_INIT"
    BACKUP_SUCCESS = "BACKUP_SUCCESS"
    BACKUP_FAIL = "BACKUP_FAIL"
    RESTORE_INIT = "RESTORE_INIT"
    RESTORE_SUCCESS = "RESTORE_SUCCESS"
    RESTORE_FAIL = "RESTORE_FAIL"


class AuditLogEntry(BaseModel):
    """
    A single audit entry.

    `id` is assigned by the record store on append and is None before that.
    """

    id: Optional[int] = None
    action: str = Field(..., min_length=1, max_length=MAX_ACTION_LENGTH)
    user: str = Field(..., min_length=1)
    timestamp: str = Field(..., description="ISO-8601 UTC")
    detail: str = Field(default="", max_length=MAX_DETAIL_LENGTH)
    prev_hash: Optional[str] = Field(
        default=None,
        description="Hash of the previous entry; None for the first entry"
    )
    hash: str = Field(..., description="Integrity token of this entry")

    def to_record(self) -> dict:
        """Record for the store; `id` is left out so the store assigns it."""
        return self.model_dump(mode="json", exclude={"id"})

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "audit_id": self.id,
            "action": self.action,
            "user": self.user,
            "timestamp": self.timestamp,
            "detail": self.detail,
        }


def compute_entry_hash(
    prev_hash: Optional[str],
    action: str,
    user: str,
    timestamp: str,
    detail: str,
) -> str:
    """SHA-256 of prev_hash followed by the canonical JSON of the content."""
    canonical = json.dumps(
        {
            "action": action,
            "detail": detail,
            "timestamp": timestamp,
            "user": user,
        },
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    digest = hashlib.sha256()
    digest.update((prev_hash or "").encode("utf-8"))
    digest.update(canonical.encode("utf-8"))
    return digest.hexdigest()


class ChainVerification(BaseModel):
    """Result of walking the audit chain oldest to newest."""

    valid: bool
    entries_checked: int = Field(ge=0)
    break_at: Optional[int] = Field(
        default=None,
        description="id of the first entry that does not verify"
    )


def verify_chain(entries: list[AuditLogEntry]) -> ChainVerification:
    """
    Check linkage and content hashes of entries given in insertion order.
    """
    prev_hash: Optional[str] = None
    for index, entry in enumerate(entries):
        expected = compute_entry_hash(
            prev_hash, entry.action, entry.user, entry.timestamp, entry.detail,
        )
        if entry.prev_hash != prev_hash or entry.hash != expected:
            return ChainVerification(
                valid=False, entries_checked=index, break_at=entry.id,
            )
        prev_hash = entry.hash

    return ChainVerification(valid=True, entries_checked=len(entries))
