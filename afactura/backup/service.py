"""
Backup Service

Ties the backup core together:

    create:  snapshot -> JSON -> PBKDF2 key -> AES-GCM -> salt||nonce||ct
    restore: salt||nonce||ct -> PBKDF2 key -> AES-GCM -> JSON -> snapshot

DESIGN DECISION: The service enforces the boundaries:
- At most one backup or restore in flight
- Fresh salt and nonce for every backup
- Every lifecycle step is audited (INIT, then SUCCESS or FAIL)
- Crypto, format and storage errors always propagate to the caller
"""

import asyncio
import os
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from afactura.audit import AuditTrailRecorder
from afactura.backup.cipher import decrypt, encrypt, generate_nonce
from afactura.backup.envelope import (
    BACKUP_EXTENSION,
    BACKUP_MEDIA_TYPE,
    pack,
    unpack,
)
from afactura.backup.errors import (
    BackupInProgressError,
    WeakPasswordError,
    error_code,
)
from afactura.backup.kdf import derive_key_async, generate_salt
from afactura.backup.snapshot import (
    SnapshotAssembler,
    snapshot_from_bytes,
    snapshot_to_bytes,
)
from afactura.models.audit import AuditAction
from afactura.models.snapshot import Snapshot
from afactura.services.storage import RecordStoreInterface
from afactura.utils.helper import date_part

MIN_PASSWORD_LENGTH = 8


class BackupArtifact(BaseModel):
    """An encrypted backup ready to be handed to the user."""

    filename: str
    media_type: str = BACKUP_MEDIA_TYPE
    content: bytes = Field(..., min_length=28)
    snapshot_timestamp: str

    def write_to(self, directory: Path | str) -> Path:
        """Write atomically into `directory`; returns the file path."""
        target = Path(directory) / self.filename
        tmp = target.with_suffix(".tmp")
        try:
            with tmp.open("wb") as f:
                f.write(self.content)
            os.replace(tmp, target)
        finally:
            tmp.unlink(missing_ok=True)
        return target


def check_password(password: str) -> None:
    """Backup password policy, applied before any key derivation."""
    if password is None or len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(MIN_PASSWORD_LENGTH)


class BackupService:
    """
    Creates and restores encrypted backups of the whole record store.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        audit: AuditTrailRecorder,
        filename_prefix: str = "afactura_backup",
    ):
        self._assembler = SnapshotAssembler(store)
        self._audit = audit
        self._filename_prefix = filename_prefix
        self._busy = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    @property
    def in_progress(self) -> bool:
        return self._busy.locked()

    def _claim(self) -> None:
        if self._busy.locked():
            raise BackupInProgressError()

    async def create_backup(
        self,
        password: str,
        user: Optional[str] = None,
    ) -> BackupArtifact:
        """
        Build an encrypted backup of all invoices, clients, logs and
        settings.

        Raises:
            WeakPasswordError: password shorter than 8 characters
            BackupInProgressError: another backup/restore is running
            KeyDerivationError, BackupError, StorageError: backup aborted
        """
        self._claim()
        check_password(password)

        async with self._busy:
            # Earlier dispatched entries belong before INIT and in the snapshot
            await self._audit.drain()
            await self._audit.record(
                AuditAction.BACKUP_INIT, "User requested secure backup", user,
            )
            self._logger.info("backup_started")

            try:
                snapshot = await self._assembler.assemble()
                plaintext = snapshot_to_bytes(snapshot)

                salt = generate_salt()
                nonce = generate_nonce()
                key = await derive_key_async(password, salt)
                content = pack(salt, nonce, encrypt(key, nonce, plaintext))
            except Exception as e:
                self._logger.error("backup_failed", code=error_code(e), error=str(e))
                await self._audit.record(
                    AuditAction.BACKUP_FAIL, f"Backup failed: {e}", user,
                )
                raise

            artifact = BackupArtifact(
                filename=f"{self._filename_prefix}_{date_part(snapshot.timestamp)}{BACKUP_EXTENSION}",
                content=content,
                snapshot_timestamp=snapshot.timestamp,
            )
            self._logger.info(
                "backup_created",
                filename=artifact.filename,
                size_bytes=len(content),
                records=snapshot.record_counts,
            )
            await self._audit.record(
                AuditAction.BACKUP_SUCCESS, "Secure backup generated successfully", user,
            )
            return artifact

    async def restore_backup(
        self,
        content: bytes,
        password: str,
        user: Optional[str] = None,
    ) -> Snapshot:
        """
        Decrypt a backup and replace every collection with its contents.

        Nothing is written unless decryption and parsing both succeed.

        Raises:
            FormatError: file too short or payload not a snapshot
            AuthenticationError: wrong password or tampered file
            KeyDerivationError: empty password
            BackupInProgressError: another backup/restore is running
        """
        self._claim()

        async with self._busy:
            await self._audit.drain()
            await self._audit.record(
                AuditAction.RESTORE_INIT,
                f"User requested restore of a {len(content)} byte backup",
                user,
            )

            try:
                envelope = unpack(content)
                key = await derive_key_async(password, envelope.salt)
                plaintext = decrypt(key, envelope.nonce, envelope.ciphertext)
                snapshot = snapshot_from_bytes(plaintext)
                await self._assembler.disassemble(snapshot)
            except Exception as e:
                self._logger.error("restore_failed", code=error_code(e), error=str(e))
                await self._audit.record(
                    AuditAction.RESTORE_FAIL, f"Restore failed: {e}", user,
                )
                raise

            self._logger.info("backup_restored", records=snapshot.record_counts)
            await self._audit.record(
                AuditAction.RESTORE_SUCCESS,
                f"Backup taken at {snapshot.timestamp} restored",
                user,
            )
            return snapshot

    async def restore_from_file(
        self,
        path: Path | str,
        password: str,
        user: Optional[str] = None,
    ) -> Snapshot:
        content = await asyncio.to_thread(Path(path).read_bytes)
        return await self.restore_backup(content, password, user)
