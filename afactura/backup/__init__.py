"""
Encrypted Backup Package

PBKDF2-HMAC-SHA256 key derivation, AES-256-GCM encryption and the
salt||nonce||ciphertext envelope of .enc backup files.
"""

from afactura.backup.cipher import (
    NONCE_SIZE,
    TAG_SIZE,
    decrypt,
    encrypt,
    generate_nonce,
)
from afactura.backup.envelope import (
    BACKUP_MEDIA_TYPE,
    HEADER_SIZE,
    Envelope,
    pack,
    unpack,
)
from afactura.backup.errors import (
    AuthenticationError,
    BackupError,
    BackupInProgressError,
    FormatError,
    KeyDerivationError,
    WeakPasswordError,
    user_message,
)
from afactura.backup.kdf import (
    KEY_SIZE,
    PBKDF2_ITERATIONS,
    SALT_SIZE,
    DerivedKey,
    derive_key,
    derive_key_async,
    generate_salt,
)
from afactura.backup.service import (
    MIN_PASSWORD_LENGTH,
    BackupArtifact,
    BackupService,
    check_password,
)
from afactura.backup.snapshot import (
    SnapshotAssembler,
    snapshot_from_bytes,
    snapshot_to_bytes,
)

__all__ = [
    # Cipher
    "NONCE_SIZE",
    "TAG_SIZE",
    "decrypt",
    "encrypt",
    "generate_nonce",
    # Envelope
    "BACKUP_MEDIA_TYPE",
    "HEADER_SIZE",
    "Envelope",
    "pack",
    "unpack",
    # Errors
    "AuthenticationError",
    "BackupError",
    "BackupInProgressError",
    "FormatError",
    "KeyDerivationError",
    "WeakPasswordError",
    "user_message",
    # Key derivation
    "KEY_SIZE",
    "PBKDF2_ITERATIONS",
    "SALT_SIZE",
    "DerivedKey",
    "derive_key",
    "derive_key_async",
    "generate_salt",
    # Service
    "MIN_PASSWORD_LENGTH",
    "BackupArtifact",
    "BackupService",
    "check_password",
    # Snapshot
    "SnapshotAssembler",
    "snapshot_from_bytes",
    "snapshot_to_bytes",
]
