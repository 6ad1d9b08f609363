"""Backup/restore exception hierarchy."""

from typing import Optional

UNREADABLE_BACKUP_MESSAGE = "Backup unreadable or wrong password."


class BackupError(Exception):
    """Base exception for all backup and restore errors."""

    def __init__(self, message: str = "", code: str = "BACKUP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class KeyDerivationError(BackupError):
    """Password or salt cannot be used to derive a key."""

    def __init__(self, message: str = "Cannot derive key from password"):
        super().__init__(message, code="KEY_DERIVATION")


class WeakPasswordError(KeyDerivationError):
    """Password is shorter than the backup policy allows."""

    def __init__(self, min_length: int):
        self.min_length = min_length
        super().__init__(f"Password must be at least {min_length} characters")


class AuthenticationError(BackupError):
    """Ciphertext failed authentication (tampered, truncated or wrong key)."""

    def __init__(self, message: str = UNREADABLE_BACKUP_MESSAGE):
        super().__init__(message, code="AUTHENTICATION")


class FormatError(BackupError):
    """Backup file or payload does not have the expected layout."""

    def __init__(self, message: str = "Malformed backup file"):
        super().__init__(message, code="FORMAT")


class BackupInProgressError(BackupError):
    """A backup or restore is already running."""

    def __init__(self, message: str = "A backup or restore is already in progress"):
        super().__init__(message, code="IN_PROGRESS")


def user_message(error: Exception) -> str:
    """
    Text shown to the user for a failed backup or restore.

    Authentication and format errors share one message: both mean
    "cannot restore this file".
    """
    if isinstance(error, (AuthenticationError, FormatError)):
        return UNREADABLE_BACKUP_MESSAGE
    if isinstance(error, WeakPasswordError):
        return error.message
    if isinstance(error, KeyDerivationError):
        return "Please enter a valid password."
    if isinstance(error, BackupInProgressError):
        return error.message
    return "The operation failed. Please try again."


def error_code(error: Optional[Exception]) -> str:
    if isinstance(error, BackupError):
        return error.code
    return type(error).__name__ if error is not None else ""
