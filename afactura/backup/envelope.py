"""
Backup envelope: the on-disk layout of a .enc backup file.

    salt       : 16 bytes  (PBKDF2 salt)
    nonce      : 12 bytes  (AES-GCM nonce)
    ciphertext : remaining bytes (AES-256-GCM over the snapshot JSON, tag last)

No magic, no length prefixes: salt and nonce have fixed widths and the
ciphertext is everything after them.
"""

from typing import NamedTuple

from afactura.backup.cipher import NONCE_SIZE
from afactura.backup.errors import FormatError
from afactura.backup.kdf import SALT_SIZE

HEADER_SIZE = SALT_SIZE + NONCE_SIZE  # 28

BACKUP_MEDIA_TYPE = "application/octet-stream"
BACKUP_EXTENSION = ".enc"


class Envelope(NamedTuple):
    salt: bytes
    nonce: bytes
    ciphertext: bytes


def pack(salt: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
    if len(salt) != SALT_SIZE:
        raise FormatError(f"Salt must be exactly {SALT_SIZE} bytes")
    if len(nonce) != NONCE_SIZE:
        raise FormatError(f"Nonce must be exactly {NONCE_SIZE} bytes")
    return bytes(salt) + bytes(nonce) + bytes(ciphertext)


def unpack(buffer: bytes) -> Envelope:
    if len(buffer) < HEADER_SIZE:
        raise FormatError("Backup file is too small or corrupt")
    buffer = bytes(buffer)
    return Envelope(
        salt=buffer[:SALT_SIZE],
        nonce=buffer[SALT_SIZE:HEADER_SIZE],
        ciphertext=buffer[HEADER_SIZE:],
    )
