"""
Key derivation: PBKDF2-HMAC-SHA256 -> 256-bit AES key.

The work factor is part of the backup format. Changing it makes every
existing backup unreadable, so it is a constant, not a setting.
"""

import asyncio
import os

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from afactura.backup.errors import KeyDerivationError

SALT_SIZE = 16
KEY_SIZE = 32  # 256 bits
PBKDF2_ITERATIONS = 100_000


class DerivedKey:
    """
    Key material bound to the backup cipher.

    No public accessor for the raw bytes; only afactura.backup.cipher
    reads them.
    """

    __slots__ = ("_material",)

    def __init__(self, material: bytes):
        if len(material) != KEY_SIZE:
            raise KeyDerivationError(f"Key must be {KEY_SIZE} bytes")
        self._material = material

    def __repr__(self) -> str:
        return "DerivedKey(<hidden>)"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DerivedKey):
            return NotImplemented
        return self._material == other._material

    def __hash__(self) -> int:
        return hash(self._material)


def generate_salt() -> bytes:
    """Fresh random salt; draw one per backup."""
    return os.urandom(SALT_SIZE)


def derive_key(password: str, salt: bytes) -> DerivedKey:
    """Kbackup = PBKDF2-HMAC-SHA256(password, salt, 100k) -> 32 bytes"""
    if not password:
        raise KeyDerivationError("Password must not be empty")
    if not isinstance(salt, (bytes, bytearray)) or len(salt) != SALT_SIZE:
        raise KeyDerivationError(f"Salt must be exactly {SALT_SIZE} bytes")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=bytes(salt),
        iterations=PBKDF2_ITERATIONS,
    )
    return DerivedKey(kdf.derive(password.encode("utf-8")))


async def derive_key_async(password: str, salt: bytes) -> DerivedKey:
    """derive_key in a worker thread so the event loop stays responsive."""
    return await asyncio.to_thread(derive_key, password, salt)
