"""
Authenticated encryption of backup payloads: AES-256-GCM.

The 128-bit tag is appended to the ciphertext. Decryption fails closed:
any mismatch raises AuthenticationError and no plaintext is returned.
"""

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from afactura.backup.errors import AuthenticationError, BackupError
from afactura.backup.kdf import DerivedKey

NONCE_SIZE = 12  # 96 bits
TAG_SIZE = 16    # 128 bits, appended to the ciphertext by AES-GCM


def generate_nonce() -> bytes:
    """Fresh random nonce. Never reuse one under the same key."""
    return os.urandom(NONCE_SIZE)


def _aesgcm(key: DerivedKey) -> AESGCM:
    if not isinstance(key, DerivedKey):
        raise TypeError("key must be a DerivedKey")
    return AESGCM(key._material)


def encrypt(key: DerivedKey, nonce: bytes, plaintext: bytes) -> bytes:
    """AES-256-GCM; returns ciphertext || tag."""
    if len(nonce) != NONCE_SIZE:
        raise BackupError(f"Nonce must be exactly {NONCE_SIZE} bytes", code="NONCE")
    return _aesgcm(key).encrypt(nonce, plaintext, None)


def decrypt(key: DerivedKey, nonce: bytes, data: bytes) -> bytes:
    """
    Inverse of encrypt. Fails closed: any problem is AuthenticationError
    and no plaintext is returned.
    """
    if len(nonce) != NONCE_SIZE or len(data) < TAG_SIZE:
        raise AuthenticationError()
    try:
        return _aesgcm(key).decrypt(nonce, data, None)
    except InvalidTag:
        raise AuthenticationError() from None
