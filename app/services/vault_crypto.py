"""
Crypto codec for stored documents.
Uses AES-256-GCM with a fresh key and nonce per document.
"""

import hashlib
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

KEY_BYTES = 32  # 256 bits
NONCE_BYTES = 12  # 96-bit nonce for GCM


class DecryptionError(Exception):
    """Ciphertext could not be authenticated or the key material is malformed."""


@dataclass(frozen=True)
class EncryptedPayload:
    ciphertext: bytes
    key_material: str


def content_hash(data: bytes) -> str:
    """Hex SHA-256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def encrypt(plaintext: bytes) -> EncryptedPayload:
    """
    Encrypt a buffer under a newly generated key and nonce.

    Returns:
        EncryptedPayload whose key_material is "<key hex>:<nonce hex>".
    """
    key = AESGCM.generate_key(bit_length=KEY_BYTES * 8)
    nonce = os.urandom(NONCE_BYTES)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext, None)
    return EncryptedPayload(
        ciphertext=ciphertext, key_material=f"{key.hex()}:{nonce.hex()}"
    )


def decrypt(ciphertext: bytes, key_material: str) -> bytes:
    """
    Decrypt a buffer produced by :func:`encrypt`.

    Raises:
        DecryptionError: wrong key, malformed key material or tampered data
    """
    key, nonce = _parse_key_material(key_material)
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        raise DecryptionError("Ciphertext failed authentication") from e


def _parse_key_material(key_material: str) -> tuple[bytes, bytes]:
    try:
        key_hex, nonce_hex = key_material.split(":")
        key = bytes.fromhex(key_hex)
        nonce = bytes.fromhex(nonce_hex)
    except (AttributeError, ValueError) as e:
        raise DecryptionError("Malformed key material") from e
    if len(key) != KEY_BYTES or len(nonce) != NONCE_BYTES:
        raise DecryptionError("Malformed key material")
    return key, nonce
