import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from typing import Tuple

from credvault.errors import AuthenticationError
from credvault.utils.dataModels import KEY_SIZE, NONCE_SIZE, TAG_SIZE


def _cipher(key: bytes) -> AESGCM:
    if len(key) != KEY_SIZE:
        raise ValueError(f"key must be {KEY_SIZE} bytes, got {len(key)}")
    return AESGCM(bytes(key))


def aead_encrypt(key: bytes, plaintext: bytes, aad: bytes | None = None) -> Tuple[bytes, bytes]:
    nonce = os.urandom(NONCE_SIZE)
    ct = _cipher(key).encrypt(nonce, plaintext, aad)
    return nonce, ct


def aead_decrypt(key: bytes, nonce: bytes, ct: bytes, aad: bytes | None = None) -> bytes:
    return _cipher(key).decrypt(nonce, ct, aad)


def seal(key: bytes, plaintext: bytes, aad: bytes | None = None) -> bytes:
    """Encrypt under a fresh random nonce. Returns nonce || ciphertext || tag."""
    nonce, ct = aead_encrypt(key, plaintext, aad)
    return nonce + ct


def unseal(key: bytes, blob: bytes, aad: bytes | None = None) -> bytes:
    """Inverse of :func:`seal`.

    Raises AuthenticationError for truncated blobs, tampered bytes, a wrong key
    or mismatching associated data. Nothing is returned unless the tag verifies.
    """
    if len(blob) < NONCE_SIZE + TAG_SIZE:
        raise AuthenticationError(
            f"sealed blob too short: {len(blob)} bytes (minimum {NONCE_SIZE + TAG_SIZE})"
        )
    try:
        return aead_decrypt(key, blob[:NONCE_SIZE], blob[NONCE_SIZE:], aad)
    except InvalidTag as err:
        raise AuthenticationError("authentication failed: wrong key or corrupted data") from err
