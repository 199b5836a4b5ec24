# Credvault - Authenticated Cipher
#
# AES-256-GCM seal/open over whole buffers.
# Output layout: ciphertext || 16-byte tag (no associated data).

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import AuthenticationFailure

KEY_SIZE = 32    # AES-256 key (256 bits)
NONCE_SIZE = 12  # AES-256-GCM nonce (96 bits per NIST)
TAG_SIZE = 16    # GCM authentication tag

# Nonce of the legacy format. Reused for every save under the same key,
# which breaks GCM's uniqueness requirement; only for legacy files.
ZERO_NONCE = bytes(NONCE_SIZE)


def _check_params(key: bytes, nonce: bytes) -> None:
    if len(key) != KEY_SIZE:
        raise ValueError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
    if len(nonce) != NONCE_SIZE:
        raise ValueError(f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")


def seal(key: bytes, nonce: bytes, plaintext: bytes) -> bytes:
    """
    Encrypt and authenticate plaintext.

    Returns:
        ciphertext with the 16-byte tag appended
    """
    _check_params(key, nonce)
    return AESGCM(key).encrypt(nonce, plaintext, None)


def open_sealed(key: bytes, nonce: bytes, sealed: bytes) -> bytes:
    """
    Verify and decrypt a sealed buffer.

    Raises:
        AuthenticationFailure: Tag did not verify (wrong key, tampered or
            truncated data). No plaintext is returned in that case.
    """
    _check_params(key, nonce)
    if len(sealed) < TAG_SIZE:
        raise AuthenticationFailure("Sealed data is shorter than the authentication tag")
    try:
        return AESGCM(key).decrypt(nonce, sealed, None)
    except InvalidTag:
        raise AuthenticationFailure("Authentication tag did not verify") from None


def generate_nonce() -> bytes:
    """Generate a random 96-bit nonce (must be unique per encryption)."""
    return os.urandom(NONCE_SIZE)
