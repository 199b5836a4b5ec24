# Credvault - Key Derivation
#
# Master passphrase -> 256-bit key.
#
# Two derivations exist side by side:
# - derive_legacy_key: one SHA-256 pass, no salt. Reproduces the key of
#   legacy store files. Offers no resistance to offline guessing; only
#   used to read (or explicitly write) the legacy format.
# - derive_key: PBKDF2-HMAC-SHA256 with a per-store random salt. Used by
#   the sealed v1 format.

import os
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

PBKDF2_ITERATIONS = 600_000  # OWASP 2023: 600k iterations for PBKDF2-SHA256
KEY_LENGTH = 32  # 256 bits for AES-256
SALT_LENGTH = 32  # 256-bit salt

Passphrase = Union[str, bytes]


def _to_bytes(passphrase: Passphrase) -> bytes:
    if isinstance(passphrase, str):
        return passphrase.encode("utf-8")
    return bytes(passphrase)


def derive_legacy_key(passphrase: Passphrase) -> bytes:
    """
    Derive the unsalted legacy key: SHA-256 of the passphrase bytes.

    Deterministic: the same passphrase yields the same key for every store.
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(_to_bytes(passphrase))
    return digest.finalize()


def derive_key(passphrase: Passphrase, salt: bytes) -> bytes:
    """
    Derive encryption key from master passphrase using PBKDF2.

    Args:
        passphrase: User's master passphrase (str is UTF-8 encoded)
        salt: Random salt (stored in the blob header)

    Returns:
        256-bit encryption key
    """
    if len(salt) != SALT_LENGTH:
        raise ValueError(f"Salt must be {SALT_LENGTH} bytes, got {len(salt)}")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(_to_bytes(passphrase))


def generate_salt() -> bytes:
    """Generate cryptographically random salt."""
    return os.urandom(SALT_LENGTH)
