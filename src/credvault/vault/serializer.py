"""Credential mapping <-> bytes.

The document shape is ``{"passwords": {account: secret, ...}}``, encoded as
compact UTF-8 JSON with sorted keys so equal mappings encode identically.
"""

import json
from typing import Dict, Mapping

from .exceptions import DecodeFailure

DOCUMENT_KEY = "passwords"


def encode(mapping: Mapping[str, str]) -> bytes:
    """Serialize a credential mapping to canonical JSON bytes."""
    document = {DOCUMENT_KEY: dict(mapping)}
    return json.dumps(
        document, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def decode(data: bytes) -> Dict[str, str]:
    """
    Parse bytes produced by encode().

    Raises:
        DecodeFailure: Not UTF-8, not JSON, or not a credential document.
    """
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeFailure(f"Plaintext is not a JSON document: {e}") from e

    if not isinstance(document, dict):
        raise DecodeFailure("Credential document must be a JSON object")

    passwords = document.get(DOCUMENT_KEY)
    if not isinstance(passwords, dict):
        raise DecodeFailure(f"Credential document has no '{DOCUMENT_KEY}' object")

    for secret in passwords.values():
        if not isinstance(secret, str):
            raise DecodeFailure(
                f"Secret for an account has type {type(secret).__name__}, expected string"
            )

    return dict(passwords)
