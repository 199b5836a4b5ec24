# Credvault - Encrypted Store
#
# Owns the on-disk format: read file -> open -> decode on load,
# encode -> seal -> write file on save.
#
# Blob layouts:
#   LEGACY     ciphertext+tag                              (key = SHA-256(pass), nonce = 0)
#   SEALED_V1  b"CVLT" + 0x01 + salt(32) + nonce(12) + ciphertext+tag
#
# Saves are atomic: temp file in the same directory (mode 0600),
# fsync, os.replace over the target, then fsync the directory.

import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union

from . import cipher, kdf, serializer
from .exceptions import AuthenticationFailure, DecodeFailure, IOFailure
from ..core.log import EventType, get_logger

logger = get_logger(__name__)

MAGIC = b"CVLT"
FORMAT_VERSION = 1
_HEADER_PREFIX = MAGIC + bytes([FORMAT_VERSION])
HEADER_SIZE = len(_HEADER_PREFIX) + kdf.SALT_LENGTH + cipher.NONCE_SIZE

PathLike = Union[str, os.PathLike]


class BlobFormat(str, Enum):
    """On-disk layouts understood by the store."""

    LEGACY = "legacy"
    SEALED_V1 = "sealed-v1"


@dataclass(frozen=True)
class MasterKey:
    """Session key material. Never persisted; the salt is public."""

    key: bytes = field(repr=False)
    blob_format: BlobFormat
    salt: Optional[bytes] = None


@dataclass(frozen=True)
class SealedBlob:
    """A parsed store file."""

    blob_format: BlobFormat
    nonce: bytes
    sealed: bytes
    salt: Optional[bytes] = None


def pack_blob(blob: SealedBlob) -> bytes:
    """Serialize a SealedBlob to file bytes."""
    if blob.blob_format is BlobFormat.LEGACY:
        return blob.sealed
    return _HEADER_PREFIX + blob.salt + blob.nonce + blob.sealed


def parse_blob(data: bytes) -> SealedBlob:
    """
    Split file bytes into header fields and sealed payload.

    Anything that does not start with the v1 magic and version is a legacy
    blob. A v1 header too short to hold salt and nonce fails authentication.
    """
    if data.startswith(_HEADER_PREFIX):
        if len(data) < HEADER_SIZE + cipher.TAG_SIZE:
            raise AuthenticationFailure("Store file is truncated")
        salt_start = len(_HEADER_PREFIX)
        nonce_start = salt_start + kdf.SALT_LENGTH
        return SealedBlob(
            blob_format=BlobFormat.SEALED_V1,
            salt=data[salt_start:nonce_start],
            nonce=data[nonce_start:HEADER_SIZE],
            sealed=data[HEADER_SIZE:],
        )
    return SealedBlob(
        blob_format=BlobFormat.LEGACY,
        nonce=cipher.ZERO_NONCE,
        sealed=data,
    )


def seal_mapping(mapping: Mapping[str, str], key: MasterKey) -> bytes:
    """Encode and seal a mapping into file bytes for the key's format."""
    plaintext = serializer.encode(mapping)
    if key.blob_format is BlobFormat.LEGACY:
        nonce = cipher.ZERO_NONCE
    else:
        nonce = cipher.generate_nonce()
    return pack_blob(SealedBlob(
        blob_format=key.blob_format,
        salt=key.salt,
        nonce=nonce,
        sealed=cipher.seal(key.key, nonce, plaintext),
    ))


def open_mapping(data: bytes, key: MasterKey) -> Dict[str, str]:
    """
    Open file bytes and decode the mapping.

    Raises:
        AuthenticationFailure: Wrong key, format mismatch or tampered data.
        DecodeFailure: Plaintext authenticated but is not a credential document.
    """
    blob = parse_blob(data)
    if blob.blob_format is not key.blob_format:
        raise AuthenticationFailure(
            f"Store file is {blob.blob_format.value}, key is {key.blob_format.value}"
        )
    if blob.salt is not None and blob.salt != key.salt:
        raise AuthenticationFailure("Key was derived with a different salt")
    plaintext = cipher.open_sealed(key.key, blob.nonce, blob.sealed)
    return serializer.decode(plaintext)


class EncryptedStore:
    """
    Encrypted credential file at a fixed path.

    Args:
        path: Store file location
        blob_format: Format used for new keys and for saving
        lenient_decode: When True, a plaintext that authenticates but does
                        not decode loads as an empty mapping (logged as a
                        warning). When False, DecodeFailure is raised.
    """

    def __init__(
        self,
        path: PathLike,
        blob_format: BlobFormat = BlobFormat.SEALED_V1,
        lenient_decode: bool = True,
    ):
        self.path = Path(path)
        self.blob_format = BlobFormat(blob_format)
        self.lenient_decode = lenient_decode

    def exists(self) -> bool:
        return self.path.is_file()

    def _read(self) -> Optional[bytes]:
        """Return file bytes, or None when the file does not exist."""
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(
                EventType.STORE_READ_FAILED.value,
                path=str(self.path),
                error=str(e),
            )
            raise IOFailure(f"Cannot read store file: {e}", path=self.path) from e

    def new_key(self, passphrase: kdf.Passphrase) -> MasterKey:
        """Derive a key in this store's format (fresh salt for SEALED_V1)."""
        if self.blob_format is BlobFormat.LEGACY:
            return MasterKey(
                key=kdf.derive_legacy_key(passphrase),
                blob_format=BlobFormat.LEGACY,
            )
        salt = kdf.generate_salt()
        return MasterKey(
            key=kdf.derive_key(passphrase, salt),
            blob_format=BlobFormat.SEALED_V1,
            salt=salt,
        )

    def derive_key(self, passphrase: kdf.Passphrase) -> MasterKey:
        """
        Derive the key that opens the current store file.

        Uses the file's own format and salt when the file exists; otherwise
        behaves like new_key().
        """
        return self._key_for(self._read(), passphrase)

    def _key_for(self, data: Optional[bytes], passphrase: kdf.Passphrase) -> MasterKey:
        if data is None:
            return self.new_key(passphrase)

        blob = parse_blob(data)
        if blob.blob_format is BlobFormat.LEGACY:
            return MasterKey(
                key=kdf.derive_legacy_key(passphrase),
                blob_format=BlobFormat.LEGACY,
            )
        return MasterKey(
            key=kdf.derive_key(passphrase, blob.salt),
            blob_format=BlobFormat.SEALED_V1,
            salt=blob.salt,
        )

    def load(self, key: MasterKey) -> Dict[str, str]:
        """
        Read and decrypt the credential mapping.

        Returns:
            The stored mapping, or {} if the file does not exist

        Raises:
            AuthenticationFailure: Wrong passphrase or corrupted/tampered file
            DecodeFailure: Only when lenient_decode is False
            IOFailure: File exists but cannot be read
        """
        return self._open(self._read(), key)

    def unlock(self, passphrase: kdf.Passphrase) -> Tuple[Dict[str, str], MasterKey]:
        """
        Derive the file's key and load the mapping, reading the file once.

        Raises:
            Same as load()
        """
        data = self._read()
        key = self._key_for(data, passphrase)
        return self._open(data, key), key

    def _open(self, data: Optional[bytes], key: MasterKey) -> Dict[str, str]:
        if data is None:
            logger.info(EventType.STORE_MISSING.value, path=str(self.path))
            return {}

        try:
            mapping = open_mapping(data, key)
        except AuthenticationFailure:
            logger.warning(EventType.AUTH_FAILED.value, path=str(self.path))
            raise
        except DecodeFailure as e:
            logger.warning(
                EventType.DECODE_FAILED.value,
                path=str(self.path),
                error=str(e),
                fallback="empty" if self.lenient_decode else None,
            )
            if not self.lenient_decode:
                raise
            return {}

        logger.info(
            EventType.STORE_LOADED.value,
            path=str(self.path),
            entries=len(mapping),
            blob_format=key.blob_format.value,
        )
        return mapping

    def save(self, mapping: Mapping[str, str], key: MasterKey) -> None:
        """
        Seal the mapping and atomically replace the store file.

        Raises:
            IOFailure: Temp file could not be written or renamed. The
                       previous store file is left untouched.
        """
        data = seal_mapping(mapping, key)
        directory = self.path.parent
        tmp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(directory)
            )
            # mkstemp already creates the file with mode 0600
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
            _fsync_directory(directory)
        except OSError as e:
            logger.error(
                EventType.STORE_SAVE_FAILED.value,
                path=str(self.path),
                error=str(e),
            )
            raise IOFailure(f"Cannot write store file: {e}", path=self.path) from e
        finally:
            # Clean up temp file on failure
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

        logger.info(
            EventType.STORE_SAVED.value,
            path=str(self.path),
            entries=len(mapping),
            size_bytes=len(data),
            blob_format=key.blob_format.value,
        )


def _fsync_directory(directory: Path) -> None:
    """Flush the directory entry so the rename survives power loss (POSIX only)."""
    if not hasattr(os, "O_DIRECTORY"):
        return
    dir_fd = os.open(str(directory), os.O_RDONLY | os.O_DIRECTORY)
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


def load_store(path: PathLike, key: MasterKey) -> Dict[str, str]:
    """Load the mapping at ``path`` with ``key`` (strict decode off)."""
    return EncryptedStore(path, blob_format=key.blob_format).load(key)


def save_store(path: PathLike, mapping: Mapping[str, str], key: MasterKey) -> None:
    """Save ``mapping`` to ``path`` in the key's format."""
    EncryptedStore(path, blob_format=key.blob_format).save(mapping, key)
