# Credvault - Credential API
#
# In-memory credential mapping bound to one store and one master key.
# Every mutation is saved synchronously before returning.

from typing import Dict, Iterator, List, Optional

from .kdf import Passphrase
from .store import BlobFormat, EncryptedStore, MasterKey
from ..core.log import EventType, get_logger

logger = get_logger(__name__)


class CredentialSession:
    """
    Live view of an unlocked credential store.

    Holds the master key for the lifetime of the object; nothing is
    written at construction time.

    Usage:
        store = EncryptedStore("passwords.enc")
        session = CredentialSession.open(store, "hunter2")
        session.upsert("email", "s3cr3t")
        session.lookup("email")  # -> "s3cr3t"
    """

    def __init__(self, store: EncryptedStore, key: MasterKey, credentials: Dict[str, str]):
        self.store = store
        self._key = key
        self._credentials = credentials

    @classmethod
    def open(cls, store: EncryptedStore, passphrase: Passphrase) -> "CredentialSession":
        """
        Unlock ``store`` with ``passphrase``.

        A legacy file opened by a sealed-v1 store is re-keyed with a fresh
        salt, so the first save after opening migrates it. Sealed-v1 files
        are never rewritten in the legacy format.

        Raises:
            AuthenticationFailure: Wrong passphrase or corrupted store
            DecodeFailure: Store configured with lenient_decode=False
            IOFailure: Store file unreadable
        """
        credentials, key = store.unlock(passphrase)
        if key.blob_format is BlobFormat.LEGACY and store.blob_format is BlobFormat.SEALED_V1:
            logger.info(
                EventType.FORMAT_MIGRATION.value,
                path=str(store.path),
                from_format=key.blob_format.value,
                to_format=store.blob_format.value,
            )
            key = store.new_key(passphrase)

        logger.info(EventType.SESSION_OPENED.value, entries=len(credentials))
        return cls(store, key, credentials)

    @property
    def blob_format(self) -> BlobFormat:
        """Format the next save will use."""
        return self._key.blob_format

    def _commit(self, updated: Dict[str, str]) -> None:
        # memory only changes once the file matches it
        self.store.save(updated, self._key)
        self._credentials = updated

    def upsert(self, account: str, secret: str) -> None:
        """Insert or overwrite the secret for ``account``, then save."""
        updated = dict(self._credentials)
        updated[account] = secret
        self._commit(updated)
        logger.debug(EventType.CREDENTIAL_UPSERTED.value, account=account)

    def lookup(self, account: str) -> Optional[str]:
        """Return the secret for ``account``, or None if absent."""
        return self._credentials.get(account)

    def enumerate(self) -> List[str]:
        """Account names, sorted."""
        return sorted(self._credentials)

    def remove(self, account: str) -> bool:
        """Delete ``account`` and save. Returns False (no save) if absent."""
        if account not in self._credentials:
            return False
        updated = dict(self._credentials)
        del updated[account]
        self._commit(updated)
        logger.debug(EventType.CREDENTIAL_REMOVED.value, account=account)
        return True

    def __len__(self) -> int:
        return len(self._credentials)

    def __contains__(self, account: object) -> bool:
        return account in self._credentials

    def __iter__(self) -> Iterator[str]:
        return iter(self.enumerate())
