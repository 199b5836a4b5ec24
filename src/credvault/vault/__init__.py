# Credvault - Vault Module
#
# Encrypted credential storage: one AES-256-GCM sealed file per store,
# key derived from the master passphrase.

from .exceptions import AuthenticationFailure, DecodeFailure, IOFailure, VaultException
from .session import CredentialSession
from .store import BlobFormat, EncryptedStore, MasterKey, load_store, save_store

__all__ = [
    "AuthenticationFailure",
    "BlobFormat",
    "CredentialSession",
    "DecodeFailure",
    "EncryptedStore",
    "IOFailure",
    "MasterKey",
    "VaultException",
    "load_store",
    "save_store",
]
