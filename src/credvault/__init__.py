# Credvault - Main Package
#
# Local credential store: account -> secret mapping kept in a single
# AES-256-GCM sealed file, keyed by a master passphrase.

__version__ = "0.1.0"
__author__ = "Credvault Team"
__description__ = "Local encrypted credential store"

__all__ = [
    "__version__",
]
