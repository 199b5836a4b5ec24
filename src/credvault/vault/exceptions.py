"""
Vault Exception Classes
"""


class VaultException(Exception):
    """Base exception for credential vault operations"""
    pass


class AuthenticationFailure(VaultException):
    """Raised when a sealed blob fails tag verification (wrong key or tampered data)"""
    pass


class DecodeFailure(VaultException):
    """Raised when decrypted plaintext is not a valid credential document"""
    pass


class IOFailure(VaultException):
    """Raised when the store file cannot be read or written"""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path
