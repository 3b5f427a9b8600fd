"""Error taxonomy shared by every layer of the vault.

Callers can tell the failure modes apart by class:

    StorageError        I/O failure, the vault on disk is left unchanged
    AuthenticationError AEAD tag mismatch or a corrupt header (wrong key, tampering)
    FormatError         decryption succeeded but the JSON payload is invalid
    InvariantError      operation rejected before any write
    RecordIndexError    selection out of range (also an IndexError)
    RecordNotFoundError unknown record id (also a KeyError)
"""


class VaultError(Exception):
    """Base class for all vault errors."""


class StorageError(VaultError):
    pass


class AuthenticationError(VaultError):
    pass


class FormatError(VaultError):
    pass


class InvariantError(VaultError):
    pass


class RecordIndexError(VaultError, IndexError):
    pass


class RecordNotFoundError(VaultError, KeyError):
    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return Exception.__str__(self)
