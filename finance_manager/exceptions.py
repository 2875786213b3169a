"""
Secure Finance Manager - Exceptions

PURPOSE: Error types shared by the data and API layers
SCOPE: Database, uniqueness and field decryption failures
"""


class DatabaseError(RuntimeError):
    """Raised when an SQL statement fails for a reason other than a constraint."""


class DecryptionError(RuntimeError):
    """Raised when a stored field cannot be decrypted with the configured key."""


class DuplicateRecordError(ValueError):
    """Raised when an insert or update violates a uniqueness constraint."""
