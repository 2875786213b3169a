"""
Secure Finance Manager - Field Encryption

PURPOSE: Symmetric encryption of sensitive columns at rest
SCOPE: Key derivation from the configured passphrase and text encrypt/decrypt
DEPENDENCIES: cryptography, config.py
"""

import base64
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import DecryptionError

logger = logging.getLogger(__name__)

KDF_ITERATIONS = 390000


def derive_key(passphrase: str, salt: str, iterations: int = KDF_ITERATIONS) -> bytes:
    """Derive a Fernet key from a passphrase and salt."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt.encode('utf-8'),
        iterations=iterations
    )
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode('utf-8')))


class FieldCipher:
    """Encrypts and decrypts text fields before they touch the database."""

    def __init__(self, passphrase: str, salt: str, iterations: int = KDF_ITERATIONS):
        self._fernet = Fernet(derive_key(passphrase, salt, iterations))

    def encrypt(self, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return self._fernet.encrypt(str(value).encode('utf-8')).decode('utf-8')

    def decrypt(self, token: Optional[str]) -> Optional[str]:
        if token is None:
            return None
        try:
            return self._fernet.decrypt(token.encode('utf-8')).decode('utf-8')
        except InvalidToken as e:
            logger.error("Failed to decrypt stored field, check FINANCE_ENCRYPTION_KEY")
            raise DecryptionError("Stored field could not be decrypted") from e
