"""
Credential encryption at rest.

Connection passwords, full connection strings and API tokens are stored as
``CredentialCipher`` blobs and decrypted only inside the probe layer, right
before a driver or HTTP client needs them.

Blob format::

    base64( IV[16] || AES-256-CBC(PKCS7(plaintext)) )

The 32-byte key is the configured secret right-padded with spaces to 32
characters, UTF-8 encoded and truncated to 32 bytes. This keeps blobs
written by earlier deployments of the admin backend readable.

Each ``encrypt`` call draws a fresh random IV, so encrypting the same value
twice yields different blobs. Compare by round-trip, never by bytes.

Examples:
    >>> cipher = CredentialCipher("correct horse battery staple")
    >>> blob = cipher.encrypt("s3cret")
    >>> cipher.decrypt(blob)
    's3cret'
    >>> cipher.encrypt("")
    ''

Tags:
    secrets, encryption, aes, credentials, connwatch
"""

from __future__ import annotations

import base64
import binascii
import os
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from connwatch.core.errors import CredentialDecryptError, MissingConfigError
from connwatch.core.logging import get_logger

if TYPE_CHECKING:
    from connwatch.core.settings import ConnwatchSettings

logger = get_logger(__name__)

KEY_SIZE = 32
IV_SIZE = 16


class SecretValue:
    """Wrapper for secret values that prevents accidental logging.

    The string representation shows ``[REDACTED]`` instead of the value.
    Use ``.get_secret()`` to access the actual value.

    Example:
        >>> secret = SecretValue("my_password")
        >>> str(secret)
        '[REDACTED]'
        >>> secret.get_secret()
        'my_password'
    """

    __slots__ = ("_value",)

    def __init__(self, value: str):
        self._value = value

    def get_secret(self) -> str:
        """Get the actual secret value."""
        return self._value

    def __str__(self) -> str:
        return "[REDACTED]"

    def __repr__(self) -> str:
        return "SecretValue('[REDACTED]')"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecretValue):
            return self._value == other._value
        return False

    def __hash__(self) -> int:
        return hash(self._value)

    def __bool__(self) -> bool:
        return bool(self._value)


def derive_key(secret: str) -> bytes:
    """Derive the 256-bit key from the configured secret."""
    return secret.ljust(KEY_SIZE).encode("utf-8")[:KEY_SIZE]


class CredentialCipher:
    """AES-256-CBC cipher for credential fields.

    Instances are immutable after construction and safe to share between
    the dispatcher thread and on-demand callers.
    """

    def __init__(self, secret: str):
        if not secret:
            raise MissingConfigError("secret_key", "A secret key is required for credential encryption")
        self._key = derive_key(secret)

    @classmethod
    def from_settings(cls, settings: ConnwatchSettings) -> CredentialCipher:
        """Build a cipher from ``CONNWATCH_SECRET_KEY``."""
        return cls(settings.secret_key.get_secret_value())

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            return ""

        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(iv + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """Decrypt a blob produced by :meth:`encrypt`.

        Raises:
            CredentialDecryptError: The blob is not valid base64, is too
                short, has bad padding, or was written with another key.
        """
        if not blob:
            return ""

        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CredentialDecryptError("Credential is not valid base64", cause=e) from e

        ciphertext = raw[IV_SIZE:]
        if len(raw) <= IV_SIZE or len(ciphertext) % IV_SIZE:
            raise CredentialDecryptError("Credential blob has an invalid length")

        iv = raw[:IV_SIZE]
        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        try:
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
            return data.decode("utf-8")
        except ValueError as e:
            # UnicodeDecodeError is a ValueError too
            raise CredentialDecryptError("Credential could not be decrypted", cause=e) from e

    def decrypt_or_plaintext(self, value: str | None) -> str:
        """Decrypt ``value``, treating undecryptable input as legacy plaintext."""
        if not value:
            return ""
        try:
            return self.decrypt(value)
        except CredentialDecryptError:
            logger.debug("credential_plaintext_fallback")
            return value

    def __repr__(self) -> str:
        return "CredentialCipher(key=[REDACTED])"


__all__ = [
    "SecretValue",
    "CredentialCipher",
    "derive_key",
    "KEY_SIZE",
    "IV_SIZE",
]
