"""Symmetric ciphers for resume tokens.

Resume tokens carry sort values of the last document on a page. Encrypting
them keeps those values from leaking to clients and keeps clients from
forging positions. Ciphers implement the small ``TokenCipher`` protocol so
the paginator never depends on a specific algorithm.

Wire format of ``AesCbcCipher``::

    <iv, base64url>.<ciphertext, base64url>

A fresh 16-byte IV is drawn from ``os.urandom`` for every call.
"""

from __future__ import annotations

import base64
import binascii
import os
from typing import Protocol, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from mongo_keyset.core.exceptions import ConfigurationException

_IV_SIZE = 16
_BLOCK_SIZE_BITS = 128
_TOKEN_SEPARATOR = "."

AES_KEY_SIZES: dict[str, int] = {
    "aes-128-cbc": 16,
    "aes-192-cbc": 24,
    "aes-256-cbc": 32,
}


class TokenDecryptionError(ValueError):
    """Raised when a token cannot be decrypted with the configured cipher."""


@runtime_checkable
class TokenCipher(Protocol):
    """Reversible string-to-string encryption."""

    def encrypt(self, plaintext: str) -> str: ...

    def decrypt(self, token: str) -> str: ...


def b64url_encode(data: bytes) -> str:
    """URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """Inverse of :func:`b64url_encode`; tolerates missing padding."""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _key_bytes(key: str | bytes) -> bytes:
    return key.encode("utf-8") if isinstance(key, str) else bytes(key)


class AesCbcCipher:
    """AES in CBC mode with PKCS7 padding.

    Example:
        cipher = AesCbcCipher("0123456789abcdef01234567", "aes-192-cbc")
        token = cipher.encrypt('{"limit": 10}')
        cipher.decrypt(token)  # '{"limit": 10}'
    """

    def __init__(self, key: str | bytes, algorithm: str = "aes-192-cbc") -> None:
        """Initialize the cipher.

        Args:
            key: Raw key; str keys are UTF-8 encoded.
            algorithm: One of ``aes-128-cbc``, ``aes-192-cbc``, ``aes-256-cbc``.

        Raises:
            ConfigurationException: On unknown algorithm or key length mismatch.
        """
        if algorithm not in AES_KEY_SIZES:
            raise ConfigurationException(
                detail=f"Unsupported resume token algorithm: {algorithm}",
                extra={"algorithm": algorithm},
            )
        key_bytes = _key_bytes(key)
        expected = AES_KEY_SIZES[algorithm]
        if len(key_bytes) != expected:
            raise ConfigurationException(
                detail=f"{algorithm} requires a {expected}-byte key, got {len(key_bytes)} bytes",
                extra={"algorithm": algorithm, "expected_key_size": expected},
            )
        self.algorithm = algorithm
        self._key = key_bytes

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(_IV_SIZE)
        padder = padding.PKCS7(_BLOCK_SIZE_BITS).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{b64url_encode(iv)}{_TOKEN_SEPARATOR}{b64url_encode(ciphertext)}"

    def decrypt(self, token: str) -> str:
        iv_part, separator, ciphertext_part = token.partition(_TOKEN_SEPARATOR)
        if not separator or not iv_part or not ciphertext_part:
            raise TokenDecryptionError("token is missing the IV separator")
        try:
            iv = b64url_decode(iv_part)
            ciphertext = b64url_decode(ciphertext_part)
        except (binascii.Error, ValueError) as e:
            raise TokenDecryptionError(f"token is not valid base64url: {e}") from e
        if len(iv) != _IV_SIZE or not ciphertext or len(ciphertext) % (_BLOCK_SIZE_BITS // 8):
            raise TokenDecryptionError("token has an invalid IV or ciphertext length")

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        try:
            unpadder = padding.PKCS7(_BLOCK_SIZE_BITS).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except ValueError as e:
            # UnicodeDecodeError is a ValueError too
            raise TokenDecryptionError("token could not be decrypted with the configured key") from e


class FernetCipher:
    """Authenticated encryption via Fernet (AES-128-CBC + HMAC-SHA256).

    Tampered tokens fail authentication instead of decrypting to garbage.
    Generate a key with ``Fernet.generate_key()``.
    """

    algorithm = "fernet"

    def __init__(self, key: str | bytes) -> None:
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError, binascii.Error) as e:
            raise ConfigurationException(
                detail="fernet requires a 32-byte url-safe base64-encoded key",
                extra={"algorithm": "fernet"},
            ) from e

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, ValueError) as e:
            raise TokenDecryptionError("token failed authentication") from e


def build_cipher(algorithm: str, key: str | bytes | None) -> TokenCipher:
    """Create the cipher for ``algorithm``.

    Raises:
        ConfigurationException: If the key is missing, has the wrong size, or
            the algorithm is unknown.
    """
    if not key:
        raise ConfigurationException(
            detail="Token encryption is enabled but no encryption key is configured",
            extra={"setting": "PAGINATION_ENCRYPTION_KEY", "algorithm": algorithm},
        )
    if algorithm == "fernet":
        return FernetCipher(key)
    return AesCbcCipher(key, algorithm)


__all__ = [
    "AES_KEY_SIZES",
    "AesCbcCipher",
    "FernetCipher",
    "TokenCipher",
    "TokenDecryptionError",
    "b64url_decode",
    "b64url_encode",
    "build_cipher",
]
