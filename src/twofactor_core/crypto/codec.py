"""Reversible codec for provider secrets at rest.

Provider secrets (TOTP shared secrets, phone numbers, WebAuthn public keys)
are stored encrypted. Decryption happens only right before a provider
verifies a code, and the decrypted value is never logged.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

from ..exceptions import SecretCodecError

logger = logging.getLogger("twofactor.crypto")


@runtime_checkable
class ISecretCodec(Protocol):
    """Protocol for encrypting provider secrets at rest."""

    def encrypt(self, plaintext: str) -> bytes:
        """Encrypt a secret.

        Args:
            plaintext: Secret material.

        Returns:
            Opaque ciphertext suitable for storage.
        """
        ...

    def decrypt(self, ciphertext: bytes) -> str:
        """Decrypt a stored secret.

        Args:
            ciphertext: Value previously returned by :meth:`encrypt`.

        Returns:
            The plaintext secret.

        Raises:
            SecretCodecError: If the payload is corrupt or was encrypted
                with an unknown key.
        """
        ...


class FernetSecretCodec(ISecretCodec):
    """Fernet (AES-128-CBC + HMAC-SHA256) secret codec with key rotation.

    The first key encrypts; every key is tried for decryption, so old keys
    can be kept around while secrets are re-encrypted with :meth:`rotate`.

    Example:
        ```python
        codec = FernetSecretCodec([new_key, old_key])
        token = codec.encrypt("JBSWY3DPEHPK3PXP")
        assert codec.decrypt(token) == "JBSWY3DPEHPK3PXP"
        ```
    """

    def __init__(self, keys: str | bytes | Sequence[str | bytes]) -> None:
        """Initialize the codec.

        Args:
            keys: One url-safe base64 32-byte key, or several for rotation
                (first one is used for encryption).

        Raises:
            SecretCodecError: If no key is given or a key is malformed.
        """
        if isinstance(keys, (str, bytes)):
            keys = [keys]
        if not keys:
            raise SecretCodecError("At least one encryption key is required")
        try:
            self._fernet = MultiFernet([Fernet(key) for key in keys])
        except (ValueError, TypeError) as e:
            raise SecretCodecError("Invalid encryption key") from e

    @staticmethod
    def generate_key() -> str:
        """Generate a fresh Fernet key."""
        return Fernet.generate_key().decode()

    def encrypt(self, plaintext: str) -> bytes:
        return self._fernet.encrypt(plaintext.encode("utf-8"))

    def decrypt(self, ciphertext: bytes) -> str:
        try:
            return self._fernet.decrypt(ciphertext).decode("utf-8")
        except (InvalidToken, TypeError, UnicodeDecodeError) as e:
            logger.error("Failed to decrypt two-factor secret payload")
            raise SecretCodecError("Secret payload could not be decrypted") from e

    def rotate(self, ciphertext: bytes) -> bytes:
        """Re-encrypt a payload with the primary key."""
        try:
            return self._fernet.rotate(ciphertext)
        except InvalidToken as e:
            raise SecretCodecError("Secret payload could not be decrypted") from e


__all__: list[str] = ["ISecretCodec", "FernetSecretCodec"]
