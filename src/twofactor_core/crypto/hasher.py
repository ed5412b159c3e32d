"""One-way hashing for recovery codes.

Backup codes are hashed with bcrypt, a slow salted hash, so a leaked batch
cannot be brute-forced offline. This primitive is deliberately separate from
the reversible secret codec.
"""

from __future__ import annotations

from typing import Any, Protocol, cast, runtime_checkable


@runtime_checkable
class ICodeHasher(Protocol):
    """Protocol for one-way code hashing."""

    def hash(self, code: str) -> str:
        """Hash a normalized code.

        Args:
            code: Plaintext code.

        Returns:
            Salted digest.
        """
        ...

    def compare(self, code: str, digest: str) -> bool:
        """Check a plaintext code against a digest.

        Args:
            code: Plaintext code.
            digest: Digest produced by :meth:`hash`.

        Returns:
            True if the code matches.
        """
        ...


class BcryptCodeHasher(ICodeHasher):
    """bcrypt code hasher.

    Example:
        ```python
        hasher = BcryptCodeHasher(rounds=12)
        digest = hasher.hash("ABCD2345")
        assert hasher.compare("ABCD2345", digest)
        ```
    """

    def __init__(self, *, rounds: int = 12) -> None:
        """Initialize the hasher.

        Args:
            rounds: bcrypt cost factor (default 12).
        """
        self.rounds = rounds
        self._bcrypt: Any = None

    def _get_bcrypt(self) -> Any:
        """Lazy import bcrypt."""
        if self._bcrypt is None:
            try:
                import bcrypt

                self._bcrypt = bcrypt
            except ImportError as e:
                raise ImportError(
                    "bcrypt is required for backup code hashing. "
                    "Install with: pip install bcrypt"
                ) from e
        return self._bcrypt

    def hash(self, code: str) -> str:
        bcrypt_module = self._get_bcrypt()
        salt = bcrypt_module.gensalt(rounds=self.rounds)
        return bcrypt_module.hashpw(code.encode(), salt).decode()  # type: ignore[no-any-return]

    def compare(self, code: str, digest: str) -> bool:
        bcrypt_module = self._get_bcrypt()
        try:
            return cast("bool", bcrypt_module.checkpw(code.encode(), digest.encode()))
        except ValueError:
            # Invalid hash format or malformed hash
            return False

    def needs_rehash(self, digest: str) -> bool:
        """Check whether a digest was produced with fewer rounds than configured."""
        # bcrypt format: $2b$12$...
        parts = digest.split("$")
        if len(parts) >= 3:
            try:
                return int(parts[2]) < self.rounds
            except ValueError:
                pass
        return False


__all__: list[str] = ["ICodeHasher", "BcryptCodeHasher"]
