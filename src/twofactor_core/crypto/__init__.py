"""Crypto codec for two-factor secrets.

- ``ISecretCodec`` / ``FernetSecretCodec``: reversible encryption of provider
  secrets at rest
- ``ICodeHasher`` / ``BcryptCodeHasher``: slow one-way hashing of backup codes
"""

from .codec import FernetSecretCodec, ISecretCodec
from .hasher import BcryptCodeHasher, ICodeHasher

__all__: list[str] = [
    "ISecretCodec",
    "FernetSecretCodec",
    "ICodeHasher",
    "BcryptCodeHasher",
]
