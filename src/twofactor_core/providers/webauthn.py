"""WebAuthn (security key / platform authenticator) provider.

Attestation and assertion checking is cryptographic protocol work that
belongs to a dedicated WebAuthn library; the application plugs one in via
IWebAuthnVerifier. This provider keeps the credential record and adapts
the verifier to the common provider contract.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, ClassVar, Protocol, runtime_checkable

from ..exceptions import InvalidSetupDataError, VerificationFailedError
from ..models import (
    MethodType,
    TwoFactorFeature,
    TwoFactorSetupRequest,
    TwoFactorSetupResponse,
    TwoFactorVerificationResponse,
)
from .base import TwoFactorMethodProvider

logger = logging.getLogger("twofactor.providers.webauthn")


@runtime_checkable
class IWebAuthnVerifier(Protocol):
    """Hook for checking WebAuthn assertions.

    Implemented by the application, typically on top of a WebAuthn
    library and its relying-party configuration.
    """

    async def verify_assertion(
        self, user_id: str, credential: dict[str, Any], assertion: str
    ) -> bool:
        """Check an assertion against a registered credential.

        Args:
            user_id: User identifier.
            credential: Stored credential (``credential_id``, ``public_key``).
            assertion: Serialized assertion produced by the authenticator.

        Returns:
            True if the assertion is valid for the credential.

        Raises:
            ValueError: If the assertion cannot be parsed.
        """
        ...


class WebAuthnProvider(TwoFactorMethodProvider):
    """WebAuthn provider.

    Setup requires the registered credential (``credential_id`` and
    ``public_key``) produced by the client-side registration ceremony, and
    returns a fresh challenge for the first assertion.

    Example:
        ```python
        provider = WebAuthnProvider(verifier=MyWebAuthnVerifier())
        setup = await provider.setup(
            "user-123",
            TwoFactorSetupRequest(
                method_type=MethodType.WEBAUTHN,
                credential={"credential_id": "abc", "public_key": "..."},
            ),
        )
        ```
    """

    method_type: ClassVar[MethodType] = MethodType.WEBAUTHN
    supported_features: ClassVar[tuple[TwoFactorFeature, ...]] = (
        TwoFactorFeature.BIOMETRIC,
        TwoFactorFeature.DEVICE_TRUST,
        TwoFactorFeature.OFFLINE_CAPABLE,
        TwoFactorFeature.BACKUP_CODES,
    )

    def __init__(self, *, verifier: IWebAuthnVerifier) -> None:
        self.verifier = verifier

    async def setup(
        self, user_id: str, setup_data: TwoFactorSetupRequest | None = None
    ) -> TwoFactorSetupResponse:
        """Record the registered credential.

        Raises:
            InvalidSetupDataError: If the credential is missing or incomplete.
        """
        if not self.validate_setup_data(setup_data):
            raise InvalidSetupDataError(
                "A registered security key credential is required",
                method_type=self.method_type,
            )
        method_data = await self.generate_method_data(setup_data)
        logger.info("WebAuthn credential registered for user %s", user_id)
        return TwoFactorSetupResponse(
            method_type=self.method_type,
            challenge={
                "challenge": secrets.token_urlsafe(32),
                "credential_id": method_data["credential_id"],
            },
            instructions=self.get_instructions(),
            next_step="2fa_verify_setup",
            method_data=method_data,
        )

    async def verify(
        self, user_id: str, code: str, method_data: dict[str, Any]
    ) -> TwoFactorVerificationResponse:
        if not self.validate_code_format(code):
            return TwoFactorVerificationResponse(
                success=False,
                method_type=self.method_type,
                message="Missing security key response.",
                format_error=True,
            )
        try:
            is_valid = await self.verifier.verify_assertion(user_id, method_data, code)
        except ValueError as e:
            raise VerificationFailedError(
                "Failed to verify security key response", method_type=self.method_type
            ) from e

        if is_valid:
            return TwoFactorVerificationResponse(
                success=True,
                method_type=self.method_type,
                message="Authentication successful",
            )
        return TwoFactorVerificationResponse(
            success=False,
            method_type=self.method_type,
            message="Security key verification failed. Please try again.",
        )

    async def generate_method_data(
        self, setup_data: TwoFactorSetupRequest | None = None
    ) -> dict[str, Any]:
        credential = (setup_data.credential if setup_data is not None else None) or {}
        return {
            "credential_id": credential.get("credential_id"),
            "public_key": credential.get("public_key"),
            "sign_count": int(credential.get("sign_count", 0)),
        }

    def validate_setup_data(self, setup_data: TwoFactorSetupRequest | None) -> bool:
        if setup_data is None or not setup_data.credential:
            return False
        credential = setup_data.credential
        return bool(credential.get("credential_id")) and bool(
            credential.get("public_key")
        )

    def get_instructions(self) -> str:
        return (
            "To set up a security key:\n"
            "1. Insert your security key or use your device's built-in authenticator\n"
            "2. Follow your browser's prompt to register it\n"
            "3. Touch the key or confirm with your fingerprint or face to finish\n"
            "4. Save your backup codes in a secure location"
        )

    def validate_code_format(self, code: str) -> bool:
        return bool(code.strip())

    def mask(self, method_data: dict[str, Any]) -> str:  # noqa: ARG002
        return "Security Key"


__all__: list[str] = ["IWebAuthnVerifier", "WebAuthnProvider"]
