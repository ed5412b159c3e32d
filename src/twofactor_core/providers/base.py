"""Method provider contract.

Each authentication factor (TOTP, SMS, Email, WebAuthn) is one provider
implementing the same capability set. Providers are stateless with respect
to persistent two-factor state: they generate setup material and check codes
against secret material handed to them, and the orchestration service records
the outcome.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from ..models import (
        MethodType,
        TwoFactorFeature,
        TwoFactorSetupRequest,
        TwoFactorSetupResponse,
        TwoFactorVerificationResponse,
    )


class TwoFactorMethodProvider(ABC):
    """Base class for two-factor method providers.

    Subclasses declare ``method_type`` and ``supported_features`` and
    implement the setup/verify contract.

    Secret material travels as ``method_data``: a JSON-serializable dict that
    the provider returns from :meth:`setup` (inside the setup response) and
    receives back, decrypted, in :meth:`verify`.
    """

    method_type: ClassVar[MethodType]
    supported_features: ClassVar[tuple[TwoFactorFeature, ...]] = ()

    @abstractmethod
    async def setup(
        self, user_id: str, setup_data: TwoFactorSetupRequest | None = None
    ) -> TwoFactorSetupResponse:
        """Generate setup material for a new method.

        Must not mark anything enabled.

        Args:
            user_id: User identifier.
            setup_data: Factor-specific setup input.

        Returns:
            Setup response carrying the user-facing artifact, instructions
            and the secret ``method_data`` to persist.

        Raises:
            SetupRequiredError: If secret generation fails.
            InvalidSetupDataError: If ``setup_data`` fails validation.
        """

    @abstractmethod
    async def verify(
        self, user_id: str, code: str, method_data: dict[str, Any]
    ) -> TwoFactorVerificationResponse:
        """Check a code against decrypted secret material.

        Never mutates persistent state.

        Args:
            user_id: User identifier.
            code: User-supplied code.
            method_data: Decrypted secret material stored at setup.

        Returns:
            Verification response (unsuccessful for a wrong code).

        Raises:
            VerificationFailedError: If the secret material is unusable.
        """

    @abstractmethod
    async def generate_method_data(
        self, setup_data: TwoFactorSetupRequest | None = None
    ) -> dict[str, Any]:
        """Pure generation of factor-specific secret material."""

    @abstractmethod
    def validate_setup_data(self, setup_data: TwoFactorSetupRequest | None) -> bool:
        """Factor-specific precondition check on setup input."""

    @abstractmethod
    def get_instructions(self) -> str:
        """Static user guidance."""

    async def disable(self, user_id: str, method_id: str) -> None:  # noqa: B027
        """Factor-specific teardown hook. No-op by default."""

    def validate_code_format(self, code: str) -> bool:  # noqa: ARG002
        """Whether a code is well formed for this factor.

        Malformed codes are rejected before they reach rate limiting.
        """
        return True

    def mask(self, method_data: dict[str, Any]) -> str:  # noqa: ARG002
        """Non-secret descriptor of a method, for status listings."""
        return "***MASKED***"

    async def send_challenge(self, user_id: str, method_data: dict[str, Any]) -> None:  # noqa: ARG002
        """Deliver a code for channel-based factors. No-op by default."""


__all__: list[str] = ["TwoFactorMethodProvider"]
