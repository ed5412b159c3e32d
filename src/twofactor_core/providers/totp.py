"""TOTP (Time-based One-Time Password) provider.

Works with any RFC 6238 authenticator app:
- Google Authenticator
- Microsoft Authenticator
- Authy
- 1Password
- FreeOTP

Uses pyotp for code generation and qrcode for the scannable setup image.
"""

from __future__ import annotations

import base64
import hashlib
import io
import logging
import re
from collections.abc import Callable
from datetime import datetime
from typing import Any, ClassVar

import pyotp
import qrcode

from ..config import TotpConfig
from ..exceptions import SetupRequiredError, VerificationFailedError
from ..models import (
    MethodType,
    TwoFactorFeature,
    TwoFactorSetupRequest,
    TwoFactorSetupResponse,
    TwoFactorVerificationResponse,
    utc_now,
)
from .base import TwoFactorMethodProvider

logger = logging.getLogger("twofactor.providers.totp")

_DIGESTS: dict[str, Callable[..., Any]] = {
    "SHA1": hashlib.sha1,
    "SHA256": hashlib.sha256,
    "SHA512": hashlib.sha512,
}


class TotpProvider(TwoFactorMethodProvider):
    """TOTP provider for authenticator apps.

    The time step index is ``floor(unix_time / period)``. A code is accepted
    when it matches the step index or one of the ``window`` steps on either
    side of it; the window is fixed so the replay surface stays bounded.

    Algorithm, digits and period are stored with each method at setup, so a
    later configuration change does not break existing enrollments.

    Example:
        ```python
        provider = TotpProvider(TotpConfig(issuer="MyApp"))

        setup = await provider.setup("user-123")
        print(f"Scan this QR: {setup.qr_code}")
        print(f"Or enter manually: {setup.manual_entry_key}")

        result = await provider.verify("user-123", "123456", setup.method_data)
        ```
    """

    method_type: ClassVar[MethodType] = MethodType.TOTP
    supported_features: ClassVar[tuple[TwoFactorFeature, ...]] = (
        TwoFactorFeature.QR_CODE,
        TwoFactorFeature.MANUAL_ENTRY,
        TwoFactorFeature.OFFLINE_CAPABLE,
        TwoFactorFeature.BACKUP_CODES,
    )

    def __init__(
        self,
        config: TotpConfig | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the TOTP provider.

        Args:
            config: TOTP settings (issuer, algorithm, digits, period, window).
            clock: Source of the current time.
        """
        self.config = config or TotpConfig()
        self._clock = clock
        logger.info(
            "TOTP provider initialized",
            extra={
                "issuer": self.config.issuer,
                "algorithm": self.config.algorithm,
                "digits": self.config.digits,
                "period": self.config.period,
            },
        )

    # ── contract ─────────────────────────────────────────────────

    async def setup(
        self, user_id: str, setup_data: TwoFactorSetupRequest | None = None
    ) -> TwoFactorSetupResponse:
        """Generate a TOTP secret and its provisioning artifacts.

        Returns:
            Setup response with:
                - qr_code: PNG data URL of the provisioning URI
                - secret / manual_entry_key: secret for manual entry
                - method_data: secret material to persist (encrypted)

        Raises:
            SetupRequiredError: If secret generation or QR rendering fails.
        """
        logger.info("Setting up TOTP for user %s", user_id)
        try:
            method_data = await self.generate_method_data(setup_data)
            account_name = self._account_name(user_id, setup_data)
            provisioning_uri = self.generate_provisioning_uri(
                account_name, method_data["secret"]
            )
            qr_code = self._render_qr(provisioning_uri)
        except Exception as e:  # noqa: BLE001
            logger.error(
                "TOTP setup failed for user %s",
                user_id,
                extra={"error_type": type(e).__name__},
            )
            raise SetupRequiredError(
                "Failed to set up TOTP authentication", method_type=self.method_type
            ) from e

        return TwoFactorSetupResponse(
            method_type=self.method_type,
            qr_code=qr_code,
            secret=method_data["secret"],
            manual_entry_key=self._format_secret(method_data["secret"]),
            provisioning_uri=provisioning_uri,
            instructions=self.get_instructions(),
            next_step="2fa_verify_setup",
            method_data=method_data,
        )

    async def verify(
        self, user_id: str, code: str, method_data: dict[str, Any]
    ) -> TwoFactorVerificationResponse:
        """Verify a TOTP code within the configured window.

        Raises:
            VerificationFailedError: If the stored secret is unusable.
        """
        digits = int(method_data.get("digits", self.config.digits))
        if not self._is_well_formed(code, digits):
            return TwoFactorVerificationResponse(
                success=False,
                method_type=self.method_type,
                message=f"Invalid code format. Please enter a {digits}-digit code.",
                format_error=True,
            )

        try:
            totp = self._build_totp(method_data)
            is_valid = totp.verify(
                code, for_time=self._clock(), valid_window=self.config.window
            )
        except (KeyError, ValueError, TypeError) as e:
            logger.error("TOTP verification error for user %s", user_id)
            raise VerificationFailedError(
                "Failed to verify TOTP code", method_type=self.method_type
            ) from e

        if is_valid:
            logger.debug("TOTP verification successful for user %s", user_id)
            return TwoFactorVerificationResponse(
                success=True,
                method_type=self.method_type,
                message="Authentication successful",
            )

        logger.debug("TOTP verification failed for user %s", user_id)
        return TwoFactorVerificationResponse(
            success=False,
            method_type=self.method_type,
            message="Invalid verification code. Please try again.",
        )

    async def generate_method_data(
        self, setup_data: TwoFactorSetupRequest | None = None  # noqa: ARG002
    ) -> dict[str, Any]:
        return {
            "secret": pyotp.random_base32(),
            "issuer": self.config.issuer,
            "algorithm": self.config.algorithm,
            "digits": self.config.digits,
            "period": self.config.period,
        }

    def validate_setup_data(self, setup_data: TwoFactorSetupRequest | None) -> bool:  # noqa: ARG002
        # TOTP needs no input
        return True

    def get_instructions(self) -> str:
        return (
            "To set up TOTP authentication:\n"
            "1. Install an authenticator app (Google Authenticator, Authy, "
            "Microsoft Authenticator)\n"
            "2. Scan the QR code or enter the secret key manually\n"
            f"3. Enter the {self.config.digits}-digit code from your authenticator "
            "app to complete setup\n"
            "4. Save your backup codes in a secure location\n\n"
            "Your authenticator app will generate a new code every "
            f"{self.config.period} seconds."
        )

    def validate_code_format(self, code: str) -> bool:
        # Methods keep the digit count they were enrolled with; verify()
        # applies the exact length
        return re.fullmatch(r"[0-9]{6}|[0-9]{8}", code) is not None

    def mask(self, method_data: dict[str, Any]) -> str:  # noqa: ARG002
        return "Authenticator App"

    # ── helpers ──────────────────────────────────────────────────

    def generate_current_code(
        self, secret: str, for_time: datetime | None = None
    ) -> str:
        """Code for ``secret`` at ``for_time`` (default now)."""
        totp = self._build_totp({"secret": secret})
        return str(totp.at(for_time or self._clock()))

    def is_valid_secret(self, secret: str) -> bool:
        """Whether ``secret`` is a usable base32 TOTP secret."""
        try:
            self._build_totp({"secret": secret}).now()
        except (ValueError, TypeError):
            return False
        return True

    def get_remaining_time(self) -> int:
        """Seconds until the current code rolls over."""
        now = int(self._clock().timestamp())
        return self.config.period - (now % self.config.period)

    def generate_provisioning_uri(self, account_name: str, secret: str) -> str:
        """otpauth:// URI embedding issuer, account label and secret."""
        return self._build_totp({"secret": secret}).provisioning_uri(
            name=account_name,
            issuer_name=self.config.issuer,
        )

    def _build_totp(self, method_data: dict[str, Any]) -> pyotp.TOTP:
        algorithm = str(method_data.get("algorithm", self.config.algorithm)).upper()
        return pyotp.TOTP(
            method_data["secret"],
            digits=int(method_data.get("digits", self.config.digits)),
            digest=_DIGESTS[algorithm],
            interval=int(method_data.get("period", self.config.period)),
            issuer=method_data.get("issuer", self.config.issuer),
        )

    @staticmethod
    def _is_well_formed(code: str, digits: int) -> bool:
        return re.fullmatch(rf"[0-9]{{{digits}}}", code) is not None

    @staticmethod
    def _account_name(user_id: str, setup_data: TwoFactorSetupRequest | None) -> str:
        if setup_data is not None and setup_data.email:
            return setup_data.email
        return user_id

    @staticmethod
    def _format_secret(secret: str) -> str:
        """Format secret as groups of 4 characters for manual entry."""
        secret = secret.rstrip("=")
        return " ".join(secret[i : i + 4] for i in range(0, len(secret), 4))

    @staticmethod
    def _render_qr(provisioning_uri: str) -> str:
        """Render the provisioning URI as a PNG data URL."""
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=4,
        )
        qr.add_data(provisioning_uri)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode()
        return f"data:image/png;base64,{encoded}"


__all__: list[str] = ["TotpProvider"]
