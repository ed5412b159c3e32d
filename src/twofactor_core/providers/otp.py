"""SMS and Email providers for one-time codes delivered over a channel.

These providers generate and verify codes, but the actual sending via SMS
or email is delegated to the application via IMfaDeliveryHook.
"""

from __future__ import annotations

import logging
import re
import secrets
from abc import abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, ClassVar, Protocol, runtime_checkable

from ..config import OtpDeliveryConfig
from ..exceptions import InvalidSetupDataError, RateLimitedError
from ..models import (
    MethodType,
    TwoFactorFeature,
    TwoFactorSetupRequest,
    TwoFactorSetupResponse,
    TwoFactorVerificationResponse,
    utc_now,
)
from .base import TwoFactorMethodProvider

logger = logging.getLogger("twofactor.providers.otp")

_E164 = re.compile(r"^\+[1-9][0-9]{7,14}$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# ═══════════════════════════════════════════════════════════════
# PORTS
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IMfaDeliveryHook(Protocol):
    """Hook for sending codes via SMS/Email.

    The application implements this to integrate with its delivery
    services (Twilio, SendGrid, AWS SES, etc.).
    """

    async def send_sms_otp(self, phone: str, code: str) -> None:
        """Send a code via SMS.

        Args:
            phone: Phone number in E.164 format (e.g., +1234567890).
            code: The code to send.
        """
        ...

    async def send_email_otp(self, email: str, code: str) -> None:
        """Send a code via email.

        Args:
            email: Email address.
            code: The code to send.
        """
        ...


@runtime_checkable
class IOtpChallengeStore(Protocol):
    """Protocol for storing outstanding delivered codes.

    Implementations should use Redis or similar with TTL support.
    """

    async def create(self, identifier: str, code: str, ttl: int = 300) -> None:
        """Store a challenge, replacing any previous one for the identifier."""
        ...

    async def verify(self, identifier: str, code: str) -> bool:
        """Check a code, consuming the challenge on success."""
        ...

    async def delete(self, identifier: str) -> None:
        """Delete a challenge."""
        ...


@runtime_checkable
class IOtpRateLimitStore(Protocol):
    """Protocol for the resend cooldown."""

    async def record_send(self, identifier: str) -> None:
        """Record that a code was sent."""
        ...

    async def seconds_since_last_send(self, identifier: str) -> float | None:
        """Seconds since the last send, or None if never sent."""
        ...


# ═══════════════════════════════════════════════════════════════
# IN-MEMORY ADAPTERS
# ═══════════════════════════════════════════════════════════════


class InMemoryOtpChallengeStore(IOtpChallengeStore):
    """In-memory challenge store for TESTING ONLY.

    ⚠️ WARNING: Codes are stored in plain text in memory.
    Use a Redis-backed implementation in production.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._challenges: dict[str, tuple[str, datetime]] = {}
        self._clock = clock

    async def create(self, identifier: str, code: str, ttl: int = 300) -> None:
        expires_at = self._clock() + timedelta(seconds=ttl)
        self._challenges[identifier] = (code, expires_at)

    async def verify(self, identifier: str, code: str) -> bool:
        entry = self._challenges.get(identifier)
        if entry is None:
            return False

        stored_code, expires_at = entry
        if self._clock() > expires_at:
            del self._challenges[identifier]
            return False

        if secrets.compare_digest(stored_code, code):
            # Single-use
            del self._challenges[identifier]
            return True

        return False

    async def delete(self, identifier: str) -> None:
        self._challenges.pop(identifier, None)


class InMemoryOtpRateLimitStore(IOtpRateLimitStore):
    """In-memory resend cooldown store for TESTING ONLY."""

    def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._last_sent: dict[str, datetime] = {}
        self._clock = clock

    async def record_send(self, identifier: str) -> None:
        self._last_sent[identifier] = self._clock()

    async def seconds_since_last_send(self, identifier: str) -> float | None:
        last_sent = self._last_sent.get(identifier)
        if last_sent is None:
            return None
        return (self._clock() - last_sent).total_seconds()


# ═══════════════════════════════════════════════════════════════
# PROVIDERS
# ═══════════════════════════════════════════════════════════════


class OtpChannelProvider(TwoFactorMethodProvider):
    """Shared behaviour of the SMS and Email providers.

    ``method_data`` holds the destination (phone number or email address).
    Setup validates the destination and sends a first code; later codes are
    sent on demand through :meth:`send_challenge`, subject to a cooldown.
    """

    supported_features: ClassVar[tuple[TwoFactorFeature, ...]] = (
        TwoFactorFeature.RATE_LIMITING,
        TwoFactorFeature.BACKUP_CODES,
    )
    destination_key: ClassVar[str]

    def __init__(
        self,
        *,
        delivery_hook: IMfaDeliveryHook,
        challenge_store: IOtpChallengeStore | None = None,
        rate_limit_store: IOtpRateLimitStore | None = None,
        config: OtpDeliveryConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the provider.

        Args:
            delivery_hook: Hook used to send codes.
            challenge_store: Storage for outstanding codes (in-memory if omitted).
            rate_limit_store: Storage for the resend cooldown (in-memory if omitted).
            config: Code length, TTL and cooldown.
            clock: Source of the current time.
        """
        self.delivery_hook = delivery_hook
        self.challenge_store = challenge_store or InMemoryOtpChallengeStore(
            clock=clock
        )
        self.rate_limit_store = rate_limit_store or InMemoryOtpRateLimitStore(
            clock=clock
        )
        self.config = config or OtpDeliveryConfig()
        self._clock = clock

    @abstractmethod
    def _destination_from(self, setup_data: TwoFactorSetupRequest | None) -> str | None:
        """Destination carried by a setup request."""

    @abstractmethod
    async def _deliver(self, destination: str, code: str) -> None:
        """Hand a code to the delivery hook."""

    async def setup(
        self, user_id: str, setup_data: TwoFactorSetupRequest | None = None
    ) -> TwoFactorSetupResponse:
        """Validate the destination and send the first code.

        Raises:
            InvalidSetupDataError: If the destination is missing or malformed.
        """
        if not self.validate_setup_data(setup_data):
            raise InvalidSetupDataError(method_type=self.method_type)

        method_data = await self.generate_method_data(setup_data)
        await self.send_challenge(user_id, method_data)
        logger.info(
            "%s setup challenge sent for user %s", self.method_type.value, user_id
        )

        return TwoFactorSetupResponse(
            method_type=self.method_type,
            challenge={
                "destination": self.mask(method_data),
                "expires_in": self.config.ttl_seconds,
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
                message=(
                    "Invalid code format. Please enter a "
                    f"{self.config.code_length}-digit code."
                ),
                format_error=True,
            )

        identifier = self._challenge_id(user_id, method_data)
        if await self.challenge_store.verify(identifier, code):
            return TwoFactorVerificationResponse(
                success=True,
                method_type=self.method_type,
                message="Authentication successful",
            )
        return TwoFactorVerificationResponse(
            success=False,
            method_type=self.method_type,
            message="Invalid or expired verification code. Please try again.",
        )

    async def generate_method_data(
        self, setup_data: TwoFactorSetupRequest | None = None
    ) -> dict[str, Any]:
        return {self.destination_key: self._destination_from(setup_data)}

    async def send_challenge(self, user_id: str, method_data: dict[str, Any]) -> None:
        """Generate a code, store it and deliver it.

        Raises:
            RateLimitedError: If a code was sent within the cooldown period.
        """
        identifier = self._challenge_id(user_id, method_data)
        elapsed = await self.rate_limit_store.seconds_since_last_send(identifier)
        if elapsed is not None and elapsed < self.config.cooldown_seconds:
            wait_seconds = self.config.cooldown_seconds - elapsed
            raise RateLimitedError(
                f"Please wait {int(wait_seconds)} seconds before requesting a new code",
                method_type=self.method_type,
                retry_after=self._clock() + timedelta(seconds=wait_seconds),
            )

        code = self._generate_code()
        await self.challenge_store.create(
            identifier=identifier, code=code, ttl=self.config.ttl_seconds
        )
        await self.rate_limit_store.record_send(identifier)
        await self._deliver(method_data[self.destination_key], code)

    async def disable(self, user_id: str, method_id: str) -> None:  # noqa: ARG002
        logger.debug("%s method %s disabled", self.method_type.value, method_id)

    def validate_code_format(self, code: str) -> bool:
        return re.fullmatch(rf"[0-9]{{{self.config.code_length}}}", code) is not None

    def _generate_code(self) -> str:
        code = secrets.randbelow(10**self.config.code_length)
        return str(code).zfill(self.config.code_length)

    def _challenge_id(self, user_id: str, method_data: dict[str, Any]) -> str:
        return f"{self.method_type.value}:{user_id}:{method_data[self.destination_key]}"


class SmsProvider(OtpChannelProvider):
    """SMS provider.

    Works with any SMS service (Twilio, AWS SNS, etc.) that the application
    implements via IMfaDeliveryHook.

    Example:
        ```python
        class MySmsHook(IMfaDeliveryHook):
            async def send_sms_otp(self, phone: str, code: str) -> None:
                await twilio.messages.create(
                    to=phone, body=f"Your verification code is: {code}"
                )

        provider = SmsProvider(delivery_hook=MySmsHook())
        setup = await provider.setup(
            "user-123",
            TwoFactorSetupRequest(method_type=MethodType.SMS, phone_number="+15551234567"),
        )
        ```
    """

    method_type: ClassVar[MethodType] = MethodType.SMS
    destination_key: ClassVar[str] = "phone_number"

    def _destination_from(self, setup_data: TwoFactorSetupRequest | None) -> str | None:
        return setup_data.phone_number if setup_data is not None else None

    async def _deliver(self, destination: str, code: str) -> None:
        await self.delivery_hook.send_sms_otp(destination, code)

    def validate_setup_data(self, setup_data: TwoFactorSetupRequest | None) -> bool:
        phone = self._destination_from(setup_data)
        return phone is not None and _E164.match(phone) is not None

    def get_instructions(self) -> str:
        return (
            "To set up SMS authentication:\n"
            "1. Enter your mobile phone number in international format\n"
            f"2. Enter the {self.config.code_length}-digit code we send you by SMS\n"
            "3. Save your backup codes in a secure location\n\n"
            f"Codes expire after {self.config.ttl_seconds // 60} minutes."
        )

    def mask(self, method_data: dict[str, Any]) -> str:
        phone = str(method_data.get(self.destination_key, ""))
        digits = re.sub(r"[^0-9]", "", phone)
        if len(digits) <= 4:
            return "*" * len(digits)
        # Only the last four digits stay visible
        return "+" + "*" * (len(digits) - 4) + digits[-4:]


class EmailProvider(OtpChannelProvider):
    """Email provider.

    Works with any email service (SendGrid, Mailgun, AWS SES, etc.) that the
    application implements via IMfaDeliveryHook.
    """

    method_type: ClassVar[MethodType] = MethodType.EMAIL
    destination_key: ClassVar[str] = "email"

    def _destination_from(self, setup_data: TwoFactorSetupRequest | None) -> str | None:
        return setup_data.email if setup_data is not None else None

    async def _deliver(self, destination: str, code: str) -> None:
        await self.delivery_hook.send_email_otp(destination, code)

    def validate_setup_data(self, setup_data: TwoFactorSetupRequest | None) -> bool:
        email = self._destination_from(setup_data)
        return email is not None and _EMAIL.match(email) is not None

    def get_instructions(self) -> str:
        return (
            "To set up email authentication:\n"
            "1. Enter the email address that should receive your codes\n"
            f"2. Enter the {self.config.code_length}-digit code we email you\n"
            "3. Save your backup codes in a secure location\n\n"
            f"Codes expire after {self.config.ttl_seconds // 60} minutes."
        )

    def mask(self, method_data: dict[str, Any]) -> str:
        email = str(method_data.get(self.destination_key, ""))
        return re.sub(r"(.{2})[^@]*(@.*)", r"\1***\2", email)


__all__: list[str] = [
    "IMfaDeliveryHook",
    "IOtpChallengeStore",
    "IOtpRateLimitStore",
    "InMemoryOtpChallengeStore",
    "InMemoryOtpRateLimitStore",
    "OtpChannelProvider",
    "SmsProvider",
    "EmailProvider",
]
