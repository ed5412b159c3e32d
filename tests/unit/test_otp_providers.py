"""Tests for the SMS, Email and WebAuthn providers."""

from __future__ import annotations

import pytest

from twofactor_core.config import OtpDeliveryConfig
from twofactor_core.exceptions import (
    InvalidSetupDataError,
    RateLimitedError,
    VerificationFailedError,
)
from twofactor_core.models import MethodType, TwoFactorSetupRequest
from twofactor_core.providers import (
    EmailProvider,
    IMfaDeliveryHook,
    InMemoryOtpChallengeStore,
    SmsProvider,
    WebAuthnProvider,
)

PHONE = "+15551234567"
EMAIL = "alice@example.com"


@pytest.fixture
def sms_provider(delivery_hook, clock) -> SmsProvider:
    return SmsProvider(delivery_hook=delivery_hook, clock=clock)


@pytest.fixture
def email_provider(delivery_hook, clock) -> EmailProvider:
    return EmailProvider(delivery_hook=delivery_hook, clock=clock)


def sms_request(phone: str | None = PHONE) -> TwoFactorSetupRequest:
    return TwoFactorSetupRequest(method_type=MethodType.SMS, phone_number=phone)


def email_request(email: str | None = EMAIL) -> TwoFactorSetupRequest:
    return TwoFactorSetupRequest(method_type=MethodType.EMAIL, email=email)


class TestSmsProvider:
    """Test the SMS provider."""

    @pytest.mark.asyncio
    async def test_setup_sends_code(
        self, sms_provider: SmsProvider, delivery_hook
    ) -> None:
        """Test setup delivers a six-digit code to the phone number."""
        setup = await sms_provider.setup("user-123", sms_request())

        assert len(delivery_hook.sms_sent) == 1
        phone, code = delivery_hook.sms_sent[0]
        assert phone == PHONE
        assert len(code) == 6
        assert code.isdigit()
        assert setup.method_data == {"phone_number": PHONE}
        assert setup.challenge == {"destination": "+*******4567", "expires_in": 300}
        assert "5 minutes" in setup.instructions

    @pytest.mark.asyncio
    @pytest.mark.parametrize("phone", [None, "5551234567", "+0123456789", "+1555"])
    async def test_setup_rejects_invalid_phone(
        self, sms_provider: SmsProvider, phone: str | None
    ) -> None:
        """Test a missing or non-E.164 phone number is rejected."""
        with pytest.raises(InvalidSetupDataError):
            await sms_provider.setup("user-123", sms_request(phone))

    @pytest.mark.asyncio
    async def test_delivered_code_verifies_once(
        self, sms_provider: SmsProvider, delivery_hook
    ) -> None:
        """Test the delivered code succeeds once and is then consumed."""
        setup = await sms_provider.setup("user-123", sms_request())
        _, code = delivery_hook.sms_sent[0]

        first = await sms_provider.verify("user-123", code, setup.method_data)
        second = await sms_provider.verify("user-123", code, setup.method_data)

        assert first.success
        assert not second.success
        assert not second.format_error

    @pytest.mark.asyncio
    async def test_code_expires(
        self, sms_provider: SmsProvider, delivery_hook, clock
    ) -> None:
        """Test a code is rejected after its TTL."""
        setup = await sms_provider.setup("user-123", sms_request())
        _, code = delivery_hook.sms_sent[0]

        clock.advance(301)
        result = await sms_provider.verify("user-123", code, setup.method_data)

        assert not result.success
        assert "expired" in result.message

    @pytest.mark.asyncio
    async def test_wrong_code(
        self, sms_provider: SmsProvider, delivery_hook
    ) -> None:
        """Test a wrong code fails without consuming the challenge."""
        setup = await sms_provider.setup("user-123", sms_request())
        _, code = delivery_hook.sms_sent[0]
        wrong = "000000" if code != "000000" else "111111"

        assert not (await sms_provider.verify("user-123", wrong, setup.method_data)).success
        assert (await sms_provider.verify("user-123", code, setup.method_data)).success

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["12345", "abcdef", "", "١٢٣٤٥٦", "１２３４５６"])
    async def test_format_error(self, sms_provider: SmsProvider, code: str) -> None:
        """Test malformed codes are a format error."""
        result = await sms_provider.verify(
            "user-123", code, {"phone_number": PHONE}
        )

        assert result.format_error
        assert "6-digit" in result.message

    @pytest.mark.asyncio
    async def test_resend_cooldown(
        self, sms_provider: SmsProvider, delivery_hook, clock
    ) -> None:
        """Test a resend inside the cooldown is refused, then allowed."""
        setup = await sms_provider.setup("user-123", sms_request())

        clock.advance(30)
        with pytest.raises(RateLimitedError) as exc_info:
            await sms_provider.send_challenge("user-123", setup.method_data)
        assert exc_info.value.retry_after is not None
        assert "30 seconds" in str(exc_info.value)

        clock.advance(31)
        await sms_provider.send_challenge("user-123", setup.method_data)
        assert len(delivery_hook.sms_sent) == 2

    @pytest.mark.asyncio
    async def test_resend_replaces_previous_code(
        self, sms_provider: SmsProvider, delivery_hook, clock
    ) -> None:
        """Test only the most recently sent code is accepted."""
        setup = await sms_provider.setup("user-123", sms_request())
        _, old_code = delivery_hook.sms_sent[0]
        clock.advance(61)
        await sms_provider.send_challenge("user-123", setup.method_data)
        _, new_code = delivery_hook.sms_sent[1]

        if old_code != new_code:
            assert not (
                await sms_provider.verify("user-123", old_code, setup.method_data)
            ).success
        assert (await sms_provider.verify("user-123", new_code, setup.method_data)).success

    def test_mask(self, sms_provider: SmsProvider) -> None:
        """Test only the last four digits stay visible."""
        assert sms_provider.mask({"phone_number": PHONE}) == "+*******4567"
        assert sms_provider.mask({"phone_number": "+442071838750"}) == "+********8750"
        assert sms_provider.mask({}) == ""

    def test_custom_code_length(self, delivery_hook) -> None:
        """Test the code length follows configuration."""
        provider = SmsProvider(
            delivery_hook=delivery_hook, config=OtpDeliveryConfig(code_length=8)
        )
        assert provider.validate_code_format("12345678")
        assert not provider.validate_code_format("123456")


class TestEmailProvider:
    """Test the Email provider."""

    @pytest.mark.asyncio
    async def test_setup_sends_code(
        self, email_provider: EmailProvider, delivery_hook
    ) -> None:
        """Test setup delivers a code to the email address."""
        setup = await email_provider.setup("user-123", email_request())

        assert delivery_hook.emails_sent[0][0] == EMAIL
        assert delivery_hook.sms_sent == []
        assert setup.challenge is not None
        assert setup.challenge["destination"] == "al***@example.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", [None, "", "not-an-email", "a@b"])
    async def test_setup_rejects_invalid_email(
        self, email_provider: EmailProvider, email: str | None
    ) -> None:
        """Test a missing or malformed address is rejected."""
        with pytest.raises(InvalidSetupDataError):
            await email_provider.setup("user-123", email_request(email))

    @pytest.mark.asyncio
    async def test_round_trip(
        self, email_provider: EmailProvider, delivery_hook
    ) -> None:
        """Test the emailed code verifies."""
        setup = await email_provider.setup("user-123", email_request())
        _, code = delivery_hook.emails_sent[0]

        result = await email_provider.verify("user-123", code, setup.method_data)
        assert result.success
        assert result.method_type is MethodType.EMAIL

    @pytest.mark.asyncio
    async def test_non_ascii_digits_are_format_error(
        self, email_provider: EmailProvider, delivery_hook
    ) -> None:
        """Test decimal digits from other scripts never reach the code store."""
        setup = await email_provider.setup("user-123", email_request())
        _, code = delivery_hook.emails_sent[0]
        translated = code.translate(str.maketrans("0123456789", "٠١٢٣٤٥٦٧٨٩"))

        result = await email_provider.verify("user-123", translated, setup.method_data)

        assert result.format_error
        assert (await email_provider.verify("user-123", code, setup.method_data)).success

    @pytest.mark.asyncio
    async def test_challenges_are_per_user(
        self, email_provider: EmailProvider, delivery_hook
    ) -> None:
        """Test a code sent to one user does not verify for another."""
        setup = await email_provider.setup("user-123", email_request())
        _, code = delivery_hook.emails_sent[0]

        result = await email_provider.verify("user-456", code, setup.method_data)
        assert not result.success

    def test_delivery_hook_protocol(self, delivery_hook) -> None:
        """Test the mock hook satisfies IMfaDeliveryHook."""
        assert isinstance(delivery_hook, IMfaDeliveryHook)


class TestInMemoryOtpChallengeStore:
    """Test the in-memory challenge store."""

    @pytest.mark.asyncio
    async def test_delete(self, clock) -> None:
        """Test a deleted challenge no longer verifies."""
        store = InMemoryOtpChallengeStore(clock=clock)
        await store.create("id", "123456", ttl=60)
        await store.delete("id")

        assert not await store.verify("id", "123456")

    @pytest.mark.asyncio
    async def test_unknown_identifier(self, clock) -> None:
        """Test verifying without a challenge fails."""
        store = InMemoryOtpChallengeStore(clock=clock)
        assert not await store.verify("missing", "123456")


class TestWebAuthnProvider:
    """Test the WebAuthn provider."""

    @pytest.fixture
    def provider(self, webauthn_verifier) -> WebAuthnProvider:
        return WebAuthnProvider(verifier=webauthn_verifier)

    @pytest.fixture
    def request_data(self) -> TwoFactorSetupRequest:
        return TwoFactorSetupRequest(
            method_type=MethodType.WEBAUTHN,
            credential={"credential_id": "cred-1", "public_key": "pk-bytes"},
        )

    @pytest.mark.asyncio
    async def test_setup_records_credential(
        self, provider: WebAuthnProvider, request_data: TwoFactorSetupRequest
    ) -> None:
        """Test setup stores the credential and issues a challenge."""
        setup = await provider.setup("user-123", request_data)

        assert setup.method_data == {
            "credential_id": "cred-1",
            "public_key": "pk-bytes",
            "sign_count": 0,
        }
        assert setup.challenge is not None
        assert setup.challenge["credential_id"] == "cred-1"
        assert setup.challenge["challenge"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "credential", [None, {}, {"credential_id": "cred-1"}, {"public_key": "pk"}]
    )
    async def test_setup_requires_credential(
        self, provider: WebAuthnProvider, credential: dict[str, str] | None
    ) -> None:
        """Test an incomplete credential is rejected."""
        with pytest.raises(InvalidSetupDataError):
            await provider.setup(
                "user-123",
                TwoFactorSetupRequest(
                    method_type=MethodType.WEBAUTHN, credential=credential
                ),
            )

    @pytest.mark.asyncio
    async def test_verify(
        self, provider: WebAuthnProvider, request_data: TwoFactorSetupRequest
    ) -> None:
        """Test a valid assertion succeeds and any other fails."""
        setup = await provider.setup("user-123", request_data)

        ok = await provider.verify("user-123", "valid-assertion", setup.method_data)
        bad = await provider.verify("user-123", "other-assertion", setup.method_data)

        assert ok.success
        assert not bad.success
        assert not bad.format_error

    @pytest.mark.asyncio
    async def test_unparseable_assertion_raises(
        self, provider: WebAuthnProvider, request_data: TwoFactorSetupRequest
    ) -> None:
        """Test a verifier parsing error surfaces as VerificationFailedError."""
        setup = await provider.setup("user-123", request_data)

        with pytest.raises(VerificationFailedError):
            await provider.verify("user-123", "garbage", setup.method_data)

    @pytest.mark.asyncio
    async def test_blank_assertion_is_format_error(
        self, provider: WebAuthnProvider
    ) -> None:
        """Test an empty response is a format error."""
        result = await provider.verify("user-123", "  ", {})
        assert result.format_error

    def test_mask(self, provider: WebAuthnProvider) -> None:
        assert provider.mask({"credential_id": "cred-1"}) == "Security Key"
