"""Two-factor method providers.

One provider per authentication factor, all implementing
TwoFactorMethodProvider:
- TotpProvider: authenticator apps (RFC 6238)
- SmsProvider / EmailProvider: codes delivered over a channel
- WebAuthnProvider: security keys via an application verifier
"""

from __future__ import annotations

from .base import TwoFactorMethodProvider
from .otp import (
    EmailProvider,
    IMfaDeliveryHook,
    InMemoryOtpChallengeStore,
    InMemoryOtpRateLimitStore,
    IOtpChallengeStore,
    IOtpRateLimitStore,
    OtpChannelProvider,
    SmsProvider,
)
from .totp import TotpProvider
from .webauthn import IWebAuthnVerifier, WebAuthnProvider

__all__: list[str] = [
    "TwoFactorMethodProvider",
    "TotpProvider",
    "OtpChannelProvider",
    "SmsProvider",
    "EmailProvider",
    "IMfaDeliveryHook",
    "IOtpChallengeStore",
    "IOtpRateLimitStore",
    "InMemoryOtpChallengeStore",
    "InMemoryOtpRateLimitStore",
    "IWebAuthnVerifier",
    "WebAuthnProvider",
]
