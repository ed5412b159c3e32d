"""Factory functions for two-factor setup.

Wire a registry and a service from a TwoFactorConfig, with in-memory
adapters filled in for anything the application does not supply.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from .backup_codes import BackupCodesService
from .config import TwoFactorConfig
from .crypto import BcryptCodeHasher, FernetSecretCodec
from .exceptions import SecretCodecError
from .locking import InMemoryLockStrategy
from .models import MethodType, utc_now
from .providers import EmailProvider, SmsProvider, TotpProvider, WebAuthnProvider
from .rate_limit import InMemoryVerificationAttemptStore, VerificationRateLimiter
from .registry import MethodRegistry
from .service import TwoFactorAuthService

if TYPE_CHECKING:
    from .crypto import ICodeHasher, ISecretCodec
    from .locking import ILockStrategy
    from .persistence import IRealmRepositoryResolver
    from .providers import IMfaDeliveryHook, IOtpChallengeStore, IWebAuthnVerifier
    from .rate_limit import IVerificationAttemptStore

logger = logging.getLogger("twofactor.factory")


def create_default_registry(
    config: TwoFactorConfig | None = None,
    *,
    delivery_hook: IMfaDeliveryHook | None = None,
    challenge_store: IOtpChallengeStore | None = None,
    webauthn_verifier: IWebAuthnVerifier | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> MethodRegistry:
    """Create a frozen registry with a provider for each enabled method.

    SMS and Email need a delivery hook and WebAuthn needs a verifier; an
    enabled method whose collaborator is missing is left unregistered.

    Example:
        ```python
        registry = create_default_registry(
            TwoFactorConfig.from_env(), delivery_hook=MyDeliveryHook()
        )
        ```
    """
    config = config or TwoFactorConfig()
    registry = MethodRegistry()

    for method_type in config.enabled_methods:
        if method_type is MethodType.TOTP:
            registry.register(TotpProvider(config.totp, clock=clock))
        elif method_type is MethodType.SMS or method_type is MethodType.EMAIL:
            if delivery_hook is None:
                logger.warning(
                    "%s enabled but no delivery hook configured, skipping",
                    method_type.value,
                )
                continue
            provider_cls = SmsProvider if method_type is MethodType.SMS else EmailProvider
            registry.register(
                provider_cls(
                    delivery_hook=delivery_hook,
                    challenge_store=challenge_store,
                    config=config.otp,
                    clock=clock,
                )
            )
        elif method_type is MethodType.WEBAUTHN:
            if webauthn_verifier is None:
                logger.warning(
                    "WEBAUTHN enabled but no verifier configured, skipping"
                )
                continue
            registry.register(WebAuthnProvider(verifier=webauthn_verifier))

    registry.freeze()
    return registry


def create_two_factor_service(
    config: TwoFactorConfig | None = None,
    *,
    repositories: IRealmRepositoryResolver,
    registry: MethodRegistry | None = None,
    codec: ISecretCodec | None = None,
    hasher: ICodeHasher | None = None,
    lock_strategy: ILockStrategy | None = None,
    attempt_store: IVerificationAttemptStore | None = None,
    delivery_hook: IMfaDeliveryHook | None = None,
    webauthn_verifier: IWebAuthnVerifier | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> TwoFactorAuthService:
    """Create a fully wired two-factor service.

    Args:
        config: Two-factor configuration (defaults if omitted).
        repositories: Realm router resolving per-context storage.
        registry: Provider registry (built from ``config`` if omitted).
        codec: Secret codec (Fernet over ``config.encryption_key`` if omitted).
        hasher: Backup code hasher (bcrypt at ``config.backup_codes.rounds``).
        lock_strategy: Lock backend (in-memory if omitted).
        attempt_store: Rate-limit storage (in-memory if omitted).
        delivery_hook: SMS/Email delivery hook for the default registry.
        webauthn_verifier: WebAuthn verifier for the default registry.
        clock: Source of the current time.

    Returns:
        TwoFactorAuthService instance.

    Raises:
        SecretCodecError: If no codec is given and no encryption key is
            configured.
    """
    config = config or TwoFactorConfig()

    if codec is None:
        if not config.encryption_key:
            raise SecretCodecError(
                "An encryption key is required (set TWO_FACTOR_ENCRYPTION_KEY)"
            )
        codec = FernetSecretCodec(config.encryption_key)

    if registry is None:
        registry = create_default_registry(
            config,
            delivery_hook=delivery_hook,
            webauthn_verifier=webauthn_verifier,
            clock=clock,
        )

    backup_codes = BackupCodesService(
        hasher or BcryptCodeHasher(rounds=config.backup_codes.rounds),
        config.backup_codes,
        clock=clock,
    )
    rate_limiter = VerificationRateLimiter(
        store=attempt_store or InMemoryVerificationAttemptStore(),
        config=config.rate_limit,
        clock=clock,
    )

    return TwoFactorAuthService(
        registry=registry,
        repositories=repositories,
        codec=codec,
        backup_codes=backup_codes,
        rate_limiter=rate_limiter,
        lock_strategy=lock_strategy or InMemoryLockStrategy(),
        config=config,
        clock=clock,
    )


__all__: list[str] = ["create_default_registry", "create_two_factor_service"]
