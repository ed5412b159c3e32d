"""Two-Factor Core

Multi-factor method management shared by the platform and tenant realms:
setup, verification, enablement and recovery across pluggable factors
(TOTP, SMS, Email, WebAuthn) plus single-use backup codes.

Usage:
    ```python
    from twofactor_core import (
        MethodType,
        TwoFactorConfig,
        TwoFactorContext,
        TwoFactorSetupRequest,
        TwoFactorVerificationRequest,
        create_two_factor_service,
    )

    service = create_two_factor_service(TwoFactorConfig.from_env(), repositories=router)
    ctx = TwoFactorContext.tenant("acme", "user-123", ip_address="203.0.113.7")

    setup = await service.setup_method(ctx, TwoFactorSetupRequest(method_type=MethodType.TOTP))
    result = await service.verify_code(
        ctx, TwoFactorVerificationRequest(method_id=setup.method_id, code=code)
    )
    if result.success:
        await service.enable_method(ctx, setup.method_id)
    ```

Submodules:
    - `providers`: method provider contract and the TOTP/SMS/Email/WebAuthn providers
    - `crypto`: secret codec (Fernet) and backup code hasher (bcrypt)
    - `persistence`: realm-parameterized repository port and realm router
    - `locking`: per-user critical sections
    - `observability`: optional Prometheus metrics
"""

from __future__ import annotations

from .backup_codes import BackupCodesService, GeneratedBackupCodes
from .config import (
    BackupCodesConfig,
    OtpDeliveryConfig,
    RateLimitConfig,
    TotpConfig,
    TwoFactorConfig,
    TwoFactorPolicy,
)
from .crypto import BcryptCodeHasher, FernetSecretCodec, ICodeHasher, ISecretCodec
from .exceptions import (
    AccountLockedError,
    BackupCodesNotConfiguredError,
    ConcurrencyError,
    DisableNotAllowedError,
    DomainError,
    InfrastructureError,
    InvalidSetupDataError,
    LockAcquisitionError,
    MethodNotEnabledError,
    MethodNotSupportedError,
    ProviderRegistrationError,
    RateLimitedError,
    SecretCodecError,
    SetupRequiredError,
    TwoFactorCoreError,
    TwoFactorError,
    TwoFactorErrorCode,
    VerificationFailedError,
)
from .factory import create_default_registry, create_two_factor_service
from .models import (
    BackupCodeOutcome,
    BackupCodesData,
    BackupCodesResponse,
    BackupCodesStatus,
    BackupCodeVerificationResult,
    MethodType,
    NewTwoFactorMethod,
    Realm,
    TwoFactorAction,
    TwoFactorAuditLog,
    TwoFactorContext,
    TwoFactorFeature,
    TwoFactorMethod,
    TwoFactorMethodSummary,
    TwoFactorSetupRequest,
    TwoFactorSetupResponse,
    TwoFactorStatus,
    TwoFactorVerificationRequest,
    TwoFactorVerificationResponse,
    UserTwoFactorRecord,
)
from .persistence import (
    InMemoryTwoFactorRepository,
    IRealmRepositoryResolver,
    ITwoFactorRepository,
    RealmRepositoryRouter,
)
from .providers import (
    EmailProvider,
    IMfaDeliveryHook,
    IWebAuthnVerifier,
    SmsProvider,
    TotpProvider,
    TwoFactorMethodProvider,
    WebAuthnProvider,
)
from .rate_limit import (
    InMemoryVerificationAttemptStore,
    IVerificationAttemptStore,
    VerificationRateLimiter,
)
from .registry import MethodRegistry
from .service import TwoFactorAuthService

__all__: list[str] = [
    # Service
    "TwoFactorAuthService",
    "create_two_factor_service",
    "create_default_registry",
    # Registry & providers
    "MethodRegistry",
    "TwoFactorMethodProvider",
    "TotpProvider",
    "SmsProvider",
    "EmailProvider",
    "WebAuthnProvider",
    "IMfaDeliveryHook",
    "IWebAuthnVerifier",
    # Backup codes
    "BackupCodesService",
    "GeneratedBackupCodes",
    # Crypto
    "ISecretCodec",
    "FernetSecretCodec",
    "ICodeHasher",
    "BcryptCodeHasher",
    # Persistence
    "ITwoFactorRepository",
    "IRealmRepositoryResolver",
    "RealmRepositoryRouter",
    "InMemoryTwoFactorRepository",
    # Rate limiting
    "IVerificationAttemptStore",
    "InMemoryVerificationAttemptStore",
    "VerificationRateLimiter",
    # Config
    "TwoFactorConfig",
    "TotpConfig",
    "RateLimitConfig",
    "BackupCodesConfig",
    "OtpDeliveryConfig",
    "TwoFactorPolicy",
    # Models
    "MethodType",
    "Realm",
    "TwoFactorAction",
    "TwoFactorFeature",
    "BackupCodeOutcome",
    "TwoFactorContext",
    "NewTwoFactorMethod",
    "TwoFactorMethod",
    "BackupCodesData",
    "TwoFactorAuditLog",
    "UserTwoFactorRecord",
    "TwoFactorSetupRequest",
    "TwoFactorSetupResponse",
    "TwoFactorVerificationRequest",
    "TwoFactorVerificationResponse",
    "TwoFactorMethodSummary",
    "TwoFactorStatus",
    "BackupCodesResponse",
    "BackupCodeVerificationResult",
    "BackupCodesStatus",
    # Exceptions
    "TwoFactorCoreError",
    "DomainError",
    "InfrastructureError",
    "ConcurrencyError",
    "TwoFactorErrorCode",
    "TwoFactorError",
    "MethodNotSupportedError",
    "SetupRequiredError",
    "InvalidSetupDataError",
    "MethodNotEnabledError",
    "VerificationFailedError",
    "RateLimitedError",
    "AccountLockedError",
    "DisableNotAllowedError",
    "BackupCodesNotConfiguredError",
    "ProviderRegistrationError",
    "SecretCodecError",
    "LockAcquisitionError",
]
