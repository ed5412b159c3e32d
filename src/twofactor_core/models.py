"""Two-factor data model and request/response DTOs.

Persistent records (methods, backup codes, audit entries) and the DTOs
exchanged with the HTTP layer are pydantic models. Secret material only ever
appears here in encrypted or hashed form; the one exception is the setup
response, which returns the TOTP secret to the user exactly once.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════


class MethodType(str, Enum):
    """Authentication factor types backed by a provider."""

    TOTP = "TOTP"
    SMS = "SMS"
    EMAIL = "EMAIL"
    WEBAUTHN = "WEBAUTHN"


class Realm(str, Enum):
    """Identity realms with independent storage."""

    PLATFORM = "platform"
    TENANT = "tenant"


class TwoFactorAction(str, Enum):
    """Audited two-factor actions."""

    SETUP = "SETUP"
    VERIFY_SUCCESS = "VERIFY_SUCCESS"
    VERIFY_FAILURE = "VERIFY_FAILURE"
    ENABLE = "ENABLE"
    DISABLE = "DISABLE"
    DELETE = "DELETE"


class TwoFactorFeature(str, Enum):
    """Capabilities advertised by providers."""

    QR_CODE = "qr_code"
    MANUAL_ENTRY = "manual_entry"
    RATE_LIMITING = "rate_limiting"
    BACKUP_CODES = "backup_codes"
    DEVICE_TRUST = "device_trust"
    BIOMETRIC = "biometric"
    OFFLINE_CAPABLE = "offline_capable"


class BackupCodeOutcome(str, Enum):
    """Outcome of a backup code verification."""

    VALID = "VALID"
    BACKUP_CODE_USED = "BACKUP_CODE_USED"
    BACKUP_CODE_INVALID = "BACKUP_CODE_INVALID"


NextStep = Literal["2fa_verify_setup", "2fa_complete"]


# ═══════════════════════════════════════════════════════════════
# CONTEXT
# ═══════════════════════════════════════════════════════════════


class TwoFactorContext(BaseModel):
    """Ambient identity for a two-factor operation.

    Built per request by the HTTP layer and never persisted.

    Attributes:
        realm: Which identity realm (and therefore storage) the user lives in.
        user_id: User identifier within the realm.
        tenant_id: Tenant identifier, required for the tenant realm.
        ip_address: Client IP address (if available).
        user_agent: Client user agent string (if available).
        roles: Caller roles, used for "MFA required" policy decisions.
    """

    model_config = ConfigDict(frozen=True)

    realm: Realm
    user_id: str
    tenant_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    roles: frozenset[str] = frozenset()

    @model_validator(mode="after")
    def _check_tenant(self) -> TwoFactorContext:
        if self.realm is Realm.TENANT and not self.tenant_id:
            raise ValueError("tenant_id is required for the tenant realm")
        return self

    @classmethod
    def platform(cls, user_id: str, **kwargs: Any) -> TwoFactorContext:
        """Context for a platform operator."""
        return cls(realm=Realm.PLATFORM, user_id=user_id, **kwargs)

    @classmethod
    def tenant(cls, tenant_id: str, user_id: str, **kwargs: Any) -> TwoFactorContext:
        """Context for a tenant end user."""
        return cls(realm=Realm.TENANT, tenant_id=tenant_id, user_id=user_id, **kwargs)

    @property
    def scope(self) -> str:
        """Realm-qualified user key, unique across realms and tenants."""
        if self.realm is Realm.TENANT:
            return f"tenant:{self.tenant_id}:{self.user_id}"
        return f"platform:{self.user_id}"


# ═══════════════════════════════════════════════════════════════
# PERSISTENT RECORDS
# ═══════════════════════════════════════════════════════════════


class NewTwoFactorMethod(BaseModel):
    """Data required to create a method record (id assigned by storage)."""

    user_id: str
    realm: Realm
    method_type: MethodType
    secret_data: bytes = Field(repr=False)
    name: str | None = None
    masked_data: str | None = None


class TwoFactorMethod(BaseModel):
    """One configured authentication factor for one user.

    ``secret_data`` is the encrypted, factor-specific payload. ``masked_data``
    is a non-secret descriptor (e.g. "***-***-1234") computed at setup time.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str
    user_id: str
    realm: Realm
    method_type: MethodType
    is_enabled: bool = False
    is_primary: bool = False
    name: str | None = None
    secret_data: bytes = Field(repr=False)
    masked_data: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    last_used_at: datetime | None = None


class BackupCodesData(BaseModel):
    """One batch of hashed recovery codes for a user.

    Attributes:
        codes: Hashed codes, in generation order.
        used_codes: Hashes already consumed, each at most once.
        generated_at: When the batch was generated.
        last_used_at: When a code was last consumed.
    """

    model_config = ConfigDict(frozen=True)

    codes: list[str] = Field(repr=False)
    used_codes: list[str] = Field(default_factory=list, repr=False)
    generated_at: datetime = Field(default_factory=utc_now)
    last_used_at: datetime | None = None

    @model_validator(mode="after")
    def _check_used_codes(self) -> BackupCodesData:
        if len(set(self.used_codes)) != len(self.used_codes):
            raise ValueError("used_codes must not contain duplicates")
        if not set(self.used_codes) <= set(self.codes):
            raise ValueError("used_codes must be a subset of codes")
        return self

    @property
    def remaining_count(self) -> int:
        return len(self.codes) - len(self.used_codes)

    @property
    def unused_codes(self) -> list[str]:
        used = set(self.used_codes)
        return [digest for digest in self.codes if digest not in used]


class TwoFactorAuditLog(BaseModel):
    """Append-only record of a security-relevant two-factor event."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    realm: Realm
    tenant_id: str | None = None
    method_id: str | None = None
    method_type: str | None = None
    action: TwoFactorAction
    success: bool
    ip_address: str | None = None
    user_agent: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)
    metadata: dict[str, Any] = Field(default_factory=dict)


class UserTwoFactorRecord(BaseModel):
    """A user's aggregate two-factor state as read from storage."""

    user_id: str
    two_factor_enabled: bool = False
    backup_codes: BackupCodesData | None = None
    methods: list[TwoFactorMethod] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════════
# REQUESTS AND RESPONSES
# ═══════════════════════════════════════════════════════════════


class TwoFactorSetupRequest(BaseModel):
    """Request to set up a new method."""

    method_type: MethodType
    name: str | None = None
    phone_number: str | None = None
    email: str | None = None
    credential: dict[str, Any] | None = None


class TwoFactorSetupResponse(BaseModel):
    """Setup artifact returned to the user.

    ``method_data`` is the provider's secret material. It is excluded from
    serialization and stripped by the orchestration service before the
    response leaves the core.
    """

    method_id: str | None = None
    method_type: MethodType
    qr_code: str | None = None
    secret: str | None = Field(default=None, repr=False)
    manual_entry_key: str | None = Field(default=None, repr=False)
    provisioning_uri: str | None = Field(default=None, repr=False)
    challenge: dict[str, Any] | None = None
    backup_codes: list[str] | None = Field(default=None, repr=False)
    instructions: str
    next_step: NextStep = "2fa_verify_setup"
    method_data: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)


class TwoFactorVerificationRequest(BaseModel):
    """Request to verify a code against a method (by id or by type)."""

    method_id: str | None = None
    method_type: MethodType | None = None
    code: str = Field(repr=False)
    trust_device: bool = False


class TwoFactorVerificationResponse(BaseModel):
    """Outcome of a verification attempt. Wrong codes are not exceptions."""

    success: bool
    method_type: MethodType
    message: str
    method_id: str | None = None
    remaining_attempts: int | None = None
    lockout_until: datetime | None = None
    trusted_device: bool | None = None
    trusted_until: datetime | None = None
    format_error: bool = False


class TwoFactorMethodSummary(BaseModel):
    """Masked view of a method, safe to return to clients."""

    id: str
    method_type: MethodType
    name: str | None = None
    is_enabled: bool
    is_primary: bool
    created_at: datetime
    last_used_at: datetime | None = None
    masked_data: str | None = None

    @classmethod
    def from_method(cls, method: TwoFactorMethod) -> TwoFactorMethodSummary:
        return cls(
            id=method.id,
            method_type=method.method_type,
            name=method.name,
            is_enabled=method.is_enabled,
            is_primary=method.is_primary,
            created_at=method.created_at,
            last_used_at=method.last_used_at,
            masked_data=method.masked_data,
        )


class TwoFactorStatus(BaseModel):
    """A user's two-factor status."""

    is_enabled: bool
    has_enabled_methods: bool
    has_backup_codes: bool
    available_methods: list[MethodType] = Field(default_factory=list)
    enabled_methods: list[TwoFactorMethodSummary] = Field(default_factory=list)
    primary_method: TwoFactorMethodSummary | None = None
    can_disable: bool = True
    last_verified_at: datetime | None = None


class BackupCodesResponse(BaseModel):
    """Freshly generated backup codes, shown to the user once."""

    codes: list[str] = Field(repr=False)
    instructions: str
    generated_at: datetime


class BackupCodeVerificationResult(BaseModel):
    """Outcome of a backup code verification.

    ``data`` is the updated batch to persist when the code was consumed.
    ``outcome`` distinguishes a replayed code from an unknown one for audit
    purposes; both are serialized to clients only as ``is_valid=False``.
    ``remaining_attempts`` and ``lockout_until`` are set when a rejected
    code was counted against the rate limit.
    """

    is_valid: bool
    remaining_codes: int
    message: str
    outcome: BackupCodeOutcome = Field(exclude=True)
    should_regenerate: bool = False
    remaining_attempts: int | None = None
    lockout_until: datetime | None = None
    data: BackupCodesData | None = Field(default=None, exclude=True, repr=False)


class BackupCodesStatus(BaseModel):
    """Summary of a user's backup codes."""

    has_backup_codes: bool
    remaining_codes: int
    generated_at: datetime | None = None
    last_used_at: datetime | None = None
    should_regenerate: bool = False


__all__: list[str] = [
    "utc_now",
    # Enums
    "MethodType",
    "Realm",
    "TwoFactorAction",
    "TwoFactorFeature",
    "BackupCodeOutcome",
    "NextStep",
    # Context
    "TwoFactorContext",
    # Records
    "NewTwoFactorMethod",
    "TwoFactorMethod",
    "BackupCodesData",
    "TwoFactorAuditLog",
    "UserTwoFactorRecord",
    # DTOs
    "TwoFactorSetupRequest",
    "TwoFactorSetupResponse",
    "TwoFactorVerificationRequest",
    "TwoFactorVerificationResponse",
    "TwoFactorMethodSummary",
    "TwoFactorStatus",
    "BackupCodesResponse",
    "BackupCodeVerificationResult",
    "BackupCodesStatus",
]
