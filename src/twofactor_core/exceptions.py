"""Two-factor domain exceptions.

All two-factor errors inherit from TwoFactorError which extends DomainError,
ensuring a single hierarchy that callers can catch at any level. Every error
carries a stable ``code`` and a message that is safe to show to end users.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from .locking.resources import ResourceIdentifier
    from .models import MethodType


class TwoFactorCoreError(Exception):
    """Root exception for the whole twofactor_core package."""


class DomainError(TwoFactorCoreError):
    """Base class for all domain-related errors."""


class InfrastructureError(TwoFactorCoreError):
    """Base class for all infrastructure-related errors."""


class ConcurrencyError(TwoFactorCoreError):
    """Raised when a per-user critical section cannot be entered."""


class TwoFactorErrorCode(str, Enum):
    """Stable error codes exposed to the HTTP layer."""

    METHOD_NOT_ENABLED = "METHOD_NOT_ENABLED"
    INVALID_CODE = "INVALID_CODE"
    EXPIRED_CODE = "EXPIRED_CODE"
    RATE_LIMITED = "RATE_LIMITED"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    METHOD_NOT_SUPPORTED = "METHOD_NOT_SUPPORTED"
    SETUP_REQUIRED = "SETUP_REQUIRED"
    INVALID_SETUP_DATA = "INVALID_SETUP_DATA"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    DISABLE_NOT_ALLOWED = "DISABLE_NOT_ALLOWED"
    BACKUP_CODES_NOT_CONFIGURED = "BACKUP_CODES_NOT_CONFIGURED"
    BACKUP_CODE_USED = "BACKUP_CODE_USED"
    BACKUP_CODE_INVALID = "BACKUP_CODE_INVALID"


# ═══════════════════════════════════════════════════════════════
# BASE TWO-FACTOR ERROR
# ═══════════════════════════════════════════════════════════════


class TwoFactorError(DomainError):
    """Base class for all two-factor errors.

    Attributes:
        code: Stable error code.
        method_type: The factor type involved, when known.
        retry_after: When the caller may try again, for throttling errors.
    """

    default_code: TwoFactorErrorCode = TwoFactorErrorCode.VERIFICATION_FAILED
    default_message: str = "Two-factor authentication failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        method_type: MethodType | None = None,
        retry_after: datetime | None = None,
    ) -> None:
        super().__init__(message or self.default_message)
        self.code = self.default_code
        self.method_type = method_type
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, object]:
        """Serializable representation for API error payloads."""
        return {
            "code": self.code.value,
            "message": str(self),
            "method_type": self.method_type.value if self.method_type else None,
            "retry_after": self.retry_after.isoformat() if self.retry_after else None,
        }


# ═══════════════════════════════════════════════════════════════
# SETUP ERRORS
# ═══════════════════════════════════════════════════════════════


class MethodNotSupportedError(TwoFactorError):
    """Raised when a factor type has no registered provider."""

    default_code = TwoFactorErrorCode.METHOD_NOT_SUPPORTED
    default_message = "This two-factor method is not supported"


class SetupRequiredError(TwoFactorError):
    """Raised when a provider fails to generate setup material.

    Examples:
        - TOTP secret generation failed
        - QR code rendering failed
    """

    default_code = TwoFactorErrorCode.SETUP_REQUIRED
    default_message = "Two-factor setup could not be completed"


class InvalidSetupDataError(TwoFactorError):
    """Raised when factor-specific setup input is malformed.

    Examples:
        - Phone number not in E.164 format
        - Email address missing
    """

    default_code = TwoFactorErrorCode.INVALID_SETUP_DATA
    default_message = "The setup data provided is invalid"


# ═══════════════════════════════════════════════════════════════
# VERIFICATION ERRORS
# ═══════════════════════════════════════════════════════════════


class MethodNotEnabledError(TwoFactorError):
    """Raised when an operation targets a method the user does not own."""

    default_code = TwoFactorErrorCode.METHOD_NOT_ENABLED
    default_message = "No two-factor method found. Please set up two-factor first."


class VerificationFailedError(TwoFactorError):
    """Raised when verification cannot be performed at all.

    This is distinct from a wrong code, which is reported as an unsuccessful
    verification result rather than an exception.
    """

    default_code = TwoFactorErrorCode.VERIFICATION_FAILED
    default_message = "Unable to verify the two-factor code"


class RateLimitedError(TwoFactorError):
    """Raised when too many failed attempts were made recently.

    ``retry_after`` holds the time at which verification is accepted again.
    """

    default_code = TwoFactorErrorCode.RATE_LIMITED
    default_message = "Too many failed attempts. Please try again later."


class AccountLockedError(TwoFactorError):
    """Raised when repeated lockouts escalated to an account-level lock.

    Unlike RateLimitedError this does not expire on its own; an administrator
    has to reset the counters.
    """

    default_code = TwoFactorErrorCode.ACCOUNT_LOCKED
    default_message = "Two-factor verification is locked for this account"


# ═══════════════════════════════════════════════════════════════
# POLICY ERRORS
# ═══════════════════════════════════════════════════════════════


class DisableNotAllowedError(TwoFactorError):
    """Raised when policy forbids a user from disabling a method."""

    default_code = TwoFactorErrorCode.DISABLE_NOT_ALLOWED
    default_message = "Disabling two-factor authentication is not allowed by policy"


class BackupCodesNotConfiguredError(TwoFactorError):
    """Raised when backup codes are requested for a user who has none."""

    default_code = TwoFactorErrorCode.BACKUP_CODES_NOT_CONFIGURED
    default_message = "No backup codes found. Please generate new backup codes."


# ═══════════════════════════════════════════════════════════════
# INFRASTRUCTURE ERRORS
# ═══════════════════════════════════════════════════════════════


class ProviderRegistrationError(TwoFactorCoreError):
    """Raised on a duplicate or late provider registration."""


class SecretCodecError(InfrastructureError):
    """Raised when a secret payload cannot be encrypted or decrypted."""


class LockAcquisitionError(ConcurrencyError):
    """Failed to acquire a lock within the timeout."""

    def __init__(
        self,
        resource: ResourceIdentifier,
        timeout: float,
        reason: str | None = None,
    ) -> None:
        self.resource = resource
        self.timeout = timeout
        self.reason = reason

        msg = f"Failed to acquire lock on {resource} within {timeout}s"
        if reason:
            msg += f" - {reason}"

        super().__init__(msg)


__all__: list[str] = [
    # Base
    "TwoFactorCoreError",
    "DomainError",
    "InfrastructureError",
    "ConcurrencyError",
    "TwoFactorErrorCode",
    "TwoFactorError",
    # Setup
    "MethodNotSupportedError",
    "SetupRequiredError",
    "InvalidSetupDataError",
    # Verification
    "MethodNotEnabledError",
    "VerificationFailedError",
    "RateLimitedError",
    "AccountLockedError",
    # Policy
    "DisableNotAllowedError",
    "BackupCodesNotConfiguredError",
    # Infrastructure
    "ProviderRegistrationError",
    "SecretCodecError",
    "LockAcquisitionError",
]
