"""Two-factor configuration.

Configuration is a tree of frozen dataclasses. Defaults mirror the values
most deployments use; ``TwoFactorConfig.from_env()`` builds a config from
environment variables for processes that are configured that way.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .models import MethodType

_TOTP_ALGORITHMS = ("SHA1", "SHA256", "SHA512")


@dataclass(frozen=True)
class TotpConfig:
    """TOTP configuration.

    Attributes:
        issuer: Application name shown in authenticator apps.
        algorithm: HMAC algorithm (SHA1, SHA256 or SHA512).
        digits: Code length (6 or 8).
        period: Time step in seconds (30 or 60).
        window: Accepted steps before/after the current one for clock drift.
    """

    issuer: str = "MultiTenant Platform"
    algorithm: str = "SHA1"
    digits: int = 6
    period: int = 30
    window: int = 1

    def __post_init__(self) -> None:
        if self.algorithm.upper() not in _TOTP_ALGORITHMS:
            raise ValueError(f"Unsupported TOTP algorithm: {self.algorithm}")
        if self.digits not in (6, 8):
            raise ValueError("TOTP digits must be 6 or 8")
        if self.period not in (30, 60):
            raise ValueError("TOTP period must be 30 or 60 seconds")
        if not 0 <= self.window <= 2:
            raise ValueError("TOTP window must be between 0 and 2")
        object.__setattr__(self, "algorithm", self.algorithm.upper())


@dataclass(frozen=True)
class RateLimitConfig:
    """Failed-verification throttling.

    Attributes:
        max_attempts: Failures allowed within the window before lockout.
        window_seconds: Rolling window in which failures are counted.
        lockout_seconds: How long a lockout lasts.
        max_lockouts: Consecutive lockouts before the account is locked
            until an administrator resets it.
    """

    max_attempts: int = 3
    window_seconds: int = 900  # 15 minutes
    lockout_seconds: int = 900  # 15 minutes
    max_lockouts: int = 5

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.window_seconds <= 0 or self.lockout_seconds <= 0:
            raise ValueError("window_seconds and lockout_seconds must be positive")
        if self.max_lockouts < 1:
            raise ValueError("max_lockouts must be at least 1")


@dataclass(frozen=True)
class BackupCodesConfig:
    """Backup code generation.

    Attributes:
        count: Codes per batch.
        length: Characters per code.
        rounds: bcrypt cost factor used to hash each code.
        regenerate_threshold: Remaining count at or below which
            regeneration is recommended.
    """

    count: int = 10
    length: int = 8
    rounds: int = 12
    regenerate_threshold: int = 2

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError("Backup code count must be at least 1")
        if self.length < 6:
            raise ValueError("Backup code length must be at least 6")
        if not 4 <= self.rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")


@dataclass(frozen=True)
class OtpDeliveryConfig:
    """SMS/Email challenge configuration.

    Attributes:
        code_length: Number of digits in a delivered code.
        ttl_seconds: How long a delivered code stays valid.
        cooldown_seconds: Minimum seconds between sends to one destination.
    """

    code_length: int = 6
    ttl_seconds: int = 300  # 5 minutes
    cooldown_seconds: int = 60  # 1 minute between resends


@dataclass(frozen=True)
class TwoFactorPolicy:
    """Security policy.

    Attributes:
        allow_disable_by_user: Whether users may disable their own methods.
        required_for_roles: Roles for which two-factor is mandatory.
        device_trust_seconds: Lifetime of a "trust this device" grant.
        require_backup_codes: Whether enabling the first method should
            be accompanied by backup codes.
    """

    allow_disable_by_user: bool = True
    required_for_roles: frozenset[str] = frozenset()
    device_trust_seconds: int = 30 * 24 * 3600
    require_backup_codes: bool = False


@dataclass(frozen=True)
class TwoFactorConfig:
    """Root two-factor configuration."""

    enabled_methods: tuple[MethodType, ...] = (
        MethodType.TOTP,
        MethodType.SMS,
        MethodType.EMAIL,
        MethodType.WEBAUTHN,
    )
    totp: TotpConfig = field(default_factory=TotpConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    backup_codes: BackupCodesConfig = field(default_factory=BackupCodesConfig)
    otp: OtpDeliveryConfig = field(default_factory=OtpDeliveryConfig)
    policy: TwoFactorPolicy = field(default_factory=TwoFactorPolicy)
    encryption_key: str | None = field(default=None, repr=False)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TwoFactorConfig:
        """Build a configuration from environment variables.

        Recognized variables: ``TWO_FACTOR_ENABLED_METHODS`` (comma separated),
        ``TOTP_ISSUER``, ``TOTP_ALGORITHM``, ``TOTP_DIGITS``, ``TOTP_PERIOD``,
        ``TOTP_WINDOW``, ``TWO_FACTOR_MAX_ATTEMPTS``,
        ``TWO_FACTOR_RATE_WINDOW_SECONDS``, ``TWO_FACTOR_LOCKOUT_SECONDS``,
        ``TWO_FACTOR_BACKUP_CODE_COUNT``, ``TWO_FACTOR_BACKUP_CODE_ROUNDS``,
        ``TWO_FACTOR_ALLOW_DISABLE_BY_USER``, ``TWO_FACTOR_REQUIRED_ROLES``
        (comma separated) and ``TWO_FACTOR_ENCRYPTION_KEY``. Anything absent
        keeps its default.

        Args:
            environ: Mapping to read from (default ``os.environ``).

        Returns:
            TwoFactorConfig instance.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        methods = defaults.enabled_methods
        if env.get("TWO_FACTOR_ENABLED_METHODS"):
            methods = tuple(
                MethodType(item.strip().upper())
                for item in env["TWO_FACTOR_ENABLED_METHODS"].split(",")
                if item.strip()
            )

        totp = TotpConfig(
            issuer=env.get("TOTP_ISSUER", defaults.totp.issuer),
            algorithm=env.get("TOTP_ALGORITHM", defaults.totp.algorithm),
            digits=int(env.get("TOTP_DIGITS", defaults.totp.digits)),
            period=int(env.get("TOTP_PERIOD", defaults.totp.period)),
            window=int(env.get("TOTP_WINDOW", defaults.totp.window)),
        )
        rate_limit = RateLimitConfig(
            max_attempts=int(
                env.get("TWO_FACTOR_MAX_ATTEMPTS", defaults.rate_limit.max_attempts)
            ),
            window_seconds=int(
                env.get(
                    "TWO_FACTOR_RATE_WINDOW_SECONDS",
                    defaults.rate_limit.window_seconds,
                )
            ),
            lockout_seconds=int(
                env.get(
                    "TWO_FACTOR_LOCKOUT_SECONDS", defaults.rate_limit.lockout_seconds
                )
            ),
        )
        backup_codes = BackupCodesConfig(
            count=int(
                env.get("TWO_FACTOR_BACKUP_CODE_COUNT", defaults.backup_codes.count)
            ),
            rounds=int(
                env.get("TWO_FACTOR_BACKUP_CODE_ROUNDS", defaults.backup_codes.rounds)
            ),
        )
        roles = defaults.policy.required_for_roles
        if env.get("TWO_FACTOR_REQUIRED_ROLES"):
            roles = frozenset(
                role.strip()
                for role in env["TWO_FACTOR_REQUIRED_ROLES"].split(",")
                if role.strip()
            )
        policy = TwoFactorPolicy(
            allow_disable_by_user=_parse_bool(
                env.get("TWO_FACTOR_ALLOW_DISABLE_BY_USER"),
                defaults.policy.allow_disable_by_user,
            ),
            required_for_roles=roles,
        )

        return cls(
            enabled_methods=methods,
            totp=totp,
            rate_limit=rate_limit,
            backup_codes=backup_codes,
            policy=policy,
            encryption_key=env.get("TWO_FACTOR_ENCRYPTION_KEY"),
        )


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


__all__: list[str] = [
    "TotpConfig",
    "RateLimitConfig",
    "BackupCodesConfig",
    "OtpDeliveryConfig",
    "TwoFactorPolicy",
    "TwoFactorConfig",
]
