"""Two-factor orchestration service.

The state machine for a user's methods:

    Unconfigured -> PendingVerification -> Enabled -> Disabled

Setup creates a disabled method; a successful verification followed by an
explicit enable turns it on. Enabled methods may carry the exclusive primary
designation, and a user's aggregate two-factor flag is true iff at least one
method is enabled.

Every state change and every verification attempt for a user runs inside a
per-user critical section, so rate-limit bookkeeping, backup code
consumption and the single-primary invariant cannot race.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from .audit import (
    BACKUP_CODES_METHOD,
    build_audit_entry,
    setup_event,
    status_change_event,
    verification_event,
)
from .config import TwoFactorConfig
from .exceptions import (
    AccountLockedError,
    BackupCodesNotConfiguredError,
    DisableNotAllowedError,
    InvalidSetupDataError,
    MethodNotEnabledError,
    RateLimitedError,
    SecretCodecError,
    SetupRequiredError,
    VerificationFailedError,
)
from .locking import CriticalSection, ResourceIdentifier
from .models import (
    BackupCodeOutcome,
    BackupCodesResponse,
    BackupCodesStatus,
    BackupCodeVerificationResult,
    NewTwoFactorMethod,
    TwoFactorAction,
    TwoFactorContext,
    TwoFactorMethod,
    TwoFactorMethodSummary,
    TwoFactorSetupRequest,
    TwoFactorSetupResponse,
    TwoFactorStatus,
    TwoFactorVerificationRequest,
    TwoFactorVerificationResponse,
    utc_now,
)
from .observability import TwoFactorMetrics
from .rate_limit import account_lock_key, attempt_key

if TYPE_CHECKING:
    from .backup_codes import BackupCodesService
    from .crypto import ISecretCodec
    from .locking import ILockStrategy
    from .persistence import IRealmRepositoryResolver, ITwoFactorRepository
    from .rate_limit import VerificationRateLimiter
    from .registry import MethodRegistry

logger = logging.getLogger("twofactor.service")


class TwoFactorAuthService:
    """Orchestrates two-factor setup, verification and lifecycle.

    Every operation takes the ambient :class:`TwoFactorContext`; the realm
    router resolves which storage backs it, so nothing here branches on
    realm.

    Example:
        ```python
        service = create_two_factor_service(config, repositories=router)

        setup = await service.setup_method(
            ctx, TwoFactorSetupRequest(method_type=MethodType.TOTP)
        )
        result = await service.verify_code(
            ctx, TwoFactorVerificationRequest(method_id=setup.method_id, code="123456")
        )
        if result.success:
            await service.enable_method(ctx, setup.method_id)
        ```
    """

    def __init__(
        self,
        *,
        registry: MethodRegistry,
        repositories: IRealmRepositoryResolver,
        codec: ISecretCodec,
        backup_codes: BackupCodesService,
        rate_limiter: VerificationRateLimiter,
        lock_strategy: ILockStrategy,
        config: TwoFactorConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
        lock_timeout: float = 10.0,
    ) -> None:
        """Initialize the service.

        Args:
            registry: Frozen method registry.
            repositories: Realm router resolving per-context storage.
            codec: Reversible codec for provider secrets.
            backup_codes: Backup code generation and verification.
            rate_limiter: Failed-verification throttling.
            lock_strategy: Lock backend for per-user critical sections.
            config: Policy and method configuration.
            clock: Source of the current time.
            lock_timeout: Seconds to wait for a user's critical section.
        """
        self.registry = registry
        self.repositories = repositories
        self.codec = codec
        self.backup_codes = backup_codes
        self.rate_limiter = rate_limiter
        self.lock_strategy = lock_strategy
        self.config = config or TwoFactorConfig()
        self._clock = clock
        self._lock_timeout = lock_timeout

    # ── helpers ──────────────────────────────────────────────────

    def _repository(self, context: TwoFactorContext) -> ITwoFactorRepository:
        return self.repositories.for_context(context)

    def _critical_section(self, context: TwoFactorContext) -> CriticalSection:
        return CriticalSection(
            ResourceIdentifier.for_user(context),
            self.lock_strategy,
            timeout=self._lock_timeout,
        )

    @staticmethod
    async def _require_method(
        repository: ITwoFactorRepository, context: TwoFactorContext, method_id: str
    ) -> TwoFactorMethod:
        method = await repository.get_method(context.user_id, method_id)
        if method is None:
            raise MethodNotEnabledError()
        return method

    async def _resolve_method(
        self,
        repository: ITwoFactorRepository,
        context: TwoFactorContext,
        request: TwoFactorVerificationRequest,
    ) -> TwoFactorMethod:
        """Find the target of a verification, enabled or not."""
        if request.method_id:
            return await self._require_method(repository, context, request.method_id)
        if request.method_type is None:
            raise MethodNotEnabledError()

        candidates = [
            m
            for m in await repository.get_methods(context.user_id)
            if m.method_type == request.method_type
        ]
        if not candidates:
            raise MethodNotEnabledError(method_type=request.method_type)
        # Primary first, then enabled, then the most recently set up
        return max(
            candidates, key=lambda m: (m.is_primary, m.is_enabled, m.created_at)
        )

    def _decrypt(self, method: TwoFactorMethod) -> dict[str, Any]:
        """Decrypt a method's secret material.

        Raises:
            SecretCodecError: If the payload cannot be decrypted or parsed.
        """
        try:
            data = json.loads(self.codec.decrypt(method.secret_data))
        except ValueError as e:
            raise SecretCodecError("Secret payload is not valid JSON") from e
        if not isinstance(data, dict):
            raise SecretCodecError("Secret payload has an unexpected shape")
        return data

    def _check_disable_allowed(
        self,
        context: TwoFactorContext,
        *,
        remaining_enabled: int,
        administrative: bool,
    ) -> None:
        if administrative:
            return
        if not self.config.policy.allow_disable_by_user:
            logger.warning(
                "User-initiated disable refused by policy",
                extra={"realm": context.realm.value},
            )
            raise DisableNotAllowedError()
        if remaining_enabled == 0 and self.is_required_for(context):
            logger.warning(
                "Disable of last method refused for required role",
                extra={"realm": context.realm.value},
            )
            raise DisableNotAllowedError(
                "Two-factor authentication is required for your account"
            )

    # ── policy ───────────────────────────────────────────────────

    def is_required_for(self, context: TwoFactorContext) -> bool:
        """Whether the caller's roles make two-factor mandatory."""
        return bool(context.roles & self.config.policy.required_for_roles)

    # ── setup ────────────────────────────────────────────────────

    async def setup_method(
        self, context: TwoFactorContext, request: TwoFactorSetupRequest
    ) -> TwoFactorSetupResponse:
        """Set up a new, disabled method.

        The provider generates its secret material before anything is
        persisted, so a failure leaves no method record behind.

        Args:
            context: Ambient identity.
            request: Factor type and factor-specific input.

        Returns:
            Setup artifact with ``method_id`` set and secret material stripped.

        Raises:
            MethodNotSupportedError: If no provider handles the factor type.
            InvalidSetupDataError: If the factor-specific input is invalid.
            SetupRequiredError: If the provider fails to generate material.
        """
        provider = self.registry.get_provider(request.method_type)
        if not provider.validate_setup_data(request):
            logger.warning(
                "Invalid setup data",
                extra={"method_type": request.method_type.value},
            )
            raise InvalidSetupDataError(method_type=request.method_type)

        repository = self._repository(context)
        with TwoFactorMetrics.operation("setup", method=request.method_type.value):
            response = await provider.setup(context.user_id, request)
            method = await repository.create_method(
                NewTwoFactorMethod(
                    user_id=context.user_id,
                    realm=context.realm,
                    method_type=request.method_type,
                    secret_data=self.codec.encrypt(json.dumps(response.method_data)),
                    name=request.name,
                    masked_data=provider.mask(response.method_data),
                )
            )
            await repository.append_audit_log(
                setup_event(context, method, clock=self._clock)
            )

        logger.info(
            "Two-factor method set up",
            extra={
                "method_id": method.id,
                "method_type": method.method_type.value,
                "realm": context.realm.value,
            },
        )
        return response.model_copy(update={"method_id": method.id, "method_data": {}})

    # ── verification ─────────────────────────────────────────────

    async def verify_code(
        self, context: TwoFactorContext, request: TwoFactorVerificationRequest
    ) -> TwoFactorVerificationResponse:
        """Verify a code against one of the user's methods.

        A wrong code is an unsuccessful result, recorded against the rate
        limit and audited. Malformed codes are rejected before the rate
        limit is consulted and are neither counted nor audited.

        Raises:
            MethodNotEnabledError: If the user has no matching method.
            RateLimitedError: If the (user, method) pair is locked out.
            AccountLockedError: If repeated lockouts locked the account.
            VerificationFailedError: If the stored secret is unusable.
        """
        repository = self._repository(context)
        async with self._critical_section(context):
            method = await self._resolve_method(repository, context, request)
            method_type = method.method_type
            provider = self.registry.get_provider(method_type)

            if not provider.validate_code_format(request.code):
                return TwoFactorVerificationResponse(
                    success=False,
                    method_type=method_type,
                    method_id=method.id,
                    message="Invalid code format.",
                    format_error=True,
                )

            key = attempt_key(context, method_type)
            account_key = account_lock_key(context)
            try:
                await self.rate_limiter.check(
                    key, account_key=account_key, method_type=method_type
                )
            except (RateLimitedError, AccountLockedError) as e:
                await repository.append_audit_log(
                    verification_event(
                        context,
                        success=False,
                        method=method,
                        reason=e.code.value,
                        clock=self._clock,
                    )
                )
                TwoFactorMetrics.record("verify", method=method_type.value, result="locked")
                logger.warning(
                    "Verification refused while locked out",
                    extra={"method_id": method.id, "code": e.code.value},
                )
                raise

            try:
                method_data = self._decrypt(method)
                result = await provider.verify(context.user_id, request.code, method_data)
            except (SecretCodecError, VerificationFailedError) as e:
                await repository.append_audit_log(
                    verification_event(
                        context,
                        success=False,
                        method=method,
                        reason="secret_unavailable",
                        clock=self._clock,
                    )
                )
                TwoFactorMetrics.record("verify", method=method_type.value, result="error")
                logger.error(
                    "Stored secret unusable for verification",
                    extra={"method_id": method.id, "error_type": type(e).__name__},
                )
                raise VerificationFailedError(method_type=method_type) from e

            if result.format_error:
                return result.model_copy(update={"method_id": method.id})

            if result.success:
                now = self._clock()
                await repository.update_method_last_used(method.id, now)
                await self.rate_limiter.record_success(key)
                await repository.append_audit_log(
                    verification_event(
                        context, success=True, method=method, clock=self._clock
                    )
                )
                TwoFactorMetrics.record("verify", method=method_type.value)
                trusted_until = None
                if request.trust_device:
                    trusted_until = now + timedelta(
                        seconds=self.config.policy.device_trust_seconds
                    )
                return result.model_copy(
                    update={
                        "method_id": method.id,
                        "trusted_device": request.trust_device,
                        "trusted_until": trusted_until,
                    }
                )

            outcome = await self.rate_limiter.record_failure(
                key, account_key=account_key
            )
            await repository.append_audit_log(
                verification_event(
                    context,
                    success=False,
                    method=method,
                    reason=("locked_out" if outcome.locked_until else "invalid_code"),
                    metadata={"remaining_attempts": outcome.remaining_attempts},
                    clock=self._clock,
                )
            )
            TwoFactorMetrics.record("verify", method=method_type.value, result="failure")
            logger.warning(
                "Two-factor verification failed",
                extra={
                    "method_id": method.id,
                    "remaining_attempts": outcome.remaining_attempts,
                },
            )
            return result.model_copy(
                update={
                    "method_id": method.id,
                    "remaining_attempts": outcome.remaining_attempts,
                    "lockout_until": outcome.locked_until,
                }
            )

    async def send_challenge(self, context: TwoFactorContext, method_id: str) -> None:
        """Deliver a fresh code for a channel-based method.

        No-op for factors that need no delivery (TOTP, WebAuthn).

        Raises:
            MethodNotEnabledError: If the user has no such method.
            RateLimitedError: If a code was sent within the cooldown.
            VerificationFailedError: If the stored destination is unusable.
        """
        repository = self._repository(context)
        method = await self._require_method(repository, context, method_id)
        provider = self.registry.get_provider(method.method_type)
        try:
            method_data = self._decrypt(method)
        except SecretCodecError as e:
            logger.error(
                "Stored secret unusable for challenge",
                extra={"method_id": method.id},
            )
            raise VerificationFailedError(method_type=method.method_type) from e
        await provider.send_challenge(context.user_id, method_data)

    async def reset_rate_limit(
        self, context: TwoFactorContext, method_id: str | None = None
    ) -> None:
        """Administrative reset of failed-attempt counters and account locks.

        Args:
            context: Identity of the user whose counters are reset.
            method_id: One method to reset; all factors and backup codes
                when omitted. The account lock is cleared either way.
        """
        if method_id is not None:
            method = await self._require_method(
                self._repository(context), context, method_id
            )
            keys = [attempt_key(context, method.method_type)]
        else:
            keys = [attempt_key(context, m) for m in self.registry.get_available_methods()]
            keys.append(attempt_key(context, BACKUP_CODES_METHOD))
        keys.append(account_lock_key(context))

        async with self._critical_section(context):
            for key in keys:
                await self.rate_limiter.reset(key)
        logger.info("Two-factor rate limit reset", extra={"keys": len(keys)})

    # ── lifecycle ────────────────────────────────────────────────

    async def enable_method(
        self, context: TwoFactorContext, method_id: str
    ) -> TwoFactorMethodSummary:
        """Enable a verified method.

        The user's first enabled method becomes primary and the aggregate
        flag turns on. Enabling an already enabled method is a no-op.

        Raises:
            MethodNotEnabledError: If the user has no such method.
            SetupRequiredError: If no code was verified for the method yet.
            BackupCodesNotConfiguredError: If policy requires backup codes
                before the first method is enabled and none exist.
        """
        repository = self._repository(context)
        async with self._critical_section(context):
            method = await self._require_method(repository, context, method_id)
            if method.is_enabled:
                return TwoFactorMethodSummary.from_method(method)
            if method.last_used_at is None:
                raise SetupRequiredError(
                    "Verify a code from this method before enabling it",
                    method_type=method.method_type,
                )

            record = await repository.get_user(context.user_id)
            is_first = not any(m.is_enabled for m in record.methods)
            if (
                is_first
                and self.config.policy.require_backup_codes
                and (record.backup_codes is None or record.backup_codes.remaining_count == 0)
            ):
                raise BackupCodesNotConfiguredError(method_type=method.method_type)

            with TwoFactorMetrics.operation("enable", method=method.method_type.value):
                await repository.update_method_status(method.id, True)
                await repository.update_user_aggregate_flag(context.user_id, True)
                if is_first:
                    await repository.set_primary_method(context.user_id, method.id)
                await repository.append_audit_log(
                    status_change_event(
                        context,
                        TwoFactorAction.ENABLE,
                        method,
                        metadata={"primary": is_first},
                        clock=self._clock,
                    )
                )

            updated = await self._require_method(repository, context, method.id)

        logger.info(
            "Two-factor method enabled",
            extra={"method_id": method.id, "primary": is_first},
        )
        return TwoFactorMethodSummary.from_method(updated)

    async def disable_method(
        self,
        context: TwoFactorContext,
        method_id: str,
        *,
        administrative: bool = False,
    ) -> None:
        """Disable an enabled method.

        Disabling the primary method does not promote another one. Disabling
        the last enabled method turns the aggregate flag off.

        Args:
            context: Ambient identity.
            method_id: Method to disable.
            administrative: Bypass the user-facing disable policy.

        Raises:
            MethodNotEnabledError: If the user has no such enabled method.
            DisableNotAllowedError: If policy forbids the disable.
        """
        repository = self._repository(context)
        async with self._critical_section(context):
            method = await self._require_method(repository, context, method_id)
            if not method.is_enabled:
                raise MethodNotEnabledError(
                    "This two-factor method is not enabled",
                    method_type=method.method_type,
                )

            methods = await repository.get_methods(context.user_id)
            remaining = [m for m in methods if m.is_enabled and m.id != method.id]
            self._check_disable_allowed(
                context, remaining_enabled=len(remaining), administrative=administrative
            )

            with TwoFactorMetrics.operation("disable", method=method.method_type.value):
                await repository.update_method_status(method.id, False)
                if not remaining:
                    await repository.update_user_aggregate_flag(context.user_id, False)
                await self._teardown(context, method)
                await repository.append_audit_log(
                    status_change_event(
                        context,
                        TwoFactorAction.DISABLE,
                        method,
                        administrative=administrative,
                        metadata={"was_primary": method.is_primary},
                        clock=self._clock,
                    )
                )

        logger.info(
            "Two-factor method disabled",
            extra={
                "method_id": method.id,
                "administrative": administrative,
                "remaining_enabled": len(remaining),
            },
        )

    async def remove_method(
        self,
        context: TwoFactorContext,
        method_id: str,
        *,
        administrative: bool = False,
    ) -> None:
        """Delete a method, pending or enabled.

        Deleting an enabled method is subject to the same policy as
        disabling it.

        Raises:
            MethodNotEnabledError: If the user has no such method.
            DisableNotAllowedError: If policy forbids removing it.
        """
        repository = self._repository(context)
        async with self._critical_section(context):
            method = await self._require_method(repository, context, method_id)
            methods = await repository.get_methods(context.user_id)
            remaining = [m for m in methods if m.is_enabled and m.id != method.id]
            if method.is_enabled:
                self._check_disable_allowed(
                    context,
                    remaining_enabled=len(remaining),
                    administrative=administrative,
                )

            await repository.delete_method(method.id)
            if method.is_enabled and not remaining:
                await repository.update_user_aggregate_flag(context.user_id, False)
            await self._teardown(context, method)
            await repository.append_audit_log(
                status_change_event(
                    context,
                    TwoFactorAction.DELETE,
                    method,
                    administrative=administrative,
                    metadata={"was_enabled": method.is_enabled},
                    clock=self._clock,
                )
            )
        logger.info("Two-factor method removed", extra={"method_id": method.id})

    async def _teardown(self, context: TwoFactorContext, method: TwoFactorMethod) -> None:
        if self.registry.is_method_supported(method.method_type):
            provider = self.registry.get_provider(method.method_type)
            await provider.disable(context.user_id, method.id)

    async def set_primary_method(
        self, context: TwoFactorContext, method_id: str
    ) -> TwoFactorMethodSummary:
        """Designate an enabled method as primary.

        Raises:
            MethodNotEnabledError: If the method does not exist or is disabled.
        """
        repository = self._repository(context)
        async with self._critical_section(context):
            method = await self._require_method(repository, context, method_id)
            if not method.is_enabled:
                raise MethodNotEnabledError(
                    "Only an enabled method can be primary",
                    method_type=method.method_type,
                )
            await repository.set_primary_method(context.user_id, method.id)
            updated = await self._require_method(repository, context, method.id)
        logger.info("Primary two-factor method changed", extra={"method_id": method.id})
        return TwoFactorMethodSummary.from_method(updated)

    # ── status ───────────────────────────────────────────────────

    async def get_status(self, context: TwoFactorContext) -> TwoFactorStatus:
        """Summarize the user's two-factor state. Never exposes secrets."""
        record = await self._repository(context).get_user(context.user_id)
        enabled = [m for m in record.methods if m.is_enabled]
        primary = next((m for m in enabled if m.is_primary), None)

        last_used = [m.last_used_at for m in record.methods if m.last_used_at]
        if record.backup_codes is not None and record.backup_codes.last_used_at:
            last_used.append(record.backup_codes.last_used_at)

        required = self.is_required_for(context)
        can_disable = self.config.policy.allow_disable_by_user and (
            not required or len(enabled) > 1
        )

        return TwoFactorStatus(
            is_enabled=record.two_factor_enabled,
            has_enabled_methods=bool(enabled),
            has_backup_codes=(
                record.backup_codes is not None
                and record.backup_codes.remaining_count > 0
            ),
            available_methods=self.registry.get_available_methods(),
            enabled_methods=[TwoFactorMethodSummary.from_method(m) for m in enabled],
            primary_method=(
                TwoFactorMethodSummary.from_method(primary) if primary else None
            ),
            can_disable=can_disable,
            last_verified_at=max(last_used) if last_used else None,
        )

    # ── backup codes ─────────────────────────────────────────────

    async def generate_backup_codes(
        self, context: TwoFactorContext
    ) -> BackupCodesResponse:
        """Generate a new batch, replacing any existing one.

        The plaintext codes in the response are never stored.
        """
        repository = self._repository(context)
        async with self._critical_section(context):
            generated = self.backup_codes.generate()
            await repository.update_backup_codes(context.user_id, generated.data)
            await repository.append_audit_log(
                build_audit_entry(
                    context,
                    TwoFactorAction.SETUP,
                    success=True,
                    method_type=BACKUP_CODES_METHOD,
                    metadata={"count": len(generated.plain_codes)},
                    clock=self._clock,
                )
            )
        TwoFactorMetrics.record("setup", method=BACKUP_CODES_METHOD)
        logger.info("Backup codes generated", extra={"realm": context.realm.value})
        return BackupCodesResponse(
            codes=generated.plain_codes,
            instructions=self.backup_codes.get_instructions(),
            generated_at=generated.data.generated_at,
        )

    async def verify_backup_code(
        self, context: TwoFactorContext, code: str
    ) -> BackupCodeVerificationResult:
        """Consume a backup code.

        Compare-and-append runs inside the user's critical section, so a
        code can succeed only once even under concurrent requests.

        Raises:
            BackupCodesNotConfiguredError: If the user has no backup codes.
            RateLimitedError: If backup code verification is locked out.
            AccountLockedError: If repeated lockouts locked the account.
        """
        repository = self._repository(context)
        async with self._critical_section(context):
            record = await repository.get_user(context.user_id)
            data = record.backup_codes
            if data is None:
                raise BackupCodesNotConfiguredError()

            if not self.backup_codes.is_well_formed(code):
                return BackupCodeVerificationResult(
                    is_valid=False,
                    remaining_codes=data.remaining_count,
                    message="Invalid backup code format",
                    outcome=BackupCodeOutcome.BACKUP_CODE_INVALID,
                    should_regenerate=self.backup_codes.should_regenerate(data),
                )

            key = attempt_key(context, BACKUP_CODES_METHOD)
            account_key = account_lock_key(context)
            try:
                await self.rate_limiter.check(key, account_key=account_key)
            except (RateLimitedError, AccountLockedError) as e:
                await repository.append_audit_log(
                    verification_event(
                        context,
                        success=False,
                        method_type=BACKUP_CODES_METHOD,
                        reason=e.code.value,
                        clock=self._clock,
                    )
                )
                raise

            result = self.backup_codes.verify(code, data)
            if result.is_valid and result.data is not None:
                await repository.update_backup_codes(context.user_id, result.data)
                await self.rate_limiter.record_success(key)
                await repository.append_audit_log(
                    verification_event(
                        context,
                        success=True,
                        method_type=BACKUP_CODES_METHOD,
                        metadata={"remaining_codes": result.remaining_codes},
                        clock=self._clock,
                    )
                )
                TwoFactorMetrics.record("verify", method=BACKUP_CODES_METHOD)
                logger.info(
                    "Backup code consumed",
                    extra={"remaining_codes": result.remaining_codes},
                )
                return result

            outcome = await self.rate_limiter.record_failure(
                key, account_key=account_key
            )
            await repository.append_audit_log(
                verification_event(
                    context,
                    success=False,
                    method_type=BACKUP_CODES_METHOD,
                    reason=result.outcome.value,
                    metadata={"remaining_attempts": outcome.remaining_attempts},
                    clock=self._clock,
                )
            )
            TwoFactorMetrics.record(
                "verify", method=BACKUP_CODES_METHOD, result="failure"
            )
            logger.warning(
                "Backup code rejected",
                extra={
                    "outcome": result.outcome.value,
                    "remaining_attempts": outcome.remaining_attempts,
                },
            )
            return result.model_copy(
                update={
                    "remaining_attempts": outcome.remaining_attempts,
                    "lockout_until": outcome.locked_until,
                }
            )

    async def get_backup_codes_status(
        self, context: TwoFactorContext
    ) -> BackupCodesStatus:
        record = await self._repository(context).get_user(context.user_id)
        data = record.backup_codes
        if data is None:
            return BackupCodesStatus(has_backup_codes=False, remaining_codes=0)
        return BackupCodesStatus(
            has_backup_codes=data.remaining_count > 0,
            remaining_codes=data.remaining_count,
            generated_at=data.generated_at,
            last_used_at=data.last_used_at,
            should_regenerate=self.backup_codes.should_regenerate(data),
        )


__all__: list[str] = ["TwoFactorAuthService"]
