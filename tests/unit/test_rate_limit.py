"""Tests for failed-verification throttling."""

from __future__ import annotations

import pytest

from twofactor_core.config import RateLimitConfig
from twofactor_core.exceptions import AccountLockedError, RateLimitedError
from twofactor_core.models import MethodType, TwoFactorContext
from twofactor_core.rate_limit import (
    InMemoryVerificationAttemptStore,
    VerificationRateLimiter,
    account_lock_key,
    attempt_key,
)

KEY = "tenant:acme:user-123:TOTP"


@pytest.fixture
def limiter(clock) -> VerificationRateLimiter:
    return VerificationRateLimiter(
        store=InMemoryVerificationAttemptStore(),
        config=RateLimitConfig(),
        clock=clock,
    )


class TestVerificationRateLimiter:
    """Test the rolling-window limiter."""

    @pytest.mark.asyncio
    async def test_counts_down_remaining_attempts(
        self, limiter: VerificationRateLimiter
    ) -> None:
        """Test each failure consumes one attempt."""
        first = await limiter.record_failure(KEY)
        second = await limiter.record_failure(KEY)

        assert first.remaining_attempts == 2
        assert second.remaining_attempts == 1
        assert second.locked_until is None
        await limiter.check(KEY)

    @pytest.mark.asyncio
    async def test_lockout_after_max_attempts(
        self, limiter: VerificationRateLimiter, clock
    ) -> None:
        """Test the third failure locks the pair for the lockout period."""
        for _ in range(2):
            await limiter.record_failure(KEY)
        outcome = await limiter.record_failure(KEY)

        assert outcome.remaining_attempts == 0
        assert outcome.locked_until is not None
        assert (outcome.locked_until - clock.now).total_seconds() == 900

        with pytest.raises(RateLimitedError) as exc_info:
            await limiter.check(KEY, method_type=MethodType.TOTP)
        assert exc_info.value.retry_after == outcome.locked_until
        assert exc_info.value.method_type is MethodType.TOTP

    @pytest.mark.asyncio
    async def test_lockout_expires(self, limiter: VerificationRateLimiter, clock) -> None:
        """Test the lockout lifts after the lockout period with a fresh budget."""
        for _ in range(3):
            await limiter.record_failure(KEY)

        clock.advance(899)
        with pytest.raises(RateLimitedError):
            await limiter.check(KEY)

        clock.advance(2)
        await limiter.check(KEY)
        assert await limiter.remaining_attempts(KEY) == 3

    @pytest.mark.asyncio
    async def test_rolling_window_prunes_old_failures(
        self, limiter: VerificationRateLimiter, clock
    ) -> None:
        """Test failures older than the window no longer count."""
        await limiter.record_failure(KEY)
        await limiter.record_failure(KEY)

        clock.advance(901)
        outcome = await limiter.record_failure(KEY)

        assert outcome.remaining_attempts == 2
        assert outcome.locked_until is None

    @pytest.mark.asyncio
    async def test_success_clears_failures(self, limiter: VerificationRateLimiter) -> None:
        """Test a success resets the counter."""
        await limiter.record_failure(KEY)
        await limiter.record_failure(KEY)
        await limiter.record_success(KEY)

        assert await limiter.remaining_attempts(KEY) == 3

    @pytest.mark.asyncio
    async def test_escalation_to_account_lock(self, clock) -> None:
        """Test repeated lockouts escalate to a lock that does not expire."""
        limiter = VerificationRateLimiter(
            store=InMemoryVerificationAttemptStore(),
            config=RateLimitConfig(max_attempts=1, max_lockouts=2),
            clock=clock,
        )

        first = await limiter.record_failure(KEY)
        assert not first.account_locked
        clock.advance(901)

        second = await limiter.record_failure(KEY)
        assert second.account_locked

        clock.advance(10_000)
        with pytest.raises(AccountLockedError):
            await limiter.check(KEY)

        await limiter.reset(KEY)
        await limiter.check(KEY)

    @pytest.mark.asyncio
    async def test_account_lock_applies_to_every_key(self, clock) -> None:
        """Test escalation on one pair locks other pairs sharing the account key."""
        limiter = VerificationRateLimiter(
            store=InMemoryVerificationAttemptStore(),
            config=RateLimitConfig(max_attempts=1, max_lockouts=1),
            clock=clock,
        )
        account = "tenant:acme:user-123:ACCOUNT"

        outcome = await limiter.record_failure(KEY, account_key=account)
        assert outcome.account_locked

        with pytest.raises(AccountLockedError):
            await limiter.check("tenant:acme:user-123:BACKUP_CODES", account_key=account)
        # Without the account key only the escalated pair is locked
        await limiter.check("tenant:acme:user-123:SMS")

        await limiter.reset(account)
        await limiter.check("tenant:acme:user-123:BACKUP_CODES", account_key=account)

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, limiter: VerificationRateLimiter) -> None:
        """Test throttling one pair leaves another untouched."""
        for _ in range(3):
            await limiter.record_failure(KEY)

        await limiter.check("tenant:acme:user-123:SMS")


class TestAttemptKey:
    """Test realm-qualified keys."""

    def test_keys_differ_across_realms(self) -> None:
        """Test the same user id in two realms yields distinct keys."""
        platform = TwoFactorContext.platform("user-123")
        tenant = TwoFactorContext.tenant("acme", "user-123")

        assert attempt_key(platform, MethodType.TOTP) == "platform:user-123:TOTP"
        assert attempt_key(tenant, MethodType.TOTP) == "tenant:acme:user-123:TOTP"
        assert attempt_key(tenant, "BACKUP_CODES") == "tenant:acme:user-123:BACKUP_CODES"
        assert account_lock_key(tenant) == "tenant:acme:user-123:ACCOUNT"
        assert account_lock_key(platform) != account_lock_key(tenant)
