"""Failed-verification throttling.

Failures are counted per (user, method) within a rolling window. Reaching
``max_attempts`` locks the pair out for ``lockout_seconds``. Repeated
lockouts without an intervening success escalate to an account lock. It is
recorded under the user's account key, so every factor and backup codes
are refused until an administrator clears it.

The limiter itself holds no locks. The orchestration service calls it from
inside the per-user critical section, so check, verify, record and audit
for one attempt form a single unit.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .exceptions import AccountLockedError, RateLimitedError
from .models import utc_now

if TYPE_CHECKING:
    from .config import RateLimitConfig
    from .models import MethodType, TwoFactorContext

logger = logging.getLogger("twofactor.rate_limit")

ACCOUNT_SCOPE = "ACCOUNT"


@dataclass(frozen=True)
class AttemptState:
    """Throttling state for one (user, method) pair.

    Attributes:
        failures: Timestamps of recent failed attempts.
        locked_until: End of the current lockout, if any.
        lockout_count: Consecutive lockouts since the last success.
        account_locked: Whether the pair escalated to an account lock.
    """

    failures: tuple[datetime, ...] = ()
    locked_until: datetime | None = None
    lockout_count: int = 0
    account_locked: bool = False


@dataclass(frozen=True)
class FailureOutcome:
    """Result of recording a failed attempt."""

    remaining_attempts: int
    locked_until: datetime | None = None
    account_locked: bool = False


@runtime_checkable
class IVerificationAttemptStore(Protocol):
    """Protocol for attempt-state storage.

    Implementations should use Redis or a database table for distributed
    systems; values must survive across requests.
    """

    async def get(self, key: str) -> AttemptState | None:
        """Load the state for a key, or None if nothing is recorded."""
        ...

    async def save(self, key: str, state: AttemptState) -> None:
        """Persist the state for a key."""
        ...

    async def delete(self, key: str) -> None:
        """Forget a key."""
        ...


class InMemoryVerificationAttemptStore(IVerificationAttemptStore):
    """In-memory attempt store for TESTING and single-process use."""

    def __init__(self) -> None:
        self._states: dict[str, AttemptState] = {}

    async def get(self, key: str) -> AttemptState | None:
        return self._states.get(key)

    async def save(self, key: str, state: AttemptState) -> None:
        self._states[key] = state

    async def delete(self, key: str) -> None:
        self._states.pop(key, None)


def attempt_key(context: TwoFactorContext, method: str | MethodType) -> str:
    """Realm-qualified key for a (user, method) pair."""
    return f"{context.scope}:{getattr(method, 'value', method)}"


def account_lock_key(context: TwoFactorContext) -> str:
    """Realm-qualified key holding the user's account lock."""
    return f"{context.scope}:{ACCOUNT_SCOPE}"


@dataclass
class VerificationRateLimiter:
    """Rolling-window failure counter with lockout and escalation.

    Example:
        ```python
        limiter = VerificationRateLimiter(InMemoryVerificationAttemptStore(), config)

        account = account_lock_key(context)
        await limiter.check(key, account_key=account)  # raises when locked
        if not code_ok:
            outcome = await limiter.record_failure(key, account_key=account)
        else:
            await limiter.record_success(key)
        ```
    """

    store: IVerificationAttemptStore
    config: RateLimitConfig
    clock: Callable[[], datetime] = field(default=utc_now)

    async def _load(self, key: str) -> AttemptState:
        state = await self.store.get(key) or AttemptState()
        now = self.clock()
        window_start = now - timedelta(seconds=self.config.window_seconds)
        failures = tuple(ts for ts in state.failures if ts > window_start)
        if state.locked_until is not None and state.locked_until <= now:
            # Lockout elapsed: start a fresh window
            return replace(state, failures=(), locked_until=None)
        return replace(state, failures=failures)

    async def check(
        self,
        key: str,
        *,
        account_key: str | None = None,
        method_type: MethodType | None = None,
    ) -> None:
        """Refuse the attempt if the pair or the account is locked.

        Raises:
            AccountLockedError: The account, or the pair itself, escalated
                to an account lock.
            RateLimitedError: The pair is inside a lockout window.
        """
        if account_key is not None:
            account = await self.store.get(account_key)
            if account is not None and account.account_locked:
                raise AccountLockedError(method_type=method_type)
        state = await self._load(key)
        if state.account_locked:
            raise AccountLockedError(method_type=method_type)
        if state.locked_until is not None:
            raise RateLimitedError(
                method_type=method_type, retry_after=state.locked_until
            )

    async def remaining_attempts(self, key: str) -> int:
        state = await self._load(key)
        return max(self.config.max_attempts - len(state.failures), 0)

    async def record_failure(
        self, key: str, *, account_key: str | None = None
    ) -> FailureOutcome:
        """Record a failed attempt, locking out when the budget is spent.

        On escalation the lock is also written under ``account_key`` so it
        covers every pair of the same user.
        """
        now = self.clock()
        state = await self._load(key)
        failures = (*state.failures, now)
        remaining = max(self.config.max_attempts - len(failures), 0)

        if remaining > 0:
            await self.store.save(key, replace(state, failures=failures))
            return FailureOutcome(remaining_attempts=remaining)

        locked_until = now + timedelta(seconds=self.config.lockout_seconds)
        lockout_count = state.lockout_count + 1
        account_locked = lockout_count >= self.config.max_lockouts
        await self.store.save(
            key,
            AttemptState(
                failures=failures,
                locked_until=locked_until,
                lockout_count=lockout_count,
                account_locked=account_locked,
            ),
        )
        if account_locked and account_key is not None:
            await self.store.save(account_key, AttemptState(account_locked=True))
        logger.warning(
            "Two-factor verification locked out",
            extra={
                "lockout_count": lockout_count,
                "account_locked": account_locked,
                "locked_until": locked_until.isoformat(),
            },
        )
        return FailureOutcome(
            remaining_attempts=0,
            locked_until=locked_until,
            account_locked=account_locked,
        )

    async def record_success(self, key: str) -> None:
        """Clear failures and the consecutive lockout counter."""
        await self.store.delete(key)

    async def reset(self, key: str) -> None:
        """Administrative reset, also clearing an account lock."""
        await self.store.delete(key)


__all__: list[str] = [
    "AttemptState",
    "FailureOutcome",
    "IVerificationAttemptStore",
    "InMemoryVerificationAttemptStore",
    "VerificationRateLimiter",
    "account_lock_key",
    "attempt_key",
]
