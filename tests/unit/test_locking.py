"""Tests for per-user critical sections."""

from __future__ import annotations

import asyncio

import pytest

from twofactor_core.exceptions import ConcurrencyError, LockAcquisitionError
from twofactor_core.locking import (
    CriticalSection,
    ILockStrategy,
    InMemoryLockStrategy,
    ResourceIdentifier,
)
from twofactor_core.models import TwoFactorContext

RESOURCE = ResourceIdentifier("TwoFactorUser", "platform:user-123")


class TestInMemoryLockStrategy:
    """Test the in-memory lock strategy."""

    @pytest.mark.asyncio
    async def test_acquire_and_release(self) -> None:
        """Test a lock can be acquired, released and acquired again."""
        locks = InMemoryLockStrategy()
        token = await locks.acquire(RESOURCE)

        assert locks.is_locked(RESOURCE)
        await locks.release(RESOURCE, token)
        assert not locks.is_locked(RESOURCE)

        token = await locks.acquire(RESOURCE, timeout=0.1)
        await locks.release(RESOURCE, token)

    @pytest.mark.asyncio
    async def test_timeout_raises(self) -> None:
        """Test waiting past the timeout raises ConcurrencyError."""
        locks = InMemoryLockStrategy()
        await locks.acquire(RESOURCE)

        with pytest.raises(ConcurrencyError):
            await locks.acquire(RESOURCE, timeout=0.05)

    @pytest.mark.asyncio
    async def test_release_with_wrong_token_is_ignored(self) -> None:
        """Test only the holder can release."""
        locks = InMemoryLockStrategy()
        await locks.acquire(RESOURCE)

        await locks.release(RESOURCE, "not-the-token")
        assert locks.is_locked(RESOURCE)

    @pytest.mark.asyncio
    async def test_fifo_order(self) -> None:
        """Test waiters are served in arrival order."""
        locks = InMemoryLockStrategy()
        order: list[int] = []
        token = await locks.acquire(RESOURCE)

        async def worker(n: int) -> None:
            t = await locks.acquire(RESOURCE, timeout=1.0)
            order.append(n)
            await locks.release(RESOURCE, t)

        tasks = [asyncio.create_task(worker(n)) for n in range(3)]
        await asyncio.sleep(0.01)
        await locks.release(RESOURCE, token)
        await asyncio.gather(*tasks)

        assert order == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_queue_bound(self) -> None:
        """Test a full wait queue applies backpressure."""
        locks = InMemoryLockStrategy(max_queue_size=1)
        await locks.acquire(RESOURCE)
        waiter = asyncio.create_task(locks.acquire(RESOURCE, timeout=1.0))
        await asyncio.sleep(0.01)

        with pytest.raises(ConcurrencyError, match="queue full"):
            await locks.acquire(RESOURCE, timeout=1.0)

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

    @pytest.mark.asyncio
    async def test_health_and_protocol(self) -> None:
        locks = InMemoryLockStrategy()
        assert isinstance(locks, ILockStrategy)
        assert await locks.health_check()


class TestCriticalSection:
    """Test the critical section context manager."""

    @pytest.mark.asyncio
    async def test_mutual_exclusion(self) -> None:
        """Test two sections for one user never overlap."""
        locks = InMemoryLockStrategy()
        active = 0
        peak = 0

        async def critical() -> None:
            nonlocal active, peak
            async with CriticalSection(RESOURCE, locks):
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(*(critical() for _ in range(5)))

        assert peak == 1
        assert not locks.is_locked(RESOURCE)

    @pytest.mark.asyncio
    async def test_different_users_do_not_block(self) -> None:
        """Test sections for distinct users run concurrently."""
        locks = InMemoryLockStrategy()
        other = ResourceIdentifier("TwoFactorUser", "platform:user-456")

        async with CriticalSection(RESOURCE, locks):
            async with CriticalSection(other, locks, timeout=0.05):
                assert locks.is_locked(other)

    @pytest.mark.asyncio
    async def test_timeout_raises_lock_acquisition_error(self) -> None:
        """Test a contended section surfaces LockAcquisitionError."""
        locks = InMemoryLockStrategy()

        async with CriticalSection(RESOURCE, locks):
            with pytest.raises(LockAcquisitionError) as exc_info:
                async with CriticalSection(RESOURCE, locks, timeout=0.05):
                    pass

        assert exc_info.value.resource == RESOURCE
        assert exc_info.value.timeout == 0.05

    @pytest.mark.asyncio
    async def test_released_on_exception(self) -> None:
        """Test the lock is released when the body raises."""
        locks = InMemoryLockStrategy()

        with pytest.raises(RuntimeError):
            async with CriticalSection(RESOURCE, locks):
                raise RuntimeError("boom")

        assert not locks.is_locked(RESOURCE)


class TestResourceIdentifier:
    """Test resource identifiers."""

    def test_for_user_is_realm_scoped(self) -> None:
        """Test the same user id in two realms maps to distinct resources."""
        platform = ResourceIdentifier.for_user(TwoFactorContext.platform("u1"))
        tenant = ResourceIdentifier.for_user(TwoFactorContext.tenant("acme", "u1"))

        assert platform != tenant
        assert str(tenant) == "TwoFactorUser:tenant:acme:u1"

    def test_sorting(self) -> None:
        a = ResourceIdentifier("TwoFactorUser", "a")
        b = ResourceIdentifier("TwoFactorUser", "b")
        assert sorted([b, a]) == [a, b]
