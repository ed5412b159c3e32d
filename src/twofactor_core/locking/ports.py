"""ILockStrategy: protocol for per-user serialization.

Verify, enable, disable and backup-code consumption for one user must not
interleave. Single-process deployments use :class:`InMemoryLockStrategy`;
multi-process deployments plug in a distributed implementation (Redis,
``SELECT ... FOR UPDATE``) behind the same protocol.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .resources import ResourceIdentifier


@runtime_checkable
class ILockStrategy(Protocol):
    """Lock strategy protocol for pessimistic concurrency control."""

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,
    ) -> str:
        """
        Acquire a lock for the given resource.

        Args:
            resource: The resource to lock.
            timeout: Maximum time to wait for the lock.
            ttl: Time-to-live for the lock (seconds). Lock auto-expires to prevent
                orphaned locks if the process crashes.

        Returns:
            A unique lock token required for release.

        Raises:
            ConcurrencyError: If the lock cannot be acquired within the timeout.
        """
        ...

    async def release(
        self,
        resource: ResourceIdentifier,
        token: str,
    ) -> None:
        """
        Release a previously acquired lock.

        Args:
            resource: The resource that was locked.
            token: The token returned by :meth:`acquire`.
        """
        ...

    async def health_check(self) -> bool:
        """
        Verify that the lock service is responsive and healthy.

        Returns:
            True if the lock service is healthy and responsive, False otherwise.
        """
        ...


__all__: list[str] = ["ILockStrategy"]
