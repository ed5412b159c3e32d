"""Critical section helper around an ILockStrategy."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from ..exceptions import ConcurrencyError, LockAcquisitionError

if TYPE_CHECKING:
    from .ports import ILockStrategy
    from .resources import ResourceIdentifier

logger = logging.getLogger("twofactor.locking")


class CriticalSection:
    """
    Async context manager that holds a lock on one resource.

    Usage:
        ```python
        async with CriticalSection(ResourceIdentifier.for_user(ctx), locks):
            # No other request for this user runs here
            await consume_backup_code()
        ```
    """

    def __init__(
        self,
        resource: ResourceIdentifier,
        lock_strategy: ILockStrategy,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,
    ) -> None:
        self._resource = resource
        self._lock_strategy = lock_strategy
        self._timeout = timeout
        self._ttl = ttl
        self._token: str | None = None

    async def __aenter__(self) -> CriticalSection:
        """
        Acquire the lock.

        Raises:
            LockAcquisitionError: If the lock cannot be acquired.
        """
        start = time.monotonic()
        try:
            self._token = await self._lock_strategy.acquire(
                self._resource, timeout=self._timeout, ttl=self._ttl
            )
        except LockAcquisitionError:
            raise
        except ConcurrencyError as exc:
            raise LockAcquisitionError(
                self._resource, self._timeout, reason=str(exc)
            ) from exc

        logger.debug(
            "Lock acquired",
            extra={
                "resource_type": self._resource.resource_type,
                "duration_ms": (time.monotonic() - start) * 1000,
            },
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Release the lock."""
        if self._token is not None:
            token, self._token = self._token, None
            await self._lock_strategy.release(self._resource, token)


__all__: list[str] = ["CriticalSection"]
