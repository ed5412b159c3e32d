"""InMemoryLockStrategy: single-process implementation of ILockStrategy."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from ..exceptions import ConcurrencyError
from .ports import ILockStrategy

if TYPE_CHECKING:
    from .resources import ResourceIdentifier

logger = logging.getLogger("twofactor.locking")


@dataclass
class _FIFOLock:
    """
    FIFO lock that serves waiters in arrival order.

    Queue size is bounded to prevent unbounded memory growth.
    """

    token: str = ""
    locked: bool = False
    waiters: deque[asyncio.Future[None]] = field(default_factory=deque)
    max_queue_size: int = 100


class InMemoryLockStrategy(ILockStrategy):
    """
    In-memory implementation of ILockStrategy with FIFO queuing.

    Features:
    - FIFO lock ordering (prevents starvation)
    - Bounded wait queue per resource
    - Useful for testing and single-process applications
    """

    def __init__(self, *, max_queue_size: int = 100) -> None:
        self._locks: dict[tuple[str, str], _FIFOLock] = {}
        self._max_queue_size = max_queue_size

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,  # noqa: ARG002
    ) -> str:
        key = (resource.resource_type, resource.resource_id)
        state = self._locks.get(key)
        if state is None:
            state = _FIFOLock(max_queue_size=self._max_queue_size)
            self._locks[key] = state

        if not state.locked:
            state.locked = True
            state.token = str(uuid4())
            logger.debug("Lock acquired immediately: %s", resource)
            return state.token

        if len(state.waiters) >= state.max_queue_size:
            raise ConcurrencyError(
                f"Lock queue full ({len(state.waiters)}/{state.max_queue_size}). "
                "Too many concurrent requests - apply backpressure."
            )

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        state.waiters.append(waiter)
        logger.debug(
            "Waiting for %s at queue position %d", resource, len(state.waiters)
        )

        try:
            await asyncio.wait_for(waiter, timeout=timeout)
        except asyncio.TimeoutError as err:
            if waiter in state.waiters:
                state.waiters.remove(waiter)
            elif waiter.done() and not waiter.cancelled():
                # Ownership was handed over just as we timed out
                self._hand_over(key, state)
            logger.warning("Lock acquisition timed out after %.1fs", timeout)
            raise ConcurrencyError(f"Lock acquisition timeout after {timeout}s") from err

        state.token = str(uuid4())
        logger.debug("Lock acquired from queue: %s", resource)
        return state.token

    async def release(
        self,
        resource: ResourceIdentifier,
        token: str,
    ) -> None:
        key = (resource.resource_type, resource.resource_id)
        state = self._locks.get(key)
        if state is None or not state.locked or state.token != token:
            logger.warning("Attempted to release invalid or expired lock: %s", key)
            return
        self._hand_over(key, state)

    def _hand_over(self, key: tuple[str, str], state: _FIFOLock) -> None:
        """Pass ownership to the next live waiter, or free the lock."""
        state.token = ""
        while state.waiters:
            waiter = state.waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        state.locked = False
        self._locks.pop(key, None)
        logger.debug("Lock released: %s", key)

    async def health_check(self) -> bool:
        """Always healthy: there is no external dependency that could fail."""
        return True

    def is_locked(self, resource: ResourceIdentifier) -> bool:
        """Whether a resource is currently held."""
        state = self._locks.get((resource.resource_type, resource.resource_id))
        return state is not None and state.locked


__all__: list[str] = ["InMemoryLockStrategy"]
