"""
Concurrency control infrastructure for the character session cache.

Provides per-owner locking so that every cache operation touching one player's
character (load, save, mutation, unload) runs strictly one at a time, while
operations on different players proceed independently.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Dict, Set, Any, AsyncGenerator
from dataclasses import dataclass
from enum import Enum

from prometheus_client import Histogram, Gauge, Counter

from mmo_server.src.core.logging_config import get_logger
from mmo_server.src.core.metrics import REGISTRY

logger = get_logger(__name__)

# Metrics
OWNER_LOCK_WAIT_TIME = Histogram(
    "mmo_owner_lock_wait_seconds",
    "Time spent waiting to acquire per-owner locks",
    registry=REGISTRY,
)
OWNER_LOCK_HOLD_TIME = Histogram(
    "mmo_owner_lock_hold_seconds",
    "Time per-owner locks are held",
    registry=REGISTRY,
)
ACTIVE_OWNER_LOCKS = Gauge(
    "mmo_active_owner_locks",
    "Number of currently held per-owner locks",
    registry=REGISTRY,
)
LOCK_CONTENTIONS = Counter(
    "mmo_lock_contentions_total",
    "Number of times lock acquisition was delayed due to contention",
    registry=REGISTRY,
)


class LockType(Enum):
    """Types of locks for categorizing operations."""
    LOAD = "load"
    SAVE = "save"
    POSITION = "position"
    HEALTH = "health"
    UNLOAD = "unload"


@dataclass(eq=False)
class LockAcquisitionContext:
    """Context information for lock acquisition."""
    owner_id: str
    lock_type: LockType
    operation_name: str
    acquired_at: float = 0.0
    wait_time: float = 0.0


class OwnerLockManager:
    """
    Manages per-owner locks to serialize character operations for one player.

    A save that starts after another save or load for the same owner has
    completed always observes that call's effects.
    """

    def __init__(self):
        self._owner_locks: Dict[str, asyncio.Lock] = {}
        self._lock_creation_lock = asyncio.Lock()
        self._active_contexts: Dict[str, Set[LockAcquisitionContext]] = {}
        # Holders plus waiters per owner; a lock is only removable at zero
        self._lock_users: Dict[str, int] = {}

    async def _get_or_create_owner_lock(self, owner_id: str) -> asyncio.Lock:
        """Get existing lock or create new one for owner, registering the caller as a user."""
        if owner_id not in self._owner_locks:
            async with self._lock_creation_lock:
                # Double-check pattern
                if owner_id not in self._owner_locks:
                    self._owner_locks[owner_id] = asyncio.Lock()
                    logger.debug("Created new owner lock", extra={"owner_id": owner_id})

        self._lock_users[owner_id] = self._lock_users.get(owner_id, 0) + 1
        return self._owner_locks[owner_id]

    def _release_user(self, owner_id: str) -> None:
        remaining = self._lock_users.get(owner_id, 0) - 1
        if remaining > 0:
            self._lock_users[owner_id] = remaining
        else:
            self._lock_users.pop(owner_id, None)

    @asynccontextmanager
    async def acquire_owner_lock(
        self, owner_id: str, lock_type: LockType, operation_name: str
    ) -> AsyncGenerator[LockAcquisitionContext, None]:
        """
        Acquire the lock for a specific owner with monitoring.

        Args:
            owner_id: The player whose character is being touched
            lock_type: Type of operation requiring lock
            operation_name: Descriptive name for monitoring
        """
        context = LockAcquisitionContext(
            owner_id=owner_id, lock_type=lock_type, operation_name=operation_name
        )

        start_time = time.monotonic()
        lock = await self._get_or_create_owner_lock(owner_id)

        try:
            await lock.acquire()
        except BaseException:
            self._release_user(owner_id)
            raise

        try:
            context.acquired_at = time.monotonic()
            context.wait_time = context.acquired_at - start_time

            OWNER_LOCK_WAIT_TIME.observe(context.wait_time)
            ACTIVE_OWNER_LOCKS.inc()
            if context.wait_time > 0.001:  # 1ms threshold
                LOCK_CONTENTIONS.inc()

            self._active_contexts.setdefault(owner_id, set()).add(context)

            yield context
        finally:
            OWNER_LOCK_HOLD_TIME.observe(time.monotonic() - context.acquired_at)
            ACTIVE_OWNER_LOCKS.dec()
            self._active_contexts.get(owner_id, set()).discard(context)
            lock.release()
            self._release_user(owner_id)

    def is_locked(self, owner_id: str) -> bool:
        lock = self._owner_locks.get(owner_id)
        return lock is not None and lock.locked()

    def get_lock_stats(self) -> Dict[str, Any]:
        """Get current lock statistics for monitoring."""
        return {
            "total_owner_locks": len(self._owner_locks),
            "active_contexts": sum(len(c) for c in self._active_contexts.values()),
            "owners_with_active_locks": len(
                [oid for oid, contexts in self._active_contexts.items() if contexts]
            ),
        }

    async def cleanup_owner_lock(self, owner_id: str) -> bool:
        """
        Drop lock resources for an owner whose character left the cache.

        Only removes the lock when nobody holds it or is queued on it.

        Returns:
            True if the lock was removed, False if it was in use or absent
        """
        async with self._lock_creation_lock:
            lock = self._owner_locks.get(owner_id)
            if lock is None:
                return False

            if lock.locked() or self._lock_users.get(owner_id, 0) > 0:
                logger.debug(
                    "Owner lock still in use, keeping it", extra={"owner_id": owner_id}
                )
                return False

            del self._owner_locks[owner_id]
            self._active_contexts.pop(owner_id, None)

            logger.debug("Owner lock cleaned up", extra={"owner_id": owner_id})
            return True
