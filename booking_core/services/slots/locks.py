# booking_core/services/slots/locks.py
"""
Per-(professional, date) mutual exclusion for reservation commits.

Key format: booking_lock:{professional_id}:{date}

LocalKeyedLock: threading locks, valid when one process owns the store.
RedisKeyedLock: Redis lock with a lease, valid across processes.

Only commits take these locks; availability reads never do. hold() yields a
lease whose owned() a commit checks right before writing.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date
from functools import lru_cache
from typing import ContextManager, Iterator, Protocol

from redis import Redis
from redis.exceptions import LockError, RedisError

from ...config import settings
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

KEY_PREFIX = "booking_lock"


def lock_key(resource_id: int, target_date: date) -> str:
    return f"{KEY_PREFIX}:{resource_id}:{target_date.isoformat()}"


class Lease(Protocol):
    """Handle yielded by hold(); owned() is False once the key was lost."""

    def owned(self) -> bool:
        ...


class KeyedLock(Protocol):
    def hold(self, key: str) -> ContextManager[Lease]:
        ...


class LocalLease:
    """A threading.Lock has no lease: held until released."""

    def owned(self) -> bool:
        return True


class RedisLease:
    def __init__(self, lock, key: str):
        self._lock = lock
        self.key = key

    def owned(self) -> bool:
        try:
            return bool(self._lock.owned())
        except RedisError as e:
            logger.warning(f"Cannot confirm ownership of lock {self.key}: {e}")
            return False


class LocalKeyedLock:
    """One threading.Lock per key, dropped when no thread needs it."""

    def __init__(self, wait_seconds: float | None = None):
        self.wait_seconds = wait_seconds
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key → [lock, waiters]

    @contextmanager
    def hold(self, key: str) -> Iterator[LocalLease]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1

        timeout = -1 if self.wait_seconds is None else self.wait_seconds
        acquired = entry[0].acquire(timeout=timeout)
        try:
            if not acquired:
                raise StoreUnavailable(f"Timed out waiting for lock {key}")
            yield LocalLease()
        finally:
            if acquired:
                entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def active_keys(self) -> list[str]:
        with self._guard:
            return list(self._locks)


class RedisKeyedLock:
    """
    Redis lock per key.

    ttl_seconds is the lease: a crashed holder frees the key after it.
    wait_seconds bounds acquisition (None = wait indefinitely).
    """

    def __init__(self, redis: Redis, ttl_seconds: float = 30.0, wait_seconds: float | None = None):
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.wait_seconds = wait_seconds

    @contextmanager
    def hold(self, key: str) -> Iterator[RedisLease]:
        lock = self.redis.lock(
            key,
            timeout=self.ttl_seconds,
            blocking_timeout=self.wait_seconds,
        )
        try:
            acquired = lock.acquire()
        except RedisError as e:
            raise StoreUnavailable(f"Lock backend unavailable: {e}") from e

        if not acquired:
            raise StoreUnavailable(f"Timed out waiting for lock {key}")

        try:
            yield RedisLease(lock, key)
        finally:
            try:
                lock.release()
            except LockError:
                # Lease ran out inside the critical section
                logger.error(f"Lock {key} expired before release (ttl={self.ttl_seconds}s)")
            except RedisError as e:
                logger.warning(f"Lock {key} release failed, lease will expire: {e}")


@lru_cache
def get_keyed_lock() -> KeyedLock:
    """Process-wide lock for commits, chosen by settings.lock_backend."""
    if settings.lock_backend == "local":
        return LocalKeyedLock(wait_seconds=settings.lock_wait_seconds)

    from ...redis_client import redis_client
    return RedisKeyedLock(
        redis_client,
        ttl_seconds=settings.lock_ttl_seconds,
        wait_seconds=settings.lock_wait_seconds,
    )
