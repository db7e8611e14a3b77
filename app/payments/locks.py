"""
Redis-based distributed lock.

Database row locks only last as long as a transaction. Refunds call the
payment gateway after the dispute resolution has committed, so they are
serialized with a Redis lock instead of holding a row lock across network
I/O.

Usage:
    from payments.locks import DistributedLock

    with DistributedLock(f"refund:order:{order.id}", ttl=120, timeout=10.0):
        RefundService.execute_dispute_refund(dispute_id)

The lock key is stored as "lock:<key>" with a random token so only the
holder can release it, and a TTL so a crashed worker cannot hold it
forever.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from django_redis import get_redis_connection

from payments.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis


class DistributedLock:
    """
    Token-owned Redis lock with TTL.

    Args:
        key: Lock identifier (prefixed with "lock:")
        ttl: Seconds before Redis expires the lock on its own
        blocking: Wait for the lock instead of failing immediately
        timeout: Maximum wait in seconds when blocking

    Raises:
        LockAcquisitionError: From acquire() / __enter__ when the lock is
            held by someone else past the timeout
    """

    # Delete only if the stored token is ours
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    RETRY_INTERVAL = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def _try_acquire(self) -> bool:
        return bool(self._get_redis().set(self.key, self._token, nx=True, ex=self.ttl))

    def acquire(self) -> bool:
        self._token = uuid.uuid4().hex

        if not self.blocking:
            if self._try_acquire():
                return True
            self._token = None
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )

        deadline = time.monotonic() + self.timeout
        while time.monotonic() < deadline:
            if self._try_acquire():
                return True
            time.sleep(self.RETRY_INTERVAL)

        self._token = None
        raise LockAcquisitionError(
            f"Failed to acquire lock '{self.key}' within {self.timeout}s",
            details={"key": self.key, "timeout": self.timeout},
        )

    def release(self) -> bool:
        """Release the lock if this instance holds it; safe to call twice."""
        if self._token is None:
            return False
        released = self._get_redis().eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(released)

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        self.release()
        return False
