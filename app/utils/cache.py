"""
Keyed ephemeral stores backing the OTP store.

Every backend offers the same four calls:
- put(key, value, ttl)  store a JSON-serializable dict, evicted after ttl seconds
- get(key)              the stored dict, or None when absent / evicted
- delete(key)           remove the key (no error when absent)
- lock(key)             context manager serializing callers on the same key

The lock is what lets the OTP store make "check then delete" atomic per user.
Callers on different keys never share a lock.
"""

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

import redis
from redis.exceptions import LockError

logger = logging.getLogger(__name__)


class KeyedStore(ABC):

    @abstractmethod
    def put(self, key: str, value: dict, ttl: int) -> None:
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[dict]:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def lock(self, key: str):
        """Return a context manager holding an exclusive lock on key."""
        pass


# ─── In-process ───────────────────────────────────────────────────────────────
class MemoryStore(KeyedStore):
    """
    Process-local store for development and tests.

    Values live in a dict next to their expiry deadline and are dropped
    lazily on read. Per-key locks are reference counted and released once
    no caller holds or waits on them.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: dict[str, tuple[str, float]] = {}
        self._locks: dict[str, list] = {}      # key -> [Lock, holders]
        self._guard = threading.Lock()

    def put(self, key: str, value: dict, ttl: int) -> None:
        with self._guard:
            self._data[key] = (json.dumps(value), self._clock() + ttl)

    def get(self, key: str) -> Optional[dict]:
        with self._guard:
            entry = self._data.get(key)
            if entry is None:
                return None
            raw, deadline = entry
            if self._clock() >= deadline:
                del self._data[key]
                return None
        return json.loads(raw)

    def delete(self, key: str) -> None:
        with self._guard:
            self._data.pop(key, None)

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1

        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


# ─── Redis ────────────────────────────────────────────────────────────────────
class RedisStore(KeyedStore):
    """
    Redis-backed store shared by every worker process.

    Values are JSON strings written with SET ... EX. Locks use redis-py's
    Lock with an expiry and a bounded wait so a crashed holder or a slow
    peer can never block a request indefinitely.
    """

    def __init__(
        self,
        client: redis.Redis,
        lock_timeout: int = 5,
        prefix: str = "accounts:",
    ):
        self.redis_client = client
        self.lock_timeout = lock_timeout
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, lock_timeout: int = 5) -> "RedisStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), lock_timeout=lock_timeout)

    def _k(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def put(self, key: str, value: dict, ttl: int) -> None:
        self.redis_client.set(self._k(key), json.dumps(value), ex=ttl)

    def get(self, key: str) -> Optional[dict]:
        raw = self.redis_client.get(self._k(key))
        if raw is None:
            return None
        return json.loads(raw)

    def delete(self, key: str) -> None:
        self.redis_client.delete(self._k(key))

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        lock = self.redis_client.lock(
            self._k(f"{key}:lock"),
            timeout=self.lock_timeout,
            blocking_timeout=self.lock_timeout,
        )
        if not lock.acquire():
            logger.warning(f"Could not acquire lock for {key} within {self.lock_timeout}s")
            raise LockError(f"Timed out waiting for lock on {key}")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # Lock expired while held; the next holder already owns it
                logger.warning(f"Lock for {key} expired before release")


# ─── Factory ──────────────────────────────────────────────────────────────────
def build_store(
    backend: str, redis_url: str, lock_timeout: int, production: bool = False,
) -> KeyedStore:
    if backend == "memory":
        # Records would be invisible to every other worker process
        if production:
            raise ValueError("The memory OTP backend cannot be used in production; set OTP_BACKEND=redis")
        return MemoryStore()
    if backend == "redis":
        return RedisStore.from_url(redis_url, lock_timeout=lock_timeout)
    raise ValueError(f"Unknown OTP backend: {backend!r}")
