"""
String-keyed cache stores with TTL support.

InMemoryCache is thread-safe and used for development and tests.
RedisCache is selected when REDIS_URL is configured.
"""
import logging
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, Generic, Optional, TypeVar

import redis

from app.core.exceptions import CacheError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheInterface(ABC, Generic[T]):
    """Abstract interface for cache implementations."""

    @abstractmethod
    def get(self, key: str) -> Optional[T]:
        """Get value by key, returns None if not found or expired."""
        pass

    @abstractmethod
    def set(self, key: str, value: T, ttl_seconds: Optional[float] = None) -> None:
        """Set value with optional TTL."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key, returns True if existed."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all entries."""
        pass


class CacheEntry(Generic[T]):
    """Single cache entry with expiration tracking."""

    def __init__(self, value: T, expires_at: Optional[float]) -> None:
        self.value = value
        self.expires_at = expires_at

    def is_expired(self) -> bool:
        """Check if entry has expired."""
        if self.expires_at is None:
            return False
        return time.time() > self.expires_at


class InMemoryCache(CacheInterface[T]):
    """
    Thread-safe in-memory cache with TTL support.

    Expired entries are never returned; they are evicted on read.

    Usage:
        cache: CacheInterface[str] = InMemoryCache(default_ttl_seconds=300)
        cache.set("recommendations:42", "[1, 2, 3]", ttl_seconds=1800)
    """

    def __init__(self, default_ttl_seconds: Optional[float] = None) -> None:
        self._store: Dict[str, CacheEntry[T]] = {}
        self._default_ttl = default_ttl_seconds
        self._lock = Lock()

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._store[key]
                return None
            return entry.value

    def set(self, key: str, value: T, ttl_seconds: Optional[float] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        expires_at = time.time() + ttl if ttl else None
        with self._lock:
            self._store[key] = CacheEntry(value, expires_at)

    def delete(self, key: str) -> bool:
        with self._lock:
            if key in self._store:
                del self._store[key]
                return True
            return False

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def size(self) -> int:
        """Return number of entries (including possibly expired)."""
        with self._lock:
            return len(self._store)


class RedisCache(CacheInterface[str]):
    """
    Redis-backed string cache.

    Every redis error is re-raised as CacheError so callers can treat an
    unreachable store as a miss.
    """

    def __init__(
        self,
        url: str,
        key_prefix: str = "reco:",
        default_ttl_seconds: Optional[float] = None,
        client: Optional["redis.Redis"] = None,
    ) -> None:
        self._client = client or redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=1.0,
            socket_connect_timeout=1.0,
        )
        self._prefix = key_prefix
        self._default_ttl = default_ttl_seconds

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(self._key(key))
        except redis.RedisError as e:
            raise CacheError("get", str(e)) from e

    def set(self, key: str, value: str, ttl_seconds: Optional[float] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        try:
            if ttl:
                self._client.set(self._key(key), value, px=int(ttl * 1000))
            else:
                self._client.set(self._key(key), value)
        except redis.RedisError as e:
            raise CacheError("set", str(e)) from e

    def delete(self, key: str) -> bool:
        try:
            return bool(self._client.delete(self._key(key)))
        except redis.RedisError as e:
            raise CacheError("delete", str(e)) from e

    def clear(self) -> None:
        try:
            keys = list(self._client.scan_iter(match=f"{self._prefix}*"))
            if keys:
                self._client.delete(*keys)
        except redis.RedisError as e:
            raise CacheError("clear", str(e)) from e
