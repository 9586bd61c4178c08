"""Cache store implementations for issuer key sets.

This module provides implementations of the CacheStore protocol for caching
fetched key-set documents so that not every request hits the issuer.

Implementations:
- InMemoryCache: Simple in-process caching (good for dev/single-instance)
- RedisCache: Distributed caching via Redis (good for multi-instance production)

Both implementations support TTL-based expiration. The cached value is the
raw key-set document, not constructed key objects, so it serializes cleanly
into Redis and keys are always rebuilt from the same source of truth.

Security Note:
    Caching introduces a TTL window where rotated keys may not be immediately
    recognized. Balance cache TTL against key rotation frequency.
"""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .protocols import KeySet


@dataclass(slots=True)
class _CacheItem:
    """Internal cache entry with TTL tracking.

    Attributes:
        value: Cached key-set document.
        expires_at: Unix timestamp when this entry should be considered expired.
    """

    value: KeySet
    expires_at: float


class InMemoryCache:
    """In-process memory cache for key-set documents.

    Stores documents in a dict with TTL-based expiration. Expired entries are
    lazily removed on access. A lock guards the dict so the cache can be
    shared between request threads.

    Example:
        ```python
        cache = InMemoryCache()
        cache.set("https://issuer/jwks", {"keys": [...]}, ttl_seconds=300)
        cache.get("https://issuer/jwks")  # -> {"keys": [...]}
        ```

    Attributes:
        _store: Internal dict mapping address -> _CacheItem.
    """

    def __init__(self) -> None:
        """Initialize an empty in-memory cache."""
        self._store: dict[str, _CacheItem] = {}
        self._lock = threading.Lock()

    def get(self, address: str) -> KeySet | None:
        """Retrieve a cached key set.

        Args:
            address: Key-set URL to lookup.

        Returns:
            The document if cached and not expired, None otherwise.
        """
        with self._lock:
            item = self._store.get(address)
            if not item:
                return None

            if time.time() >= item.expires_at:
                # Lazy removal of expired entry
                self._store.pop(address, None)
                return None

            return item.value

    def set(self, address: str, key_set: KeySet, ttl_seconds: int) -> None:
        """Cache a key set with TTL.

        Args:
            address: Key-set URL.
            key_set: Decoded key-set document.
            ttl_seconds: Time-to-live in seconds.

        Raises:
            ValueError: If ttl_seconds is not positive.
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        with self._lock:
            self._store[address] = _CacheItem(
                value=key_set, expires_at=time.time() + ttl_seconds
            )

    def delete(self, address: str) -> None:
        with self._lock:
            self._store.pop(address, None)


class RedisCache:
    """Redis-backed distributed cache for key-set documents.

    Stores documents as JSON in Redis, using Redis's native TTL mechanism
    for expiration.

    Dependencies:
        Requires redis package: pip install redis

    Example:
        ```python
        import redis

        client = redis.Redis(host='localhost', port=6379, decode_responses=True)
        cache = RedisCache(redis_client=client)
        ```

    Attributes:
        _client: Redis client instance (from redis package).
        _prefix: Namespace prepended to every Redis key.
    """

    def __init__(self, redis_client: Any, prefix: str = "smart-auth:jwks:") -> None:
        """Initialize Redis cache.

        Args:
            redis_client: Redis client instance (from redis package).
                         Must support get(), setex() and delete() methods.
            prefix: Namespace for cache keys.

        Note:
            The type is Any to avoid hard dependency on redis package types.
            Users can pass any Redis-compatible client (redis-py, fakeredis, etc.).
        """
        self._client = redis_client
        self._prefix = prefix

    def _key(self, address: str) -> str:
        return f"{self._prefix}{address}"

    def get(self, address: str) -> KeySet | None:
        """Retrieve a cached key set.

        Raises:
            RuntimeError: If deserialization fails (corrupted cache data).
        """
        data = self._client.get(self._key(address))
        if data is None:
            return None

        try:
            obj = json.loads(data)
        except (json.JSONDecodeError, ValueError, TypeError) as e:
            raise RuntimeError("Failed to deserialize cached key set") from e

        if not isinstance(obj, dict):
            raise RuntimeError("Cached key set is not a JSON object")
        return obj

    def set(self, address: str, key_set: KeySet, ttl_seconds: int) -> None:
        """Cache a key set with TTL.

        Raises:
            RuntimeError: If Redis operation fails.
        """
        try:
            self._client.setex(self._key(address), ttl_seconds, json.dumps(dict(key_set)))
        except Exception as e:
            raise RuntimeError("Failed to cache key set in Redis") from e

    def delete(self, address: str) -> None:
        try:
            self._client.delete(self._key(address))
        except Exception as e:
            raise RuntimeError("Failed to delete cached key set in Redis") from e
