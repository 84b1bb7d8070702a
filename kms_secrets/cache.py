"""
Thread-safe in-memory cache with TTL expiration, LRU eviction, statistics
and event notification.

This module provides the SecretCache used by KmsSecretsClient to avoid
redundant round-trips to the KMS. The cache stores opaque values and knows
nothing about secrets or the KMS itself.

Architecture:
    - Thread-safe with threading.RLock around every store mutation
    - In-memory only (NO disk persistence for security)
    - Lazy expiration on get()/has() plus an active background sweep thread
    - Capacity-bounded: inserting a new key at capacity evicts the least
      recently used entry first
    - Observer model: listeners receive (event_type, logical_key, value)

Security Properties:
    - No disk persistence (secrets never written to filesystem)
    - Automatic expiration prevents stale credentials
    - Explicit invalidation via delete()/clear()

Example Usage:
    >>> cache = SecretCache(SecretCacheOptions(enabled=True, ttl=300, max_size=100))
    >>> cache.set("database/password", "secret123")
    >>> cache.get("database/password")
    'secret123'
    >>> cache.get_stats().hit_rate
    1.0
    >>> cache.close()

See Also:
    - kms_secrets/client.py - KmsSecretsClient (the only in-tree consumer)
    - kms_secrets/metrics.py - Prometheus listener for cache events
"""

import json
import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, Generic, TypeVar

from kms_secrets.models import SecretCacheOptions
from kms_secrets.utils import get_error_message, sanitize_for_logging

logger = logging.getLogger(__name__)

V = TypeVar("V")

# Per-entry bookkeeping estimate, also used when a value cannot be serialized
ENTRY_OVERHEAD_BYTES: Final[int] = 64
UNSERIALIZABLE_VALUE_BYTES: Final[int] = 64
CLEAR_EVENT_KEY: Final[str] = "all"


class CacheEventType(str, Enum):
    """Events emitted by SecretCache to registered listeners."""

    HIT = "hit"
    MISS = "miss"
    SET = "set"
    DELETE = "delete"
    EXPIRE = "expire"
    CLEAR = "clear"


CacheEventListener = Callable[[CacheEventType, str, Any], None]


@dataclass
class CacheEntry(Generic[V]):
    """
    A resident cache entry.

    Attributes:
        value: The cached payload (owned by the cache once inserted)
        created_at: Insertion timestamp (seconds)
        expires_at: created_at + ttl; the entry is dead once now > expires_at
        access_count: Number of successful reads
        last_accessed_at: Timestamp of the most recent read (drives LRU)
    """

    value: V
    created_at: float
    expires_at: float
    access_count: int = 0
    last_accessed_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class CacheStats:
    """
    Snapshot of cache statistics.

    Attributes:
        total_keys: Resident entries (may include expired, not yet swept)
        hit_count: Cumulative hits since construction or last clear()
        miss_count: Cumulative misses since construction or last clear()
        hit_rate: hits / (hits + misses), 0 when no requests, 4 decimal places
        total_memory_usage: Approximate footprint in bytes (diagnostic only)
    """

    total_keys: int
    hit_count: int
    miss_count: int
    hit_rate: float
    total_memory_usage: int


class SecretCache(Generic[V]):
    """
    In-memory TTL/LRU cache with statistics and event listeners.

    All operations short-circuit when the cache is disabled: get() returns
    None, delete()/has() return False, set()/clear() do nothing and no
    background sweep thread is started.

    Thread Safety:
        Store mutation, the eviction scan and counter updates hold an RLock.
        Listeners are invoked inline on the calling thread (for expire events
        from the sweep, on the sweep thread); their exceptions are logged and
        never propagate.

    Examples:
        >>> cache: SecretCache[str] = SecretCache(SecretCacheOptions(enabled=True))
        >>> cache.add_event_listener(lambda event, key, value=None: print(event.value, key))
        >>> cache.set("api/key", "v")
        set api/key
        >>> cache.mget(["api/key", "missing"])
        hit api/key
        miss missing
        {'api/key': 'v'}
    """

    def __init__(
        self,
        options: SecretCacheOptions | Mapping[str, Any],
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the cache and, when enabled, start the expiration sweep.

        Args:
            options: SecretCacheOptions or a dict accepted by it
                     (e.g. {"enabled": True, "ttl": 60}).
            clock: Time source returning seconds. Default: time.time.
        """
        if not isinstance(options, SecretCacheOptions):
            options = SecretCacheOptions.model_validate(options)
        self._options = options
        self._clock = clock
        self._store: dict[str, CacheEntry[V]] = {}
        # dict keys act as an insertion-ordered set
        self._listeners: dict[CacheEventListener, None] = {}
        self._lock = threading.RLock()
        self._hit_count = 0
        self._miss_count = 0
        self._stop_event = threading.Event()
        self._sweep_thread: threading.Thread | None = None

        if options.enabled:
            self._start_sweep()
            logger.info(
                "Secret cache initialized",
                extra=sanitize_for_logging(
                    {
                        "ttl": options.ttl,
                        "max_size": options.max_size,
                        "key_prefix": options.key_prefix,
                    }
                ),
            )
        else:
            logger.info("Secret cache initialized but disabled")

    # ------------------------------------------------------------------
    # Key handling
    # ------------------------------------------------------------------

    def _storage_key(self, key: str) -> str:
        return f"{self._options.key_prefix}{key}"

    def _logical_key(self, storage_key: str) -> str:
        prefix = self._options.key_prefix
        if storage_key.startswith(prefix):
            return storage_key[len(prefix) :]
        return storage_key

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event_listener(self, listener: CacheEventListener) -> None:
        """Register a listener; registering the same callable twice is a no-op."""
        with self._lock:
            self._listeners[listener] = None

    def remove_event_listener(self, listener: CacheEventListener) -> None:
        """Unregister a listener; unknown listeners are ignored."""
        with self._lock:
            self._listeners.pop(listener, None)

    def _emit(self, event: CacheEventType, key: str, value: Any = None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, key, value)
            except Exception as e:
                logger.warning(
                    "Error in cache event listener",
                    extra={"event": event.value, "error": get_error_message(e)},
                )

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def get(self, key: str) -> V | None:
        """
        Return the live value for ``key``, or None on miss/expiry.

        A miss emits ``miss``; an expired entry is removed and emits
        ``expire`` (both count as a miss). A hit updates access statistics
        and emits ``hit`` with the value.
        """
        if not self._options.enabled:
            return None

        storage_key = self._storage_key(key)
        with self._lock:
            entry = self._store.get(storage_key)
            if entry is None:
                self._miss_count += 1
                event, value = CacheEventType.MISS, None
            else:
                now = self._clock()
                if entry.is_expired(now):
                    del self._store[storage_key]
                    self._miss_count += 1
                    event, value = CacheEventType.EXPIRE, None
                else:
                    entry.access_count += 1
                    entry.last_accessed_at = now
                    self._hit_count += 1
                    event, value = CacheEventType.HIT, entry.value

        self._emit(event, key, value)
        return value

    def set(self, key: str, value: V, ttl: float | None = None) -> None:
        """
        Store ``value`` under ``key``.

        Args:
            key: Logical key (the configured prefix is applied internally)
            value: Payload to cache
            ttl: Optional TTL override in seconds; falsy uses the default TTL
        """
        if not self._options.enabled:
            return

        storage_key = self._storage_key(key)
        effective_ttl = ttl or self._options.ttl
        evicted_key: str | None = None
        with self._lock:
            now = self._clock()
            if storage_key not in self._store and len(self._store) >= self._options.max_size:
                evicted_key = self._evict_least_recently_used()
            self._store[storage_key] = CacheEntry(
                value=value,
                created_at=now,
                expires_at=now + effective_ttl,
                last_accessed_at=now,
            )

        if evicted_key is not None:
            self._emit(CacheEventType.DELETE, evicted_key)
        self._emit(CacheEventType.SET, key, value)

    def delete(self, key: str) -> bool:
        """Remove ``key``; returns True (and emits ``delete``) only if it existed."""
        if not self._options.enabled:
            return False

        with self._lock:
            removed = self._store.pop(self._storage_key(key), None) is not None

        if removed:
            self._emit(CacheEventType.DELETE, key)
        return removed

    def has(self, key: str) -> bool:
        """
        Return True if ``key`` holds a live entry.

        Does not touch statistics or emit hit/miss events. An expired entry
        is removed as a side effect.
        """
        if not self._options.enabled:
            return False

        storage_key = self._storage_key(key)
        with self._lock:
            entry = self._store.get(storage_key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._store[storage_key]
                return False
            return True

    def clear(self) -> None:
        """Remove every entry, reset hit/miss counters and emit one ``clear`` event."""
        if not self._options.enabled:
            return

        with self._lock:
            self._store.clear()
            self._hit_count = 0
            self._miss_count = 0

        self._emit(CacheEventType.CLEAR, CLEAR_EVENT_KEY)

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------

    def mget(self, keys: Iterable[str]) -> dict[str, V]:
        """Per-key get(); keys that miss are omitted from the result."""
        result: dict[str, V] = {}
        for key in keys:
            value = self.get(key)
            if value is not None:
                result[key] = value
        return result

    def mset(self, data: Mapping[str, V], ttl: float | None = None) -> None:
        for key, value in data.items():
            self.set(key, value, ttl)

    def mdel(self, keys: Iterable[str]) -> int:
        """Per-key delete(); returns how many keys were actually removed."""
        return sum(1 for key in keys if self.delete(key))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_stats(self) -> CacheStats:
        """
        Snapshot current statistics.

        The memory estimate is len(key) * 2 + len(json value) * 2 + 64 per
        entry; values json cannot serialize count as a flat 64 bytes.
        """
        with self._lock:
            hits = self._hit_count
            misses = self._miss_count
            items = list(self._store.items())

        total_requests = hits + misses
        hit_rate = hits / total_requests if total_requests > 0 else 0.0

        memory = 0
        for storage_key, entry in items:
            memory += len(storage_key) * 2
            try:
                memory += len(json.dumps(entry.value, ensure_ascii=False)) * 2
            except (TypeError, ValueError):
                memory += UNSERIALIZABLE_VALUE_BYTES
            memory += ENTRY_OVERHEAD_BYTES

        return CacheStats(
            total_keys=len(items),
            hit_count=hits,
            miss_count=misses,
            hit_rate=round(hit_rate, 4),
            total_memory_usage=memory,
        )

    def get_keys(self) -> list[str]:
        """Logical keys of all resident entries (prefix stripped)."""
        if not self._options.enabled:
            return []
        with self._lock:
            return [self._logical_key(storage_key) for storage_key in self._store]

    def get_config(self) -> SecretCacheOptions:
        return self._options

    def is_enabled(self) -> bool:
        return self._options.enabled

    def __len__(self) -> int:
        """Resident entries, including expired entries not yet cleaned up."""
        with self._lock:
            return len(self._store)

    # ------------------------------------------------------------------
    # Eviction and expiration
    # ------------------------------------------------------------------

    def _evict_least_recently_used(self) -> str | None:
        """
        Remove the entry with the oldest last_accessed_at.

        Caller must hold the lock. Ties go to the first entry in insertion
        order. Returns the evicted logical key so the caller can emit the
        ``delete`` event outside the lock.
        """
        oldest_key: str | None = None
        oldest_time = float("inf")
        for storage_key, entry in self._store.items():
            if entry.last_accessed_at < oldest_time:
                oldest_time = entry.last_accessed_at
                oldest_key = storage_key

        if oldest_key is None:
            return None

        del self._store[oldest_key]
        logger.debug("Evicted least recently used cache entry")
        return self._logical_key(oldest_key)

    def sweep_expired(self) -> int:
        """
        Remove every expired entry, emitting ``expire`` per removed key.

        Runs periodically on the sweep thread; safe to call directly.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._store.items() if entry.is_expired(now)]
            for storage_key in expired:
                del self._store[storage_key]

        for storage_key in expired:
            self._emit(CacheEventType.EXPIRE, self._logical_key(storage_key))

        if expired:
            logger.debug("Cleaned up expired cache entries", extra={"count": len(expired)})
        return len(expired)

    def _start_sweep(self) -> None:
        self._sweep_thread = threading.Thread(
            target=self._sweep_loop,
            name="secret-cache-sweep",
            daemon=True,
        )
        self._sweep_thread.start()

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self._options.cleanup_interval):
            try:
                self.sweep_expired()
            except Exception as e:
                logger.warning(
                    "Cache expiration sweep failed",
                    extra={"error": get_error_message(e)},
                )

    def _stop_sweep(self) -> None:
        self._stop_event.set()
        thread = self._sweep_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)
        self._sweep_thread = None

    def close(self) -> None:
        """
        Tear down the cache: stop the sweep, clear all entries, drop listeners.

        The ``clear`` event is delivered to listeners before they are dropped.
        """
        self._stop_sweep()
        self.clear()
        with self._lock:
            self._listeners.clear()
        logger.info("Secret cache closed")


__all__ = [
    "CacheEventType",
    "CacheEventListener",
    "CacheEntry",
    "CacheStats",
    "SecretCache",
    "ENTRY_OVERHEAD_BYTES",
    "UNSERIALIZABLE_VALUE_BYTES",
]
