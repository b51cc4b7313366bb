"""Time-bounded key/value store.

ExpiringCache is a generic TTL map used by the exporter to hold queued job
snapshots until their in_progress event arrives. It provides:
- Per-entry expiry with a store-wide default TTL
- A background janitor that purges expired entries on a fixed interval
- Lock striping so that unrelated keys never contend for the same lock

Expired entries are invisible to get() and count() even before the janitor
has removed them.
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, Optional, Tuple, TypeVar

import structlog

logger = structlog.get_logger(__name__)

V = TypeVar("V")

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 30 * 60
DEFAULT_SHARD_COUNT = 32


@dataclass(frozen=True)
class _Entry(Generic[V]):
    value: V
    expires_at: float


class _Shard(Generic[V]):
    """A slice of the key space guarded by its own lock."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.entries: Dict[str, _Entry[V]] = {}


class ExpiringCache(Generic[V]):
    """Thread-safe TTL map with lock striping and a background janitor.

    Keys are hashed onto a fixed number of shards; each shard owns a lock,
    so set/get/delete on keys living in different shards proceed without
    contention. A get() followed by a delete() is not atomic: a concurrent
    delete may win, in which case the later delete is a no-op.

    Attributes:
        default_ttl: TTL in seconds applied when set() gets no ttl.
        sweep_interval: Seconds between janitor passes.

    Example:
        >>> cache = ExpiringCache(default_ttl=60)
        >>> cache.set("1214121", snapshot)
        >>> value, found = cache.get("1214121")
        >>> cache.delete("1214121")
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        shard_count: int = DEFAULT_SHARD_COUNT,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            default_ttl: Default entry lifetime in seconds.
            sweep_interval: Seconds between janitor passes.
            shard_count: Number of independently locked shards.
            clock: Monotonic time source in seconds; injectable for tests.
        """
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        if sweep_interval <= 0:
            raise ValueError("sweep_interval must be positive")
        if shard_count < 1:
            raise ValueError("shard_count must be at least 1")

        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._shards: List[_Shard[V]] = [_Shard() for _ in range(shard_count)]
        self._janitor: Optional[asyncio.Task] = None

    def _shard_for(self, key: str) -> _Shard[V]:
        return self._shards[hash(key) % len(self._shards)]

    def set(self, key: str, value: V, ttl: Optional[float] = None) -> None:
        """Store a value, replacing any existing entry for the key.

        Args:
            key: Entry key.
            value: Value to store.
            ttl: Lifetime in seconds; defaults to ``default_ttl``.
        """
        lifetime = self.default_ttl if ttl is None else ttl
        if lifetime <= 0:
            raise ValueError("ttl must be positive")

        entry = _Entry(value=value, expires_at=self._clock() + lifetime)
        shard = self._shard_for(key)
        with shard.lock:
            shard.entries[key] = entry

    def get(self, key: str) -> Tuple[Optional[V], bool]:
        """Look up a live entry.

        Returns:
            ``(value, True)`` for a live entry, ``(None, False)`` when the
            key is absent or expired.
        """
        now = self._clock()
        shard = self._shard_for(key)
        with shard.lock:
            entry = shard.entries.get(key)
            if entry is None:
                return None, False
            if entry.expires_at <= now:
                del shard.entries[key]
                return None, False
            return entry.value, True

    def delete(self, key: str) -> None:
        """Remove an entry. Missing keys are ignored."""
        shard = self._shard_for(key)
        with shard.lock:
            shard.entries.pop(key, None)

    def count(self) -> int:
        """Number of live (unexpired) entries."""
        now = self._clock()
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += sum(
                    1 for entry in shard.entries.values() if entry.expires_at > now
                )
        return total

    def delete_expired(self) -> int:
        """Purge every expired entry.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        removed = 0
        for shard in self._shards:
            with shard.lock:
                expired = [
                    key
                    for key, entry in shard.entries.items()
                    if entry.expires_at <= now
                ]
                for key in expired:
                    del shard.entries[key]
                removed += len(expired)
        return removed

    def clear(self) -> None:
        """Remove all entries."""
        for shard in self._shards:
            with shard.lock:
                shard.entries.clear()

    @property
    def running(self) -> bool:
        """Whether the janitor task is active."""
        return self._janitor is not None and not self._janitor.done()

    def start(self) -> None:
        """Start the janitor task on the running event loop."""
        if self.running:
            return
        self._janitor = asyncio.create_task(self._sweep_forever())

    async def stop(self) -> None:
        """Cancel the janitor task and wait for it to exit."""
        if self._janitor is None:
            return
        self._janitor.cancel()
        try:
            await self._janitor
        except asyncio.CancelledError:
            pass
        self._janitor = None

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            removed = self.delete_expired()
            if removed:
                logger.debug("Purged expired cache entries", removed=removed)
