#!/usr/bin/env python3
"""
GitHub Viewer Cache Layer
Two-tier expiring cache: bounded memory LRU in front of a file-per-key disk store

Implements:
- lookup(identifier) → CacheResult (hit | miss | degraded)
- get(identifier) → value | None
- put(identifier, value) → bool
- invalidate(identifier), invalidate_all(), invalidate_expired()
- statistics() → CacheStatistics (disk size/count + session counters)
"""

import copy
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set, Union

from .backends import DiskBackend, MemoryBackend
from .key_generator import IMAGE_SUFFIX, JSON_SUFFIX, CacheKeyGenerator
from .policy import ExpirationPolicy
from .results import CacheResult, CacheTier
from .serializers import CacheEntry, CorruptEntryError, JSONEnvelopeSerializer, RawBytesSerializer

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def format_byte_count(size: int) -> str:
    """Human readable size in decimal units (KB, MB, GB)."""
    if size >= 1000 ** 3:
        return f"{size / 1000 ** 3:.1f} GB"
    if size >= 1000 ** 2:
        return f"{size / 1000 ** 2:.1f} MB"
    return f"{round(size / 1000)} KB"


@dataclass(frozen=True)
class CacheStatistics:
    total_size: int
    entry_count: int
    hits: int = 0
    misses: int = 0
    degraded: int = 0
    writes: int = 0
    write_failures: int = 0
    evictions: int = 0

    @property
    def formatted_size(self) -> str:
        return format_byte_count(self.total_size)

    @property
    def hit_rate_percent(self) -> float:
        total = self.hits + self.misses + self.degraded
        return round(self.hits / total * 100, 1) if total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["formatted_size"] = self.formatted_size
        payload["hit_rate_percent"] = self.hit_rate_percent
        return payload


def _detach(value: Any) -> Any:
    """Copy mutable payloads so callers never hold the cache's own object."""
    if isinstance(value, (bytes, str, int, float, bool, type(None))):
        return value
    return copy.deepcopy(value)


class CacheLayer:
    """
    Expiring cache over a disk tier with an optional memory tier.

    Design principles:
    - Fail-soft: corruption and I/O errors become misses, never exceptions
    - Freshness checked on every tier hit; stale entries removed on sight
    - Disk hits warm the memory tier
    - Write-through to disk, optionally on a single background worker
    - Last writer wins; no coordination between concurrent writers
    """

    def __init__(
        self,
        name: str,
        disk: DiskBackend,
        serializer,
        key_generator: CacheKeyGenerator,
        ttl_seconds: float,
        memory: Optional[MemoryBackend] = None,
        clock: Clock = time.time,
        async_disk_writes: bool = False,
        sweep_on_init: bool = True,
    ):
        self.name = name
        self.disk = disk
        self.memory = memory
        self.serializer = serializer
        self.key_generator = key_generator
        self.policy = ExpirationPolicy(ttl_seconds)
        self._clock = clock

        self._executor: Optional[ThreadPoolExecutor] = None
        if async_disk_writes:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{name}-disk")
        self._pending: Set[Future] = set()
        self._pending_lock = threading.Lock()

        self._stats_lock = threading.Lock()
        self.stats = {
            "hits": 0,
            "misses": 0,
            "degraded": 0,
            "writes": 0,
            "write_failures": 0,
            "evictions": 0,
            "start_time": time.time(),
        }

        logger.info(
            f"{self.name} cache initialized at {self.disk.directory} "
            f"(ttl={ttl_seconds}s, memory_tier={'on' if memory else 'off'}, "
            f"async_disk_writes={async_disk_writes})"
        )

        if sweep_on_init:
            self.invalidate_expired()

    # Keys

    def key_for(self, identifier: str) -> str:
        return self.key_generator.generate_cache_key(identifier)

    def path_for(self, identifier: str) -> Path:
        return self.disk.path_for(self.key_for(identifier))

    def _count(self, name: str, amount: int = 1) -> None:
        with self._stats_lock:
            self.stats[name] += amount

    # Reads

    def lookup(self, identifier: str) -> CacheResult:
        """
        Resolve an identifier against memory, then disk.

        Returns:
            CacheResult.hit on a fresh entry, .miss when absent or expired,
            .degraded when the disk entry was corrupt or unreadable
        """
        key = self.key_for(identifier)
        now = self._clock()

        if self.memory is not None:
            entry = self.memory.read(key)
            if entry is not None:
                if self.policy.is_valid(entry.written_at, now):
                    self._count("hits")
                    return CacheResult.hit(_detach(entry.value), CacheTier.MEMORY)
                self.memory.delete(key)

        try:
            entry = self._read_disk(key)
        except CorruptEntryError as e:
            logger.warning(f"{self.name}: corrupt entry {key} removed: {e}")
            self._discard(key)
            self._count("degraded")
            return CacheResult.degraded(f"corrupt entry: {e}")
        except OSError as e:
            logger.error(f"{self.name}: read failed for {key}: {e}")
            self._count("degraded")
            return CacheResult.degraded(f"read failed: {e}")

        if entry is None:
            self._count("misses")
            return CacheResult.miss()

        if not self.policy.is_valid(entry.written_at, now):
            logger.debug(f"{self.name}: {key} expired (age={self.policy.age(entry.written_at, now):.0f}s)")
            self._discard(key)
            self._count("misses")
            return CacheResult.miss("expired")

        if self.memory is not None:
            self.memory.write(key, CacheEntry(_detach(entry.value), entry.written_at, entry.size))

        self._count("hits")
        return CacheResult.hit(entry.value, CacheTier.DISK)

    def get(self, identifier: str) -> Any:
        result = self.lookup(identifier)
        return result.value if result.found else None

    def _read_disk(self, key: str) -> Optional[CacheEntry]:
        raw = self.disk.read(key)
        if raw is None:
            return None
        modified_at = None
        if not self.serializer.embeds_timestamp:
            meta = self.disk.metadata(key)
            if meta is None:
                return None
            modified_at = meta.modified_at
        return self.serializer.decode(raw, modified_at)

    def _discard(self, key: str) -> bool:
        """Remove a key from every tier; storage errors are logged only."""
        removed = False
        if self.memory is not None:
            removed = self.memory.delete(key)
        try:
            removed = self.disk.delete(key) or removed
        except OSError as e:
            logger.warning(f"{self.name}: could not delete {key}: {e}")
        return removed

    # Writes

    def put(self, identifier: str, value: Any) -> bool:
        """
        Store a value under an identifier, replacing any existing entry.

        Returns:
            True when the write was accepted, False when it failed (logged)
        """
        key = self.key_for(identifier)
        written_at = self._clock()

        try:
            payload = self.serializer.encode(value, written_at)
        except (TypeError, ValueError) as e:
            logger.error(f"{self.name}: cannot serialize value for {key}: {e}")
            self._count("write_failures")
            return False

        if self.memory is not None:
            self.memory.write(key, CacheEntry(_detach(value), written_at, len(payload)))

        if self._executor is not None:
            future = self._executor.submit(self._write_disk, key, payload, written_at)
            with self._pending_lock:
                self._pending.add(future)
            future.add_done_callback(self._forget)
            return True

        return self._write_disk(key, payload, written_at)

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _write_disk(self, key: str, payload: bytes, written_at: float) -> bool:
        try:
            self.disk.write(key, payload, written_at=written_at)
        except OSError as e:
            logger.error(f"{self.name}: write failed for {key}: {e}")
            self._count("write_failures")
            if self.memory is not None:
                # the tiers must agree: drop the copy that never reached disk
                self.memory.delete(key, written_at=written_at)
            return False

        self._count("writes")
        logger.debug(f"{self.name}: cached {key} ({len(payload)} bytes)")
        return True

    def flush(self) -> None:
        """Block until every queued background disk write has finished."""
        with self._pending_lock:
            pending = list(self._pending)
        if pending:
            wait(pending)

    # Invalidation

    def invalidate(self, identifier: str) -> bool:
        self.flush()
        return self._discard(self.key_for(identifier))

    def invalidate_all(self) -> int:
        """Remove every entry from every tier. Safe on an empty store."""
        self.flush()

        keys = set()
        if self.memory is not None:
            keys.update(self.memory.keys())
            self.memory.clear()

        try:
            keys.update(self.disk.keys())
            self.disk.clear()
        except OSError as e:
            logger.error(f"{self.name}: clear failed: {e}")

        if keys:
            self._count("evictions", len(keys))
            logger.info(f"{self.name}: cleared {len(keys)} cache entries")
        return len(keys)

    def invalidate_expired(self) -> int:
        """Remove only entries whose age has reached the TTL."""
        now = self._clock()
        removed = set()

        if self.memory is not None:
            for key in self.memory.keys():
                meta = self.memory.metadata(key)
                if meta is not None and not self.policy.is_valid(meta.modified_at, now):
                    self.memory.delete(key)
                    removed.add(key)

        try:
            disk_keys = self.disk.keys()
        except OSError as e:
            logger.error(f"{self.name}: cannot list cache directory: {e}")
            disk_keys = []

        for key in disk_keys:
            try:
                written_at = self._disk_written_at(key)
            except CorruptEntryError:
                written_at = None
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"{self.name}: skipping {key} during sweep: {e}")
                continue

            if written_at is None or not self.policy.is_valid(written_at, now):
                if self._discard(key):
                    removed.add(key)

        if removed:
            self._count("evictions", len(removed))
            logger.info(f"{self.name}: cleared {len(removed)} expired cache entries")
        return len(removed)

    def _disk_written_at(self, key: str) -> Optional[float]:
        if self.serializer.embeds_timestamp:
            entry = self._read_disk(key)
            if entry is None:
                raise FileNotFoundError(key)
            return entry.written_at
        meta = self.disk.metadata(key)
        if meta is None:
            raise FileNotFoundError(key)
        if meta.size == 0:
            return None
        return meta.modified_at

    # Diagnostics

    def statistics(self) -> CacheStatistics:
        """Disk-tier size and entry count plus this session's counters."""
        total_size = 0
        entry_count = 0
        try:
            for key in self.disk.keys():
                meta = self.disk.metadata(key)
                if meta is None:
                    continue
                total_size += meta.size
                entry_count += 1
        except OSError as e:
            logger.warning(f"{self.name}: statistics unavailable: {e}")
            total_size = entry_count = 0

        with self._stats_lock:
            counters = dict(self.stats)
        evictions = counters["evictions"]
        if self.memory is not None:
            evictions += self.memory.evictions

        return CacheStatistics(
            total_size=total_size,
            entry_count=entry_count,
            hits=counters["hits"],
            misses=counters["misses"],
            degraded=counters["degraded"],
            writes=counters["writes"],
            write_failures=counters["write_failures"],
            evictions=evictions,
        )

    def print_report(self):
        """Print cache statistics report."""
        stats = self.statistics()
        uptime = int(time.time() - self.stats["start_time"])

        print("\n" + "=" * 60)
        print(f"CACHE REPORT: {self.name}")
        print("=" * 60)
        print(f"Directory: {self.disk.directory}")
        print(f"Size: {stats.formatted_size} ({stats.entry_count} entries)")
        print(f"Hit Rate: {stats.hit_rate_percent}% ({stats.hits} hits, {stats.misses} misses, {stats.degraded} degraded)")
        print(f"Writes: {stats.writes} | Failures: {stats.write_failures} | Evictions: {stats.evictions}")
        print(f"Uptime: {uptime}s")
        print("=" * 60 + "\n")

    def close(self):
        """Drain background writes and stop the worker."""
        self.flush()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
            logger.info(f"{self.name} cache closed")


class ResponseCache(CacheLayer):
    """JSON API responses: disk only, synchronous write-through, 1 hour TTL."""

    def __init__(self, directory: Union[str, Path], ttl_seconds: float = 3600,
                 clock: Clock = time.time, sweep_on_init: bool = True):
        super().__init__(
            name="responses",
            disk=DiskBackend(directory),
            serializer=JSONEnvelopeSerializer(),
            key_generator=CacheKeyGenerator(JSON_SUFFIX),
            ttl_seconds=ttl_seconds,
            clock=clock,
            sweep_on_init=sweep_on_init,
        )

    @classmethod
    def from_config(cls, config, clock: Clock = time.time) -> "ResponseCache":
        return cls(config.response_dir, ttl_seconds=config.responses.ttl_sec, clock=clock)


class ImageCache(CacheLayer):
    """Image bytes keyed by URL: memory LRU + disk, 24 hour TTL."""

    def __init__(
        self,
        directory: Union[str, Path],
        ttl_seconds: float = 86400,
        memory_count_limit: int = 100,
        memory_byte_limit: int = 50 * 1024 * 1024,
        async_disk_writes: bool = True,
        clock: Clock = time.time,
        sweep_on_init: bool = True,
    ):
        super().__init__(
            name="images",
            disk=DiskBackend(directory),
            serializer=RawBytesSerializer(),
            key_generator=CacheKeyGenerator(IMAGE_SUFFIX),
            ttl_seconds=ttl_seconds,
            memory=MemoryBackend(count_limit=memory_count_limit, byte_limit=memory_byte_limit),
            clock=clock,
            async_disk_writes=async_disk_writes,
            sweep_on_init=sweep_on_init,
        )

    @classmethod
    def from_config(cls, config, clock: Clock = time.time) -> "ImageCache":
        images = config.images
        return cls(
            config.image_dir,
            ttl_seconds=images.ttl_sec,
            memory_count_limit=images.memory_count_limit,
            memory_byte_limit=images.memory_byte_limit,
            async_disk_writes=images.async_disk_writes,
            clock=clock,
        )
