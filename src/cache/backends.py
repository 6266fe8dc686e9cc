#!/usr/bin/env python3
"""
Cache Storage Backends
Memory tier (bounded LRU) + disk tier (one file per key)

Implements:
- read(key) → stored payload | None
- write(key, payload)
- delete(key) → bool
- keys() → list of stored keys
- metadata(key) → EntryMetadata | None
- clear() → number of entries removed
"""

import logging
import os
import tempfile
import threading
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .serializers import CacheEntry

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".tmp-"


@dataclass(frozen=True)
class EntryMetadata:
    size: int
    modified_at: float


class MemoryBackend:
    """
    Bounded in-process LRU of decoded CacheEntry objects.

    Design:
    - Count ceiling and byte ceiling, both enforced after every write
    - Least recently used entries go first; reads refresh recency
    - write() never fails on capacity, it evicts instead
    - Lifetime = process lifetime
    """

    def __init__(self, count_limit: int = 100, byte_limit: int = 50 * 1024 * 1024):
        if count_limit <= 0 or byte_limit <= 0:
            raise ValueError("memory limits must be positive")
        self.count_limit = count_limit
        self.byte_limit = byte_limit
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._total_bytes = 0
        self._lock = threading.Lock()
        self.evictions = 0

    def read(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
            return entry

    def write(self, key: str, payload: CacheEntry, written_at: Optional[float] = None) -> None:
        with self._lock:
            previous = self._entries.pop(key, None)
            if previous is not None:
                self._total_bytes -= previous.size
            self._entries[key] = payload
            self._total_bytes += payload.size
            self._evict()

    def _evict(self) -> None:
        while self._entries and (
            len(self._entries) > self.count_limit or self._total_bytes > self.byte_limit
        ):
            key, entry = self._entries.popitem(last=False)
            self._total_bytes -= entry.size
            self.evictions += 1
            logger.debug(f"Evicted {key} from memory tier ({entry.size} bytes)")

    def delete(self, key: str, written_at: Optional[float] = None) -> bool:
        """Drop a key; with written_at, only if it still holds that write."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if written_at is not None and entry.written_at != written_at:
                return False
            del self._entries[key]
            self._total_bytes -= entry.size
            return True

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def metadata(self, key: str) -> Optional[EntryMetadata]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        return EntryMetadata(size=entry.size, modified_at=entry.written_at)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._total_bytes = 0
            return count

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


class DiskBackend:
    """
    One file per key under a dedicated directory.

    Writes land in a temp file first and are renamed into place, so a crash
    mid-write leaves at worst a stray temp file, never a half-written entry.
    I/O errors propagate as OSError; the cache facade decides what to do.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).expanduser()
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.directory / key

    def read(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def write(self, key: str, payload: bytes, written_at: Optional[float] = None) -> None:
        self._ensure_directory()
        fd, tmp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=str(self.directory))
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            if written_at is not None:
                os.utime(tmp_name, (written_at, written_at))
            os.replace(tmp_name, self.path_for(key))
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    def delete(self, key: str) -> bool:
        try:
            self.path_for(key).unlink()
            return True
        except FileNotFoundError:
            return False

    def keys(self) -> List[str]:
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            logger.warning(f"Cache directory {self.directory} missing, recreating")
            self._ensure_directory()
            return []
        return sorted(
            name for name in names
            if not name.startswith(TEMP_PREFIX) and (self.directory / name).is_file()
        )

    def metadata(self, key: str) -> Optional[EntryMetadata]:
        try:
            stat = self.path_for(key).stat()
        except FileNotFoundError:
            return None
        return EntryMetadata(size=stat.st_size, modified_at=stat.st_mtime)

    def clear(self) -> int:
        removed = 0
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            self._ensure_directory()
            return 0
        for name in names:
            path = self.directory / name
            if path.is_file():
                path.unlink()
                if not name.startswith(TEMP_PREFIX):
                    removed += 1
        return removed
