#!/usr/bin/env python3
"""
Unit tests for the memory and disk storage backends
"""

import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from cache.backends import TEMP_PREFIX, DiskBackend, MemoryBackend
from cache.serializers import CacheEntry, CorruptEntryError, JSONEnvelopeSerializer, RawBytesSerializer


def entry(value, size=1, written_at=0.0):
    return CacheEntry(value=value, written_at=written_at, size=size)


class TestMemoryBackend:
    """Test LRU eviction under count and byte ceilings."""

    def test_count_limit_evicts_oldest(self):
        memory = MemoryBackend(count_limit=2, byte_limit=1000)
        memory.write("a", entry(1))
        memory.write("b", entry(2))
        memory.write("c", entry(3))

        assert memory.keys() == ["b", "c"]
        assert memory.evictions == 1

    def test_read_refreshes_recency(self):
        memory = MemoryBackend(count_limit=2, byte_limit=1000)
        memory.write("a", entry(1))
        memory.write("b", entry(2))
        memory.read("a")
        memory.write("c", entry(3))

        assert "a" in memory
        assert "b" not in memory

    def test_byte_limit(self):
        memory = MemoryBackend(count_limit=10, byte_limit=10)
        memory.write("a", entry(1, size=6))
        memory.write("b", entry(2, size=6))

        assert memory.keys() == ["b"]
        assert memory.total_bytes == 6

    def test_overwrite_adjusts_size(self):
        memory = MemoryBackend(count_limit=10, byte_limit=100)
        memory.write("a", entry(1, size=40))
        memory.write("a", entry(2, size=10))

        assert memory.total_bytes == 10
        assert memory.read("a").value == 2

    def test_delete_and_clear(self):
        memory = MemoryBackend()
        memory.write("a", entry(1, size=5))
        memory.write("b", entry(2, size=5))

        assert memory.delete("a") is True
        assert memory.delete("a") is False
        assert memory.clear() == 1
        assert memory.total_bytes == 0

    def test_delete_only_matching_write(self):
        memory = MemoryBackend()
        memory.write("a", entry(1, size=4, written_at=10.0))

        assert memory.delete("a", written_at=9.0) is False
        assert memory.read("a").value == 1
        assert memory.delete("a", written_at=10.0) is True
        assert memory.total_bytes == 0

    def test_metadata_uses_write_time(self):
        memory = MemoryBackend()
        memory.write("a", entry(1, size=3, written_at=42.0))

        meta = memory.metadata("a")
        assert meta.size == 3
        assert meta.modified_at == 42.0
        assert memory.metadata("missing") is None

    def test_limits_must_be_positive(self):
        with pytest.raises(ValueError):
            MemoryBackend(count_limit=0)


class TestDiskBackend:
    """Test the file-per-key store."""

    @pytest.fixture
    def disk(self, tmp_path):
        return DiskBackend(tmp_path / "store")

    def test_write_read(self, disk):
        disk.write("k.json", b"hello")
        assert disk.read("k.json") == b"hello"
        assert disk.read("missing") is None

    def test_write_sets_mtime(self, disk):
        disk.write("k", b"x", written_at=1_600_000_000.0)
        assert disk.metadata("k").modified_at == pytest.approx(1_600_000_000.0)

    def test_keys_skip_temp_files(self, disk):
        disk.write("b", b"1")
        disk.write("a", b"2")
        (disk.directory / f"{TEMP_PREFIX}abc").write_bytes(b"partial")

        assert disk.keys() == ["a", "b"]

    def test_no_temp_files_left_behind(self, disk):
        disk.write("k", b"data")
        assert os.listdir(disk.directory) == ["k"]

    def test_delete(self, disk):
        disk.write("k", b"x")
        assert disk.delete("k") is True
        assert disk.delete("k") is False

    def test_clear(self, disk):
        disk.write("a", b"1")
        disk.write("b", b"2")
        assert disk.clear() == 2
        assert disk.keys() == []

    def test_missing_directory_self_heals(self, disk):
        disk.directory.rmdir()
        assert disk.keys() == []
        assert disk.directory.is_dir()

    def test_write_recreates_directory(self, disk):
        disk.directory.rmdir()
        disk.write("k", b"x")
        assert disk.read("k") == b"x"

    def test_metadata_missing(self, disk):
        assert disk.metadata("nope") is None


class TestSerializers:
    """Test envelope and raw codecs."""

    def test_envelope_round_trip(self):
        codec = JSONEnvelopeSerializer()
        decoded = codec.decode(codec.encode({"items": [1]}, 123.0))
        assert decoded.value == {"items": [1]}
        assert decoded.written_at == 123.0

    def test_envelope_rejects_non_object(self):
        with pytest.raises(CorruptEntryError):
            JSONEnvelopeSerializer().decode(b"[1, 2, 3]")

    def test_raw_requires_mtime(self):
        with pytest.raises(CorruptEntryError):
            RawBytesSerializer().decode(b"abc", None)

    def test_raw_rejects_text(self):
        with pytest.raises(TypeError):
            RawBytesSerializer().encode("abc", 0.0)
