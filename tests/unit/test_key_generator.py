#!/usr/bin/env python3
"""
Unit tests for cache key derivation and the expiration predicate
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from cache.key_generator import IMAGE_SUFFIX, CacheKeyGenerator, sanitize
from cache.policy import ExpirationPolicy, is_valid


class TestCacheKeyGenerator:
    """Test deterministic, collision-resistant keys."""

    @pytest.fixture
    def keygen(self):
        return CacheKeyGenerator()

    def test_deterministic_keys(self, keygen):
        assert keygen.generate_cache_key("search_results_swift") == keygen.generate_cache_key("search_results_swift")

    def test_unsafe_characters_do_not_collide(self, keygen):
        """Both sanitize to "a_b" but must stay distinct."""
        assert sanitize("a/b") == sanitize("a?b")
        assert keygen.generate_cache_key("a/b") != keygen.generate_cache_key("a?b")

    def test_key_is_filesystem_safe(self, keygen):
        key = keygen.generate_cache_key("https://avatars.githubusercontent.com/u/1?v=4")
        stem = key[: -len(".json")]
        assert all(c.isalnum() or c in "_-" for c in stem)
        assert key.endswith(".json")

    def test_readable_prefix(self, keygen):
        assert keygen.generate_cache_key("trending_repositories").startswith("trending_repositories-")

    def test_long_identifier_bounded(self, keygen):
        key = keygen.generate_cache_key("x" * 10_000)
        assert len(key) == 48 + 1 + CacheKeyGenerator.HASH_LENGTH + len(".json")

    def test_long_identifiers_sharing_prefix(self, keygen):
        base = "q" * 100
        assert keygen.generate_cache_key(base + "1") != keygen.generate_cache_key(base + "2")

    def test_empty_identifier(self, keygen):
        key = keygen.generate_cache_key("")
        assert key.startswith("-")
        assert key.endswith(".json")

    def test_image_suffix(self):
        keygen = CacheKeyGenerator(IMAGE_SUFFIX)
        key = keygen.generate_cache_key("https://example.com/a.png")
        assert key.endswith(".jpg")

    def test_negative_prefix_length_rejected(self):
        with pytest.raises(ValueError):
            CacheKeyGenerator(prefix_length=-1)


class TestExpirationPolicy:
    """Test the freshness predicate."""

    def test_zero_age_is_valid(self):
        assert is_valid(100.0, 100.0, 3600)

    def test_boundary(self):
        assert is_valid(0, 3599.9, 3600)
        assert not is_valid(0, 3600, 3600)

    def test_clock_skew_is_valid(self):
        assert is_valid(written_at=200.0, now=100.0, ttl=3600)

    def test_zero_ttl(self):
        assert not is_valid(100.0, 100.0, 0)

    def test_policy_wrapper(self):
        policy = ExpirationPolicy(ttl_seconds=60)
        assert policy.is_valid(0, 59)
        assert not policy.is_valid(0, 61)
        assert policy.age(10, 70) == 60
