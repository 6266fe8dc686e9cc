#!/usr/bin/env python3
"""
Cache Key Generation — Filesystem-Safe, Collision-Resistant Keys

Implements:
- sanitize(identifier) → identifier with unsafe characters replaced by "_"
- generate_cache_key(identifier) → deterministic file name for an entry
- Same identifier = same key (cache hit)
- Identifiers that sanitize identically still get different keys (hash part)
"""

import hashlib
import logging
import re

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")

JSON_SUFFIX = ".json"
IMAGE_SUFFIX = ".jpg"


def sanitize(identifier: str) -> str:
    """Replace every character outside [A-Za-z0-9_-] with an underscore."""
    return _UNSAFE_CHARS.sub("_", identifier)


class CacheKeyGenerator:
    """
    Generate deterministic cache keys from semantic identifiers.

    Design:
    - key = sanitized_prefix + "-" + SHA256(identifier)[:16] + suffix
    - The readable prefix keeps cache directories browsable
    - The hash part keeps "a/b" and "a?b" apart after sanitizing
    - Prefix is truncated, so very long search queries stay valid file names
    """

    HASH_LENGTH = 16

    def __init__(self, suffix: str = JSON_SUFFIX, prefix_length: int = 48):
        if prefix_length < 0:
            raise ValueError("prefix_length must be >= 0")
        self.suffix = suffix
        self.prefix_length = prefix_length

    def generate_cache_key(self, identifier: str) -> str:
        """
        Generate the storage key for an identifier.

        Args:
            identifier: Query string, tag ("trending_repositories") or image URL

        Returns:
            File-name-safe key of bounded length
        """
        digest = hashlib.sha256(identifier.encode("utf-8")).hexdigest()[: self.HASH_LENGTH]
        prefix = sanitize(identifier)[: self.prefix_length]
        key = f"{prefix}-{digest}{self.suffix}"

        logger.debug(f"Generated key: {key} (identifier length={len(identifier)})")
        return key
