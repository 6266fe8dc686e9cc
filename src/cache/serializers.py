"""Payload codecs for cache entries stored on disk."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jsonschema import Draft7Validator


class CorruptEntryError(ValueError):
    """Stored bytes could not be decoded into a cache entry."""


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    written_at: float
    size: int = 0


ENVELOPE_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["data", "timestamp"],
    "properties": {
        "data": {},
        "timestamp": {"type": "number"},
    },
}

_envelope_validator = Draft7Validator(ENVELOPE_SCHEMA)


class JSONEnvelopeSerializer:
    """
    Stores ``{"data": value, "timestamp": written_at}`` as UTF-8 JSON.

    The write time travels inside the file, so it survives copies and
    restores that reset filesystem timestamps.
    """

    embeds_timestamp = True

    def encode(self, value: Any, written_at: float) -> bytes:
        return json.dumps({"data": value, "timestamp": written_at}).encode("utf-8")

    def decode(self, raw: bytes, modified_at: Optional[float] = None) -> CacheEntry:
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CorruptEntryError(f"unreadable envelope: {exc}") from exc

        errors = sorted(_envelope_validator.iter_errors(payload), key=lambda e: list(e.path))
        if errors:
            messages = ", ".join(error.message for error in errors)
            raise CorruptEntryError(f"envelope validation failed: {messages}")

        return CacheEntry(value=payload["data"], written_at=float(payload["timestamp"]), size=len(raw))


class RawBytesSerializer:
    """Stores blobs verbatim; the write time is the file's mtime."""

    embeds_timestamp = False

    def encode(self, value: Any, written_at: float) -> bytes:
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"expected bytes, got {type(value).__name__}")
        return bytes(value)

    def decode(self, raw: bytes, modified_at: Optional[float] = None) -> CacheEntry:
        if not raw:
            # zero-length file = write interrupted before any data landed
            raise CorruptEntryError("empty blob")
        if modified_at is None:
            raise CorruptEntryError("missing modification time")
        return CacheEntry(value=raw, written_at=modified_at, size=len(raw))
