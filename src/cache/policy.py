"""Time-based expiration policy for cache entries."""

from __future__ import annotations

from dataclasses import dataclass


def is_valid(written_at: float, now: float, ttl: float) -> bool:
    """
    Return True while an entry written at ``written_at`` is still fresh.

    ``now < written_at`` (clock skew) yields a negative age and counts as
    valid; entries written "in the future" are served until they age out.
    """
    return (now - written_at) < ttl


@dataclass(frozen=True)
class ExpirationPolicy:
    ttl_seconds: float

    def is_valid(self, written_at: float, now: float) -> bool:
        return is_valid(written_at, now, self.ttl_seconds)

    def age(self, written_at: float, now: float) -> float:
        return now - written_at
