"""Lookup outcomes: hit, miss, or degraded (storage trouble, served as a miss)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class CacheStatus(Enum):
    HIT = "hit"
    MISS = "miss"
    DEGRADED = "degraded"


class CacheTier(Enum):
    MEMORY = "memory"
    DISK = "disk"


@dataclass(frozen=True)
class CacheResult:
    status: CacheStatus
    value: Any = None
    reason: Optional[str] = None
    tier: Optional[CacheTier] = None

    @classmethod
    def hit(cls, value: Any, tier: CacheTier) -> "CacheResult":
        return cls(status=CacheStatus.HIT, value=value, tier=tier)

    @classmethod
    def miss(cls, reason: Optional[str] = None) -> "CacheResult":
        return cls(status=CacheStatus.MISS, reason=reason)

    @classmethod
    def degraded(cls, reason: str) -> "CacheResult":
        return cls(status=CacheStatus.DEGRADED, reason=reason)

    @property
    def found(self) -> bool:
        return self.status is CacheStatus.HIT
