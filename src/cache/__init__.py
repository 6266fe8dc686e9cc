"""
GitHub Viewer Cache Layer
Expiring response cache (JSON, disk) + image cache (bytes, memory + disk)
"""

from .backends import DiskBackend, EntryMetadata, MemoryBackend
from .cache import CacheLayer, CacheStatistics, ImageCache, ResponseCache
from .config import CacheConfig, load_config
from .key_generator import CacheKeyGenerator, sanitize
from .policy import ExpirationPolicy, is_valid
from .results import CacheResult, CacheStatus, CacheTier
from .serializers import CacheEntry, CorruptEntryError, JSONEnvelopeSerializer, RawBytesSerializer

__all__ = [
    'CacheLayer', 'CacheStatistics', 'ResponseCache', 'ImageCache',
    'CacheConfig', 'load_config',
    'CacheKeyGenerator', 'sanitize',
    'ExpirationPolicy', 'is_valid',
    'CacheResult', 'CacheStatus', 'CacheTier',
    'CacheEntry', 'CorruptEntryError', 'JSONEnvelopeSerializer', 'RawBytesSerializer',
    'DiskBackend', 'MemoryBackend', 'EntryMetadata',
]
