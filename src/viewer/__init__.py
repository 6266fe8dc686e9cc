"""
GitHub Viewer services

Provides:
- GitHubClient — REST client (search, trending, users, avatars)
- RepositoryFetcher / ImageLoader — cache-first fetch with in-flight de-duplication
- ViewerServices — explicit wiring of client + caches
"""

from .app import ViewerServices
from .client import GitHubClient, trending_query
from .errors import (
    DecodingError, GitHubAPIError, NetworkError, NotFoundError,
    RateLimitExceededError, ServerError, UnauthorizedError, ValidationFailedError,
)
from .fetcher import FetchResult, ImageLoader, RepositoryFetcher, SingleFlight

__all__ = [
    'ViewerServices',
    'GitHubClient', 'trending_query',
    'GitHubAPIError', 'NetworkError', 'UnauthorizedError', 'RateLimitExceededError',
    'NotFoundError', 'ValidationFailedError', 'ServerError', 'DecodingError',
    'RepositoryFetcher', 'ImageLoader', 'FetchResult', 'SingleFlight',
]
