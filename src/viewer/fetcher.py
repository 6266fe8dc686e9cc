"""Cache-first fetching for repository lists and avatar images."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar

from cache.cache import CacheLayer

from .client import TRENDING_WINDOWS, GitHubClient
from .errors import GitHubAPIError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRENDING_KEY = "trending_repositories"
SEARCH_KEY_PREFIX = "search_results_"
MIN_QUERY_LENGTH = 2


def trending_key(language: Optional[str] = None, since: str = "daily") -> str:
    """
    Cache identifier for one trending listing.

    The defaults map to the bare tag. Variants are spelled as query
    parameters, so no language name can alias the "any language" listing.
    """
    if not language and since == "daily":
        return TRENDING_KEY
    if not language:
        return f"{TRENDING_KEY}?since={since}"
    return f"{TRENDING_KEY}?language={language}&since={since}"


class _Call:
    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Any = None
        self.error: Optional[BaseException] = None


class SingleFlight:
    """Deduplicate identical in-flight calls across threads."""

    def __init__(self) -> None:
        self._calls: Dict[str, _Call] = {}
        self._lock = threading.Lock()
        self.shared = 0

    def run(self, key: str, fn: Callable[[], T]) -> T:
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call()
                self._calls[key] = call
            else:
                self.shared += 1

        if not leader:
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result

        try:
            call.result = fn()
        except Exception as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                self._calls.pop(key, None)
            call.done.set()
        return call.result

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._calls


@dataclass(frozen=True)
class FetchResult:
    data: Any
    from_cache: bool


class RepositoryFetcher:
    """
    Trending and search listings, served from the response cache when fresh.

    Only first pages are cached; "load more" pages always hit the network.
    Network errors propagate to the caller; cache trouble never does.
    """

    def __init__(self, client: GitHubClient, cache: CacheLayer, per_page: int = 30) -> None:
        self.client = client
        self.cache = cache
        self.per_page = per_page
        self._flight = SingleFlight()

    def trending(self, language: str = None, since: str = "daily", refresh: bool = False) -> FetchResult:
        language = language or None
        if since not in TRENDING_WINDOWS:
            logger.warning(f"Unknown trending window {since!r}, using daily")
            since = "daily"
        return self._fetch(
            trending_key(language, since),
            lambda: self.client.trending_repositories(language=language, since=since, per_page=self.per_page),
            refresh,
        )

    def search(self, query: str, page: int = 1, refresh: bool = False) -> FetchResult:
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            raise ValueError(f"search query must be at least {MIN_QUERY_LENGTH} characters")

        if page > 1:
            data = self.client.search_repositories(query, page=page, per_page=self.per_page)
            return FetchResult(data=data, from_cache=False)

        return self._fetch(
            f"{SEARCH_KEY_PREFIX}{query}",
            lambda: self.client.search_repositories(query, page=1, per_page=self.per_page),
            refresh,
        )

    def _fetch(self, key: str, loader: Callable[[], Any], refresh: bool) -> FetchResult:
        if not refresh:
            result = self.cache.lookup(key)
            if result.found:
                logger.debug(f"Serving {key} from {result.tier.value} cache")
                return FetchResult(data=result.value, from_cache=True)

        def load() -> Any:
            data = loader()
            self.cache.put(key, data)
            return data

        return FetchResult(data=self._flight.run(key, load), from_cache=False)


class ImageLoader:
    """Avatar bytes: memory, then disk, then network. Failures yield None."""

    def __init__(self, client: GitHubClient, cache: CacheLayer) -> None:
        self.client = client
        self.cache = cache
        self._flight = SingleFlight()

    def load(self, url: Optional[str]) -> Optional[bytes]:
        if not url or not url.startswith(("http://", "https://")):
            return None

        cached = self.cache.get(url)
        if cached is not None:
            return cached

        try:
            return self._flight.run(url, lambda: self._download(url))
        except GitHubAPIError as e:
            logger.warning(f"Image download failed for {url}: {e}")
            return None

    def _download(self, url: str) -> Optional[bytes]:
        data = self.client.download(url)
        if not data:
            return None
        self.cache.put(url, data)
        return data
