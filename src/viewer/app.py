"""Application wiring: one client and one cache per kind, built at startup."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from cache.cache import CacheStatistics, ImageCache, ResponseCache
from cache.config import CacheConfig

from .client import GitHubClient
from .fetcher import ImageLoader, RepositoryFetcher

logger = logging.getLogger(__name__)


@dataclass
class ViewerServices:
    client: GitHubClient
    responses: ResponseCache
    images: ImageCache
    repositories: RepositoryFetcher
    avatars: ImageLoader

    @classmethod
    def build(cls, config: CacheConfig, client: Optional[GitHubClient] = None,
              clock: Callable[[], float] = time.time) -> "ViewerServices":
        client = client or GitHubClient(base_url=config.github.api_url, timeout=config.github.timeout_sec)
        responses = ResponseCache.from_config(config, clock=clock)
        images = ImageCache.from_config(config, clock=clock)
        logger.info(f"Viewer services ready (cache_root={config.cache_root})")
        return cls(
            client=client,
            responses=responses,
            images=images,
            repositories=RepositoryFetcher(client, responses, per_page=config.github.per_page),
            avatars=ImageLoader(client, images),
        )

    def logout(self) -> int:
        """Drop every cached response and image."""
        cleared = self.responses.invalidate_all() + self.images.invalidate_all()
        logger.info(f"Logout cleared {cleared} cache entries")
        return cleared

    def cache_statistics(self) -> Dict[str, CacheStatistics]:
        return {
            "responses": self.responses.statistics(),
            "images": self.images.statistics(),
        }

    def close(self) -> None:
        self.images.close()
        self.responses.close()
        self.client.close()
