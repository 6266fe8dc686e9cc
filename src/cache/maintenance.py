#!/usr/bin/env python3
"""
Cache Maintenance
Inspect, sweep or wipe the on-disk response and image caches.

Usage:
    ghv-cache stats [--config PATH]
    ghv-cache sweep [--config PATH]    # remove expired entries only
    ghv-cache clear [--config PATH]    # remove everything (logout)
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from .cache import ImageCache, ResponseCache
from .config import CacheConfig, load_config

logger = logging.getLogger(__name__)

COMMANDS = ("stats", "sweep", "clear")
DEFAULT_CONFIG_PATH = Path("config/cache.defaults.yml")


def _usage() -> int:
    print(__doc__.strip().split("Usage:")[1].rstrip(), file=sys.stderr)
    return 2


def _resolve_config(config_path: Optional[str]) -> CacheConfig:
    if config_path:
        return load_config(config_path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    logger.info("No config file found, using built-in defaults")
    return CacheConfig.from_dict({})


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for manual invocation."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] not in COMMANDS:
        return _usage()

    command = args.pop(0)
    config_path = None
    if args:
        if len(args) != 2 or args[0] != "--config":
            return _usage()
        config_path = args[1]

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    config = _resolve_config(config_path)
    # sweeping happens explicitly below, not as a construction side effect
    caches = [
        ResponseCache(config.response_dir, ttl_seconds=config.responses.ttl_sec, sweep_on_init=False),
        ImageCache(
            config.image_dir,
            ttl_seconds=config.images.ttl_sec,
            async_disk_writes=False,
            sweep_on_init=False,
        ),
    ]

    for cache in caches:
        if command == "stats":
            cache.print_report()
        elif command == "sweep":
            removed = cache.invalidate_expired()
            logger.info(f"{cache.name}: {removed} expired entries removed")
        else:
            removed = cache.invalidate_all()
            logger.info(f"{cache.name}: {removed} entries removed")
        cache.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
