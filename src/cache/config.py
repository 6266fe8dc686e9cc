"""Configuration loader for the response and image caches."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import yaml

DEFAULT_CACHE_ROOT = "~/.cache/github-viewer"


@dataclass(frozen=True)
class ResponseCacheConfig:
    directory: str
    ttl_sec: int


@dataclass(frozen=True)
class ImageCacheConfig:
    directory: str
    ttl_sec: int
    memory_count_limit: int
    memory_byte_limit: int
    async_disk_writes: bool


@dataclass(frozen=True)
class GitHubConfig:
    api_url: str
    timeout_sec: int
    per_page: int


@dataclass(frozen=True)
class CacheConfig:
    cache_root: Path
    responses: ResponseCacheConfig
    images: ImageCacheConfig
    github: GitHubConfig

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        responses = data.get("responses", {})
        images = data.get("images", {})
        github = data.get("github", {})
        config = cls(
            cache_root=Path(data.get("cache_root", DEFAULT_CACHE_ROOT)).expanduser(),
            responses=ResponseCacheConfig(
                directory=str(responses.get("directory", "GitHubCache")),
                ttl_sec=int(responses.get("ttl_sec", 3600)),
            ),
            images=ImageCacheConfig(
                directory=str(images.get("directory", "ImageCache")),
                ttl_sec=int(images.get("ttl_sec", 86400)),
                memory_count_limit=int(images.get("memory_count_limit", 100)),
                memory_byte_limit=int(images.get("memory_byte_limit", 50 * 1024 * 1024)),
                async_disk_writes=_as_bool(images.get("async_disk_writes", True)),
            ),
            github=GitHubConfig(
                api_url=str(github.get("api_url", "https://api.github.com")),
                timeout_sec=int(github.get("timeout_sec", 30)),
                per_page=int(github.get("per_page", 30)),
            ),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if self.responses.ttl_sec < 0 or self.images.ttl_sec < 0:
            raise ValueError("ttl_sec must be >= 0")
        if self.images.memory_count_limit <= 0 or self.images.memory_byte_limit <= 0:
            raise ValueError("image memory limits must be positive")
        if self.github.timeout_sec <= 0:
            raise ValueError("github.timeout_sec must be positive")

    @property
    def response_dir(self) -> Path:
        return self.cache_root / self.responses.directory

    @property
    def image_dir(self) -> Path:
        return self.cache_root / self.images.directory


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


# (section, field) -> (environment variable, parser); section None = top level
ENV_OVERRIDES: Dict[Tuple[Optional[str], str], Tuple[str, Callable[[str], Any]]] = {
    (None, "cache_root"): ("GHV_CACHE_ROOT", str),
    ("responses", "ttl_sec"): ("GHV_RESPONSE_TTL_SEC", int),
    ("images", "ttl_sec"): ("GHV_IMAGE_TTL_SEC", int),
    ("images", "memory_count_limit"): ("GHV_IMAGE_MEMORY_COUNT", int),
    ("images", "memory_byte_limit"): ("GHV_IMAGE_MEMORY_BYTES", int),
    ("images", "async_disk_writes"): ("GHV_IMAGE_ASYNC_WRITES", _as_bool),
    ("github", "api_url"): ("GITHUB_API_URL", str),
    ("github", "timeout_sec"): ("GITHUB_TIMEOUT_SEC", int),
}


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Parse every set override into a nested dict shaped like the YAML file."""
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for (section, field), (env_name, parse) in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None:
            continue
        try:
            value = parse(raw)
        except ValueError as e:
            raise ValueError(f"{env_name}={raw!r} is not a valid {section or 'top-level'}.{field}") from e
        target = overrides if section is None else overrides.setdefault(section, {})
        target[field] = value
    return overrides


def apply_overrides(data: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of data with override sections merged field by field."""
    merged = copy.deepcopy(data)
    for name, value in overrides.items():
        if isinstance(value, dict):
            section = merged.get(name)
            merged[name] = {**section, **value} if isinstance(section, dict) else dict(value)
        else:
            merged[name] = value
    return merged


def load_config(config_path: Union[str, Path] = "config/cache.defaults.yml",
                environ: Optional[Mapping[str, str]] = None) -> CacheConfig:
    """YAML file first, then environment overrides, then validation."""
    path = Path(config_path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except FileNotFoundError:
        raise FileNotFoundError(f"Config file not found: {path}") from None
    return CacheConfig.from_dict(apply_overrides(data, env_overrides(environ)))
