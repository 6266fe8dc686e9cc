from pathlib import Path

import pytest

from cache.config import CacheConfig, apply_overrides, env_overrides, load_config


def test_load_config_defaults(tmp_path):
    path = tmp_path / "cache.yml"
    path.write_text(f"cache_root: {tmp_path}", encoding="utf-8")

    cfg = load_config(path)

    assert isinstance(cfg, CacheConfig)
    assert cfg.responses.ttl_sec == 3600
    assert cfg.images.ttl_sec == 86400
    assert cfg.images.memory_count_limit == 100
    assert cfg.images.memory_byte_limit == 50 * 1024 * 1024
    assert cfg.response_dir == tmp_path / "GitHubCache"
    assert cfg.image_dir == tmp_path / "ImageCache"


def test_shipped_defaults_file():
    cfg = load_config(Path(__file__).parent.parent / "config" / "cache.defaults.yml")
    assert cfg.github.api_url == "https://api.github.com"
    assert cfg.images.async_disk_writes is True


def test_env_overrides(monkeypatch, tmp_path):
    source = tmp_path / "cache.yml"
    source.write_text("responses:\n  ttl_sec: 60\n", encoding="utf-8")

    monkeypatch.setenv("GHV_IMAGE_TTL_SEC", "120")
    monkeypatch.setenv("GHV_IMAGE_MEMORY_COUNT", "5")
    monkeypatch.setenv("GHV_IMAGE_ASYNC_WRITES", "false")
    monkeypatch.setenv("GHV_CACHE_ROOT", str(tmp_path / "root"))

    cfg = load_config(source)

    assert cfg.responses.ttl_sec == 60
    assert cfg.images.ttl_sec == 120
    assert cfg.images.memory_count_limit == 5
    assert cfg.images.async_disk_writes is False
    assert cfg.cache_root == tmp_path / "root"


def test_env_overrides_are_typed():
    overrides = env_overrides({
        "GITHUB_TIMEOUT_SEC": "7",
        "GHV_IMAGE_ASYNC_WRITES": "yes",
        "GITHUB_API_URL": "https://ghe.example.com/api/v3",
        "UNRELATED": "1",
    })

    assert overrides == {
        "github": {"timeout_sec": 7, "api_url": "https://ghe.example.com/api/v3"},
        "images": {"async_disk_writes": True},
    }
    assert env_overrides({"GHV_IMAGE_ASYNC_WRITES": "0"}) == {"images": {"async_disk_writes": False}}


def test_bad_integer_override_names_variable():
    with pytest.raises(ValueError, match="GHV_RESPONSE_TTL_SEC"):
        env_overrides({"GHV_RESPONSE_TTL_SEC": "an hour"})


def test_overrides_keep_sibling_fields_and_source():
    data = {"github": {"api_url": "https://api.github.com", "per_page": 50}}

    merged = apply_overrides(data, {"github": {"timeout_sec": 5}})

    assert merged["github"] == {"api_url": "https://api.github.com", "per_page": 50, "timeout_sec": 5}
    assert "timeout_sec" not in data["github"]


def test_explicit_environ_wins_over_process_env(monkeypatch, tmp_path):
    source = tmp_path / "cache.yml"
    source.write_text("github:\n  timeout_sec: 30\n", encoding="utf-8")
    monkeypatch.setenv("GITHUB_TIMEOUT_SEC", "99")

    cfg = load_config(source, environ={"GITHUB_TIMEOUT_SEC": "12"})

    assert cfg.github.timeout_sec == 12


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yml")


def test_empty_file_means_defaults(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    assert load_config(path).responses.directory == "GitHubCache"


@pytest.mark.parametrize(
    "data",
    [
        {"responses": {"ttl_sec": -1}},
        {"images": {"memory_count_limit": 0}},
        {"github": {"timeout_sec": 0}},
    ],
)
def test_invalid_values(data):
    with pytest.raises(ValueError):
        CacheConfig.from_dict(data)
