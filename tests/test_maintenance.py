import time

from cache.cache import ImageCache, ResponseCache
from cache.maintenance import main


def write_config(tmp_path):
    path = tmp_path / "cache.yml"
    path.write_text(f"cache_root: {tmp_path / 'root'}\nresponses:\n  ttl_sec: 100\n", encoding="utf-8")
    return path


def test_clear(tmp_path):
    config = write_config(tmp_path)
    responses = ResponseCache(tmp_path / "root" / "GitHubCache")
    responses.put("trending_repositories", [1])
    images = ImageCache(tmp_path / "root" / "ImageCache", async_disk_writes=False)
    images.put("https://example.com/a.png", b"img")
    images.close()

    assert main(["clear", "--config", str(config)]) == 0

    assert responses.statistics().entry_count == 0
    assert list((tmp_path / "root" / "ImageCache").iterdir()) == []


def test_sweep_keeps_fresh_entries(tmp_path):
    config = write_config(tmp_path)
    now = time.time()
    stale = ResponseCache(tmp_path / "root" / "GitHubCache", ttl_seconds=100, clock=lambda: now - 500)
    stale.put("old", 1)
    fresh = ResponseCache(tmp_path / "root" / "GitHubCache", ttl_seconds=100, sweep_on_init=False)
    fresh.put("new", 2)

    assert main(["sweep", "--config", str(config)]) == 0

    assert fresh.get("new") == 2
    assert not fresh.path_for("old").exists()


def test_stats(tmp_path, capsys):
    config = write_config(tmp_path)

    assert main(["stats", "--config", str(config)]) == 0
    out = capsys.readouterr().out
    assert "CACHE REPORT: responses" in out
    assert "CACHE REPORT: images" in out


def test_usage_errors(capsys):
    assert main([]) == 2
    assert main(["explode"]) == 2
    assert main(["stats", "--verbose"]) == 2
    assert "ghv-cache stats" in capsys.readouterr().err
