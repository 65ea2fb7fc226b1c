from pathlib import Path

import pytest

from blobcache.config import MAX_BLOB_BYTES, BlobCacheConfig, default_config, load_config

DEFAULTS_FILE = Path(__file__).parent.parent / "config" / "blobcache.defaults.yml"


def test_load_config_defaults(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("hard_size: 2", encoding="utf-8")

    cfg = load_config(path)

    assert isinstance(cfg, BlobCacheConfig)
    assert cfg.hard_size == 2
    assert cfg.max_blob_bytes == MAX_BLOB_BYTES
    assert cfg.pressure.min_available_percent == 10.0
    assert cfg.pressure.soft_ref_ms_per_mb == 1000


def test_shipped_defaults_file():
    cfg = load_config(DEFAULTS_FILE)

    assert cfg.hard_size == 0
    assert cfg.max_blob_bytes == MAX_BLOB_BYTES
    assert cfg.pressure.sweep_interval_sec == 5.0


def test_env_overrides(monkeypatch, tmp_path):
    source = tmp_path / "config.yml"
    source.write_text("pressure:\n  min_available_percent: 15\n", encoding="utf-8")

    monkeypatch.setenv("BLOBCACHE_HARD_SIZE", "4")
    monkeypatch.setenv("BLOBCACHE_SWEEP_INTERVAL_SEC", "0.5")

    cfg = load_config(source)

    assert cfg.hard_size == 4
    assert cfg.pressure.sweep_interval_sec == 0.5
    assert cfg.pressure.min_available_percent == 15.0


def test_default_config_reads_env(monkeypatch):
    monkeypatch.setenv("BLOBCACHE_MAX_BLOB_BYTES", "1024")

    assert default_config().max_blob_bytes == 1024


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yml")


def test_rejects_out_of_range_values(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(f"max_blob_bytes: {MAX_BLOB_BYTES + 1}", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path)

    with pytest.raises(ValueError):
        BlobCacheConfig.from_dict({"pressure": {"min_available_percent": 150}})
