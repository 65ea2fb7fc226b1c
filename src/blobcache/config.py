"""Configuration loader for the blob cache."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

# Largest buffer a 32-bit signed length can address.
MAX_BLOB_BYTES = 2**31 - 1


@dataclass(frozen=True)
class PressureConfig:
    min_available_percent: float
    soft_ref_ms_per_mb: int
    snapshot_ttl_sec: float
    sweep_interval_sec: float


@dataclass(frozen=True)
class BlobCacheConfig:
    hard_size: int
    max_blob_bytes: int
    pressure: PressureConfig

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlobCacheConfig":
        p_data = data.get("pressure", {}) or {}
        cfg = cls(
            hard_size=int(data.get("hard_size", 0)),
            max_blob_bytes=int(data.get("max_blob_bytes", MAX_BLOB_BYTES)),
            pressure=PressureConfig(
                min_available_percent=float(p_data.get("min_available_percent", 10.0)),
                soft_ref_ms_per_mb=int(p_data.get("soft_ref_ms_per_mb", 1000)),
                snapshot_ttl_sec=float(p_data.get("snapshot_ttl_sec", 1.0)),
                sweep_interval_sec=float(p_data.get("sweep_interval_sec", 5.0)),
            ),
        )
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if self.hard_size < 0:
            raise ValueError("hard_size must be >= 0")
        if not 0 <= self.max_blob_bytes <= MAX_BLOB_BYTES:
            raise ValueError(f"max_blob_bytes must be between 0 and {MAX_BLOB_BYTES}")
        if not 0 <= self.pressure.min_available_percent <= 100:
            raise ValueError("pressure.min_available_percent must be between 0 and 100")
        if self.pressure.soft_ref_ms_per_mb < 0:
            raise ValueError("pressure.soft_ref_ms_per_mb must be >= 0")
        if self.pressure.snapshot_ttl_sec < 0:
            raise ValueError("pressure.snapshot_ttl_sec must be >= 0")
        if self.pressure.sweep_interval_sec < 0:
            raise ValueError("pressure.sweep_interval_sec must be >= 0")


ENV_MAP = {
    "hard_size": "BLOBCACHE_HARD_SIZE",
    "max_blob_bytes": "BLOBCACHE_MAX_BLOB_BYTES",
    "pressure.min_available_percent": "BLOBCACHE_MIN_AVAILABLE_PERCENT",
    "pressure.soft_ref_ms_per_mb": "BLOBCACHE_SOFT_REF_MS_PER_MB",
    "pressure.snapshot_ttl_sec": "BLOBCACHE_SNAPSHOT_TTL_SEC",
    "pressure.sweep_interval_sec": "BLOBCACHE_SWEEP_INTERVAL_SEC",
}

_INT_KEYS = {"hard_size", "max_blob_bytes", "soft_ref_ms_per_mb"}


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(config_data))  # deep copy via json

    for dotted_key, env_name in ENV_MAP.items():
        if env_name not in os.environ:
            continue
        value: Any = os.environ[env_name]
        target = merged
        parts = dotted_key.split(".")
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        last = parts[-1]
        target[last] = int(value) if last in _INT_KEYS else float(value)

    return merged


def default_config() -> BlobCacheConfig:
    """Built-in defaults plus environment overrides, no file needed."""
    return BlobCacheConfig.from_dict(merge_env_overrides({}))


def load_config(config_path: str | Path = "config/blobcache.defaults.yml") -> BlobCacheConfig:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = load_yaml(path)
    data = merge_env_overrides(data)
    return BlobCacheConfig.from_dict(data)
