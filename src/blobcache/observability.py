"""Cache statistics schema enforcement."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from jsonschema import Draft7Validator

_COUNTER = {"type": "integer", "minimum": 0}

STATS_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": [
        "collected_at",
        "hits",
        "misses",
        "writes",
        "reclaimed",
        "purged",
        "slots",
        "total_requests",
        "hit_rate_percent",
    ],
    "properties": {
        "collected_at": {"type": "string", "format": "date-time"},
        "hits": _COUNTER,
        "misses": _COUNTER,
        "writes": _COUNTER,
        "reclaimed": _COUNTER,
        "purged": _COUNTER,
        "slots": _COUNTER,
        "hard_refs": _COUNTER,
        "total_requests": _COUNTER,
        "hit_rate_percent": {"type": "number", "minimum": 0, "maximum": 100},
    },
    "additionalProperties": False,
}

_validator = Draft7Validator(STATS_SCHEMA)


def validate_stats(payload: Dict[str, Any]) -> None:
    errors = sorted(_validator.iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        messages = ", ".join(error.message for error in errors)
        raise ValueError(f"cache stats validation failed: {messages}")


@dataclass
class CacheStatsRecord:
    hits: int
    misses: int
    writes: int
    reclaimed: int
    purged: int
    slots: int
    hard_refs: int = 0
    collected_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate_percent(self) -> float:
        total = self.total_requests
        return round(self.hits / total * 100, 1) if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "collected_at": self.collected_at,
            "hits": self.hits,
            "misses": self.misses,
            "writes": self.writes,
            "reclaimed": self.reclaimed,
            "purged": self.purged,
            "slots": self.slots,
            "hard_refs": self.hard_refs,
            "total_requests": self.total_requests,
            "hit_rate_percent": self.hit_rate_percent,
        }
        validate_stats(payload)
        return payload
