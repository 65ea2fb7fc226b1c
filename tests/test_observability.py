import pytest

from blobcache.observability import CacheStatsRecord, validate_stats


def test_stats_record_schema_roundtrip():
    record = CacheStatsRecord(hits=3, misses=1, writes=2, reclaimed=0, purged=0, slots=2)

    payload = record.to_dict()

    assert payload["total_requests"] == 4
    assert payload["hit_rate_percent"] == 75.0
    assert payload["hard_refs"] == 0


def test_empty_record_has_zero_hit_rate():
    payload = CacheStatsRecord(hits=0, misses=0, writes=0, reclaimed=0, purged=0, slots=0).to_dict()

    assert payload["hit_rate_percent"] == 0.0


def test_negative_counter_rejected():
    record = CacheStatsRecord(hits=-1, misses=0, writes=0, reclaimed=0, purged=0, slots=0)

    with pytest.raises(ValueError, match="cache stats validation failed"):
        record.to_dict()


def test_unknown_field_rejected():
    payload = CacheStatsRecord(hits=0, misses=0, writes=0, reclaimed=0, purged=0, slots=0).to_dict()
    payload["bogus"] = 1

    with pytest.raises(ValueError):
        validate_stats(payload)
