"""Unit tests for plansync.services.cache_service — DatasetCache and backends."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import RedisError

from plansync.models.project import ProjectRecord, ProjectStatus
from plansync.services.cache_service import (
    DatasetCache,
    MemoryStore,
    backend_name,
    create_store,
    default_projects,
)


def _record(**overrides):
    data = dict(id="p-0", code="VNE-01", year=2026, description="Tech Awards 2026")
    data.update(overrides)
    return ProjectRecord(**data)


@pytest.fixture()
def cache():
    return DatasetCache(MemoryStore(), prefix="test")


class TestDatasetCache:
    def test_miss_returns_none(self, cache):
        assert cache.load() is None

    def test_save_then_load(self, cache):
        ts = datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc)
        cache.save([_record(status=ProjectStatus.DONE, pm="HieuNT")], synced_at=ts)

        records, synced_at = cache.load()
        assert synced_at == ts.isoformat()
        assert records[0].status == ProjectStatus.DONE
        assert records[0].pm == "HieuNT"

    def test_fixed_keys(self, cache):
        cache.save([_record()])
        assert cache.store.get("test:projects") is not None
        assert cache.store.get("test:projects:synced_at") is not None

    def test_refuses_empty_dataset(self, cache):
        """An empty list must never replace the last good dataset."""
        cache.save([_record()])
        with pytest.raises(ValueError):
            cache.save([])
        assert len(cache.load()[0]) == 1

    def test_corrupt_payload_is_a_miss(self, cache):
        cache.store.set("test:projects", "{not json")
        assert cache.load() is None

    def test_unknown_fields_are_ignored(self, cache):
        cache.store.set(
            "test:projects",
            '[{"id": "p-0", "code": "A", "year": 2026, "description": "x", "legacy": 1}]',
        )
        records, _ = cache.load()
        assert records[0].description == "x"

    def test_clear(self, cache):
        cache.save([_record()])
        cache.clear()
        assert cache.load() is None

    def test_health_check_memory(self, cache):
        assert cache.health_check() == {"status": "ok", "backend": "memory"}

    def test_health_check_reports_backend_error(self):
        store = MagicMock()
        store.ping.side_effect = ConnectionError("refused")
        result = DatasetCache(store).health_check()
        assert result["status"] == "error"
        assert "refused" in result["detail"]

    def test_backend_read_error_is_a_miss(self):
        store = MagicMock()
        store.get.side_effect = RedisError("timeout")
        assert DatasetCache(store).load() is None

    def test_backend_write_error_is_logged_not_raised(self):
        store = MagicMock()
        store.set.side_effect = ConnectionError("reset by peer")
        assert DatasetCache(store).save([_record()]) is None


class TestCreateStore:
    def test_memory_url(self):
        assert isinstance(create_store("memory://"), MemoryStore)

    def test_missing_url(self):
        assert isinstance(create_store(None), MemoryStore)

    def test_unreachable_redis_falls_back_to_memory(self):
        with patch("redis.from_url") as from_url:
            from_url.return_value.ping.side_effect = ConnectionError("refused")
            store = create_store("redis://cache.invalid:6379/0")
        assert isinstance(store, MemoryStore)

    def test_reachable_redis_is_used(self):
        with patch("redis.from_url") as from_url:
            store = create_store("redis://cache:6379/0")
        from_url.assert_called_once_with("redis://cache:6379/0", decode_responses=True)
        assert store is from_url.return_value
        assert backend_name(store) == "redis"


class TestDefaults:
    def test_default_dataset_is_non_empty(self):
        records = default_projects()
        assert records
        assert records[0].code == "TA2026"

    def test_default_dataset_is_a_copy(self):
        first = default_projects()
        first[0].description = "changed"
        assert default_projects()[0].description == "Tech Awards 2026"
