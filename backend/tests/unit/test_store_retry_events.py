from datetime import datetime

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import IntegrityError, OperationalError

from app.config import settings
from app.core.exceptions import TransientPersistenceException, ValidationException
from app.dependencies import get_oee_store
from app.repositories.base import is_transient_error
from app.schemas.oee import OEEResult
from app.utils.events import EventBus, ProductionRecordedEvent, ShiftStartedEvent
from app.utils.retry import retry_transient
from app.utils.store import InMemoryTTLStore, RedisTTLStore


class FakeTimer:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class FakeRedisClient:
    """Records the commands a Redis client would receive."""

    def __init__(self):
        self.values = {}
        self.ttls = {}

    def setex(self, name, time, value):
        self.values[name] = value
        self.ttls[name] = time
        return True

    def set(self, name, value):
        self.values[name] = value
        return True

    def get(self, name):
        return self.values.get(name)

    def delete(self, *names):
        return sum(1 for n in names if self.values.pop(n, None) is not None)


class DownRedisClient:
    def setex(self, name, time, value):
        raise RedisConnectionError("connection refused")

    def get(self, name):
        raise RedisConnectionError("connection refused")

    def delete(self, *names):
        raise RedisConnectionError("connection refused")


def _oee_result(**overrides):
    values = {
        "machine_id": 4,
        "start": datetime(2026, 10, 14, 7, 0),
        "end": datetime(2026, 10, 14, 19, 0),
        "availability": 90.0,
        "performance": 80.0,
        "quality": 99.5,
        "oee": 71.64,
        "classification": "GOOD",
        "planned_minutes": 120.0,
        "run_minutes": 108.0,
        "downtime_minutes": 12.0,
        "total_production": 200,
        "good_production": 199,
        "rejected_production": 1,
        "shift_count": 1,
        "computed_at": datetime(2026, 10, 14, 9, 0),
    }
    values.update(overrides)
    return OEEResult(**values)


def test_store_expires_entries():
    timer = FakeTimer()
    store = InMemoryTTLStore(default_ttl=10, timer=timer)
    store.set("oee:1:current", 71.25)
    store.set("pinned", "x", ttl=0)

    timer.now = 9.9
    assert store.get("oee:1:current") == 71.25
    timer.now = 10
    assert store.get("oee:1:current") is None
    assert store.get("pinned") == "x"
    assert len(store) == 1


def test_store_delete_missing_key_is_noop():
    store = InMemoryTTLStore()
    store.delete("nothing")
    assert store.get("nothing") is None


def test_store_evicts_expired_entries_on_write():
    timer = FakeTimer()
    store = InMemoryTTLStore(default_ttl=10, timer=timer)
    for i in range(1000):
        store.set(f"oee:{i}:2026-10-14T07:00:00:2026-10-14T19:00:00", i)

    timer.now = 100
    for i in range(10):
        store.set(f"oee:{i}:current", i)

    assert len(store) == 10


def test_store_drops_oldest_entry_at_capacity():
    store = InMemoryTTLStore(max_entries=2)
    store.set("a", 1)
    store.set("b", 2)
    store.set("a", 3)
    store.set("c", 4)

    assert store.get("b") is None
    assert store.get("a") == 3
    assert len(store) == 2


def test_redis_store_round_trips_oee_results():
    client = FakeRedisClient()
    store = RedisTTLStore(client=client, namespace="plant1", default_ttl=900, model=OEEResult)
    result = _oee_result()

    store.set("oee:4:current", result)

    assert client.ttls["plant1:oee:4:current"] == 900
    cached = store.get("oee:4:current")
    assert isinstance(cached, OEEResult)
    assert cached == result

    store.delete("oee:4:current")
    assert store.get("oee:4:current") is None


def test_redis_store_is_shared_between_instances():
    client = FakeRedisClient()
    writer = RedisTTLStore(client=client, default_ttl=60)
    reader = RedisTTLStore(client=client)

    writer.set("oee:7:current", {"oee": 55.5}, ttl=30)

    assert reader.get("oee:7:current") == {"oee": 55.5}
    assert client.ttls["factoryops:oee:7:current"] == 30


def test_redis_store_reads_outage_as_miss():
    store = RedisTTLStore(client=DownRedisClient(), default_ttl=60, model=OEEResult)

    store.set("oee:1:current", _oee_result())
    store.delete("oee:1:current")

    assert store.get("oee:1:current") is None


def test_redis_store_needs_url_or_client():
    with pytest.raises(ValueError):
        RedisTTLStore()


def test_oee_store_dependency_is_redis_backed():
    get_oee_store.cache_clear()
    try:
        store = get_oee_store()
        assert isinstance(store, RedisTTLStore)
        assert get_oee_store() is store
    finally:
        get_oee_store.cache_clear()


def test_retry_runs_transient_failure_once_more(monkeypatch):
    monkeypatch.setattr(settings, "PERSISTENCE_RETRY_WAIT_SECONDS", 0)
    calls = []

    @retry_transient
    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise TransientPersistenceException("demo")
        return "ok"

    assert flaky() == "ok"
    assert len(calls) == 2


def test_retry_gives_up_after_configured_attempts(monkeypatch):
    monkeypatch.setattr(settings, "PERSISTENCE_RETRY_WAIT_SECONDS", 0)
    calls = []

    @retry_transient
    def down():
        calls.append(1)
        raise TransientPersistenceException("demo")

    with pytest.raises(TransientPersistenceException):
        down()
    assert len(calls) == settings.PERSISTENCE_RETRY_ATTEMPTS


def test_retry_ignores_permanent_errors():
    calls = []

    @retry_transient
    def invalid():
        calls.append(1)
        raise ValidationException("units", "must be >= 0")

    with pytest.raises(ValidationException):
        invalid()
    assert len(calls) == 1


def test_transient_error_classification():
    assert is_transient_error(OperationalError("SELECT 1", {}, Exception("database is locked")))
    assert not is_transient_error(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")))


def test_event_bus_isolates_failing_handlers():
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("handler bug")

    bus.subscribe(ProductionRecordedEvent, broken)
    bus.subscribe(ProductionRecordedEvent, seen.append)
    event = ProductionRecordedEvent(shift_record_id=1, machine_id=2, operator_id=3, units=4, total_production=4)

    bus.publish(event)

    assert seen == [event]


def test_event_bus_dispatches_by_type():
    bus = EventBus()
    seen = []
    bus.subscribe(ShiftStartedEvent, seen.append)

    bus.publish(ProductionRecordedEvent(shift_record_id=1, machine_id=2, operator_id=3, units=4, total_production=4))
    bus.subscribe(ShiftStartedEvent, seen.append)
    bus.publish(ShiftStartedEvent(shift_record_id=1, machine_id=2, operator_id=3, shift_type="DAY", shift_date="2026-10-14"))

    assert len(seen) == 1
    assert seen[0].to_dict()["shift_type"] == "DAY"


def test_event_timestamps_are_timezone_aware():
    event = ProductionRecordedEvent(shift_record_id=1, machine_id=2, operator_id=3, units=4, total_production=4)

    assert event.occurred_at.tzinfo is not None
    assert event.occurred_at.utcoffset().total_seconds() == 0
