import time
from datetime import datetime
from types import SimpleNamespace

import pytest

from app.config import settings
from app.core.exceptions import EntityNotFoundException, TransientPersistenceException, ValidationException
from app.schemas.production import ProductionDeltaRequest
from app.services.oee_service import (
    OEEService,
    classify_oee,
    compute_oee,
    planned_minutes,
    ratio_percentage,
)
from app.services.shift_ledger_service import ShiftLedgerService
from app.utils.store import InMemoryTTLStore

START = datetime(2026, 10, 14, 7, 0)
END = datetime(2026, 10, 14, 19, 0)


def _machine(speed=1.0):
    machine = SimpleNamespace(id=1, production_speed=speed)
    machine.ideal_cycle_time_minutes = 1.0 / speed if speed else 0.0
    return machine


def _record(total, rejected, run, downtime=0.0, start=START, end=END):
    return SimpleNamespace(
        total_production=total,
        rejected_production=rejected,
        run_minutes=run,
        downtime_minutes=downtime,
        start_time=start,
        end_time=end,
    )


def test_full_shift_oee():
    result = compute_oee(_machine(), [_record(540, 27, 600, 120)], START, END, now=END)

    assert result.planned_minutes == 720
    assert result.availability == pytest.approx(83.33)
    assert result.performance == pytest.approx(90.0)
    assert result.quality == pytest.approx(95.0)
    assert result.oee == pytest.approx(71.25)
    assert result.classification == "GOOD"
    assert result.good_production == 513


def test_zero_denominators_yield_zero():
    result = compute_oee(_machine(speed=0), [], START, END, now=END)

    assert (result.availability, result.performance, result.quality, result.oee) == (0, 0, 0, 0)
    assert result.classification == "POOR"


def test_quality_is_zero_when_nothing_was_produced():
    result = compute_oee(_machine(), [_record(0, 0, 60)], START, END, now=END)

    assert result.quality == 0
    assert result.oee == 0


def test_factors_are_clamped():
    # more run time than planned and more output than nominal speed allows
    result = compute_oee(_machine(), [_record(5000, 0, 900)], START, END, now=END)

    assert result.availability == 100
    assert result.performance == 100
    assert 0 <= result.oee <= 100


def test_planned_minutes_only_counts_elapsed_time():
    records = [_record(0, 0, 0)]

    assert planned_minutes(records, datetime(2026, 10, 14, 9, 30)) == 150
    assert planned_minutes(records, datetime(2026, 10, 14, 6, 0)) == 0


@pytest.mark.parametrize(
    "value,label",
    [(85, "WORLD_CLASS"), (84.99, "GOOD"), (70, "GOOD"), (50, "FAIR"), (49.9, "POOR"), (0, "POOR")],
)
def test_classification_thresholds(value, label):
    assert classify_oee(value) == label


def test_ratio_percentage_handles_zero_and_negative_denominator():
    assert ratio_percentage(10, 0) == 0
    assert ratio_percentage(10, -5) == 0
    assert ratio_percentage(5, 10) == 50


def _produce(db, clock, machine_id, **kwargs):
    values = {"machine_id": machine_id, "operator_id": 10}
    values.update(kwargs)
    return ShiftLedgerService(db, clock=clock).record_production_delta(ProductionDeltaRequest(**values))


def test_calculate_oee_from_ledger(db, machine, clock):
    _produce(db, clock, machine.id, units=100, rejected_units=5, run_minutes=110, downtime_minutes=10)

    result = OEEService(db, clock=clock).calculate_oee(machine.id, START, END)

    assert result.shift_count == 1
    assert result.planned_minutes == 120
    assert result.availability == pytest.approx(91.67)
    assert result.quality == pytest.approx(95.0)
    assert result.stale is False


def test_calculate_oee_validates_range_and_machine(db, machine, clock):
    service = OEEService(db, clock=clock)

    with pytest.raises(ValidationException):
        service.calculate_oee(machine.id, END, START)
    with pytest.raises(ValidationException):
        service.calculate_oee(machine.id, START, START)
    with pytest.raises(EntityNotFoundException):
        service.calculate_oee(999, START, END)


def test_current_shift_oee_uses_elapsed_window(db, machine, clock):
    _produce(db, clock, machine.id, units=60, run_minutes=60)

    result = OEEService(db, clock=clock).calculate_current_shift_oee(machine.id)

    assert result.start == START
    assert result.end == clock.now()
    assert result.planned_minutes == 120
    assert result.availability == 50


def test_transient_failure_serves_last_known_value(db, machine, clock, monkeypatch):
    monkeypatch.setattr(settings, "PERSISTENCE_RETRY_WAIT_SECONDS", 0)
    store = InMemoryTTLStore(default_ttl=900)
    service = OEEService(db, clock=clock, store=store)
    fresh = service.calculate_oee(machine.id, START, END)

    calls = {"n": 0}

    def broken(*args, **kwargs):
        calls["n"] += 1
        raise TransientPersistenceException("shift_records.list_overlapping")

    monkeypatch.setattr(service._shift_repo, "list_overlapping", broken)
    degraded = service.calculate_oee(machine.id, START, END)

    assert calls["n"] == 2
    assert degraded.stale is True
    assert degraded.oee == fresh.oee


def test_transient_failure_without_last_known_value_surfaces(db, machine, clock, monkeypatch):
    monkeypatch.setattr(settings, "PERSISTENCE_RETRY_WAIT_SECONDS", 0)
    service = OEEService(db, clock=clock, store=InMemoryTTLStore())

    def broken(*args, **kwargs):
        raise TransientPersistenceException("shift_records.list_overlapping")

    monkeypatch.setattr(service._shift_repo, "list_overlapping", broken)

    with pytest.raises(TransientPersistenceException):
        service.calculate_oee(machine.id, START, END)


def test_multiple_oee_isolates_failing_machine(db, make_machine, clock, session_factory):
    first, second = make_machine(), make_machine()
    _produce(db, clock, first.id, units=60, run_minutes=60)

    batch = OEEService(db, clock=clock, session_factory=session_factory).calculate_multiple_oee(
        [first.id, 999, second.id], START, END
    )

    by_id = {entry.machine_id: entry for entry in batch.results}
    assert [entry.machine_id for entry in batch.results] == [first.id, 999, second.id]
    assert by_id[first.id].error is False
    assert by_id[first.id].result.total_production == 60
    assert by_id[999].error is True
    assert by_id[999].oee == 0
    assert "not found" in by_id[999].error_message
    assert by_id[second.id].error is False


def test_multiple_oee_times_out_slow_machine(db, make_machine, clock, session_factory):
    fast, slow = make_machine(), make_machine()

    class SlowOEEService(OEEService):
        def _calculate_isolated(self, machine_id, start, end):
            if machine_id == slow.id:
                time.sleep(1.0)
            return super()._calculate_isolated(machine_id, start, end)

    service = SlowOEEService(db, clock=clock, session_factory=session_factory)
    batch = service.calculate_multiple_oee([fast.id, slow.id], START, END, timeout_seconds=0.3)

    by_id = {entry.machine_id: entry for entry in batch.results}
    assert by_id[fast.id].error is False
    assert by_id[slow.id].error is True
    assert "Timed out" in by_id[slow.id].error_message


def test_queued_machine_gets_its_own_timeout(db, make_machine, clock, session_factory, monkeypatch):
    monkeypatch.setattr(settings, "OEE_FANOUT_MAX_WORKERS", 2)
    first_slow, second_slow, healthy = make_machine(), make_machine(), make_machine()
    _produce(db, clock, healthy.id, units=30, run_minutes=30)
    slow_ids = {first_slow.id, second_slow.id}

    class SlowOEEService(OEEService):
        def _calculate_isolated(self, machine_id, start, end):
            if machine_id in slow_ids:
                time.sleep(0.6)
            return super()._calculate_isolated(machine_id, start, end)

    service = SlowOEEService(db, clock=clock, session_factory=session_factory)
    batch = service.calculate_multiple_oee(
        [first_slow.id, second_slow.id, healthy.id], START, END, timeout_seconds=0.5
    )

    by_id = {entry.machine_id: entry for entry in batch.results}
    assert by_id[first_slow.id].error_message == "Timed out after 0.5s"
    assert by_id[second_slow.id].error_message == "Timed out after 0.5s"
    assert by_id[healthy.id].error is False
    assert by_id[healthy.id].result.total_production == 30
