import pytest

from app.core.exceptions import EntityNotFoundException, ProductionBlockedException, ValidationException
from app.models.enums import GateReason, GateStatus
from app.schemas.production import ProductionDeltaRequest
from app.schemas.quality_gate import QualityGateConfigCreate, QualityGateConfigUpdate, QualityTestCreate
from app.services.quality_gate_service import QualityGateService
from app.services.quality_test_service import QualityTestService
from app.services.shift_ledger_service import ShiftLedgerService


def _produce(db, clock, machine_id, units):
    ShiftLedgerService(db, clock=clock).record_production_delta(
        ProductionDeltaRequest(machine_id=machine_id, operator_id=10, units=units)
    )


def _test(db, clock, machine_id, config_id, approved=True):
    return QualityTestService(db, clock=clock).record_test(
        QualityTestCreate(machine_id=machine_id, config_id=config_id, operator_id=10, approved=approved)
    )


def test_count_threshold_one_below_is_ok(db, machine, clock, make_config):
    make_config(machine.id, products_per_test=100)
    clock.advance(minutes=1)
    _produce(db, clock, machine.id, 60)
    _produce(db, clock, machine.id, 39)

    status = QualityGateService(db, clock=clock).evaluate_quality_gate(machine.id)

    assert status.status == GateStatus.OK
    assert status.pending_configs == []
    assert status.configs[0].production_since_baseline == 99


def test_count_threshold_reached_is_pending(db, machine, clock, make_config):
    config = make_config(machine.id, products_per_test=100)
    clock.advance(minutes=1)
    _produce(db, clock, machine.id, 60)
    _produce(db, clock, machine.id, 40)

    status = QualityGateService(db, clock=clock).evaluate_quality_gate(machine.id)

    assert status.status == GateStatus.PENDING
    pending = status.pending_configs[0]
    assert pending.config_id == config.id
    assert [r.reason for r in pending.reasons] == [GateReason.PRODUCTS_PER_TEST]
    assert pending.reasons[0].measured == 100
    assert pending.reasons[0].exceed_by == 0


def test_scenario_fifty_units_then_passing_test(db, machine, clock, make_config):
    config = make_config(machine.id, products_per_test=50, test_frequency_hours=8)
    service = QualityGateService(db, clock=clock)
    clock.advance(minutes=5)
    _produce(db, clock, machine.id, 50)

    status = service.evaluate_quality_gate(machine.id)
    assert status.status == GateStatus.PENDING
    reason = status.pending_configs[0].reasons[0]
    assert reason.reason == GateReason.PRODUCTS_PER_TEST
    assert reason.exceed_by == 0

    _test(db, clock, machine.id, config.id, approved=True)

    assert service.evaluate_quality_gate(machine.id).status == GateStatus.OK


def test_frequency_condition_uses_config_creation_without_tests(db, machine, clock, make_config):
    make_config(machine.id, test_frequency_hours=8)
    service = QualityGateService(db, clock=clock)

    clock.advance(hours=7, minutes=59)
    assert service.evaluate_quality_gate(machine.id).status == GateStatus.OK

    clock.advance(minutes=1)
    status = service.evaluate_quality_gate(machine.id)
    assert status.status == GateStatus.PENDING
    reason = status.pending_configs[0].reasons[0]
    assert reason.reason == GateReason.FREQUENCY
    assert reason.threshold == 8
    assert reason.exceed_by == 0


def test_both_conditions_reported_with_exceed_by(db, machine, clock, make_config):
    make_config(machine.id, test_frequency_hours=1, products_per_test=10)
    clock.advance(minutes=1)
    _produce(db, clock, machine.id, 25)
    clock.advance(hours=2)

    pending = QualityGateService(db, clock=clock).evaluate_quality_gate(machine.id).pending_configs[0]

    reasons = {r.reason: r for r in pending.reasons}
    assert reasons[GateReason.PRODUCTS_PER_TEST].exceed_by == 15
    assert reasons[GateReason.FREQUENCY].exceed_by == pytest.approx(1.02, abs=0.01)


def test_zero_thresholds_disable_conditions(db, machine, clock, make_config):
    make_config(machine.id, test_frequency_hours=0, products_per_test=0)
    clock.advance(minutes=1)
    _produce(db, clock, machine.id, 10_000)
    clock.advance(hours=100)

    assert QualityGateService(db, clock=clock).evaluate_quality_gate(machine.id).status == GateStatus.OK


def test_failing_test_still_advances_baseline(db, machine, clock, make_config):
    config = make_config(machine.id, products_per_test=20)
    clock.advance(minutes=1)
    _produce(db, clock, machine.id, 20)
    service = QualityGateService(db, clock=clock)
    assert service.evaluate_quality_gate(machine.id).status == GateStatus.PENDING

    _test(db, clock, machine.id, config.id, approved=False)

    status = service.evaluate_quality_gate(machine.id)
    assert status.status == GateStatus.OK
    assert status.configs[0].pass_rate == 0
    assert status.configs[0].pass_rate_ok is False


def test_test_only_advances_its_own_config(db, machine, clock, make_config):
    tested = make_config(machine.id, products_per_test=10, test_name="Diameter")
    untested = make_config(machine.id, products_per_test=10, test_name="Colour")
    clock.advance(minutes=1)
    _produce(db, clock, machine.id, 10)

    _test(db, clock, machine.id, tested.id)

    status = QualityGateService(db, clock=clock).evaluate_quality_gate(machine.id)
    assert [p.config_id for p in status.pending_configs] == [untested.id]


def test_blocking_config_stops_production(db, machine, clock, make_config):
    make_config(machine.id, products_per_test=10, block_production=False, test_name="Advisory")
    blocking = make_config(machine.id, products_per_test=10, block_production=True, test_name="Burst")
    clock.advance(minutes=1)
    _produce(db, clock, machine.id, 10)

    with pytest.raises(ProductionBlockedException) as exc:
        QualityGateService(db, clock=clock).ensure_production_allowed(machine.id)

    assert exc.value.status_code == 409
    assert exc.value.to_dict()["code"] == "PRODUCTION_BLOCKED"
    assert [c["config_id"] for c in exc.value.pending_configs] == [blocking.id]


def test_advisory_configs_never_block(db, machine, clock, make_config):
    make_config(machine.id, products_per_test=10, block_production=False)
    clock.advance(minutes=1)
    _produce(db, clock, machine.id, 10)

    status = QualityGateService(db, clock=clock).ensure_production_allowed(machine.id)

    assert status.status == GateStatus.PENDING
    assert status.blocking is False


def test_find_config_issues_flags_required_tests_without_thresholds(db, machine, clock, make_config):
    broken = make_config(machine.id, is_required=True)
    make_config(machine.id, is_required=False)
    make_config(machine.id, is_required=True, products_per_test=5)

    issues = QualityGateService(db, clock=clock).find_config_issues(machine.id)

    assert [i.config_id for i in issues] == [broken.id]
    assert issues[0].severity == "CRITICAL"


def test_config_crud(db, machine, clock):
    service = QualityGateService(db, clock=clock)
    config = service.create_config(QualityGateConfigCreate(machine_id=machine.id, test_name="Tensile", products_per_test=500))

    assert config.created_at == clock.now()
    updated = service.update_config(config.id, QualityGateConfigUpdate(products_per_test=250))
    assert updated.products_per_test == 250

    service.deactivate_config(config.id)
    assert service.list_configs(machine.id) == []
    assert len(service.list_configs(machine.id, active_only=False)) == 1


def test_inactive_configs_are_ignored(db, machine, clock, make_config):
    make_config(machine.id, products_per_test=1, is_active=False)
    clock.advance(minutes=1)
    _produce(db, clock, machine.id, 5)

    assert QualityGateService(db, clock=clock).evaluate_quality_gate(machine.id).status == GateStatus.OK


def test_unknown_machine_and_config(db, clock):
    service = QualityGateService(db, clock=clock)

    with pytest.raises(EntityNotFoundException):
        service.evaluate_quality_gate(404)
    with pytest.raises(EntityNotFoundException):
        service.get_config(404)


def test_test_for_config_of_other_machine_is_rejected(db, make_machine, clock, make_config):
    first, second = make_machine(), make_machine()
    config = make_config(first.id, products_per_test=10)

    with pytest.raises(ValidationException):
        _test(db, clock, second.id, config.id)


def test_quality_test_counts_on_open_shift(db, machine, clock, make_config):
    config = make_config(machine.id, products_per_test=10)
    _produce(db, clock, machine.id, 5)

    _test(db, clock, machine.id, config.id, approved=True)
    _test(db, clock, machine.id, config.id, approved=False)

    shift = ShiftLedgerService(db, clock=clock).get_current_shift(machine.id, 10)
    assert shift.quality_tests_count == 2
    assert shift.approved_tests_count == 1
