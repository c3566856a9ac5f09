import pytest

from app.core.exceptions import EntityNotFoundException, InvalidStateTransitionException
from app.models.enums import AlertSeverity, GateReason
from app.models.production_alert import ProductionAlert
from app.schemas.production import ProductionDeltaRequest
from app.schemas.quality_gate import ConfigGateEvaluation, GateReasonDetail, QualityTestCreate
from app.services.alert_delivery_service import AlertDeliveryHandler, InMemoryNotificationChannel
from app.services.alert_dispatch_service import AlertDispatchService, primary_reason, severity_for
from app.services.quality_test_service import QualityTestService
from app.services.shift_ledger_service import ShiftLedgerService
from app.utils.events import ProductionAlertClosedEvent, QualityGateBreachedEvent, configure_event_bus


def _produce(db, clock, machine_id, units):
    ShiftLedgerService(db, clock=clock).record_production_delta(
        ProductionDeltaRequest(machine_id=machine_id, operator_id=10, units=units)
    )


def _pending_machine(db, clock, machine, make_config, units=100, **config):
    values = {"products_per_test": 100}
    values.update(config)
    gate = make_config(machine.id, **values)
    clock.advance(minutes=1)
    _produce(db, clock, machine.id, units)
    return gate


def test_severity_from_overshoot():
    assert severity_for(100, 100) == AlertSeverity.MEDIUM
    assert severity_for(120, 100) == AlertSeverity.HIGH
    assert severity_for(8.0, 8) == AlertSeverity.MEDIUM


def test_count_reason_takes_precedence():
    evaluation = ConfigGateEvaluation(
        config_id=1,
        pending=True,
        test_name="Burst",
        is_required=True,
        block_production=False,
        baseline="2026-10-14T07:00:00",
        hours_since_baseline=9,
        production_since_baseline=150,
        reasons=[
            GateReasonDetail(reason=GateReason.FREQUENCY, measured=9, threshold=8, exceed_by=1),
            GateReasonDetail(reason=GateReason.PRODUCTS_PER_TEST, measured=150, threshold=100, exceed_by=50),
        ],
        min_pass_rate=95,
        pass_rate_ok=True,
    )

    assert primary_reason(evaluation).reason == GateReason.PRODUCTS_PER_TEST


def test_dispatch_creates_single_active_alert(db, machine, clock, make_config):
    gate = _pending_machine(db, clock, machine, make_config)
    service = AlertDispatchService(db, clock=clock)

    first = service.dispatch_alerts_if_needed(machine.id)
    second = service.dispatch_alerts_if_needed(machine.id)

    assert len(first) == 1
    assert second == []
    alert = first[0]
    assert alert.config_id == gate.id
    assert alert.alert_type == "PRODUCTS_PER_TEST"
    assert alert.production_count_at_trigger == 100
    assert alert.threshold == 100
    assert alert.measured_value == 100
    assert alert.severity == "MEDIUM"
    assert alert.target_roles == "MANAGER,LEADER,OPERATOR"
    assert "Wall thickness" in alert.message
    assert db.query(ProductionAlert).filter_by(is_active=True).count() == 1


def test_frequency_alert_keeps_fractional_hours(db, machine, clock, make_config, event_bus):
    breaches = []
    event_bus.subscribe(QualityGateBreachedEvent, breaches.append)
    make_config(machine.id, test_frequency_hours=1.5)
    clock.advance(hours=1, minutes=45)
    _produce(db, clock, machine.id, 40)

    alert = AlertDispatchService(db, clock=clock).dispatch_alerts_if_needed(machine.id)[0]

    assert alert.alert_type == "FREQUENCY"
    assert alert.threshold == 1.5
    assert alert.measured_value == 1.75
    assert alert.production_count_at_trigger == 40
    assert alert.severity == "HIGH"
    assert breaches[0].threshold == 1.5
    assert breaches[0].measured_value == 1.75
    assert breaches[0].alert_type == "FREQUENCY"


def test_overshoot_raises_high_severity(db, machine, clock, make_config):
    _pending_machine(db, clock, machine, make_config, units=120)

    alert = AlertDispatchService(db, clock=clock).dispatch_alerts_if_needed(machine.id)[0]

    assert alert.severity == "HIGH"


def test_no_alert_when_gate_is_ok(db, machine, clock, make_config):
    _pending_machine(db, clock, machine, make_config, units=50)

    assert AlertDispatchService(db, clock=clock).dispatch_alerts_if_needed(machine.id) == []


def test_concurrent_dispatch_collapses_to_one_alert(session_factory, machine, clock, make_config, db):
    _pending_machine(db, clock, machine, make_config)
    session_a, session_b = session_factory(), session_factory()
    try:
        service_a = AlertDispatchService(session_a, clock=clock)
        service_b = AlertDispatchService(session_b, clock=clock)
        machine_a = session_a.get(type(machine), machine.id)
        evaluation = service_a._gates.evaluate_quality_gate(machine.id).pending_configs[0]
        config = service_a._config_repo.get_by_id(evaluation.config_id)

        assert len(service_b.dispatch_alerts_if_needed(machine.id)) == 1
        assert service_a._create_alert(machine_a, config, evaluation, clock.now()) is None
        assert session_a.query(ProductionAlert).count() == 1
    finally:
        session_a.close()
        session_b.close()


def test_alert_is_delivered_to_every_role(db, machine, clock, make_config):
    channel = InMemoryNotificationChannel()
    bus = configure_event_bus(AlertDeliveryHandler([channel]))
    breaches = []
    bus.subscribe(QualityGateBreachedEvent, breaches.append)
    _pending_machine(db, clock, machine, make_config)

    alert = AlertDispatchService(db, clock=clock).dispatch_alerts_if_needed(machine.id)[0]

    assert [role for _, role, _ in channel.sent] == ["MANAGER", "LEADER", "OPERATOR"]
    assert all(alert_id == alert.id for alert_id, _, _ in channel.sent)
    assert "Follow up" in channel.sent[0][2]
    assert breaches[0].reasons == ["PRODUCTS_PER_TEST"]


def test_failing_channel_does_not_undo_alert(db, machine, clock, make_config):
    class BrokenChannel:
        name = "broken"

        def send(self, role, message, event):
            raise ConnectionError("push gateway down")

    healthy = InMemoryNotificationChannel()
    configure_event_bus(AlertDeliveryHandler([BrokenChannel(), healthy]))
    _pending_machine(db, clock, machine, make_config)

    created = AlertDispatchService(db, clock=clock).dispatch_alerts_if_needed(machine.id)

    assert len(created) == 1
    assert len(healthy.sent) == 3
    assert db.query(ProductionAlert).filter_by(is_active=True).count() == 1


def test_acknowledge_closes_alert_once(db, machine, clock, make_config, event_bus):
    closed = []
    event_bus.subscribe(ProductionAlertClosedEvent, closed.append)
    _pending_machine(db, clock, machine, make_config)
    service = AlertDispatchService(db, clock=clock)
    alert = service.dispatch_alerts_if_needed(machine.id)[0]

    acknowledged = service.acknowledge_alert(alert.id, user_id=42)

    assert acknowledged.is_active is False
    assert acknowledged.resolution == "ACKNOWLEDGED"
    assert acknowledged.resolved_by == 42
    assert acknowledged.resolved_at == clock.now()
    assert closed[0].resolution == "ACKNOWLEDGED"
    with pytest.raises(InvalidStateTransitionException):
        service.acknowledge_alert(alert.id, user_id=42)


def test_acknowledged_gate_still_pending_raises_new_alert(db, machine, clock, make_config):
    _pending_machine(db, clock, machine, make_config)
    service = AlertDispatchService(db, clock=clock)
    first = service.dispatch_alerts_if_needed(machine.id)[0]
    service.acknowledge_alert(first.id, user_id=1)

    second = service.dispatch_alerts_if_needed(machine.id)

    assert len(second) == 1
    assert second[0].id != first.id


def test_passing_test_closes_alert(db, machine, clock, make_config):
    gate = _pending_machine(db, clock, machine, make_config)
    service = AlertDispatchService(db, clock=clock)
    alert = service.dispatch_alerts_if_needed(machine.id)[0]

    QualityTestService(db, clock=clock).record_test(
        QualityTestCreate(machine_id=machine.id, config_id=gate.id, operator_id=10, approved=True)
    )

    db.refresh(alert)
    assert alert.is_active is False
    assert alert.resolution == "TEST_PASSED"
    assert service.dispatch_alerts_if_needed(machine.id) == []


def test_failing_test_keeps_alert_active(db, machine, clock, make_config):
    gate = _pending_machine(db, clock, machine, make_config)
    service = AlertDispatchService(db, clock=clock)
    alert = service.dispatch_alerts_if_needed(machine.id)[0]

    QualityTestService(db, clock=clock).record_test(
        QualityTestCreate(machine_id=machine.id, config_id=gate.id, operator_id=10, approved=False)
    )

    db.refresh(alert)
    assert alert.is_active is True


def test_list_and_get(db, machine, clock, make_config):
    _pending_machine(db, clock, machine, make_config)
    service = AlertDispatchService(db, clock=clock)
    alert = service.dispatch_alerts_if_needed(machine.id)[0]

    assert [a.id for a in service.list_alerts(machine_id=machine.id, active_only=True)] == [alert.id]
    assert service.get_alert(alert.id).id == alert.id
    with pytest.raises(EntityNotFoundException):
        service.get_alert(9999)
    with pytest.raises(EntityNotFoundException):
        service.dispatch_alerts_if_needed(9999)
