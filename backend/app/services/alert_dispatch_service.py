"""
Alert Dispatch Service

Turns pending quality gates into production alerts. At most one alert per
(machine, config) is active at a time; the partial unique index on
``production_alerts`` is the compare-and-set, so concurrent dispatchers
collapse to a single alert. Delivery to people happens elsewhere, on the
``ProductionAlertRaisedEvent``.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import EntityNotFoundException, InvalidStateTransitionException
from app.models.enums import AlertResolution, AlertSeverity, GateReason, TargetRole
from app.models.machine import Machine
from app.models.production_alert import ProductionAlert
from app.models.quality_gate_config import QualityGateConfig
from app.repositories.machine_repository import MachineRepository
from app.repositories.production_alert_repository import ProductionAlertRepository
from app.repositories.quality_gate_repository import QualityGateConfigRepository
from app.schemas.quality_gate import ConfigGateEvaluation, GateReasonDetail
from app.services.quality_gate_service import QualityGateService
from app.utils.clock import Clock, get_clock
from app.utils.events import (
    ProductionAlertClosedEvent,
    ProductionAlertRaisedEvent,
    QualityGateBreachedEvent,
    get_event_bus,
)

logger = logging.getLogger(__name__)

ROLE_TEMPLATES: Dict[str, str] = {
    TargetRole.MANAGER.value: (
        "[{severity}] {machine}: quality test '{test}' overdue ({detail}). "
        "Follow up with the shift leader."
    ),
    TargetRole.LEADER.value: (
        "[{severity}] {machine}: schedule quality test '{test}' now ({detail})."
    ),
    TargetRole.OPERATOR.value: (
        "{machine}: run quality test '{test}' before continuing ({detail})."
    ),
}


def severity_for(production_count: float, threshold: float) -> AlertSeverity:
    return AlertSeverity.HIGH if production_count - threshold > 0 else AlertSeverity.MEDIUM


def primary_reason(evaluation: ConfigGateEvaluation) -> GateReasonDetail:
    """Count-based reasons win over time-based ones when both fired."""
    for reason in evaluation.reasons:
        if reason.reason == GateReason.PRODUCTS_PER_TEST:
            return reason
    return evaluation.reasons[0]


def describe_reason(reason: GateReasonDetail) -> str:
    if reason.reason == GateReason.PRODUCTS_PER_TEST:
        return f"{int(reason.measured)} units produced, limit {int(reason.threshold)}"
    return f"{reason.measured:g}h since last test, limit {reason.threshold:g}h"


def render_role_messages(
    machine: Machine,
    config: QualityGateConfig,
    reason: GateReasonDetail,
    severity: AlertSeverity,
    roles: List[str],
) -> Dict[str, str]:
    detail = describe_reason(reason)
    machine_label = f"{machine.name} ({machine.code})"
    return {
        role: ROLE_TEMPLATES.get(role, ROLE_TEMPLATES[TargetRole.OPERATOR.value]).format(
            severity=severity.value, machine=machine_label, test=config.test_name, detail=detail,
        )
        for role in roles
    }


class AlertDispatchService:

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self._clock = clock or get_clock()
        self._repo = ProductionAlertRepository(db)
        self._config_repo = QualityGateConfigRepository(db)
        self._machine_repo = MachineRepository(db)
        self._gates = QualityGateService(db, clock=self._clock)
        self._bus = get_event_bus()

    def dispatch_alerts_if_needed(self, machine_id: int) -> List[ProductionAlert]:
        """Create an alert for every pending gate that has none open. Returns only new alerts."""
        machine = self._machine_repo.get_by_id(machine_id)
        if not machine:
            raise EntityNotFoundException("Machine", machine_id)
        status = self._gates.evaluate_quality_gate(machine_id)
        created = []
        for evaluation in status.pending_configs:
            if self._repo.fetch_open_alert(machine_id, evaluation.config_id):
                continue
            config = self._config_repo.get_by_id(evaluation.config_id)
            alert = self._create_alert(machine, config, evaluation, status.evaluated_at)
            if alert is not None:
                created.append(alert)
        return created

    def _create_alert(
        self,
        machine: Machine,
        config: QualityGateConfig,
        evaluation: ConfigGateEvaluation,
        now: datetime,
    ) -> Optional[ProductionAlert]:
        reason = primary_reason(evaluation)
        severity = severity_for(reason.measured, reason.threshold)
        roles = settings.alert_target_roles_list
        messages = render_role_messages(machine, config, reason, severity, roles)
        alert = ProductionAlert(
            machine_id=machine.id,
            config_id=config.id,
            alert_type=reason.reason.value,
            production_count_at_trigger=evaluation.production_since_baseline,
            measured_value=float(reason.measured),
            threshold=float(reason.threshold),
            severity=severity.value,
            target_roles=",".join(roles),
            message=messages.get(TargetRole.LEADER.value) or next(iter(messages.values())),
            is_active=True,
            created_at=now,
        )
        try:
            alert = self._repo.write_alert(alert)
        except IntegrityError:
            # Lost the race: another dispatcher holds the active alert for this gate
            self.db.rollback()
            logger.info("alert_already_active", extra={"machine_id": machine.id, "config_id": config.id})
            return None

        logger.info(
            "production_alert_raised",
            extra={
                "alert_id": alert.id,
                "machine_id": machine.id,
                "config_id": config.id,
                "severity": alert.severity,
                "alert_type": alert.alert_type,
            },
        )
        self._bus.publish(QualityGateBreachedEvent(
            machine_id=machine.id,
            config_id=config.id,
            reasons=[r.reason.value for r in evaluation.reasons],
            production_count=evaluation.production_since_baseline,
            alert_type=alert.alert_type,
            measured_value=alert.measured_value,
            threshold=alert.threshold,
        ))
        self._bus.publish(ProductionAlertRaisedEvent(
            alert_id=alert.id,
            machine_id=machine.id,
            config_id=config.id,
            severity=alert.severity,
            production_count=alert.production_count_at_trigger,
            alert_type=alert.alert_type,
            measured_value=alert.measured_value,
            threshold=alert.threshold,
            target_roles=roles,
            messages=messages,
        ))
        return alert

    def get_alert(self, alert_id: int) -> ProductionAlert:
        alert = self._repo.get_by_id(alert_id)
        if not alert:
            raise EntityNotFoundException("ProductionAlert", alert_id)
        return alert

    def list_alerts(self, machine_id: Optional[int] = None, active_only: bool = False) -> List[ProductionAlert]:
        return self._repo.list_filtered(machine_id=machine_id, is_active=True if active_only else None)

    def acknowledge_alert(self, alert_id: int, user_id: int) -> ProductionAlert:
        alert = self.get_alert(alert_id)
        if not alert.is_active:
            raise InvalidStateTransitionException("ProductionAlert", alert.resolution or "CLOSED", "ACKNOWLEDGED")
        return self._close(alert, AlertResolution.ACKNOWLEDGED, user_id)

    def close_for_passing_test(
        self,
        machine_id: int,
        config_id: int,
        user_id: Optional[int] = None,
    ) -> Optional[ProductionAlert]:
        alert = self._repo.fetch_open_alert(machine_id, config_id)
        if alert is None:
            return None
        return self._close(alert, AlertResolution.TEST_PASSED, user_id)

    def _close(self, alert: ProductionAlert, resolution: AlertResolution, user_id: Optional[int]) -> ProductionAlert:
        alert = self._repo.update(alert, {
            "is_active": False,
            "resolution": resolution.value,
            "resolved_at": self._clock.now(),
            "resolved_by": user_id,
        })
        logger.info(
            "production_alert_closed",
            extra={"alert_id": alert.id, "machine_id": alert.machine_id, "resolution": resolution.value},
        )
        self._bus.publish(ProductionAlertClosedEvent(
            alert_id=alert.id,
            machine_id=alert.machine_id,
            config_id=alert.config_id,
            resolution=resolution.value,
            resolved_by=user_id,
        ))
        return alert
