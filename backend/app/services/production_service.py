"""
Production Service — facade over the shift engine for machine operations

start/stop change the machine state; production events flow through
resolver → ledger → quality gate → alert dispatch. A ledger failure never
undoes the machine operation: it is logged and reported as
``ledger_synced=False`` so the caller can resend the delta.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import EntityNotFoundException, FactoryOpsException, InvalidStateTransitionException
from app.models.enums import MachineStatus
from app.models.machine import Machine
from app.models.production_alert import ProductionAlert
from app.models.shift_record import ShiftRecord
from app.repositories.machine_repository import MachineRepository
from app.schemas.production import (
    ProductionDeltaRequest,
    ProductionEventResponse,
    ProductionStartRequest,
    ProductionStopRequest,
)
from app.schemas.quality_gate import QualityGateStatusResponse
from app.services.alert_dispatch_service import AlertDispatchService
from app.services.quality_gate_service import QualityGateService
from app.services.shift_ledger_service import ShiftLedgerService, validate_delta
from app.utils.clock import Clock, get_clock

logger = logging.getLogger(__name__)


class ProductionService:

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self._clock = clock or get_clock()
        self._machine_repo = MachineRepository(db)
        self._ledger = ShiftLedgerService(db, clock=self._clock)
        self._gates = QualityGateService(db, clock=self._clock)
        self._alerts = AlertDispatchService(db, clock=self._clock)

    def start_production(self, machine_id: int, body: ProductionStartRequest) -> ProductionEventResponse:
        machine = self._get_machine(machine_id)
        if not machine.is_active:
            raise InvalidStateTransitionException("Machine", "INACTIVE", MachineStatus.RUNNING.value)
        gate = self._gates.ensure_production_allowed(machine_id)

        if machine.status != MachineStatus.RUNNING.value:
            machine = self._machine_repo.update(machine, {"status": MachineStatus.RUNNING.value})
        logger.info("production_started", extra={"machine_id": machine_id, "operator_id": body.operator_id})

        shift = None
        synced = True
        try:
            shift = self._ledger.resolve_shift(machine_id, body.operator_id, team_code=body.team_code)
        except (FactoryOpsException, SQLAlchemyError) as exc:
            synced = self._ledger_failed("start_production", machine_id, body.operator_id, exc)
        return self._response(machine, body.operator_id, synced, shift, gate, [])

    def stop_production(self, machine_id: int, body: ProductionStopRequest) -> ProductionEventResponse:
        machine = self._get_machine(machine_id)
        if machine.status != MachineStatus.RUNNING.value:
            raise InvalidStateTransitionException("Machine", machine.status, body.next_status.value)
        if body.next_status == MachineStatus.RUNNING:
            raise InvalidStateTransitionException("Machine", machine.status, body.next_status.value)
        machine = self._machine_repo.update(machine, {"status": body.next_status.value})
        logger.info(
            "production_stopped",
            extra={"machine_id": machine_id, "operator_id": body.operator_id, "reason": body.reason},
        )
        shift = self._ledger.get_current_shift(machine_id, body.operator_id)
        return self._response(machine, body.operator_id, True, shift, None, [])

    def record_production_event(self, delta: ProductionDeltaRequest) -> ProductionEventResponse:
        validate_delta(delta)
        machine = self._get_machine(delta.machine_id)

        shift = None
        synced = True
        try:
            shift = self._ledger.record_production_delta(delta)
        except (FactoryOpsException, SQLAlchemyError) as exc:
            synced = self._ledger_failed("record_production_event", machine.id, delta.operator_id, exc)

        gate = self._gates.evaluate_quality_gate(machine.id)
        alerts = self._alerts.dispatch_alerts_if_needed(machine.id) if gate.pending_configs else []
        return self._response(machine, delta.operator_id, synced, shift, gate, alerts)

    def _ledger_failed(self, operation: str, machine_id: int, operator_id: int, exc: Exception) -> bool:
        self.db.rollback()
        logger.error(
            "ledger_sync_failed",
            extra={
                "operation": operation,
                "machine_id": machine_id,
                "operator_id": operator_id,
                "error": str(exc),
            },
        )
        return False

    def _get_machine(self, machine_id: int) -> Machine:
        machine = self._machine_repo.get_by_id(machine_id)
        if not machine:
            raise EntityNotFoundException("Machine", machine_id)
        return machine

    def _response(
        self,
        machine: Machine,
        operator_id: int,
        synced: bool,
        shift: Optional[ShiftRecord],
        gate: Optional[QualityGateStatusResponse],
        alerts: List[ProductionAlert],
    ) -> ProductionEventResponse:
        return ProductionEventResponse(
            machine_id=machine.id,
            operator_id=operator_id,
            machine_status=machine.status,
            ledger_synced=synced,
            shift=shift,
            quality_gate=gate,
            alerts=alerts,
            recorded_at=self._clock.now(),
        )
