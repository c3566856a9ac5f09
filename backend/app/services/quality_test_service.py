"""
Quality Test Service

Quality tests are append-only. Recording one moves its config's baseline to
the test date (pass or fail), counts it on the operator's open shift and, when
it passed, closes the config's active alert.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import ValidationException
from app.models.quality_test_record import QualityTestRecord
from app.repositories.quality_gate_repository import QualityTestRecordRepository
from app.repositories.shift_record_repository import ShiftRecordRepository
from app.schemas.quality_gate import QualityTestCreate
from app.services.alert_dispatch_service import AlertDispatchService
from app.services.quality_gate_service import QualityGateService
from app.utils.clock import Clock, get_clock

logger = logging.getLogger(__name__)


class QualityTestService:

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self._clock = clock or get_clock()
        self._repo = QualityTestRecordRepository(db)
        self._shift_repo = ShiftRecordRepository(db)
        self._gates = QualityGateService(db, clock=self._clock)
        self._alerts = AlertDispatchService(db, clock=self._clock)

    def record_test(self, data: QualityTestCreate) -> QualityTestRecord:
        config = self._gates.get_config(data.config_id)
        if config.machine_id != data.machine_id:
            raise ValidationException("config_id", f"config {config.id} does not belong to machine {data.machine_id}")

        now = self._clock.now()
        test = QualityTestRecord(
            machine_id=data.machine_id,
            config_id=config.id,
            operator_id=data.operator_id,
            test_date=now,
            approved=data.approved,
            notes=data.notes,
        )
        self.db.add(test)
        if data.operator_id is not None:
            shift = self._shift_repo.fetch_open_shift(data.machine_id, data.operator_id)
            if shift is not None:
                self._shift_repo.increment_test_counts(shift.id, data.approved, now)
        self.db.commit()
        self.db.refresh(test)

        logger.info(
            "quality_test_recorded",
            extra={
                "machine_id": data.machine_id,
                "config_id": config.id,
                "operator_id": data.operator_id,
                "approved": data.approved,
            },
        )
        if data.approved:
            self._alerts.close_for_passing_test(data.machine_id, config.id, data.operator_id)
        return test

    def list_tests(
        self,
        machine_id: Optional[int] = None,
        config_id: Optional[int] = None,
        approved: Optional[bool] = None,
    ) -> List[QualityTestRecord]:
        return self._repo.list_filtered(machine_id=machine_id, config_id=config_id, approved=approved)
