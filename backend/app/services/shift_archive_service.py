"""
Shift archival: freeze a shift record and keep a checksummed JSON snapshot of it.
"""
import hashlib
import json
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import EntityNotFoundException, InvalidStateTransitionException
from app.models.production_archive import ProductionArchive
from app.models.shift_record import ShiftRecord
from app.repositories.production_archive_repository import ProductionArchiveRepository
from app.repositories.shift_record_repository import ShiftRecordRepository
from app.utils.clock import Clock, get_clock
from app.utils.events import ShiftArchivedEvent, get_event_bus

logger = logging.getLogger(__name__)

SNAPSHOT_FIELDS = (
    "id",
    "machine_id",
    "operator_id",
    "shift_date",
    "shift_type",
    "start_time",
    "end_time",
    "team_code",
    "rotation_day",
    "total_production",
    "rejected_production",
    "target_production",
    "run_minutes",
    "downtime_minutes",
    "efficiency",
    "quality_tests_count",
    "approved_tests_count",
)


def snapshot_record(record: ShiftRecord) -> str:
    data = {}
    for name in SNAPSHOT_FIELDS:
        value = getattr(record, name)
        data[name] = value.isoformat() if hasattr(value, "isoformat") else value
    return json.dumps(data, sort_keys=True)


def checksum(payload: str) -> str:
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


class ShiftArchiveService:

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self._clock = clock or get_clock()
        self._repo = ShiftRecordRepository(db)
        self._archive_repo = ProductionArchiveRepository(db)
        self._bus = get_event_bus()

    def archive_record(self, record: ShiftRecord, now: datetime, commit: bool = True) -> ProductionArchive:
        if record.is_archived:
            raise InvalidStateTransitionException("ShiftRecord", "ARCHIVED", "ARCHIVED")
        payload = snapshot_record(record)
        archive = ProductionArchive(
            shift_record_id=record.id,
            machine_id=record.machine_id,
            operator_id=record.operator_id,
            archived_data=payload,
            data_size=len(payload.encode("utf-8")),
            checksum=checksum(payload),
            archived_at=now,
        )
        record.is_archived = True
        record.archived_at = now
        record.updated_at = now
        self.db.add(archive)
        if commit:
            self.db.commit()
            self.db.refresh(archive)
            self.publish_archived(record, archive)
        return archive

    def publish_archived(self, record: ShiftRecord, archive: ProductionArchive) -> None:
        logger.info(
            "shift_archived",
            extra={
                "shift_record_id": record.id,
                "machine_id": record.machine_id,
                "operator_id": record.operator_id,
                "total_production": record.total_production,
            },
        )
        self._bus.publish(ShiftArchivedEvent(
            shift_record_id=record.id,
            machine_id=record.machine_id,
            operator_id=record.operator_id,
            total_production=record.total_production,
            archive_checksum=archive.checksum,
        ))

    def archive_shift(self, record_id: int, now: Optional[datetime] = None) -> ProductionArchive:
        record = self._repo.lock_for_update(record_id)
        if record is None:
            raise EntityNotFoundException("ShiftRecord", record_id)
        return self.archive_record(record, now or self._clock.now())

    def get_archive(self, record_id: int) -> ProductionArchive:
        archive = self._archive_repo.get_by_shift_record(record_id)
        if archive is None:
            raise EntityNotFoundException("ProductionArchive", record_id)
        return archive

    def list_archives(self, machine_id: int, limit: int = 50) -> List[ProductionArchive]:
        return self._archive_repo.list_for_machine(machine_id, limit=limit)
