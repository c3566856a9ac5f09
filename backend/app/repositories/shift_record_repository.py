from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models.shift_record import ShiftRecord
from app.repositories.base import BaseRepository


class ShiftRecordRepository(BaseRepository[ShiftRecord]):
    def __init__(self, db: Session):
        super().__init__(ShiftRecord, db)

    def fetch_open_shift(self, machine_id: int, operator_id: int) -> Optional[ShiftRecord]:
        """Most recent non-archived record for the pair, if any."""
        with self.transient_guard("shift_records.fetch_open"):
            return (
                self.db.query(ShiftRecord)
                .filter(
                    ShiftRecord.machine_id == machine_id,
                    ShiftRecord.operator_id == operator_id,
                    ShiftRecord.is_archived.is_(False),
                )
                .order_by(ShiftRecord.start_time.desc(), ShiftRecord.id.desc())
                .first()
            )

    def lock_for_update(self, record_id: int) -> Optional[ShiftRecord]:
        """Re-read the record with a row lock (ignored by SQLite)."""
        return (
            self.db.query(ShiftRecord)
            .filter(ShiftRecord.id == record_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def increment_counters(
        self,
        record_id: int,
        units: int,
        rejected_units: int,
        run_minutes: float,
        downtime_minutes: float,
        now: datetime,
    ) -> bool:
        """Add a delta to an open record's counters inside the database.

        Returns False when the record was archived (or removed) since it was
        read; archived records are never written. The updated row stays locked
        until the caller commits.
        """
        with self.transient_guard("shift_records.increment"):
            result = self.db.execute(
                update(ShiftRecord)
                .where(ShiftRecord.id == record_id, ShiftRecord.is_archived.is_(False))
                .values(
                    total_production=ShiftRecord.total_production + units,
                    rejected_production=ShiftRecord.rejected_production + rejected_units,
                    run_minutes=ShiftRecord.run_minutes + run_minutes,
                    downtime_minutes=ShiftRecord.downtime_minutes + downtime_minutes,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def increment_test_counts(self, record_id: int, approved: bool, now: datetime) -> bool:
        with self.transient_guard("shift_records.increment_tests"):
            result = self.db.execute(
                update(ShiftRecord)
                .where(ShiftRecord.id == record_id, ShiftRecord.is_archived.is_(False))
                .values(
                    quality_tests_count=ShiftRecord.quality_tests_count + 1,
                    approved_tests_count=ShiftRecord.approved_tests_count + (1 if approved else 0),
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def get_open_for_day(self, machine_id: int, operator_id: int, shift_date: date) -> Optional[ShiftRecord]:
        return (
            self.db.query(ShiftRecord)
            .filter(
                ShiftRecord.machine_id == machine_id,
                ShiftRecord.operator_id == operator_id,
                ShiftRecord.shift_date == shift_date,
                ShiftRecord.is_archived.is_(False),
            )
            .first()
        )

    def list_overlapping(self, machine_id: int, start: datetime, end: datetime) -> List[ShiftRecord]:
        """Records of the machine whose [start_time, end_time) window intersects [start, end)."""
        with self.transient_guard("shift_records.list_overlapping"):
            return (
                self.db.query(ShiftRecord)
                .filter(
                    ShiftRecord.machine_id == machine_id,
                    ShiftRecord.start_time < end,
                    ShiftRecord.end_time > start,
                )
                .order_by(ShiftRecord.start_time)
                .all()
            )

    def list_completed_open(self, now: datetime) -> List[ShiftRecord]:
        return (
            self.db.query(ShiftRecord)
            .filter(ShiftRecord.is_archived.is_(False), ShiftRecord.end_time <= now)
            .order_by(ShiftRecord.end_time, ShiftRecord.id)
            .all()
        )

    def list_filtered(
        self,
        machine_id: Optional[int] = None,
        operator_id: Optional[int] = None,
        shift_type: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        include_archived: bool = True,
    ) -> List[ShiftRecord]:
        q = self.db.query(ShiftRecord)
        if machine_id is not None:
            q = q.filter(ShiftRecord.machine_id == machine_id)
        if operator_id is not None:
            q = q.filter(ShiftRecord.operator_id == operator_id)
        if shift_type is not None:
            q = q.filter(ShiftRecord.shift_type == shift_type)
        if date_from is not None:
            q = q.filter(ShiftRecord.shift_date >= date_from)
        if date_to is not None:
            q = q.filter(ShiftRecord.shift_date <= date_to)
        if not include_archived:
            q = q.filter(ShiftRecord.is_archived.is_(False))
        return q.order_by(ShiftRecord.start_time.desc(), ShiftRecord.id.desc()).all()

    def write_shift(self, record: ShiftRecord) -> ShiftRecord:
        with self.transient_guard("shift_records.write"):
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
            return record
