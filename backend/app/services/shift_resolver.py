"""
Shift Resolver

Pure calendar rules (which shift a timestamp belongs to, when a transition is
allowed) plus ``ShiftResolver``, which applies the keep/create/rollover
decision to the ledger in a single transaction.

Timestamps are naive plant-local datetimes (see ``app.utils.clock``).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import TeamOffShiftException
from app.models.enums import RotationSlot, ShiftType
from app.models.shift_record import ShiftRecord
from app.repositories.shift_record_repository import ShiftRecordRepository
from app.services.rotation_service import RotationService
from app.services.shift_archive_service import ShiftArchiveService
from app.utils.clock import Clock, get_clock
from app.utils.events import ShiftRolledOverEvent, ShiftStartedEvent, get_event_bus

logger = logging.getLogger(__name__)


class ShiftDecision(str, Enum):
    KEEP = "KEEP"
    CREATE = "CREATE"
    ROLLOVER = "ROLLOVER"


def determine_shift_type(t: datetime) -> ShiftType:
    if settings.DAY_SHIFT_START_HOUR <= t.hour < settings.NIGHT_SHIFT_START_HOUR:
        return ShiftType.DAY
    return ShiftType.NIGHT


def is_transition_window(t: datetime, grace_minutes: Optional[int] = None) -> bool:
    grace = settings.SHIFT_TRANSITION_GRACE_MINUTES if grace_minutes is None else grace_minutes
    if t.hour not in (settings.DAY_SHIFT_START_HOUR, settings.NIGHT_SHIFT_START_HOUR):
        return False
    return t.minute <= grace


def shift_date_for(t: datetime) -> date:
    """Calendar date on which the shift containing ``t`` started."""
    if t.hour < settings.DAY_SHIFT_START_HOUR:
        return t.date() - timedelta(days=1)
    return t.date()


def shift_window(shift_date: date, shift_type: ShiftType) -> Tuple[datetime, datetime]:
    day_start = datetime.combine(shift_date, time(settings.DAY_SHIFT_START_HOUR))
    night_start = datetime.combine(shift_date, time(settings.NIGHT_SHIFT_START_HOUR))
    if shift_type == ShiftType.DAY:
        return day_start, night_start
    return night_start, day_start + timedelta(days=1)


def decide(open_record: Optional[ShiftRecord], shift_type: ShiftType, shift_date: date, now: datetime) -> ShiftDecision:
    if open_record is None:
        return ShiftDecision.CREATE
    if open_record.shift_type == shift_type.value and open_record.shift_date == shift_date:
        return ShiftDecision.KEEP
    # A record belonging to another shift is only replaced right after a boundary;
    # anything left open past its window is picked up by the archival job.
    if is_transition_window(now):
        return ShiftDecision.ROLLOVER
    return ShiftDecision.KEEP


@dataclass
class ShiftResolution:
    decision: ShiftDecision
    shift_type: ShiftType
    shift_date: date
    open_record: Optional[ShiftRecord]
    team_code: Optional[str] = None
    rotation_day: Optional[int] = None


class ShiftResolver:

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self._clock = clock or get_clock()
        self._repo = ShiftRecordRepository(db)
        self._archiver = ShiftArchiveService(db, clock=self._clock)
        self._rotation = RotationService(db)
        self._bus = get_event_bus()

    def current_shift_type(self, now: datetime, team_code: Optional[str] = None) -> Tuple[ShiftType, Optional[int]]:
        """Clock-based shift type; for a rotating team also checks the team is on duty."""
        shift_type = determine_shift_type(now)
        if team_code is None:
            return shift_type, None
        team = self._rotation.get_team(team_code)
        on = shift_date_for(now)
        slot = self._rotation.slot_for(team, on)
        if slot is RotationSlot.REST or slot.shift_type != shift_type:
            raise TeamOffShiftException(team_code, slot.value)
        return shift_type, self._rotation.cycle_day(team, on)

    def evaluate(
        self,
        machine_id: int,
        operator_id: int,
        now: Optional[datetime] = None,
        team_code: Optional[str] = None,
    ) -> ShiftResolution:
        now = now or self._clock.now()
        shift_type, rotation_day = self.current_shift_type(now, team_code)
        shift_date = shift_date_for(now)
        open_record = self._repo.fetch_open_shift(machine_id, operator_id)
        return ShiftResolution(
            decision=decide(open_record, shift_type, shift_date, now),
            shift_type=shift_type,
            shift_date=shift_date,
            open_record=open_record,
            team_code=team_code,
            rotation_day=rotation_day,
        )

    def resolve_shift(
        self,
        machine_id: int,
        operator_id: int,
        now: Optional[datetime] = None,
        team_code: Optional[str] = None,
    ) -> ShiftRecord:
        now = now or self._clock.now()
        resolution = self.evaluate(machine_id, operator_id, now, team_code)
        if resolution.decision == ShiftDecision.KEEP:
            return resolution.open_record
        if resolution.decision == ShiftDecision.CREATE:
            return self._create(machine_id, operator_id, resolution, now)
        return self._rollover(machine_id, operator_id, resolution, now)

    def start_new_shift(
        self,
        machine_id: int,
        operator_id: int,
        now: Optional[datetime] = None,
        team_code: Optional[str] = None,
    ) -> ShiftRecord:
        """Archive whatever is open for the pair and open a zeroed record for the current shift.

        A no-op when the open record already belongs to the current shift, so
        repeating the call for the same transition never resets twice.
        """
        now = now or self._clock.now()
        resolution = self.evaluate(machine_id, operator_id, now, team_code)
        current = resolution.open_record
        if current is None:
            return self._create(machine_id, operator_id, resolution, now)
        if current.shift_type == resolution.shift_type.value and current.shift_date == resolution.shift_date:
            return current
        return self._rollover(machine_id, operator_id, resolution, now)

    def _new_record(self, machine_id: int, operator_id: int, resolution: ShiftResolution, now: datetime) -> ShiftRecord:
        start, end = shift_window(resolution.shift_date, resolution.shift_type)
        return ShiftRecord(
            machine_id=machine_id,
            operator_id=operator_id,
            shift_date=resolution.shift_date,
            shift_type=resolution.shift_type.value,
            start_time=start,
            end_time=end,
            team_code=resolution.team_code,
            rotation_day=resolution.rotation_day,
            total_production=0,
            rejected_production=0,
            target_production=0,
            run_minutes=0,
            downtime_minutes=0,
            efficiency=0,
            quality_tests_count=0,
            approved_tests_count=0,
            is_archived=False,
            created_at=now,
            updated_at=now,
        )

    def _create(self, machine_id: int, operator_id: int, resolution: ShiftResolution, now: datetime) -> ShiftRecord:
        record = self._new_record(machine_id, operator_id, resolution, now)
        try:
            self.db.add(record)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return self._winner(machine_id, operator_id, resolution)
        self.db.refresh(record)
        logger.info(
            "shift_started",
            extra={"machine_id": machine_id, "operator_id": operator_id, "shift_record_id": record.id},
        )
        self._bus.publish(ShiftStartedEvent(
            shift_record_id=record.id,
            machine_id=machine_id,
            operator_id=operator_id,
            shift_type=record.shift_type,
            shift_date=record.shift_date.isoformat(),
        ))
        return record

    def _rollover(self, machine_id: int, operator_id: int, resolution: ShiftResolution, now: datetime) -> ShiftRecord:
        current = self._repo.lock_for_update(resolution.open_record.id)
        if current is None or current.is_archived:
            # Another writer already rolled this record over
            self.db.rollback()
            return self._winner(machine_id, operator_id, resolution)

        record = self._new_record(machine_id, operator_id, resolution, now)
        try:
            archive = self._archiver.archive_record(current, now, commit=False)
            self.db.flush()
            self.db.add(record)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return self._winner(machine_id, operator_id, resolution)
        self.db.refresh(record)

        logger.info(
            "shift_rolled_over",
            extra={
                "machine_id": machine_id,
                "operator_id": operator_id,
                "shift_record_id": record.id,
                "archived_shift_id": current.id,
            },
        )
        self._archiver.publish_archived(current, archive)
        self._bus.publish(ShiftRolledOverEvent(
            machine_id=machine_id,
            operator_id=operator_id,
            archived_shift_id=current.id,
            new_shift_id=record.id,
            from_shift_type=current.shift_type,
            to_shift_type=record.shift_type,
        ))
        return record

    def _winner(self, machine_id: int, operator_id: int, resolution: ShiftResolution) -> ShiftRecord:
        winner = self._repo.get_open_for_day(machine_id, operator_id, resolution.shift_date)
        if winner is None:
            winner = self._repo.fetch_open_shift(machine_id, operator_id)
        if winner is None:
            raise RuntimeError(
                f"Shift record for machine {machine_id} operator {operator_id} vanished after a conflicting write"
            )
        logger.info(
            "shift_write_conflict_resolved",
            extra={"machine_id": machine_id, "operator_id": operator_id, "shift_record_id": winner.id},
        )
        return winner
