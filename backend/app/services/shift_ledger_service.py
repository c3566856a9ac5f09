"""
Shift Ledger Service — running production counters per (machine, operator, shift)

Every delta is validated, merged into the open shift record chosen by the
``ShiftResolver`` and appended to the ``production_deltas`` log in the same
transaction. Archived records are never touched again.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from app.core.exceptions import (
    EntityNotFoundException,
    FactoryOpsException,
    InvalidStateTransitionException,
    ValidationException,
)
from app.models.production_archive import ProductionArchive
from app.models.production_delta import ProductionDelta
from app.models.shift_record import ShiftRecord
from app.repositories.machine_repository import MachineRepository
from app.repositories.production_delta_repository import ProductionDeltaRepository
from app.repositories.shift_record_repository import ShiftRecordRepository
from app.schemas.production import ProductionDeltaRequest
from app.schemas.shift import ArchiveFailure, ArchiveRunResponse, ShiftGroupSummary, ShiftSummaryResponse
from app.services.shift_archive_service import ShiftArchiveService
from app.services.shift_resolver import ShiftResolver
from app.utils.clock import Clock, get_clock
from app.utils.events import ProductionRecordedEvent, get_event_bus
from app.utils.retry import retry_transient

logger = logging.getLogger(__name__)


def compute_efficiency(run_minutes: float, downtime_minutes: float) -> float:
    total = (run_minutes or 0) + (downtime_minutes or 0)
    if total <= 0:
        return 0.0
    return round(run_minutes / total * 100, 2)


def validate_delta(delta: ProductionDeltaRequest) -> None:
    for field in ("units", "rejected_units", "run_minutes", "downtime_minutes"):
        if getattr(delta, field) < 0:
            raise ValidationException(field, "must be zero or positive")
    if delta.rejected_units > delta.units:
        raise ValidationException("rejected_units", "cannot exceed units")


class ShiftLedgerService:

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self._clock = clock or get_clock()
        self._repo = ShiftRecordRepository(db)
        self._delta_repo = ProductionDeltaRepository(db)
        self._machine_repo = MachineRepository(db)
        self._resolver = ShiftResolver(db, clock=self._clock)
        self._archiver = ShiftArchiveService(db, clock=self._clock)
        self._bus = get_event_bus()

    # ── Writes ──────────────────────────────────────────────────────────────

    def resolve_shift(
        self,
        machine_id: int,
        operator_id: int,
        now: Optional[datetime] = None,
        team_code: Optional[str] = None,
    ) -> ShiftRecord:
        self._require_machine(machine_id)
        return self._resolver.resolve_shift(machine_id, operator_id, now=now, team_code=team_code)

    def record_production_delta(self, delta: ProductionDeltaRequest, now: Optional[datetime] = None) -> ShiftRecord:
        validate_delta(delta)
        machine = self._require_machine(delta.machine_id)
        return self._apply_delta(machine.id, delta, now or self._clock.now(), machine.target_production or 0)

    apply_delta = record_production_delta

    @retry_transient
    def _apply_delta(self, machine_id: int, delta: ProductionDeltaRequest, now: datetime, target: int) -> ShiftRecord:
        record = self._resolver.resolve_shift(machine_id, delta.operator_id, now=now, team_code=delta.team_code)
        if not self._increment(record.id, delta, now):
            # archived by another writer after it was resolved
            self.db.rollback()
            logger.info(
                "shift_archived_before_delta",
                extra={"machine_id": machine_id, "operator_id": delta.operator_id, "shift_record_id": record.id},
            )
            record = self._resolver.resolve_shift(machine_id, delta.operator_id, now=now, team_code=delta.team_code)
            if not self._increment(record.id, delta, now):
                self.db.rollback()
                raise InvalidStateTransitionException("ShiftRecord", "ARCHIVED", "UPDATED")

        # counters were merged by the database; derive efficiency from the merged row
        record = self._repo.lock_for_update(record.id)
        record.efficiency = compute_efficiency(record.run_minutes, record.downtime_minutes)
        if not record.target_production:
            record.target_production = target
        record.updated_at = now
        self.db.add(ProductionDelta(
            machine_id=machine_id,
            operator_id=delta.operator_id,
            shift_record_id=record.id,
            units=delta.units,
            rejected_units=delta.rejected_units,
            run_minutes=delta.run_minutes,
            downtime_minutes=delta.downtime_minutes,
            recorded_at=now,
        ))
        record = self._repo.write_shift(record)

        logger.info(
            "production_recorded",
            extra={
                "machine_id": machine_id,
                "operator_id": delta.operator_id,
                "shift_record_id": record.id,
                "units": delta.units,
                "total_production": record.total_production,
            },
        )
        self._bus.publish(ProductionRecordedEvent(
            shift_record_id=record.id,
            machine_id=machine_id,
            operator_id=delta.operator_id,
            units=delta.units,
            total_production=record.total_production,
        ))
        return record

    def _increment(self, record_id: int, delta: ProductionDeltaRequest, now: datetime) -> bool:
        return self._repo.increment_counters(
            record_id,
            units=delta.units,
            rejected_units=delta.rejected_units,
            run_minutes=delta.run_minutes,
            downtime_minutes=delta.downtime_minutes,
            now=now,
        )

    def reset_operator_data(
        self,
        machine_id: int,
        operator_id: int,
        now: Optional[datetime] = None,
        team_code: Optional[str] = None,
    ) -> ShiftRecord:
        self._require_machine(machine_id)
        return self._resolver.start_new_shift(machine_id, operator_id, now=now, team_code=team_code)

    def archive_shift(self, record_id: int, now: Optional[datetime] = None) -> ProductionArchive:
        return self._archiver.archive_shift(record_id, now=now)

    def get_archive(self, record_id: int) -> ProductionArchive:
        return self._archiver.get_archive(record_id)

    def list_archives(self, machine_id: int, limit: int = 50) -> List[ProductionArchive]:
        return self._archiver.list_archives(machine_id, limit=limit)

    def archive_completed_shifts(self, now: Optional[datetime] = None) -> ArchiveRunResponse:
        now = now or self._clock.now()
        candidates = self._repo.list_completed_open(now)
        archived: List[int] = []
        failures: List[ArchiveFailure] = []
        for record in candidates:
            record_id = record.id
            try:
                self._archiver.archive_shift(record_id, now=now)
                archived.append(record_id)
            except FactoryOpsException as exc:
                self.db.rollback()
                failures.append(ArchiveFailure(shift_record_id=record_id, error=exc.message))
                logger.warning("shift_archive_failed", extra={"shift_record_id": record_id, "error": exc.message})
            except Exception as exc:  # noqa: BLE001
                self.db.rollback()
                failures.append(ArchiveFailure(shift_record_id=record_id, error=str(exc)))
                logger.exception("shift_archive_failed", extra={"shift_record_id": record_id})
        logger.info(
            "archive_run_completed",
            extra={"candidates": len(candidates), "archived": len(archived), "failed": len(failures)},
        )
        return ArchiveRunResponse(run_at=now, candidates=len(candidates), archived=archived, failures=failures)

    # ── Reads ───────────────────────────────────────────────────────────────

    def get_current_shift(self, machine_id: int, operator_id: int) -> Optional[ShiftRecord]:
        return self._repo.fetch_open_shift(machine_id, operator_id)

    def get_shift(self, record_id: int) -> ShiftRecord:
        record = self._repo.get_by_id(record_id)
        if not record:
            raise EntityNotFoundException("ShiftRecord", record_id)
        return record

    def list_shift_history(self, **filters) -> List[ShiftRecord]:
        return self._repo.list_filtered(**filters)

    def list_deltas(self, record_id: int) -> List[ProductionDelta]:
        self.get_shift(record_id)
        return self._delta_repo.list_for_shift(record_id)

    def list_machine_deltas(self, machine_id: int, since: datetime) -> List[ProductionDelta]:
        self._require_machine(machine_id)
        return self._delta_repo.fetch_production_deltas(machine_id, since)

    def summarize_shifts(
        self,
        date_from: date,
        date_to: date,
        machine_id: Optional[int] = None,
        operator_id: Optional[int] = None,
    ) -> ShiftSummaryResponse:
        if date_from > date_to:
            raise ValidationException("date_from", "must not be after date_to")
        records = self._repo.list_filtered(
            machine_id=machine_id,
            operator_id=operator_id,
            date_from=date_from,
            date_to=date_to,
        )
        df = pd.DataFrame([
            {
                "machine_id": r.machine_id,
                "operator_id": r.operator_id,
                "shift_type": r.shift_type,
                "total_production": r.total_production,
                "rejected_production": r.rejected_production,
                "run_minutes": float(r.run_minutes or 0),
                "downtime_minutes": float(r.downtime_minutes or 0),
                "efficiency": float(r.efficiency or 0),
            }
            for r in records
        ])
        totals = _group_summary("all", df)
        return ShiftSummaryResponse(
            date_from=date_from,
            date_to=date_to,
            machine_id=machine_id,
            operator_id=operator_id,
            shift_count=totals.shift_count,
            total_production=totals.total_production,
            rejected_production=totals.rejected_production,
            good_production=totals.good_production,
            average_efficiency=totals.average_efficiency,
            by_shift_type=_grouped(df, "shift_type"),
            by_machine=_grouped(df, "machine_id"),
            by_operator=_grouped(df, "operator_id"),
        )

    def _require_machine(self, machine_id: int):
        machine = self._machine_repo.get_by_id(machine_id)
        if not machine:
            raise EntityNotFoundException("Machine", machine_id)
        return machine


def _group_summary(key: str, df: pd.DataFrame) -> ShiftGroupSummary:
    if df.empty:
        return ShiftGroupSummary(
            key=key, shift_count=0, total_production=0, rejected_production=0, good_production=0,
            run_minutes=0, downtime_minutes=0, average_efficiency=0,
        )
    total = int(df["total_production"].sum())
    rejected = int(df["rejected_production"].sum())
    return ShiftGroupSummary(
        key=key,
        shift_count=int(len(df)),
        total_production=total,
        rejected_production=rejected,
        good_production=total - rejected,
        run_minutes=round(float(df["run_minutes"].sum()), 2),
        downtime_minutes=round(float(df["downtime_minutes"].sum()), 2),
        average_efficiency=round(float(df["efficiency"].mean()), 2),
    )


def _grouped(df: pd.DataFrame, column: str) -> Dict[str, Any]:
    if df.empty:
        return {}
    return {str(key): _group_summary(str(key), group) for key, group in df.groupby(column)}
