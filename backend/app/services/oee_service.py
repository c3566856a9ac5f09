"""
OEE Service — Overall Equipment Effectiveness from the shift ledger

    Availability = run / planned
    Performance  = (output x ideal cycle time) / run
    Quality      = good / total
    OEE          = A x P x Q

Each factor is a percentage clamped to [0, 100]; a zero denominator gives 0.
Planned time is the elapsed part of every shift record overlapping the
requested range.

Multi-machine requests fan out on a bounded thread pool, one session per
worker, so one slow or broken machine only fails its own entry.
"""
import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import (
    EntityNotFoundException,
    FactoryOpsException,
    TransientPersistenceException,
    ValidationException,
)
from app.models.machine import Machine
from app.models.shift_record import ShiftRecord
from app.repositories.machine_repository import MachineRepository
from app.repositories.shift_record_repository import ShiftRecordRepository
from app.schemas.oee import OEEBatchEntry, OEEBatchResponse, OEEResult
from app.services.shift_resolver import determine_shift_type, shift_date_for, shift_window
from app.utils.clock import Clock, get_clock
from app.utils.retry import retry_transient
from app.utils.store import KeyValueStore

logger = logging.getLogger(__name__)

CLASSIFICATION_THRESHOLDS = (
    (85.0, "WORLD_CLASS"),
    (70.0, "GOOD"),
    (50.0, "FAIR"),
)


def clamp_percentage(value: float) -> float:
    return max(0.0, min(100.0, value))


def ratio_percentage(numerator: float, denominator: float) -> float:
    if not denominator or denominator <= 0:
        return 0.0
    return clamp_percentage(numerator / denominator * 100)


def classify_oee(oee: float) -> str:
    for threshold, label in CLASSIFICATION_THRESHOLDS:
        if oee >= threshold:
            return label
    return "POOR"


def planned_minutes(records: Iterable[ShiftRecord], now: datetime) -> float:
    total = 0.0
    for record in records:
        window_end = min(record.end_time, now)
        if window_end > record.start_time:
            total += (window_end - record.start_time).total_seconds() / 60
    return total


def compute_oee(
    machine: Machine,
    records: List[ShiftRecord],
    start: datetime,
    end: datetime,
    now: datetime,
) -> OEEResult:
    total = sum(r.total_production or 0 for r in records)
    rejected = sum(r.rejected_production or 0 for r in records)
    good = max(0, total - rejected)
    run = sum(float(r.run_minutes or 0) for r in records)
    downtime = sum(float(r.downtime_minutes or 0) for r in records)
    planned = planned_minutes(records, now)

    availability = ratio_percentage(run, planned)
    performance = ratio_percentage(total * machine.ideal_cycle_time_minutes, run)
    quality = ratio_percentage(good, total)
    oee = round(availability * performance * quality / 10000, 2)

    return OEEResult(
        machine_id=machine.id,
        start=start,
        end=end,
        availability=round(availability, 2),
        performance=round(performance, 2),
        quality=round(quality, 2),
        oee=oee,
        classification=classify_oee(oee),
        planned_minutes=round(planned, 2),
        run_minutes=round(run, 2),
        downtime_minutes=round(downtime, 2),
        total_production=total,
        good_production=good,
        rejected_production=rejected,
        shift_count=len(records),
        computed_at=now,
    )


class OEEService:

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        store: Optional[KeyValueStore] = None,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        self.db = db
        self._clock = clock or get_clock()
        self._store = store
        self._session_factory = session_factory
        self._machine_repo = MachineRepository(db)
        self._shift_repo = ShiftRecordRepository(db)

    def calculate_oee(self, machine_id: int, start: datetime, end: datetime) -> OEEResult:
        if start >= end:
            raise ValidationException("start", "must be before end")
        key = f"oee:{machine_id}:{start.isoformat()}:{end.isoformat()}"
        return self._with_last_known(key, lambda: self._calculate(machine_id, start, end))

    def calculate_current_shift_oee(self, machine_id: int) -> OEEResult:
        now = self._clock.now()
        start, end = shift_window(shift_date_for(now), determine_shift_type(now))
        key = f"oee:{machine_id}:current"
        return self._with_last_known(key, lambda: self._calculate(machine_id, start, min(end, now)))

    def calculate_multiple_oee(
        self,
        machine_ids: List[int],
        start: datetime,
        end: datetime,
        timeout_seconds: Optional[float] = None,
    ) -> OEEBatchResponse:
        """OEE for several machines in parallel.

        Each machine gets ``timeout`` seconds counted from the moment a worker
        picks it up, so machines queued behind slow ones keep their full
        budget. A machine still queued after ``timeout x len(machine_ids)``
        is reported as timed out without being run.
        """
        if start >= end:
            raise ValidationException("start", "must be before end")
        timeout = settings.OEE_MACHINE_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        workers = max(1, min(settings.OEE_FANOUT_MAX_WORKERS, len(machine_ids)))
        if self._session_factory is None:
            # a single Session must not be shared between threads
            workers = 1
        queue_limit = timeout * len(machine_ids)

        started: Dict[int, float] = {}

        def run(index: int, machine_id: int) -> OEEResult:
            started[index] = time.monotonic()
            return self._calculate_isolated(machine_id, start, end)

        entries: Dict[int, OEEBatchEntry] = {}
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="oee")
        try:
            submitted_at = time.monotonic()
            futures = {
                executor.submit(run, index, machine_id): (index, machine_id)
                for index, machine_id in enumerate(machine_ids)
            }
            pending = set(futures)
            while pending:
                now = time.monotonic()
                deadlines = []
                for future in list(pending):
                    index, machine_id = futures[future]
                    began = started.get(index)
                    deadline = began + timeout if began is not None else submitted_at + queue_limit
                    if not future.done() and now >= deadline:
                        future.cancel()
                        pending.discard(future)
                        logger.warning(
                            "oee_machine_timeout",
                            extra={"machine_id": machine_id, "timeout": timeout, "started": began is not None},
                        )
                        entries[index] = OEEBatchEntry(
                            machine_id=machine_id, error=True, error_message=f"Timed out after {timeout}s",
                        )
                    else:
                        deadlines.append(deadline)
                if not pending:
                    break
                # queued machines only learn their start stamp on the next wake-up
                wait_for = min(min(deadlines) - now, timeout)
                done, _ = wait(pending, timeout=max(0.0, wait_for), return_when=FIRST_COMPLETED)
                for future in done:
                    pending.discard(future)
                    index, machine_id = futures[future]
                    entries[index] = self._batch_entry(machine_id, future)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        results = [entries[index] for index in range(len(machine_ids))]
        return OEEBatchResponse(start=start, end=end, results=results)

    def _batch_entry(self, machine_id: int, future: Future) -> OEEBatchEntry:
        try:
            result = future.result()
        except FactoryOpsException as exc:
            return OEEBatchEntry(machine_id=machine_id, error=True, error_message=exc.message)
        except Exception as exc:  # noqa: BLE001
            logger.exception("oee_machine_failed", extra={"machine_id": machine_id})
            return OEEBatchEntry(machine_id=machine_id, error=True, error_message=str(exc))
        return OEEBatchEntry(machine_id=machine_id, oee=result.oee, result=result)

    def _calculate_isolated(self, machine_id: int, start: datetime, end: datetime) -> OEEResult:
        if self._session_factory is None:
            return self.calculate_oee(machine_id, start, end)
        db = self._session_factory()
        try:
            worker = OEEService(db, clock=self._clock, store=self._store)
            return worker.calculate_oee(machine_id, start, end)
        finally:
            db.close()

    @retry_transient
    def _calculate(self, machine_id: int, start: datetime, end: datetime) -> OEEResult:
        machine = self._machine_repo.get_by_id(machine_id)
        if not machine:
            raise EntityNotFoundException("Machine", machine_id)
        records = self._shift_repo.list_overlapping(machine_id, start, end)
        return compute_oee(machine, records, start, end, self._clock.now())

    def _with_last_known(self, key: str, compute: Callable[[], OEEResult]) -> OEEResult:
        try:
            result = compute()
        except TransientPersistenceException:
            cached = self._store.get(key) if self._store is not None else None
            if cached is None:
                raise
            logger.warning("oee_served_stale", extra={"key": key})
            return cached.model_copy(update={"stale": True})
        if self._store is not None:
            self._store.set(key, result, ttl=settings.OEE_LAST_KNOWN_TTL_SECONDS)
        return result
