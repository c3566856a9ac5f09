from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_engine_clock
from app.models.enums import ShiftType
from app.schemas.production import ProductionDeltaResponse
from app.schemas.shift import (
    ArchiveRunResponse,
    ProductionArchiveResponse,
    ShiftRecordResponse,
    ShiftResolveRequest,
    ShiftSummaryResponse,
)
from app.services.shift_ledger_service import ShiftLedgerService
from app.utils.clock import Clock

router = APIRouter(prefix="/shifts", tags=["Shifts"])


def get_ledger_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_engine_clock),
) -> ShiftLedgerService:
    return ShiftLedgerService(db, clock=clock)


@router.post("/resolve", response_model=ShiftRecordResponse)
def resolve_shift(
    body: ShiftResolveRequest,
    service: ShiftLedgerService = Depends(get_ledger_service),
):
    return service.resolve_shift(body.machine_id, body.operator_id, now=body.at, team_code=body.team_code)


@router.get("", response_model=List[ShiftRecordResponse])
def list_shift_history(
    machine_id: Optional[int] = None,
    operator_id: Optional[int] = None,
    shift_type: Optional[ShiftType] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    include_archived: bool = True,
    service: ShiftLedgerService = Depends(get_ledger_service),
):
    return service.list_shift_history(
        machine_id=machine_id,
        operator_id=operator_id,
        shift_type=shift_type.value if shift_type else None,
        date_from=date_from,
        date_to=date_to,
        include_archived=include_archived,
    )


@router.get("/current", response_model=Optional[ShiftRecordResponse])
def get_current_shift(
    machine_id: int,
    operator_id: int,
    service: ShiftLedgerService = Depends(get_ledger_service),
):
    return service.get_current_shift(machine_id, operator_id)


@router.get("/summary", response_model=ShiftSummaryResponse)
def summarize_shifts(
    date_from: date,
    date_to: date,
    machine_id: Optional[int] = None,
    operator_id: Optional[int] = None,
    service: ShiftLedgerService = Depends(get_ledger_service),
):
    return service.summarize_shifts(date_from, date_to, machine_id=machine_id, operator_id=operator_id)


@router.post("/archive-completed", response_model=ArchiveRunResponse)
def archive_completed_shifts(service: ShiftLedgerService = Depends(get_ledger_service)):
    return service.archive_completed_shifts()


@router.get("/archives", response_model=List[ProductionArchiveResponse])
def list_archives(
    machine_id: int,
    limit: int = Query(default=50, ge=1, le=500),
    service: ShiftLedgerService = Depends(get_ledger_service),
):
    return service.list_archives(machine_id, limit=limit)


@router.get("/{shift_id}", response_model=ShiftRecordResponse)
def get_shift(shift_id: int, service: ShiftLedgerService = Depends(get_ledger_service)):
    return service.get_shift(shift_id)


@router.get("/{shift_id}/deltas", response_model=List[ProductionDeltaResponse])
def list_deltas(shift_id: int, service: ShiftLedgerService = Depends(get_ledger_service)):
    return service.list_deltas(shift_id)


@router.post("/{shift_id}/archive", response_model=ProductionArchiveResponse)
def archive_shift(shift_id: int, service: ShiftLedgerService = Depends(get_ledger_service)):
    return service.archive_shift(shift_id)


@router.get("/{shift_id}/archive", response_model=ProductionArchiveResponse)
def get_archive(shift_id: int, service: ShiftLedgerService = Depends(get_ledger_service)):
    return service.get_archive(shift_id)
