from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_engine_clock
from app.schemas.production import (
    ProductionDeltaRequest,
    ProductionDeltaResponse,
    ProductionEventResponse,
    ProductionStartRequest,
    ProductionStopRequest,
)
from app.schemas.shift import ShiftRecordResponse
from app.services.production_service import ProductionService
from app.services.shift_ledger_service import ShiftLedgerService
from app.utils.clock import Clock

router = APIRouter(prefix="/production", tags=["Production"])


def get_production_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_engine_clock),
) -> ProductionService:
    return ProductionService(db, clock=clock)


def get_ledger_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_engine_clock),
) -> ShiftLedgerService:
    return ShiftLedgerService(db, clock=clock)


@router.post("/deltas", response_model=ShiftRecordResponse, status_code=201)
def record_production_delta(
    body: ProductionDeltaRequest,
    service: ShiftLedgerService = Depends(get_ledger_service),
):
    return service.record_production_delta(body)


@router.get("/deltas", response_model=List[ProductionDeltaResponse])
def list_machine_deltas(
    machine_id: int,
    since: datetime,
    service: ShiftLedgerService = Depends(get_ledger_service),
):
    return service.list_machine_deltas(machine_id, since)


@router.post("/events", response_model=ProductionEventResponse)
def record_production_event(
    body: ProductionDeltaRequest,
    service: ProductionService = Depends(get_production_service),
):
    return service.record_production_event(body)


@router.post("/machines/{machine_id}/start", response_model=ProductionEventResponse)
def start_production(
    machine_id: int,
    body: ProductionStartRequest,
    service: ProductionService = Depends(get_production_service),
):
    return service.start_production(machine_id, body)


@router.post("/machines/{machine_id}/stop", response_model=ProductionEventResponse)
def stop_production(
    machine_id: int,
    body: ProductionStopRequest,
    service: ProductionService = Depends(get_production_service),
):
    return service.stop_production(machine_id, body)
