from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_engine_clock, get_oee_store, get_session_factory
from app.schemas.oee import OEEBatchRequest, OEEBatchResponse, OEEResult
from app.services.oee_service import OEEService

router = APIRouter(prefix="/oee", tags=["OEE"])


def get_oee_service(
    db: Session = Depends(get_db),
    clock=Depends(get_engine_clock),
    store=Depends(get_oee_store),
    session_factory=Depends(get_session_factory),
) -> OEEService:
    return OEEService(db, clock=clock, store=store, session_factory=session_factory)


@router.get("/machines/{machine_id}", response_model=OEEResult)
def get_machine_oee(
    machine_id: int,
    start: datetime,
    end: datetime,
    service: OEEService = Depends(get_oee_service),
):
    return service.calculate_oee(machine_id, start, end)


@router.get("/machines/{machine_id}/current", response_model=OEEResult)
def get_current_shift_oee(machine_id: int, service: OEEService = Depends(get_oee_service)):
    return service.calculate_current_shift_oee(machine_id)


@router.post("/batch", response_model=OEEBatchResponse)
def get_batch_oee(body: OEEBatchRequest, service: OEEService = Depends(get_oee_service)):
    return service.calculate_multiple_oee(body.machine_ids, body.start, body.end)
