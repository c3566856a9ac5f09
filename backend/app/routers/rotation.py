from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_engine_clock
from app.schemas.rotation import RotationEntryResponse, RotationScheduleResponse, TeamShiftResponse
from app.services.rotation_service import RotationService

router = APIRouter(prefix="/rotation", tags=["Rotation"])


def get_rotation_service(db: Session = Depends(get_db)) -> RotationService:
    return RotationService(db)


@router.get("/teams/{team_code}/shift", response_model=TeamShiftResponse)
def get_team_shift(
    team_code: str,
    on: Optional[date] = None,
    service: RotationService = Depends(get_rotation_service),
    clock=Depends(get_engine_clock),
):
    team = service.get_team(team_code)
    on = on or clock.now().date()
    slot = service.slot_for(team, on)
    return TeamShiftResponse(
        team_code=team.team_code,
        date=on,
        slot=slot,
        cycle_day=service.cycle_day(team, on),
        is_work_day=slot.shift_type is not None,
    )


@router.get("/teams/{team_code}/schedule", response_model=RotationScheduleResponse)
def get_rotation_schedule(
    team_code: str,
    start: Optional[date] = None,
    days: int = Query(default=12, ge=1, le=366),
    service: RotationService = Depends(get_rotation_service),
    clock=Depends(get_engine_clock),
):
    start = start or clock.now().date()
    schedule = service.get_rotation_schedule(team_code, days, start)
    return RotationScheduleResponse(
        team_code=team_code,
        start=start,
        days=days,
        entries=[RotationEntryResponse.model_validate(entry) for entry in schedule],
    )


@router.post("/teams/defaults", status_code=201)
def ensure_default_teams(service: RotationService = Depends(get_rotation_service)):
    return [
        {"team_code": t.team_code, "phase_offset": t.phase_offset, "cycle_length": t.cycle_length}
        for t in service.ensure_default_teams()
    ]
