from datetime import date, time
from typing import List, Optional

from pydantic import BaseModel

from app.models.enums import RotationSlot


class TeamShiftResponse(BaseModel):
    team_code: str
    date: date
    slot: RotationSlot
    cycle_day: int
    is_work_day: bool


class RotationEntryResponse(BaseModel):
    date: date
    slot: RotationSlot
    cycle_day: int
    is_work_day: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    class Config:
        from_attributes = True


class RotationScheduleResponse(BaseModel):
    team_code: str
    start: date
    days: int
    entries: List[RotationEntryResponse]
