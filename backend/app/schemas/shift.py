from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from app.models.enums import ShiftType


class ShiftResolveRequest(BaseModel):
    machine_id: int
    operator_id: int
    team_code: Optional[str] = None
    at: Optional[datetime] = None


class ShiftRecordResponse(BaseModel):
    id: int
    machine_id: int
    operator_id: int
    shift_date: date
    shift_type: ShiftType
    start_time: datetime
    end_time: datetime
    team_code: Optional[str] = None
    rotation_day: Optional[int] = None
    total_production: int
    rejected_production: int
    target_production: int
    run_minutes: float
    downtime_minutes: float
    efficiency: float
    quality_tests_count: int
    approved_tests_count: int
    is_archived: bool
    archived_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductionArchiveResponse(BaseModel):
    id: int
    shift_record_id: int
    machine_id: int
    operator_id: int
    archived_data: Optional[str] = None
    data_size: int
    checksum: str
    archived_at: datetime

    class Config:
        from_attributes = True


class ArchiveFailure(BaseModel):
    shift_record_id: int
    error: str


class ArchiveRunResponse(BaseModel):
    run_at: datetime
    candidates: int
    archived: List[int]
    failures: List[ArchiveFailure]


class ShiftGroupSummary(BaseModel):
    key: str
    shift_count: int
    total_production: int
    rejected_production: int
    good_production: int
    run_minutes: float
    downtime_minutes: float
    average_efficiency: float


class ShiftSummaryResponse(BaseModel):
    date_from: date
    date_to: date
    machine_id: Optional[int] = None
    operator_id: Optional[int] = None
    shift_count: int
    total_production: int
    rejected_production: int
    good_production: int
    average_efficiency: float
    by_shift_type: Dict[str, ShiftGroupSummary]
    by_machine: Dict[str, ShiftGroupSummary]
    by_operator: Dict[str, ShiftGroupSummary]
