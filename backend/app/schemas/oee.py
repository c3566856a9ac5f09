from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class OEEResult(BaseModel):
    machine_id: int
    start: datetime
    end: datetime
    availability: float
    performance: float
    quality: float
    oee: float
    classification: str
    planned_minutes: float
    run_minutes: float
    downtime_minutes: float
    total_production: int
    good_production: int
    rejected_production: int
    shift_count: int
    stale: bool = False
    computed_at: datetime


class OEEBatchRequest(BaseModel):
    machine_ids: List[int] = Field(min_length=1)
    start: datetime
    end: datetime


class OEEBatchEntry(BaseModel):
    machine_id: int
    oee: float = 0
    error: bool = False
    error_message: Optional[str] = None
    result: Optional[OEEResult] = None


class OEEBatchResponse(BaseModel):
    start: datetime
    end: datetime
    results: List[OEEBatchEntry]
