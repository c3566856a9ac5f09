from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.enums import MachineStatus
from app.schemas.alert import ProductionAlertResponse
from app.schemas.quality_gate import QualityGateStatusResponse
from app.schemas.shift import ShiftRecordResponse


class ProductionDeltaRequest(BaseModel):
    """Counters accumulated by a machine since its previous report.

    Range checks happen in the ledger so that a rejected delta is reported
    with the ledger's own error payload.
    """

    machine_id: int
    operator_id: int
    units: int = 0
    rejected_units: int = 0
    run_minutes: float = 0
    downtime_minutes: float = 0
    team_code: Optional[str] = None


class ProductionDeltaResponse(BaseModel):
    id: int
    machine_id: int
    operator_id: int
    shift_record_id: int
    units: int
    rejected_units: int
    run_minutes: float
    downtime_minutes: float
    recorded_at: datetime

    class Config:
        from_attributes = True


class ProductionStartRequest(BaseModel):
    operator_id: int
    team_code: Optional[str] = None


class ProductionStopRequest(BaseModel):
    operator_id: int
    reason: Optional[str] = Field(default=None, max_length=255)
    next_status: MachineStatus = MachineStatus.STOPPED


class ProductionEventResponse(BaseModel):
    machine_id: int
    operator_id: int
    machine_status: MachineStatus
    ledger_synced: bool
    shift: Optional[ShiftRecordResponse] = None
    quality_gate: Optional[QualityGateStatusResponse] = None
    alerts: List[ProductionAlertResponse] = Field(default_factory=list)
    recorded_at: datetime
