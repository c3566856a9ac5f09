from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from app.models.enums import AlertResolution, AlertSeverity, GateReason


class ProductionAlertResponse(BaseModel):
    id: int
    machine_id: int
    config_id: int
    alert_type: GateReason
    production_count_at_trigger: int
    measured_value: float
    threshold: float
    severity: AlertSeverity
    target_roles: List[str]
    message: str
    is_active: bool
    resolution: Optional[AlertResolution] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[int] = None
    created_at: datetime

    @field_validator("target_roles", mode="before")
    @classmethod
    def split_roles(cls, value):
        if isinstance(value, str):
            return [role for role in value.split(",") if role]
        return value

    class Config:
        from_attributes = True


class AlertAcknowledgeRequest(BaseModel):
    user_id: int
