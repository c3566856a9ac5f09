from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.enums import GateReason, GateStatus


class QualityGateConfigCreate(BaseModel):
    machine_id: int
    test_name: str = Field(min_length=1, max_length=255)
    test_description: Optional[str] = None
    test_frequency_hours: float = Field(default=0, ge=0)
    products_per_test: int = Field(default=0, ge=0)
    is_required: bool = True
    block_production: bool = False
    min_pass_rate: float = Field(default=95.0, ge=0, le=100)


class QualityGateConfigUpdate(BaseModel):
    test_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    test_description: Optional[str] = None
    test_frequency_hours: Optional[float] = Field(default=None, ge=0)
    products_per_test: Optional[int] = Field(default=None, ge=0)
    is_required: Optional[bool] = None
    block_production: Optional[bool] = None
    min_pass_rate: Optional[float] = Field(default=None, ge=0, le=100)
    is_active: Optional[bool] = None


class QualityGateConfigResponse(BaseModel):
    id: int
    machine_id: int
    test_name: str
    test_description: Optional[str] = None
    test_frequency_hours: float
    products_per_test: int
    is_required: bool
    block_production: bool
    min_pass_rate: float
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QualityTestCreate(BaseModel):
    machine_id: int
    config_id: int
    operator_id: Optional[int] = None
    approved: bool
    notes: Optional[str] = None


class QualityTestResponse(BaseModel):
    id: int
    machine_id: int
    config_id: int
    operator_id: Optional[int] = None
    test_date: datetime
    approved: bool
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class GateReasonDetail(BaseModel):
    reason: GateReason
    measured: float
    threshold: float
    exceed_by: float


class ConfigGateEvaluation(BaseModel):
    config_id: int
    pending: bool
    test_name: str
    is_required: bool
    block_production: bool
    baseline: datetime
    hours_since_baseline: float
    production_since_baseline: int
    reasons: List[GateReasonDetail]
    tests_last_30_days: int = 0
    pass_rate: Optional[float] = None
    min_pass_rate: float
    pass_rate_ok: bool


class QualityGateStatusResponse(BaseModel):
    machine_id: int
    status: GateStatus
    evaluated_at: datetime
    pending_configs: List[ConfigGateEvaluation] = Field(default_factory=list)
    configs: List[ConfigGateEvaluation] = Field(default_factory=list)
    blocking: bool = False


class ConfigIssue(BaseModel):
    config_id: int
    test_name: str
    severity: str
    message: str
