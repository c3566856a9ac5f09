from app.schemas.machine import MachineCreate, MachineUpdate, MachineResponse
from app.schemas.shift import (
    ShiftResolveRequest,
    ShiftRecordResponse,
    ProductionArchiveResponse,
    ArchiveRunResponse,
    ShiftSummaryResponse,
)
from app.schemas.alert import ProductionAlertResponse, AlertAcknowledgeRequest
from app.schemas.quality_gate import (
    QualityGateConfigCreate,
    QualityGateConfigUpdate,
    QualityGateConfigResponse,
    QualityTestCreate,
    QualityTestResponse,
    QualityGateStatusResponse,
    ConfigGateEvaluation,
    ConfigIssue,
)
from app.schemas.production import (
    ProductionDeltaRequest,
    ProductionDeltaResponse,
    ProductionStartRequest,
    ProductionStopRequest,
    ProductionEventResponse,
)
from app.schemas.oee import OEEResult, OEEBatchRequest, OEEBatchEntry, OEEBatchResponse
from app.schemas.rotation import TeamShiftResponse, RotationEntryResponse, RotationScheduleResponse

__all__ = [
    "MachineCreate",
    "MachineUpdate",
    "MachineResponse",
    "ShiftResolveRequest",
    "ShiftRecordResponse",
    "ProductionArchiveResponse",
    "ArchiveRunResponse",
    "ShiftSummaryResponse",
    "ProductionAlertResponse",
    "AlertAcknowledgeRequest",
    "QualityGateConfigCreate",
    "QualityGateConfigUpdate",
    "QualityGateConfigResponse",
    "QualityTestCreate",
    "QualityTestResponse",
    "QualityGateStatusResponse",
    "ConfigGateEvaluation",
    "ConfigIssue",
    "ProductionDeltaRequest",
    "ProductionDeltaResponse",
    "ProductionStartRequest",
    "ProductionStopRequest",
    "ProductionEventResponse",
    "OEEResult",
    "OEEBatchRequest",
    "OEEBatchEntry",
    "OEEBatchResponse",
    "TeamShiftResponse",
    "RotationEntryResponse",
    "RotationScheduleResponse",
]
