from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_engine_clock
from app.schemas.quality_gate import (
    ConfigIssue,
    QualityGateConfigCreate,
    QualityGateConfigResponse,
    QualityGateConfigUpdate,
    QualityGateStatusResponse,
    QualityTestCreate,
    QualityTestResponse,
)
from app.services.quality_gate_service import QualityGateService
from app.services.quality_test_service import QualityTestService

router = APIRouter(prefix="/quality-gates", tags=["Quality Gates"])


def get_gate_service(db: Session = Depends(get_db), clock=Depends(get_engine_clock)) -> QualityGateService:
    return QualityGateService(db, clock=clock)


def get_test_service(db: Session = Depends(get_db), clock=Depends(get_engine_clock)) -> QualityTestService:
    return QualityTestService(db, clock=clock)


@router.get("/machines/{machine_id}/status", response_model=QualityGateStatusResponse)
def evaluate_quality_gate(machine_id: int, service: QualityGateService = Depends(get_gate_service)):
    return service.evaluate_quality_gate(machine_id)


@router.get("/machines/{machine_id}/issues", response_model=List[ConfigIssue])
def find_config_issues(machine_id: int, service: QualityGateService = Depends(get_gate_service)):
    return service.find_config_issues(machine_id)


@router.get("/configs", response_model=List[QualityGateConfigResponse])
def list_configs(
    machine_id: int,
    active_only: bool = True,
    service: QualityGateService = Depends(get_gate_service),
):
    return service.list_configs(machine_id, active_only=active_only)


@router.post("/configs", response_model=QualityGateConfigResponse, status_code=201)
def create_config(body: QualityGateConfigCreate, service: QualityGateService = Depends(get_gate_service)):
    return service.create_config(body)


@router.patch("/configs/{config_id}", response_model=QualityGateConfigResponse)
def update_config(
    config_id: int,
    body: QualityGateConfigUpdate,
    service: QualityGateService = Depends(get_gate_service),
):
    return service.update_config(config_id, body)


@router.delete("/configs/{config_id}", response_model=QualityGateConfigResponse)
def deactivate_config(config_id: int, service: QualityGateService = Depends(get_gate_service)):
    return service.deactivate_config(config_id)


@router.post("/tests", response_model=QualityTestResponse, status_code=201)
def record_quality_test(body: QualityTestCreate, service: QualityTestService = Depends(get_test_service)):
    return service.record_test(body)


@router.get("/tests", response_model=List[QualityTestResponse])
def list_quality_tests(
    machine_id: Optional[int] = None,
    config_id: Optional[int] = None,
    approved: Optional[bool] = None,
    service: QualityTestService = Depends(get_test_service),
):
    return service.list_tests(machine_id=machine_id, config_id=config_id, approved=approved)
