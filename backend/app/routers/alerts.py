from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_engine_clock
from app.schemas.alert import AlertAcknowledgeRequest, ProductionAlertResponse
from app.services.alert_dispatch_service import AlertDispatchService

router = APIRouter(prefix="/alerts", tags=["Production Alerts"])


def get_alert_service(db: Session = Depends(get_db), clock=Depends(get_engine_clock)) -> AlertDispatchService:
    return AlertDispatchService(db, clock=clock)


@router.get("", response_model=List[ProductionAlertResponse])
def list_alerts(
    machine_id: Optional[int] = None,
    active_only: bool = False,
    service: AlertDispatchService = Depends(get_alert_service),
):
    return service.list_alerts(machine_id=machine_id, active_only=active_only)


@router.post("/machines/{machine_id}/dispatch", response_model=List[ProductionAlertResponse])
def dispatch_alerts(machine_id: int, service: AlertDispatchService = Depends(get_alert_service)):
    return service.dispatch_alerts_if_needed(machine_id)


@router.post("/{alert_id}/acknowledge", response_model=ProductionAlertResponse)
def acknowledge_alert(
    alert_id: int,
    body: AlertAcknowledgeRequest,
    service: AlertDispatchService = Depends(get_alert_service),
):
    return service.acknowledge_alert(alert_id, body.user_id)
