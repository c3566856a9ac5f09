from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.enums import MachineStatus
from app.schemas.machine import MachineCreate, MachineResponse, MachineUpdate
from app.services.machine_service import MachineService

router = APIRouter(prefix="/machines", tags=["Machines"])


def get_machine_service(db: Session = Depends(get_db)) -> MachineService:
    return MachineService(db)


@router.get("", response_model=List[MachineResponse])
def list_machines(
    status: Optional[MachineStatus] = None,
    is_active: Optional[bool] = None,
    service: MachineService = Depends(get_machine_service),
):
    return service.list_machines(status=status.value if status else None, is_active=is_active)


@router.post("", response_model=MachineResponse, status_code=201)
def create_machine(body: MachineCreate, service: MachineService = Depends(get_machine_service)):
    return service.create_machine(body)


@router.get("/{machine_id}", response_model=MachineResponse)
def get_machine(machine_id: int, service: MachineService = Depends(get_machine_service)):
    return service.get_machine(machine_id)


@router.patch("/{machine_id}", response_model=MachineResponse)
def update_machine(machine_id: int, body: MachineUpdate, service: MachineService = Depends(get_machine_service)):
    return service.update_machine(machine_id, body)
