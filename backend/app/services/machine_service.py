"""
Machine Service — machine registry used by the shift engine
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleViolationException, EntityNotFoundException
from app.models.enums import MachineStatus
from app.models.machine import Machine
from app.repositories.machine_repository import MachineRepository
from app.schemas.machine import MachineCreate, MachineUpdate

logger = logging.getLogger(__name__)


class MachineService:

    def __init__(self, db: Session):
        self._repo = MachineRepository(db)

    def list_machines(self, status: Optional[str] = None, is_active: Optional[bool] = None) -> List[Machine]:
        return self._repo.list_filtered(status=status, is_active=is_active)

    def get_machine(self, machine_id: int) -> Machine:
        machine = self._repo.get_by_id(machine_id)
        if not machine:
            raise EntityNotFoundException("Machine", machine_id)
        return machine

    def create_machine(self, data: MachineCreate) -> Machine:
        if self._repo.get_by_code(data.code):
            raise BusinessRuleViolationException(f"Machine code '{data.code}' already exists", {"code": data.code})
        machine = self._repo.create(Machine(**data.model_dump(), status=MachineStatus.STOPPED.value, is_active=True))
        logger.info("machine_created", extra={"machine_id": machine.id, "code": machine.code})
        return machine

    def update_machine(self, machine_id: int, data: MachineUpdate) -> Machine:
        machine = self.get_machine(machine_id)
        return self._repo.update(machine, data.model_dump(exclude_unset=True))
