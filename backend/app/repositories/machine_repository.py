from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.machine import Machine
from app.repositories.base import BaseRepository


class MachineRepository(BaseRepository[Machine]):
    def __init__(self, db: Session):
        super().__init__(Machine, db)

    def get_by_code(self, code: str) -> Optional[Machine]:
        return self.db.query(Machine).filter(Machine.code == code).first()

    def list_filtered(self, status: Optional[str] = None, is_active: Optional[bool] = None) -> List[Machine]:
        q = self.db.query(Machine)
        if status is not None:
            q = q.filter(Machine.status == status)
        if is_active is not None:
            q = q.filter(Machine.is_active == is_active)
        return q.order_by(Machine.code).all()
