from datetime import datetime
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.production_delta import ProductionDelta
from app.repositories.base import BaseRepository


class ProductionDeltaRepository(BaseRepository[ProductionDelta]):
    def __init__(self, db: Session):
        super().__init__(ProductionDelta, db)

    def list_for_shift(self, shift_record_id: int) -> List[ProductionDelta]:
        return (
            self.db.query(ProductionDelta)
            .filter(ProductionDelta.shift_record_id == shift_record_id)
            .order_by(ProductionDelta.recorded_at, ProductionDelta.id)
            .all()
        )

    def sum_units_since(self, machine_id: int, since: datetime) -> int:
        """Units produced on the machine strictly after ``since``."""
        with self.transient_guard("production_deltas.sum_units"):
            total = (
                self.db.query(func.coalesce(func.sum(ProductionDelta.units), 0))
                .filter(ProductionDelta.machine_id == machine_id, ProductionDelta.recorded_at > since)
                .scalar()
            )
        return int(total or 0)

    def fetch_production_deltas(self, machine_id: int, since: datetime) -> List[ProductionDelta]:
        return (
            self.db.query(ProductionDelta)
            .filter(ProductionDelta.machine_id == machine_id, ProductionDelta.recorded_at > since)
            .order_by(ProductionDelta.recorded_at, ProductionDelta.id)
            .all()
        )
