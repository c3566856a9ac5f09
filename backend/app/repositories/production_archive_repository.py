from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.production_archive import ProductionArchive
from app.repositories.base import BaseRepository


class ProductionArchiveRepository(BaseRepository[ProductionArchive]):
    def __init__(self, db: Session):
        super().__init__(ProductionArchive, db)

    def get_by_shift_record(self, shift_record_id: int) -> Optional[ProductionArchive]:
        return (
            self.db.query(ProductionArchive)
            .filter(ProductionArchive.shift_record_id == shift_record_id)
            .first()
        )

    def list_for_machine(self, machine_id: int, limit: int = 50) -> List[ProductionArchive]:
        return (
            self.db.query(ProductionArchive)
            .filter(ProductionArchive.machine_id == machine_id)
            .order_by(ProductionArchive.archived_at.desc())
            .limit(limit)
            .all()
        )
