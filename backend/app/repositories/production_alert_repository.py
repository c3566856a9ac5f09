from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.production_alert import ProductionAlert
from app.repositories.base import BaseRepository


class ProductionAlertRepository(BaseRepository[ProductionAlert]):
    def __init__(self, db: Session):
        super().__init__(ProductionAlert, db)

    def fetch_open_alert(self, machine_id: int, config_id: int) -> Optional[ProductionAlert]:
        with self.transient_guard("production_alerts.fetch_open"):
            return (
                self.db.query(ProductionAlert)
                .filter(
                    ProductionAlert.machine_id == machine_id,
                    ProductionAlert.config_id == config_id,
                    ProductionAlert.is_active.is_(True),
                )
                .first()
            )

    def list_filtered(
        self,
        machine_id: Optional[int] = None,
        is_active: Optional[bool] = None,
        severity: Optional[str] = None,
    ) -> List[ProductionAlert]:
        q = self.db.query(ProductionAlert)
        if machine_id is not None:
            q = q.filter(ProductionAlert.machine_id == machine_id)
        if is_active is not None:
            q = q.filter(ProductionAlert.is_active.is_(is_active))
        if severity is not None:
            q = q.filter(ProductionAlert.severity == severity)
        return q.order_by(ProductionAlert.created_at.desc(), ProductionAlert.id.desc()).all()

    def write_alert(self, alert: ProductionAlert) -> ProductionAlert:
        """Insert an alert; a concurrent active alert for the gate raises IntegrityError."""
        self.db.add(alert)
        self.db.commit()
        self.db.refresh(alert)
        return alert
