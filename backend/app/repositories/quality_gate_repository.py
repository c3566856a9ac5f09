"""
Quality gate configuration and test-record repositories
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.quality_gate_config import QualityGateConfig
from app.models.quality_test_record import QualityTestRecord
from app.repositories.base import BaseRepository


class QualityGateConfigRepository(BaseRepository[QualityGateConfig]):

    def __init__(self, db: Session):
        super().__init__(QualityGateConfig, db)

    def fetch_quality_configs(self, machine_id: int, active_only: bool = True) -> List[QualityGateConfig]:
        with self.transient_guard("quality_gate_configs.fetch"):
            q = self.db.query(QualityGateConfig).filter(QualityGateConfig.machine_id == machine_id)
            if active_only:
                q = q.filter(QualityGateConfig.is_active.is_(True))
            return q.order_by(QualityGateConfig.id).all()


class QualityTestRecordRepository(BaseRepository[QualityTestRecord]):

    def __init__(self, db: Session):
        super().__init__(QualityTestRecord, db)

    def fetch_latest(self, machine_id: int, config_id: int) -> Optional[QualityTestRecord]:
        with self.transient_guard("quality_test_records.fetch_latest"):
            return (
                self.db.query(QualityTestRecord)
                .filter(
                    QualityTestRecord.machine_id == machine_id,
                    QualityTestRecord.config_id == config_id,
                )
                .order_by(QualityTestRecord.test_date.desc(), QualityTestRecord.id.desc())
                .first()
            )

    def fetch_test_records(
        self,
        machine_id: int,
        config_id: int,
        since: Optional[datetime] = None,
    ) -> List[QualityTestRecord]:
        q = self.db.query(QualityTestRecord).filter(
            QualityTestRecord.machine_id == machine_id,
            QualityTestRecord.config_id == config_id,
        )
        if since is not None:
            q = q.filter(QualityTestRecord.test_date >= since)
        return q.order_by(QualityTestRecord.test_date.desc()).all()

    def list_filtered(
        self,
        machine_id: Optional[int] = None,
        config_id: Optional[int] = None,
        approved: Optional[bool] = None,
    ) -> List[QualityTestRecord]:
        q = self.db.query(QualityTestRecord)
        if machine_id is not None:
            q = q.filter(QualityTestRecord.machine_id == machine_id)
        if config_id is not None:
            q = q.filter(QualityTestRecord.config_id == config_id)
        if approved is not None:
            q = q.filter(QualityTestRecord.approved.is_(approved))
        return q.order_by(QualityTestRecord.test_date.desc(), QualityTestRecord.id.desc()).all()
