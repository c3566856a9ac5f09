# Repository Layer — Data Access (Repository Pattern, GoF)
from app.repositories.base import BaseRepository
from app.repositories.machine_repository import MachineRepository
from app.repositories.shift_record_repository import ShiftRecordRepository
from app.repositories.production_delta_repository import ProductionDeltaRepository
from app.repositories.production_archive_repository import ProductionArchiveRepository
from app.repositories.quality_gate_repository import QualityGateConfigRepository, QualityTestRecordRepository
from app.repositories.production_alert_repository import ProductionAlertRepository
from app.repositories.shift_team_repository import ShiftTeamRepository

__all__ = [
    "BaseRepository",
    "MachineRepository",
    "ShiftRecordRepository",
    "ProductionDeltaRepository",
    "ProductionArchiveRepository",
    "QualityGateConfigRepository",
    "QualityTestRecordRepository",
    "ProductionAlertRepository",
    "ShiftTeamRepository",
]
