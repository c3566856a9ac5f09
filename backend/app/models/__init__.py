from app.models.machine import Machine
from app.models.shift_record import ShiftRecord
from app.models.production_delta import ProductionDelta
from app.models.production_archive import ProductionArchive
from app.models.quality_gate_config import QualityGateConfig
from app.models.quality_test_record import QualityTestRecord
from app.models.production_alert import ProductionAlert
from app.models.shift_team import ShiftTeam

__all__ = [
    "Machine",
    "ShiftRecord",
    "ProductionDelta",
    "ProductionArchive",
    "QualityGateConfig",
    "QualityTestRecord",
    "ProductionAlert",
    "ShiftTeam",
]
