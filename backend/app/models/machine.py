from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, Integer, String, func

from app.database import Base
from app.models.enums import MachineStatus, sql_in


class Machine(Base):
    __tablename__ = "machines"
    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in(MachineStatus)})", name="ck_machines_status"),
        CheckConstraint("production_speed >= 0", name="ck_machines_production_speed_non_negative"),
        CheckConstraint("target_production >= 0", name="ck_machines_target_production_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(100), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=MachineStatus.STOPPED.value)
    # units per minute at nominal speed; ideal cycle time is its inverse
    production_speed = Column(Float, nullable=False, default=0)
    target_production = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def ideal_cycle_time_minutes(self) -> float:
        if not self.production_speed:
            return 0.0
        return 1.0 / float(self.production_speed)
