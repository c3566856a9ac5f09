from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
    text,
)

from app.database import Base
from app.models.enums import ShiftType, sql_in


class ShiftRecord(Base):
    __tablename__ = "shift_records"
    __table_args__ = (
        CheckConstraint(f"shift_type IN ({sql_in(ShiftType)})", name="ck_shift_records_shift_type"),
        CheckConstraint("total_production >= 0", name="ck_shift_records_total_production_non_negative"),
        CheckConstraint(
            "rejected_production >= 0 AND rejected_production <= total_production",
            name="ck_shift_records_rejected_within_total",
        ),
        CheckConstraint("run_minutes >= 0", name="ck_shift_records_run_minutes_non_negative"),
        CheckConstraint("downtime_minutes >= 0", name="ck_shift_records_downtime_non_negative"),
        CheckConstraint("end_time > start_time", name="ck_shift_records_window"),
        # At most one open record per (machine, operator, shift date)
        Index(
            "uq_shift_records_open_per_operator_day",
            "machine_id",
            "operator_id",
            "shift_date",
            unique=True,
            sqlite_where=text("is_archived = 0"),
            postgresql_where=text("is_archived = false"),
        ),
        Index("ix_shift_records_machine_window", "machine_id", "start_time", "end_time"),
        Index("ix_shift_records_open", "machine_id", "operator_id", "is_archived"),
    )

    id = Column(Integer, primary_key=True, index=True)
    machine_id = Column(Integer, ForeignKey("machines.id", ondelete="CASCADE"), nullable=False, index=True)
    operator_id = Column(Integer, nullable=False, index=True)
    shift_date = Column(Date, nullable=False, index=True)
    shift_type = Column(String(10), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    team_code = Column(String(10), nullable=True)
    rotation_day = Column(Integer, nullable=True)

    total_production = Column(Integer, nullable=False, default=0)
    rejected_production = Column(Integer, nullable=False, default=0)
    target_production = Column(Integer, nullable=False, default=0)
    run_minutes = Column(Float, nullable=False, default=0)
    downtime_minutes = Column(Float, nullable=False, default=0)
    efficiency = Column(Float, nullable=False, default=0)
    quality_tests_count = Column(Integer, nullable=False, default=0)
    approved_tests_count = Column(Integer, nullable=False, default=0)

    is_archived = Column(Boolean, nullable=False, default=False)
    archived_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def good_production(self) -> int:
        return max(0, (self.total_production or 0) - (self.rejected_production or 0))
