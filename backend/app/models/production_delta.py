from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Index, Integer

from app.database import Base


class ProductionDelta(Base):
    """Append-only log of every delta merged into a shift record."""

    __tablename__ = "production_deltas"
    __table_args__ = (
        CheckConstraint("units >= 0", name="ck_production_deltas_units_non_negative"),
        CheckConstraint(
            "rejected_units >= 0 AND rejected_units <= units",
            name="ck_production_deltas_rejected_within_units",
        ),
        CheckConstraint("run_minutes >= 0", name="ck_production_deltas_run_non_negative"),
        CheckConstraint("downtime_minutes >= 0", name="ck_production_deltas_downtime_non_negative"),
        Index("ix_production_deltas_machine_recorded_at", "machine_id", "recorded_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    machine_id = Column(Integer, ForeignKey("machines.id", ondelete="CASCADE"), nullable=False)
    operator_id = Column(Integer, nullable=False)
    shift_record_id = Column(Integer, ForeignKey("shift_records.id", ondelete="CASCADE"), nullable=False, index=True)
    units = Column(Integer, nullable=False, default=0)
    rejected_units = Column(Integer, nullable=False, default=0)
    run_minutes = Column(Float, nullable=False, default=0)
    downtime_minutes = Column(Float, nullable=False, default=0)
    recorded_at = Column(DateTime, nullable=False)
