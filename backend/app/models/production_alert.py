from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)

from app.database import Base
from app.models.enums import AlertResolution, AlertSeverity, GateReason, sql_in


class ProductionAlert(Base):
    """An alert raised when a quality gate is breached.

    ``production_count_at_trigger`` is always units produced since the gate's
    baseline. ``measured_value`` and ``threshold`` are in the unit of
    ``alert_type``: units for PRODUCTS_PER_TEST, hours since the last test
    for FREQUENCY.
    """

    __tablename__ = "production_alerts"
    __table_args__ = (
        CheckConstraint(f"severity IN ({sql_in(AlertSeverity)})", name="ck_production_alerts_severity"),
        CheckConstraint(f"alert_type IN ({sql_in(GateReason)})", name="ck_production_alerts_type"),
        CheckConstraint(
            f"resolution IS NULL OR resolution IN ({sql_in(AlertResolution)})",
            name="ck_production_alerts_resolution",
        ),
        # Dedup key: one active alert per gate
        Index(
            "uq_production_alerts_active_gate",
            "machine_id",
            "config_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active = true"),
        ),
        Index("ix_production_alerts_machine_active", "machine_id", "is_active"),
    )

    id = Column(Integer, primary_key=True, index=True)
    machine_id = Column(Integer, ForeignKey("machines.id", ondelete="CASCADE"), nullable=False)
    config_id = Column(Integer, ForeignKey("quality_gate_configs.id", ondelete="CASCADE"), nullable=False)
    alert_type = Column(String(30), nullable=False)
    production_count_at_trigger = Column(Integer, nullable=False)
    measured_value = Column(Float, nullable=False, default=0)
    threshold = Column(Float, nullable=False)
    severity = Column(String(10), nullable=False)
    # comma separated TargetRole values
    target_roles = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    resolution = Column(String(20), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False)

    @property
    def target_roles_list(self):
        return [r for r in (self.target_roles or "").split(",") if r]
