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
    func,
)

from app.database import Base


class QualityGateConfig(Base):
    __tablename__ = "quality_gate_configs"
    __table_args__ = (
        CheckConstraint("test_frequency_hours >= 0", name="ck_quality_gate_configs_frequency_non_negative"),
        CheckConstraint("products_per_test >= 0", name="ck_quality_gate_configs_products_non_negative"),
        CheckConstraint(
            "min_pass_rate >= 0 AND min_pass_rate <= 100",
            name="ck_quality_gate_configs_min_pass_rate_range",
        ),
        Index("ix_quality_gate_configs_machine_active", "machine_id", "is_active"),
    )

    id = Column(Integer, primary_key=True, index=True)
    machine_id = Column(Integer, ForeignKey("machines.id", ondelete="CASCADE"), nullable=False, index=True)
    test_name = Column(String(255), nullable=False)
    test_description = Column(Text, nullable=True)
    # 0 disables the corresponding condition
    test_frequency_hours = Column(Float, nullable=False, default=0)
    products_per_test = Column(Integer, nullable=False, default=0)
    is_required = Column(Boolean, nullable=False, default=True)
    block_production = Column(Boolean, nullable=False, default=False)
    min_pass_rate = Column(Float, nullable=False, default=95.0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
