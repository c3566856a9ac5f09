from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Text

from app.database import Base


class QualityTestRecord(Base):
    __tablename__ = "quality_test_records"
    __table_args__ = (
        Index("ix_quality_test_records_gate_date", "machine_id", "config_id", "test_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    machine_id = Column(Integer, ForeignKey("machines.id", ondelete="CASCADE"), nullable=False, index=True)
    config_id = Column(Integer, ForeignKey("quality_gate_configs.id", ondelete="CASCADE"), nullable=False, index=True)
    operator_id = Column(Integer, nullable=True)
    test_date = Column(DateTime, nullable=False)
    approved = Column(Boolean, nullable=False)
    notes = Column(Text, nullable=True)
