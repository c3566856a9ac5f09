from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from app.database import Base


class ProductionArchive(Base):
    __tablename__ = "production_archives"

    id = Column(Integer, primary_key=True, index=True)
    shift_record_id = Column(
        Integer, ForeignKey("shift_records.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    machine_id = Column(Integer, ForeignKey("machines.id"), nullable=False, index=True)
    operator_id = Column(Integer, nullable=False, index=True)
    archived_data = Column(Text, nullable=False)
    data_size = Column(Integer, nullable=False)
    checksum = Column(String(64), nullable=False)
    archived_at = Column(DateTime, nullable=False, index=True)
