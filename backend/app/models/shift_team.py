from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, Integer, String, func

from app.database import Base


class ShiftTeam(Base):
    """Rotation parameters of one 3x3 team; the schedule itself is computed, never stored."""

    __tablename__ = "shift_teams"
    __table_args__ = (
        CheckConstraint("phase_offset >= 0 AND phase_offset <= 3", name="ck_shift_teams_phase_offset_range"),
        CheckConstraint("cycle_length > 0", name="ck_shift_teams_cycle_length_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    team_code = Column(String(10), unique=True, nullable=False, index=True)
    phase_offset = Column(Integer, nullable=False)
    cycle_length = Column(Integer, nullable=False, default=12)
    reference_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
