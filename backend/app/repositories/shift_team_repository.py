from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.shift_team import ShiftTeam
from app.repositories.base import BaseRepository


class ShiftTeamRepository(BaseRepository[ShiftTeam]):
    def __init__(self, db: Session):
        super().__init__(ShiftTeam, db)

    def get_by_code(self, team_code: str) -> Optional[ShiftTeam]:
        return self.db.query(ShiftTeam).filter(ShiftTeam.team_code == team_code).first()

    def list_active(self) -> List[ShiftTeam]:
        return (
            self.db.query(ShiftTeam)
            .filter(ShiftTeam.is_active.is_(True))
            .order_by(ShiftTeam.team_code)
            .all()
        )
