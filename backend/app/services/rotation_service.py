"""
Rotation Service — 3x3 team schedule

A team works three day shifts, rests three days, works three night shifts and
rests three more. Four teams are staggered one block apart so that on any date
exactly one team holds the day slot and one holds the night slot.

The schedule is a pure periodic function of (reference_date, phase_offset,
cycle_length); nothing about the rotation is stored per day.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time, timedelta
from functools import lru_cache
from typing import Iterator, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import EntityNotFoundException, ValidationException
from app.models.enums import RotationSlot
from app.models.shift_team import ShiftTeam
from app.repositories.shift_team_repository import ShiftTeamRepository

BLOCK_PATTERN: Tuple[RotationSlot, ...] = (
    RotationSlot.DAY,
    RotationSlot.REST,
    RotationSlot.NIGHT,
    RotationSlot.REST,
)
TEAM_PHASES = {"A": 0, "B": 1, "C": 2, "D": 3}


@lru_cache(maxsize=8)
def build_lookup(cycle_length: int) -> Tuple[Tuple[RotationSlot, ...], ...]:
    """``LOOKUP[cycle_day][phase]`` for a cycle of ``cycle_length`` days."""
    if cycle_length <= 0 or cycle_length % len(BLOCK_PATTERN):
        raise ValueError(f"cycle_length must be a positive multiple of {len(BLOCK_PATTERN)}")
    block_days = cycle_length // len(BLOCK_PATTERN)
    return tuple(
        tuple(
            BLOCK_PATTERN[(cycle_day // block_days + phase) % len(BLOCK_PATTERN)]
            for phase in range(len(BLOCK_PATTERN))
        )
        for cycle_day in range(cycle_length)
    )


def cycle_day_index(on: date, reference_date: date, cycle_length: int) -> int:
    # Python's modulo keeps dates before the reference inside [0, cycle_length)
    return (on - reference_date).days % cycle_length


def get_team_active_shift(
    phase_offset: int,
    on: date,
    reference_date: Optional[date] = None,
    cycle_length: Optional[int] = None,
) -> RotationSlot:
    cycle_length = cycle_length or settings.ROTATION_CYCLE_DAYS
    reference_date = reference_date or settings.ROTATION_REFERENCE_DATE
    if not 0 <= phase_offset < len(BLOCK_PATTERN):
        raise ValidationException("phase_offset", f"must be between 0 and {len(BLOCK_PATTERN) - 1}")
    lookup = build_lookup(cycle_length)
    return lookup[cycle_day_index(on, reference_date, cycle_length)][phase_offset]


def shift_times(slot: RotationSlot) -> Tuple[Optional[time], Optional[time]]:
    if slot is RotationSlot.DAY:
        return time(settings.DAY_SHIFT_START_HOUR), time(settings.NIGHT_SHIFT_START_HOUR)
    if slot is RotationSlot.NIGHT:
        return time(settings.NIGHT_SHIFT_START_HOUR), time(settings.DAY_SHIFT_START_HOUR)
    return None, None


@dataclass(frozen=True)
class RotationEntry:
    date: date
    slot: RotationSlot
    cycle_day: int
    is_work_day: bool
    start_time: Optional[time]
    end_time: Optional[time]


class RotationSchedule:
    """Lazy day-by-day schedule; every ``iter()`` starts again from ``start``."""

    def __init__(self, team: ShiftTeam, start: date, days: int):
        if days < 0:
            raise ValidationException("days", "must be zero or positive")
        self.team = team
        self.start = start
        self.days = days

    def __len__(self) -> int:
        return self.days

    def __iter__(self) -> Iterator[RotationEntry]:
        lookup = build_lookup(self.team.cycle_length)
        for offset in range(self.days):
            day = self.start + timedelta(days=offset)
            index = cycle_day_index(day, self.team.reference_date, self.team.cycle_length)
            slot = lookup[index][self.team.phase_offset]
            start_time, end_time = shift_times(slot)
            yield RotationEntry(
                date=day,
                slot=slot,
                cycle_day=index + 1,
                is_work_day=slot is not RotationSlot.REST,
                start_time=start_time,
                end_time=end_time,
            )


class RotationService:

    def __init__(self, db: Session):
        self._repo = ShiftTeamRepository(db)

    def get_team(self, team_code: str) -> ShiftTeam:
        team = self._repo.get_by_code(team_code)
        if not team:
            raise EntityNotFoundException("ShiftTeam", team_code)
        return team

    def list_teams(self) -> List[ShiftTeam]:
        return self._repo.list_active()

    def ensure_default_teams(self) -> List[ShiftTeam]:
        """Create teams A..D with the configured cycle if they do not exist yet."""
        teams = []
        for code, phase in TEAM_PHASES.items():
            team = self._repo.get_by_code(code)
            if team is None:
                team = self._repo.create(ShiftTeam(
                    team_code=code,
                    phase_offset=phase,
                    cycle_length=settings.ROTATION_CYCLE_DAYS,
                    reference_date=settings.ROTATION_REFERENCE_DATE,
                    is_active=True,
                ))
            teams.append(team)
        return teams

    def slot_for(self, team: ShiftTeam, on: date) -> RotationSlot:
        return get_team_active_shift(team.phase_offset, on, team.reference_date, team.cycle_length)

    def get_team_shift(self, team_code: str, on: date) -> RotationSlot:
        return self.slot_for(self.get_team(team_code), on)

    def get_rotation_schedule(self, team_code: str, days: int, start: date) -> RotationSchedule:
        return RotationSchedule(self.get_team(team_code), start, days)

    def teams_on_duty(self, on: date) -> dict:
        """Which team holds the day and night slot on ``on``."""
        duty = {}
        for team in self.list_teams():
            slot = self.slot_for(team, on)
            if slot is not RotationSlot.REST:
                duty[slot.value] = team.team_code
        return duty

    def cycle_day(self, team: ShiftTeam, on: date) -> int:
        return cycle_day_index(on, team.reference_date, team.cycle_length) + 1
