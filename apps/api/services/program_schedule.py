"""
Week structure of a program.

Progress is stored as 0-based indices into sorted arrays, never as the
schedule's own week_number/day_of_week values. That keeps progression
correct when the coach leaves gaps (weeks 1, 3, 5 or days Mon/Wed/Fri):

    week_numbers = [1, 3, 5]          # sorted distinct week numbers
    days_by_week = {1: [d1, d3], ...}  # rows sorted by day_of_week

week_index 1 -> week_number 3; day_index 0 -> first scheduled day of that week.
This module is the only place those two conventions meet.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from models import ProgramSchedule


@dataclass(frozen=True)
class ScheduleDay:
    id: UUID
    week_number: int
    day_of_week: int
    template_id: Optional[str] = None


@dataclass
class WeekStructure:
    week_numbers: List[int] = field(default_factory=list)
    days_by_week: Dict[int, List[ScheduleDay]] = field(default_factory=dict)

    @property
    def total_weeks(self) -> int:
        return len(self.week_numbers)

    @property
    def is_empty(self) -> bool:
        return not self.week_numbers

    def days_in_week(self, week_index: int) -> int:
        if week_index < 0 or week_index >= len(self.week_numbers):
            return 0
        return len(self.days_by_week.get(self.week_numbers[week_index], []))

    def days_in_week_count(self) -> List[int]:
        return [len(self.days_by_week.get(w, [])) for w in self.week_numbers]

    def day_at(self, week_index: int, day_index: int) -> Optional[ScheduleDay]:
        """Schedule row for a (week_index, day_index) position, or None if out of range."""
        if week_index < 0 or week_index >= len(self.week_numbers):
            return None
        days = self.days_by_week.get(self.week_numbers[week_index], [])
        if day_index < 0 or day_index >= len(days):
            return None
        return days[day_index]

    def next_position(self, week_index: int, day_index: int) -> Optional[Tuple[int, int]]:
        """
        Position after (week_index, day_index).

        Next day in the same week, else first day of the next week,
        else None: the program is finished.
        """
        if day_index + 1 < self.days_in_week(week_index):
            return week_index, day_index + 1
        if week_index + 1 < len(self.week_numbers):
            return week_index + 1, 0
        return None


def build_week_structure(rows: Iterable) -> WeekStructure:
    """Group schedule rows into sorted weeks of sorted days. Accepts ORM rows or ScheduleDay."""
    days_by_week: Dict[int, List[ScheduleDay]] = {}
    for row in rows:
        day = ScheduleDay(
            id=row.id,
            week_number=int(row.week_number),
            day_of_week=int(row.day_of_week),
            template_id=row.template_id,
        )
        days_by_week.setdefault(day.week_number, []).append(day)

    week_numbers = sorted(days_by_week)
    for week_number in week_numbers:
        days_by_week[week_number].sort(key=lambda d: d.day_of_week)

    return WeekStructure(week_numbers=week_numbers, days_by_week=days_by_week)


def load_week_structure(db: Session, program_id: UUID) -> WeekStructure:
    rows = db.query(ProgramSchedule).filter(ProgramSchedule.program_id == program_id).all()
    return build_week_structure(rows)
