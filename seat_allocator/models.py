from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Hashable, Optional


class Year(str, Enum):
    YEAR_2 = "II Year"
    YEAR_3 = "III Year"
    YEAR_4 = "IV Year"

    @property
    def rank(self) -> int:
        return _YEAR_RANK[self]

    @classmethod
    def parse(cls, value) -> "Year":
        """Accepts "II Year", "II", "2", 2 or a Year."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        key = text.upper().replace("YEAR", "").strip()
        for year, aliases in _YEAR_ALIASES.items():
            if text == year.value or key in aliases:
                return year
        raise ValueError(f"Invalid year {value!r}. Must be 'II Year', 'III Year' or 'IV Year'")


_YEAR_RANK = {Year.YEAR_2: 2, Year.YEAR_3: 3, Year.YEAR_4: 4}
_YEAR_ALIASES = {
    Year.YEAR_2: {"II", "2"},
    Year.YEAR_3: {"III", "3"},
    Year.YEAR_4: {"IV", "4"},
}


class Section(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"

    @classmethod
    def parse(cls, value) -> "Section":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Invalid section {value!r}. Must be A, B, C, or D") from None


class ExamStatus(str, Enum):
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Student:
    id: Hashable
    roll_number: str
    name: str
    year: Year
    section: Section
    department: str
    email: Optional[str] = None

    @property
    def cohort(self) -> tuple:
        return (self.year, self.section)


@dataclass(frozen=True)
class Classroom:
    id: Hashable
    room_number: str
    total_benches: int
    students_per_bench: int = 2
    building: str = ""
    benches_per_row: int = 0  # display only
    is_active: bool = True

    @property
    def capacity(self) -> int:
        return self.total_benches * self.students_per_bench


@dataclass(frozen=True)
class Exam:
    id: Hashable
    subject: str
    years: FrozenSet[Year]
    exam_date: Optional[dt.date] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    status: ExamStatus = ExamStatus.SCHEDULED


@dataclass(frozen=True)
class SeatingCombination:
    id: Hashable
    name: str
    mix_strategy: str
    allowed_years: FrozenSet[Year] = field(default_factory=frozenset)
    allowed_sections: FrozenSet[Section] = field(default_factory=frozenset)
    is_default: bool = False


@dataclass(frozen=True)
class Allocation:
    exam_id: Hashable
    classroom_id: Hashable
    student_id: Hashable
    bench_number: int
    seat_position: int

    @property
    def slot(self) -> tuple:
        return (self.classroom_id, self.bench_number, self.seat_position)
