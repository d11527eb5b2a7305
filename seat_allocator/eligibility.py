from __future__ import annotations

from typing import Iterable, List

from seat_allocator.models import Exam, Student


def roster_order(student: Student) -> tuple:
    return (student.year.rank, student.section.value, student.roll_number)


def resolve_eligible(exam: Exam, roster: Iterable[Student]) -> List[Student]:
    """Students whose year is one of the exam's years, ordered by (year, section, roll_number).

    An empty result is not an error here; the caller decides.
    """
    years = set(exam.years)
    return sorted((s for s in roster if s.year in years), key=roster_order)
