from __future__ import annotations

import logging
from collections import Counter
from typing import Hashable, Iterable, List, Sequence

from seat_allocator.errors import InvariantViolationError
from seat_allocator.layouts import generate_seats
from seat_allocator.models import Allocation, Classroom, Student


logger = logging.getLogger(__name__)


def pack_students(exam_id: Hashable, students: Sequence[Student], classrooms: Iterable[Classroom]) -> List[Allocation]:
    allocations: List[Allocation] = []
    index = 0

    for classroom in classrooms:
        if index >= len(students):
            break

        for seat in generate_seats(classroom):
            if index >= len(students):
                break

            allocations.append(
                Allocation(
                    exam_id=exam_id,
                    classroom_id=classroom.id,
                    student_id=students[index].id,
                    bench_number=seat.bench_number,
                    seat_position=seat.seat_position,
                )
            )
            index += 1

    return allocations


def verify_allocations(allocations: Sequence[Allocation], classrooms: Iterable[Classroom]) -> None:
    """Post-condition on a packed set: one seat per student, one student per seat, seats in range."""
    rooms = {c.id: c for c in classrooms}

    student_counts = Counter(a.student_id for a in allocations)
    dup_students = [sid for sid, n in student_counts.items() if n > 1]
    if dup_students:
        logger.error("Students allocated more than once: %s", dup_students)
        raise InvariantViolationError(f"{len(dup_students)} student(s) allocated more than once", dup_students)

    slot_counts = Counter(a.slot for a in allocations)
    dup_slots = [slot for slot, n in slot_counts.items() if n > 1]
    if dup_slots:
        logger.error("Seats allocated more than once: %s", dup_slots)
        raise InvariantViolationError(f"{len(dup_slots)} seat(s) allocated more than once", dup_slots)

    bad = []
    for a in allocations:
        room = rooms.get(a.classroom_id)
        if (
            room is None
            or not 1 <= a.bench_number <= room.total_benches
            or not 1 <= a.seat_position <= room.students_per_bench
        ):
            bad.append(a.slot)
    if bad:
        logger.error("Allocations outside classroom bounds: %s", bad)
        raise InvariantViolationError(f"{len(bad)} allocation(s) outside classroom bounds", bad)
