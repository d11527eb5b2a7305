from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from seat_allocator.capacity import active_classrooms, check_capacity
from seat_allocator.eligibility import resolve_eligible
from seat_allocator.errors import ExamNotSchedulableError, InvariantViolationError
from seat_allocator.mixing import MixStrategy, mix_students
from seat_allocator.models import Allocation, Classroom, Exam, ExamStatus, Student
from seat_allocator.packer import pack_students, verify_allocations


logger = logging.getLogger(__name__)


def allocate(
    exam: Exam,
    classrooms: Iterable[Classroom],
    roster: Iterable[Student],
    strategy,
    random_seed: Optional[int] = None,
) -> List[Allocation]:
    """Seat every eligible student of `exam` in the active classrooms.

    The inputs are treated as immutable snapshots and nothing is persisted.
    Either the complete allocation list is returned or an error is raised:

    - ConfigurationError for an unknown strategy name,
    - ExamNotSchedulableError when the exam is not scheduled,
    - InsufficientCapacityError when the eligible students do not fit,
    - InvariantViolationError if the packed set fails its post-condition.
    """
    strategy = MixStrategy.parse(strategy)

    if exam.status != ExamStatus.SCHEDULED:
        raise ExamNotSchedulableError(exam.id, exam.status.value)

    rooms = active_classrooms(classrooms)
    eligible = resolve_eligible(exam, roster)
    logger.info(
        "Allocating exam=%s strategy=%s eligible=%d classrooms=%d",
        exam.id, strategy.value, len(eligible), len(rooms),
    )

    mixed = mix_students(eligible, strategy, seed=random_seed)

    available = check_capacity(len(mixed), rooms)
    if not mixed:
        logger.info("No eligible students for exam=%s", exam.id)
        return []

    allocations = pack_students(exam.id, mixed, rooms)
    verify_allocations(allocations, rooms)
    if len(allocations) != len(mixed):
        raise InvariantViolationError(f"Packed {len(allocations)} of {len(mixed)} eligible students")

    logger.info("Allocated %d of %d seats for exam=%s", len(allocations), available, exam.id)
    return allocations
