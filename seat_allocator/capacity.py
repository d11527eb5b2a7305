from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from math import ceil
from typing import Iterable, List

from seat_allocator.errors import InsufficientCapacityError
from seat_allocator.models import Classroom


logger = logging.getLogger(__name__)


def active_classrooms(classrooms: Iterable[Classroom]) -> List[Classroom]:
    """Active rooms in packing order (by room label)."""
    return sorted((c for c in classrooms if c.is_active), key=lambda c: c.room_number)


def total_capacity(classrooms: Iterable[Classroom]) -> int:
    return sum(c.capacity for c in classrooms)


def check_capacity(needed: int, classrooms: Iterable[Classroom]) -> int:
    """Return the available seat count, or raise if `needed` does not fit."""
    available = total_capacity(classrooms)
    if needed > available:
        logger.warning("Insufficient capacity: need %d seats, %d available", needed, available)
        raise InsufficientCapacityError(needed=needed, available=available)
    return available


@dataclass(frozen=True)
class CapacitySummary:
    total_students: int
    total_classrooms: int
    total_seats: int
    shortage_students: int
    additional_benches_needed: int


def capacity_summary(needed: int, classrooms: Iterable[Classroom]) -> CapacitySummary:
    rooms = list(classrooms)
    total_seats = total_capacity(rooms)
    shortage = max(0, needed - total_seats)

    # sized in benches of the most common layout, 2 seats when there are no rooms
    layouts = Counter(c.students_per_bench for c in rooms)
    per_bench = layouts.most_common(1)[0][0] if layouts else 2
    benches_needed = ceil(shortage / per_bench) if shortage > 0 else 0

    return CapacitySummary(
        total_students=needed,
        total_classrooms=len(rooms),
        total_seats=total_seats,
        shortage_students=shortage,
        additional_benches_needed=benches_needed,
    )
