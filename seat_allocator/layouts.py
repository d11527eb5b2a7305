from __future__ import annotations

from typing import Iterator, NamedTuple, Optional, Tuple

from seat_allocator.models import Classroom

# Fixed positional encoding; seating displays decode these numbers directly.
LEFT = 1
RIGHT = 2

SEAT_LABELS = {LEFT: "Left", RIGHT: "Right"}


class Seat(NamedTuple):
    bench_number: int
    seat_position: int


def generate_seats(classroom: Classroom) -> Iterator[Seat]:
    """Bench 1..total_benches, seat 1..students_per_bench within each bench."""
    for bench in range(1, classroom.total_benches + 1):
        for seat in range(1, classroom.students_per_bench + 1):
            yield Seat(bench, seat)


def seat_label(seat_position: int) -> str:
    return SEAT_LABELS.get(seat_position, f"Seat {seat_position}")


def bench_coordinates(bench_number: int, benches_per_row: int) -> Optional[Tuple[int, int]]:
    """(row, column) of a bench, both 1-based, or None when the room has no row layout."""
    if benches_per_row <= 0:
        return None
    row, column = divmod(bench_number - 1, benches_per_row)
    return row + 1, column + 1
