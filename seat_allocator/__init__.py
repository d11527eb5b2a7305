from seat_allocator.allocator import allocate
from seat_allocator.errors import (
    ConfigurationError,
    ExamNotSchedulableError,
    InsufficientCapacityError,
    InvariantViolationError,
    NotFoundError,
    SeatAllocationError,
)
from seat_allocator.mixing import MixStrategy

__all__ = [
    "allocate",
    "ConfigurationError",
    "ExamNotSchedulableError",
    "InsufficientCapacityError",
    "InvariantViolationError",
    "MixStrategy",
    "NotFoundError",
    "SeatAllocationError",
]
