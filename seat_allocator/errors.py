from __future__ import annotations


class SeatAllocationError(Exception):
    """Base class for everything the allocation engine raises."""


class ConfigurationError(SeatAllocationError, ValueError):
    """Raised for an unknown mixing strategy name."""


class InsufficientCapacityError(SeatAllocationError):
    def __init__(self, needed: int, available: int):
        self.needed = needed
        self.available = available
        super().__init__(f"Need {needed} seats but only {available} available.")

    @property
    def shortage(self) -> int:
        return max(0, self.needed - self.available)


class InvariantViolationError(SeatAllocationError):
    """A packed allocation set reused a seat or seated a student twice.

    Never expected in practice; the run is aborted before anything is stored.
    """

    def __init__(self, message: str, duplicates=None):
        self.duplicates = list(duplicates or [])
        super().__init__(message)


class ExamNotSchedulableError(SeatAllocationError):
    def __init__(self, exam_id, status):
        self.exam_id = exam_id
        self.status = status
        super().__init__(f"Exam {exam_id} is '{status}'; only scheduled exams can be allocated.")


class NotFoundError(SeatAllocationError, LookupError):
    def __init__(self, kind: str, ident):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} {ident} not found")
