import logging
from dataclasses import dataclass, field
from typing import Hashable, List

from seat_allocator.allocator import allocate
from seat_allocator.capacity import total_capacity
from seat_allocator.config import settings
from seat_allocator.errors import SeatAllocationError
from seat_allocator.mixing import MixStrategy
from seat_allocator.models import Allocation
from seat_allocator.store import AllocationStore


logger = logging.getLogger(__name__)


@dataclass
class AllocationOutcome:
    exam_id: Hashable
    strategy: MixStrategy
    capacity: int
    allocations: List[Allocation] = field(default_factory=list)

    @property
    def allocated(self):
        return len(self.allocations)

    @property
    def classrooms_used(self):
        return list(dict.fromkeys(a.classroom_id for a in self.allocations))


def resolve_strategy(store, strategy=None, combination_id=None):
    if strategy is not None:
        return MixStrategy.parse(strategy)
    if combination_id is not None:
        return MixStrategy.parse(store.load_combination(combination_id).mix_strategy)
    default = store.load_default_combination()
    if default is not None:
        return MixStrategy.parse(default.mix_strategy)
    return MixStrategy.parse(settings.default_strategy)


def run_allocation(session, exam_id, *, combination_id=None, strategy=None, random_seed=None):
    """One allocation run: snapshot, compute, then a single replace in the store."""
    store = AllocationStore(session)
    try:
        mix = resolve_strategy(store, strategy=strategy, combination_id=combination_id)
        exam = store.load_exam(exam_id, lock=True)
        classrooms = store.load_active_classrooms()
        roster = store.load_roster(exam.years)
        allocations = allocate(exam, classrooms, roster, mix, random_seed=random_seed)
    except SeatAllocationError:
        # releases the exam lock; nothing was written
        session.rollback()
        raise

    store.replace_allocations(exam.id, allocations)
    return AllocationOutcome(
        exam_id=exam.id,
        strategy=mix,
        capacity=total_capacity(classrooms),
        allocations=allocations,
    )
