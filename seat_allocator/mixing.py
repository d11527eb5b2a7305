from __future__ import annotations

import logging
import random
from collections import deque
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from seat_allocator.errors import ConfigurationError
from seat_allocator.models import Student


logger = logging.getLogger(__name__)


class MixStrategy(str, Enum):
    ALTERNATE = "alternate"
    BLOCK = "block"
    RANDOM = "random"

    @classmethod
    def parse(cls, name) -> "MixStrategy":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise ConfigurationError(f"Unknown mix strategy {name!r} (expected one of: {choices})") from None


def block_order(students: Sequence[Student], seed=None) -> List[Student]:
    return list(students)


def alternate_order(students: Sequence[Student], seed=None) -> List[Student]:
    """Round-robin one student per (year, section) group, groups in order of first appearance."""
    groups: Dict[tuple, deque] = {}
    for s in students:
        groups.setdefault(s.cohort, deque()).append(s)

    mixed: List[Student] = []
    queues = list(groups.values())
    while queues:
        for q in queues:
            mixed.append(q.popleft())
        queues = [q for q in queues if q]
    return mixed


def random_order(students: Sequence[Student], seed=None) -> List[Student]:
    # seed=None draws from system entropy
    rng = random.Random(seed)
    shuffled = list(students)
    rng.shuffle(shuffled)
    return shuffled


_ORDERINGS: Dict[MixStrategy, Callable[..., List[Student]]] = {
    MixStrategy.BLOCK: block_order,
    MixStrategy.ALTERNATE: alternate_order,
    MixStrategy.RANDOM: random_order,
}


def mix_students(students: Sequence[Student], strategy, seed: Optional[int] = None) -> List[Student]:
    strategy = MixStrategy.parse(strategy)
    mixed = _ORDERINGS[strategy](students, seed)
    logger.debug("Mixed %d students with strategy=%s", len(mixed), strategy.value)
    return mixed
