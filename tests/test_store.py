"""Tests for the allocation store adapter and the allocation service."""
import json

import pytest
from sqlalchemy.exc import IntegrityError

from seat_allocator.db_models import AllocationDB, ClassroomDB, ExamDB, SeatingCombinationDB, StudentDB
from seat_allocator.errors import InsufficientCapacityError, InvariantViolationError, NotFoundError
from seat_allocator.mixing import MixStrategy
from seat_allocator.models import Allocation, Section, Student, Year
from seat_allocator.service import run_allocation
from seat_allocator.store import AllocationStore


def _seed(db, students=6, benches=5, years=("II Year",)):
    db.add_all([
        ClassroomDB(room_number="B-201", total_benches=benches, students_per_bench=2),
        ClassroomDB(room_number="A-101", total_benches=benches, students_per_bench=2),
        ClassroomDB(room_number="A-001", total_benches=50, students_per_bench=2, is_active=False),
    ])
    for n in range(1, students + 1):
        db.add(StudentDB(
            roll_number=f"CS{n:03d}",
            name=f"Student {n}",
            year="II Year" if n % 2 else "III Year",
            section="A" if n % 3 else "B",
            department="CSE",
        ))
    exam = ExamDB(subject="DBMS", years_json=json.dumps(list(years)))
    db.add(exam)
    db.commit()
    return exam.id


def _stored(db, exam_id):
    return db.query(AllocationDB).filter(AllocationDB.exam_id == exam_id).count()


def test_snapshots(db) -> None:
    exam_id = _seed(db)
    store = AllocationStore(db)

    exam = store.load_exam(exam_id)
    assert exam.years == frozenset({Year.YEAR_2})

    rooms = store.load_active_classrooms()
    assert [c.room_number for c in rooms] == ["A-101", "B-201"]

    roster = store.load_roster([Year.YEAR_3])
    assert roster and all(s.year is Year.YEAR_3 for s in roster)


def test_unknown_exam_raises_not_found(db) -> None:
    with pytest.raises(NotFoundError):
        AllocationStore(db).load_exam(999)


def test_run_allocation_stores_every_eligible_student(db) -> None:
    exam_id = _seed(db, students=10, years=("II Year", "III Year"))
    outcome = run_allocation(db, exam_id, strategy="alternate")

    assert outcome.allocated == 10
    assert outcome.capacity == 20
    assert outcome.strategy is MixStrategy.ALTERNATE
    assert _stored(db, exam_id) == 10
    room_ids = {c.id for c in db.query(ClassroomDB).filter(ClassroomDB.room_number == "A-101")}
    assert set(outcome.classrooms_used) == room_ids


def test_rerun_replaces_previous_set(db) -> None:
    """Scenario D: a roster change followed by a rerun leaves no stale rows."""
    exam_id = _seed(db, students=8)
    run_allocation(db, exam_id, strategy="block")
    first = {a.student_id for a in AllocationStore(db).allocations_for_exam(exam_id)}

    moved = db.query(StudentDB).filter(StudentDB.id.in_(first)).order_by(StudentDB.id).first()
    moved.year = "IV Year"
    db.commit()

    run_allocation(db, exam_id, strategy="block")
    second = {a.student_id for a in AllocationStore(db).allocations_for_exam(exam_id)}

    assert moved.id not in second
    assert second == first - {moved.id}
    assert _stored(db, exam_id) == len(second)


def test_capacity_failure_leaves_previous_set_untouched(db) -> None:
    exam_id = _seed(db, students=8, benches=2)
    run_allocation(db, exam_id, strategy="block")
    before = AllocationStore(db).allocations_for_exam(exam_id)

    for n in range(20):
        db.add(StudentDB(roll_number=f"EX{n:03d}", name="Extra", year="II Year", section="C", department="ECE"))
    db.commit()

    with pytest.raises(InsufficientCapacityError):
        run_allocation(db, exam_id, strategy="block")
    assert AllocationStore(db).allocations_for_exam(exam_id) == before


def test_invariant_violation_leaves_previous_set_untouched(db, monkeypatch) -> None:
    exam_id = _seed(db, students=6)
    run_allocation(db, exam_id, strategy="block")
    before = AllocationStore(db).allocations_for_exam(exam_id)

    def broken(*args, **kwargs):
        raise InvariantViolationError("2 seat(s) allocated more than once", duplicates=[1, 2])

    monkeypatch.setattr("seat_allocator.service.allocate", broken)
    with pytest.raises(InvariantViolationError):
        run_allocation(db, exam_id, strategy="random", random_seed=3)

    assert AllocationStore(db).allocations_for_exam(exam_id) == before
    assert _stored(db, exam_id) == len(before) == 3


def test_failed_replace_rolls_back(db) -> None:
    exam_id = _seed(db, students=4)
    run_allocation(db, exam_id, strategy="block")
    before = AllocationStore(db).allocations_for_exam(exam_id)

    room = db.query(ClassroomDB).first()
    student_ids = [s.id for s in db.query(StudentDB).limit(2)]
    clashing = [
        Allocation(exam_id, room.id, student_ids[0], 1, 1),
        Allocation(exam_id, room.id, student_ids[1], 1, 1),
    ]
    with pytest.raises(IntegrityError):
        AllocationStore(db).replace_allocations(exam_id, clashing)

    assert AllocationStore(db).allocations_for_exam(exam_id) == before


def test_replace_batches_inserts(db) -> None:
    exam_id = _seed(db, students=9, years=("II Year", "III Year"))
    store = AllocationStore(db, batch_size=2)
    outcome = run_allocation(db, exam_id, strategy="block")
    assert store.replace_allocations(exam_id, outcome.allocations) == 9
    assert _stored(db, exam_id) == 9


def test_strategy_falls_back_to_default_combination(db) -> None:
    exam_id = _seed(db)
    db.add(SeatingCombinationDB(name="Mixed", mix_strategy="random", is_default=True))
    db.commit()
    assert run_allocation(db, exam_id, random_seed=3).strategy is MixStrategy.RANDOM


def test_strategy_from_named_combination(db) -> None:
    exam_id = _seed(db)
    combo = SeatingCombinationDB(name="Blocks", mix_strategy="block")
    db.add(combo)
    db.commit()
    assert run_allocation(db, exam_id, combination_id=combo.id).strategy is MixStrategy.BLOCK


def test_strategy_falls_back_to_settings(db) -> None:
    exam_id = _seed(db)
    assert run_allocation(db, exam_id).strategy is MixStrategy.ALTERNATE


def test_set_default_combination_keeps_a_single_default(db) -> None:
    first = SeatingCombinationDB(name="One", mix_strategy="alternate", is_default=True)
    second = SeatingCombinationDB(name="Two", mix_strategy="block")
    db.add_all([first, second])
    db.commit()

    combo = AllocationStore(db).set_default_combination(second.id)
    assert combo.is_default

    defaults = db.query(SeatingCombinationDB).filter(SeatingCombinationDB.is_default.is_(True)).all()
    assert [c.name for c in defaults] == ["Two"]


def test_set_default_unknown_combination(db) -> None:
    with pytest.raises(NotFoundError):
        AllocationStore(db).set_default_combination(42)


def test_add_students_skips_existing_roll_numbers(db) -> None:
    _seed(db, students=2)
    incoming = [
        Student(id=None, roll_number="CS001", name="Dup", year=Year.YEAR_2, section=Section.A, department="CSE"),
        Student(id=None, roll_number="CS100", name="New", year=Year.YEAR_4, section=Section.D, department="ME"),
        Student(id=None, roll_number="CS100", name="New again", year=Year.YEAR_4, section=Section.D, department="ME"),
    ]
    inserted, skipped = AllocationStore(db, batch_size=1).add_students(incoming)
    assert (inserted, skipped) == (1, 2)
    assert db.query(StudentDB).count() == 3
