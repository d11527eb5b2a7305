"""Allocation Store Adapter.

Loads immutable snapshots for the engine and writes its results back. Every
write here is one transaction: it either commits completely or is rolled back
and the original SQLAlchemy error is re-raised. Nothing is retried.
"""

import logging

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError

from seat_allocator.config import settings
from seat_allocator.db_models import AllocationDB, ClassroomDB, ExamDB, SeatingCombinationDB, StudentDB
from seat_allocator.errors import NotFoundError


logger = logging.getLogger(__name__)


def _batched(items, size):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class AllocationStore:
    def __init__(self, session, batch_size=None):
        self.session = session
        self.batch_size = batch_size or settings.insert_batch_size

    def load_exam(self, exam_id, lock=False):
        query = self.session.query(ExamDB).filter(ExamDB.id == exam_id)
        if lock:
            # serializes runs for the same exam where the backend has row locks
            query = query.with_for_update()
        exam = query.first()
        if exam is None:
            raise NotFoundError("Exam", exam_id)
        return exam.to_exam()

    def load_active_classrooms(self):
        rows = (
            self.session.query(ClassroomDB)
            .filter(ClassroomDB.is_active.is_(True))
            .order_by(ClassroomDB.room_number)
            .all()
        )
        return [c.to_classroom() for c in rows]

    def load_roster(self, years=None):
        query = self.session.query(StudentDB)
        if years is not None:
            query = query.filter(StudentDB.year.in_([getattr(y, "value", y) for y in years]))
        return [s.to_student() for s in query.order_by(StudentDB.roll_number).all()]

    def load_combination(self, combination_id):
        row = self.session.get(SeatingCombinationDB, combination_id)
        if row is None:
            raise NotFoundError("Seating combination", combination_id)
        return row.to_combination()

    def load_default_combination(self):
        row = self.session.query(SeatingCombinationDB).filter(SeatingCombinationDB.is_default.is_(True)).first()
        return row.to_combination() if row is not None else None

    def allocations_for_exam(self, exam_id, classroom_id=None):
        query = self.session.query(AllocationDB).filter(AllocationDB.exam_id == exam_id)
        if classroom_id is not None:
            query = query.filter(AllocationDB.classroom_id == classroom_id)
        rows = query.order_by(AllocationDB.id).all()
        return [a.to_allocation() for a in rows]

    def students_by_id(self, ids):
        ids = list(ids)
        if not ids:
            return {}
        rows = self.session.query(StudentDB).filter(StudentDB.id.in_(ids)).all()
        return {s.id: s.to_student() for s in rows}

    def classrooms_by_id(self, ids):
        ids = list(ids)
        if not ids:
            return {}
        rows = self.session.query(ClassroomDB).filter(ClassroomDB.id.in_(ids)).all()
        return {c.id: c.to_classroom() for c in rows}

    def replace_allocations(self, exam_id, allocations):
        """Swap the stored set for `exam_id` with `allocations` in one transaction."""
        rows = [
            {
                "exam_id": exam_id,
                "classroom_id": a.classroom_id,
                "student_id": a.student_id,
                "bench_number": a.bench_number,
                "seat_position": a.seat_position,
            }
            for a in allocations
        ]
        try:
            removed = (
                self.session.query(AllocationDB)
                .filter(AllocationDB.exam_id == exam_id)
                .delete(synchronize_session=False)
            )
            for batch in _batched(rows, self.batch_size):
                self.session.execute(insert(AllocationDB), batch)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Replacing allocations for exam=%s failed; previous set kept", exam_id)
            raise

        logger.info("Replaced %d allocation(s) with %d for exam=%s", removed, len(rows), exam_id)
        return len(rows)

    def add_students(self, students):
        """Insert new roster rows in batches, skipping roll numbers already stored."""
        students = list(students)
        existing = set()
        if students:
            roll_numbers = [s.roll_number for s in students]
            existing = {
                roll for (roll,) in self.session.query(StudentDB.roll_number)
                .filter(StudentDB.roll_number.in_(roll_numbers))
            }

        rows = []
        for s in students:
            if s.roll_number in existing:
                continue
            existing.add(s.roll_number)
            rows.append({
                "roll_number": s.roll_number,
                "name": s.name,
                "year": s.year.value,
                "section": s.section.value,
                "department": s.department,
                "email": s.email,
            })

        try:
            for batch in _batched(rows, self.batch_size):
                self.session.execute(insert(StudentDB), batch)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

        return len(rows), len(students) - len(rows)

    def set_default_combination(self, combination_id):
        """Unset every default, then mark one, as a single transaction."""
        try:
            row = self.session.get(SeatingCombinationDB, combination_id)
            if row is None:
                raise NotFoundError("Seating combination", combination_id)
            (
                self.session.query(SeatingCombinationDB)
                .filter(SeatingCombinationDB.is_default.is_(True))
                .update({SeatingCombinationDB.is_default: False}, synchronize_session=False)
            )
            (
                self.session.query(SeatingCombinationDB)
                .filter(SeatingCombinationDB.id == combination_id)
                .update({SeatingCombinationDB.is_default: True}, synchronize_session=False)
            )
            self.session.commit()
        except (SQLAlchemyError, NotFoundError):
            self.session.rollback()
            raise

        self.session.refresh(row)
        return row.to_combination()
