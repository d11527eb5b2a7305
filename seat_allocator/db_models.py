import json

from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.orm import relationship

from seat_allocator.database import Base
from seat_allocator.models import (
    Allocation,
    Classroom,
    Exam,
    ExamStatus,
    SeatingCombination,
    Section,
    Student,
    Year,
)


class StudentDB(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key = True, index = True)
    roll_number = Column(String, unique = True, index = True, nullable = False)
    name = Column(String, nullable = False)
    year = Column(String, nullable = False)
    section = Column(String, nullable=False)
    department = Column(String, nullable=False)
    email = Column(String, nullable=True)

    def to_student(self):
        return Student(
            id=self.id,
            roll_number=self.roll_number,
            name=self.name,
            year=Year.parse(self.year),
            section=Section.parse(self.section),
            department=self.department,
            email=self.email,
        )


class ClassroomDB(Base):
    __tablename__ = "classrooms"
    __table_args__ = (
        CheckConstraint("total_benches > 0", name="ck_classrooms_total_benches"),
        CheckConstraint("students_per_bench BETWEEN 1 AND 3", name="ck_classrooms_students_per_bench"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String, unique=True, index=True, nullable=False)
    building = Column(String, nullable=True)
    total_benches = Column(Integer, nullable=False)
    benches_per_row = Column(Integer, nullable=False, default=0)
    students_per_bench = Column(Integer, nullable=False, default=2)
    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def total_capacity(self):
        return self.total_benches * self.students_per_bench

    def to_classroom(self):
        return Classroom(
            id=self.id,
            room_number=self.room_number,
            building=self.building or "",
            total_benches=self.total_benches,
            benches_per_row=self.benches_per_row or 0,
            students_per_bench=self.students_per_bench,
            is_active=bool(self.is_active),
        )


class ExamDB(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    subject = Column(String, nullable=False)
    exam_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    # stored like: ["II Year", "III Year"]
    years_json = Column(String, nullable=False)
    status = Column(String, nullable=False, default=ExamStatus.SCHEDULED.value)

    @property
    def years(self):
        return [Year.parse(y) for y in json.loads(self.years_json)]

    def to_exam(self):
        return Exam(
            id=self.id,
            subject=self.subject,
            years=frozenset(self.years),
            exam_date=self.exam_date,
            start_time=self.start_time,
            end_time=self.end_time,
            status=ExamStatus(self.status),
        )


class SeatingCombinationDB(Base):
    __tablename__ = "seating_combinations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    allowed_years_json = Column(String, nullable=False, default="[]")
    allowed_sections_json = Column(String, nullable=False, default="[]")
    mix_strategy = Column(String, nullable=False, default="alternate")
    is_default = Column(Boolean, nullable=False, default=False)

    def to_combination(self):
        return SeatingCombination(
            id=self.id,
            name=self.name,
            mix_strategy=self.mix_strategy,
            allowed_years=frozenset(Year.parse(y) for y in json.loads(self.allowed_years_json)),
            allowed_sections=frozenset(Section.parse(s) for s in json.loads(self.allowed_sections_json)),
            is_default=bool(self.is_default),
        )


class AllocationDB(Base):
    __tablename__ = "seating_allocations"
    __table_args__ = (
        UniqueConstraint("exam_id", "student_id", name="uq_allocation_exam_student"),
        UniqueConstraint("exam_id", "classroom_id", "bench_number", "seat_position", name="uq_allocation_exam_seat"),
    )

    id = Column(Integer, primary_key=True, index=True)

    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    classroom_id = Column(Integer, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    bench_number = Column(Integer, nullable=False)
    seat_position = Column(Integer, nullable=False)

    exam = relationship("ExamDB")
    student = relationship("StudentDB")
    classroom = relationship("ClassroomDB")

    def to_allocation(self):
        return Allocation(
            exam_id=self.exam_id,
            classroom_id=self.classroom_id,
            student_id=self.student_id,
            bench_number=self.bench_number,
            seat_position=self.seat_position,
        )
