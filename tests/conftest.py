"""
Shared fixtures.

The database URL is pointed at in-memory SQLite before anything from
seat_allocator is imported, so the module-level engine (and the FastAPI
app's create_all) never touch a file on disk.
"""
import os

os.environ["SEAT_ALLOCATOR_DATABASE_URL"] = "sqlite://"

import pytest  # noqa: E402

from seat_allocator import db_models  # noqa: E402,F401
from seat_allocator.database import Base, SessionLocal, engine  # noqa: E402
from seat_allocator.models import Classroom, Exam, Section, Student, Year  # noqa: E402


def make_student(n, year=Year.YEAR_2, section=Section.A, department="CSE"):
    return Student(
        id=n,
        roll_number=f"R{n:04d}",
        name=f"Student {n}",
        year=year,
        section=section,
        department=department,
    )


def make_roster(groups):
    """groups: [((year, section), count), ...] -> students with consecutive ids."""
    students = []
    for (year, section), count in groups:
        for _ in range(count):
            students.append(make_student(len(students) + 1, year, section))
    return students


def make_exam(*years, status=None, exam_id=1):
    kwargs = {"status": status} if status is not None else {}
    return Exam(id=exam_id, subject="Data Structures", years=frozenset(years or (Year.YEAR_2,)), **kwargs)


def scenario_rooms():
    """Capacities 60, 50, 70, 56 (sum 236)."""
    return [
        Classroom(id="c1", room_number="A-101", total_benches=30),
        Classroom(id="c2", room_number="A-102", total_benches=25),
        Classroom(id="c3", room_number="B-201", total_benches=35),
        Classroom(id="c4", room_number="B-202", total_benches=28),
    ]


@pytest.fixture
def schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(schema):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
