import io
import json
import logging
from datetime import date, time
from pathlib import Path
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from seat_allocator.capacity import capacity_summary
from seat_allocator.config import settings
from seat_allocator.database import Base, engine, get_db
from seat_allocator.db_models import AllocationDB, ClassroomDB, ExamDB, SeatingCombinationDB, StudentDB
from seat_allocator.eligibility import resolve_eligible
from seat_allocator.errors import (
    ConfigurationError,
    ExamNotSchedulableError,
    InsufficientCapacityError,
    InvariantViolationError,
    NotFoundError,
)
from seat_allocator.layouts import bench_coordinates, seat_label
from seat_allocator.logging_setup import setup_logging
from seat_allocator.mixing import MixStrategy
from seat_allocator.models import ExamStatus, Section, Year
from seat_allocator.report import build_seating_report, export_report_excel
from seat_allocator.service import run_allocation
from seat_allocator.store import AllocationStore
from seat_allocator.student_import import RosterImportError, import_students


logger = logging.getLogger(__name__)

setup_logging(environment=settings.environment, level=settings.log_level)

app = FastAPI(title = "Exam Seat Allocator API")

Base.metadata.create_all(bind = engine)


@app.exception_handler(NotFoundError)
def _not_found(_request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"code": "NOT_FOUND", "message": str(exc)})


@app.exception_handler(ConfigurationError)
def _configuration_error(_request, exc: ConfigurationError):
    return JSONResponse(status_code=400, content={"code": "INVALID_STRATEGY", "message": str(exc)})


@app.exception_handler(InsufficientCapacityError)
def _insufficient_capacity(_request, exc: InsufficientCapacityError):
    return JSONResponse(
        status_code=409,
        content={
            "code": "INSUFFICIENT_CAPACITY",
            "message": str(exc),
            "needed": exc.needed,
            "available": exc.available,
        },
    )


@app.exception_handler(ExamNotSchedulableError)
def _exam_not_schedulable(_request, exc: ExamNotSchedulableError):
    return JSONResponse(status_code=409, content={"code": "EXAM_NOT_SCHEDULED", "message": str(exc)})


@app.exception_handler(InvariantViolationError)
def _invariant_violation(_request, exc: InvariantViolationError):
    logger.error("Allocation invariant violated", exc_info=exc)
    return JSONResponse(status_code=500, content={"code": "ALLOCATION_INVARIANT_VIOLATED", "message": str(exc)})


class StudentIn(BaseModel):
    roll_number: str = Field(min_length=1)
    name: str = Field(min_length=1)
    year: Year
    section: Section
    department: str = Field(min_length=1)
    email: Optional[str] = None


class ClassroomIn(BaseModel):
    room_number: str = Field(min_length=1)
    building: str = ""
    total_benches: int = Field(gt=0)
    benches_per_row: int = Field(default=0, ge=0)
    students_per_bench: int = Field(default=2, ge=1, le=3)
    is_active: bool = True


class ExamIn(BaseModel):
    subject: str = Field(min_length=1)
    exam_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    years: List[Year] = Field(min_length=1)
    status: ExamStatus = ExamStatus.SCHEDULED


class CombinationIn(BaseModel):
    name: str = Field(min_length=1)
    allowed_years: List[Year] = Field(min_length=1)
    allowed_sections: List[Section] = Field(default_factory=lambda: list(Section))
    mix_strategy: MixStrategy = MixStrategy.ALTERNATE
    is_default: bool = False


class AllocateRequest(BaseModel):
    exam_id: int
    combination_id: Optional[int] = None
    strategy: Optional[str] = None
    seed: Optional[int] = None


def _student_out(s):
    return {
        "id": s.id,
        "roll_number": s.roll_number,
        "name": s.name,
        "year": s.year,
        "section": s.section,
        "department": s.department,
        "email": s.email,
    }


def _classroom_out(c):
    return {
        "id": c.id,
        "room_number": c.room_number,
        "building": c.building,
        "total_benches": c.total_benches,
        "benches_per_row": c.benches_per_row,
        "students_per_bench": c.students_per_bench,
        "total_capacity": c.total_capacity,
        "is_active": c.is_active,
    }


def _exam_out(e, allocation_count=0):
    return {
        "id": e.id,
        "subject": e.subject,
        "exam_date": e.exam_date.isoformat() if e.exam_date else None,
        "start_time": e.start_time.isoformat() if e.start_time else None,
        "end_time": e.end_time.isoformat() if e.end_time else None,
        "years": json.loads(e.years_json),
        "status": e.status,
        "allocation_count": allocation_count,
    }


def _combination_out(c):
    return {
        "id": c.id,
        "name": c.name,
        "allowed_years": json.loads(c.allowed_years_json),
        "allowed_sections": json.loads(c.allowed_sections_json),
        "mix_strategy": c.mix_strategy,
        "is_default": c.is_default,
    }


@app.get("/")
def root():
    return {"message": "Seat Allocator API is running !"}


@app.get("/students")
def get_students(db: Session = Depends(get_db)):
    students = db.query(StudentDB).order_by(StudentDB.roll_number).all()
    return [_student_out(s) for s in students]


@app.post("/students")
def create_student(payload: StudentIn, db: Session = Depends(get_db)):
    student = StudentDB(
        roll_number=payload.roll_number.strip(),
        name=payload.name.strip(),
        year=payload.year.value,
        section=payload.section.value,
        department=payload.department.strip(),
        email=payload.email,
    )
    db.add(student)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail=f"Roll number {payload.roll_number} already exists")
    db.refresh(student)
    return _student_out(student)


@app.post("/students/import")
def import_students_from_file(file: UploadFile = File(...), db: Session = Depends(get_db)):
    try:
        result = import_students(io.BytesIO(file.file.read()), filename=file.filename)
    except RosterImportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    inserted, skipped = AllocationStore(db).add_students(result.students)

    return {
        "message": "Student import completed",
        "inserted": inserted,
        "skipped_duplicates": skipped,
        "errors": result.errors,
    }


@app.post("/classrooms")
def create_classroom(payload: ClassroomIn, db: Session = Depends(get_db)):
    room_number = payload.room_number.strip()

    existing = db.query(ClassroomDB).filter(ClassroomDB.room_number == room_number).first()
    if existing:
        raise HTTPException(status_code=409, detail=f"Classroom {room_number} already exists")

    classroom = ClassroomDB(
        room_number=room_number,
        building=payload.building,
        total_benches=payload.total_benches,
        benches_per_row=payload.benches_per_row,
        students_per_bench=payload.students_per_bench,
        is_active=payload.is_active,
    )
    db.add(classroom)
    db.commit()
    db.refresh(classroom)
    return _classroom_out(classroom)


@app.get("/classrooms")
def get_classrooms(db: Session = Depends(get_db)):
    classrooms = db.query(ClassroomDB).order_by(ClassroomDB.room_number).all()
    return [_classroom_out(c) for c in classrooms]


@app.post("/exams")
def create_exam(payload: ExamIn, db: Session = Depends(get_db)):
    exam = ExamDB(
        subject=payload.subject.strip(),
        exam_date=payload.exam_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        years_json=json.dumps([y.value for y in payload.years]),
        status=payload.status.value,
    )
    db.add(exam)
    db.commit()
    db.refresh(exam)
    return _exam_out(exam)


@app.get("/exams")
def get_exams(
    status: Optional[ExamStatus] = None,
    has_allocations: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    counts = dict(
        db.query(AllocationDB.exam_id, func.count(AllocationDB.id))
        .group_by(AllocationDB.exam_id)
        .all()
    )

    query = db.query(ExamDB)
    if status is not None:
        query = query.filter(ExamDB.status == status.value)
    exams = query.order_by(ExamDB.exam_date, ExamDB.id).all()
    if has_allocations is not None:
        exams = [e for e in exams if (counts.get(e.id, 0) > 0) == has_allocations]
    return [_exam_out(e, counts.get(e.id, 0)) for e in exams]


@app.post("/seating-combinations")
def create_combination(payload: CombinationIn, db: Session = Depends(get_db)):
    combination = SeatingCombinationDB(
        name=payload.name.strip(),
        allowed_years_json=json.dumps([y.value for y in payload.allowed_years]),
        allowed_sections_json=json.dumps([s.value for s in payload.allowed_sections]),
        mix_strategy=payload.mix_strategy.value,
        is_default=False,
    )
    db.add(combination)
    db.commit()
    db.refresh(combination)

    if payload.is_default:
        AllocationStore(db).set_default_combination(combination.id)
        db.refresh(combination)

    return _combination_out(combination)


@app.get("/seating-combinations")
def get_combinations(db: Session = Depends(get_db)):
    rows = db.query(SeatingCombinationDB).order_by(SeatingCombinationDB.name).all()
    return [_combination_out(c) for c in rows]


@app.post("/seating-combinations/{combination_id}/default")
def make_default_combination(combination_id: int, db: Session = Depends(get_db)):
    AllocationStore(db).set_default_combination(combination_id)
    return _combination_out(db.get(SeatingCombinationDB, combination_id))


@app.get("/capacity-check")
def capacity_check(exam_id: int, db: Session = Depends(get_db)):
    store = AllocationStore(db)
    exam = store.load_exam(exam_id)
    classrooms = store.load_active_classrooms()
    eligible = resolve_eligible(exam, store.load_roster(exam.years))

    summary = capacity_summary(len(eligible), classrooms)
    return {
        "exam_id": exam_id,
        "total_students": summary.total_students,
        "total_classrooms": summary.total_classrooms,
        "total_seats": summary.total_seats,
        "shortage_students": summary.shortage_students,
        "additional_benches_needed": summary.additional_benches_needed,
    }


@app.post("/allocate")
def allocate_students_to_rooms(req: AllocateRequest, db: Session = Depends(get_db)):
    outcome = run_allocation(
        db,
        req.exam_id,
        combination_id=req.combination_id,
        strategy=req.strategy,
        random_seed=req.seed,
    )

    return {
        "message": "Allocation completed",
        "exam_id": outcome.exam_id,
        "strategy": outcome.strategy.value,
        "allocated": outcome.allocated,
        "capacity": outcome.capacity,
        "classrooms_used": outcome.classrooms_used,
    }


def _exam_report(db, exam_id, classroom_id=None):
    store = AllocationStore(db)
    store.load_exam(exam_id)
    if classroom_id is not None and not store.classrooms_by_id([classroom_id]):
        raise NotFoundError("Classroom", classroom_id)
    allocations = store.allocations_for_exam(exam_id, classroom_id)
    students = store.students_by_id({a.student_id for a in allocations})
    classrooms = store.classrooms_by_id({a.classroom_id for a in allocations})
    return build_seating_report(allocations, students, classrooms)


@app.get("/exams/{exam_id}/report")
def exam_report(exam_id: int, classroom_id: Optional[int] = None, db: Session = Depends(get_db)):
    reports = _exam_report(db, exam_id, classroom_id)
    return [
        {
            "classroom": {
                "id": r.classroom.id,
                "room_number": r.classroom.room_number,
                "building": r.classroom.building,
                "total_benches": r.classroom.total_benches,
                "students_per_bench": r.classroom.students_per_bench,
            },
            "occupied": r.occupied,
            "seats": [
                {
                    "bench_number": s.bench_number,
                    "seat_position": s.seat_position,
                    "seat": s.seat,
                    "roll_number": s.roll_number,
                    "name": s.name,
                    "year": s.year,
                    "section": s.section,
                    "department": s.department,
                    "row": s.row,
                    "column": s.column,
                }
                for s in r.seats
            ],
        }
        for r in reports
    ]


@app.get("/public/seat-lookup")
def seat_lookup(exam_id: int, roll_number: str, db: Session = Depends(get_db)):
    student = db.query(StudentDB).filter(StudentDB.roll_number == roll_number).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    allocation = (
        db.query(AllocationDB)
        .filter(AllocationDB.exam_id == exam_id)
        .filter(AllocationDB.student_id == student.id)
        .first()
    )

    if not allocation:
        raise HTTPException(status_code=404, detail="Seat not allocated yet")

    classroom = allocation.classroom
    coords = bench_coordinates(allocation.bench_number, classroom.benches_per_row or 0)

    return {
        "roll_number": student.roll_number,
        "name": student.name,
        "exam_id": exam_id,
        "room_number": classroom.room_number,
        "building": classroom.building,
        "bench_number": allocation.bench_number,
        "seat_position": allocation.seat_position,
        "seat": seat_label(allocation.seat_position),
        "row": coords[0] if coords else None,
        "column": coords[1] if coords else None,
    }


@app.get("/export/allocation/excel")
def export_allocation_excel(exam_id: int, classroom_id: Optional[int] = None, db: Session = Depends(get_db)):
    reports = _exam_report(db, exam_id, classroom_id)
    if not reports:
        raise HTTPException(status_code=404, detail="No allocation found. Run /allocate first.")

    name = f"allocation_exam_{exam_id}"
    if classroom_id is not None:
        name += f"_room_{classroom_id}"
    file_path = export_report_excel(reports, Path(settings.export_dir) / f"{name}.xlsx")

    return FileResponse(
        path=str(file_path),
        filename=file_path.name,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
