import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import pandas as pd

from seat_allocator.layouts import bench_coordinates, seat_label
from seat_allocator.models import Classroom


SHEET_NAME_LIMIT = 31
SHEET_NAME_FORBIDDEN = re.compile(r"[\[\]:*?/\\]")

ATTENDANCE_COLUMNS = ["Roll Number", "Name", "Year", "Section", "Department", "Bench", "Seat", "Signature"]


@dataclass(frozen=True)
class SeatRow:
    bench_number: int
    seat_position: int
    seat: str
    roll_number: str
    name: str
    year: str
    section: str
    department: str
    row: Optional[int] = None
    column: Optional[int] = None


@dataclass
class ClassroomReport:
    classroom: Classroom
    seats: List[SeatRow] = field(default_factory=list)

    @property
    def occupied(self):
        return len(self.seats)


def build_seating_report(allocations, students, classrooms):
    """Group allocations by classroom (room label order), seats by (bench, seat).

    `students` and `classrooms` map ids to snapshots.
    """
    reports = {}
    for a in allocations:
        classroom = classrooms[a.classroom_id]
        student = students[a.student_id]
        coords = bench_coordinates(a.bench_number, classroom.benches_per_row)

        report = reports.setdefault(classroom.id, ClassroomReport(classroom))
        report.seats.append(
            SeatRow(
                bench_number=a.bench_number,
                seat_position=a.seat_position,
                seat=seat_label(a.seat_position),
                roll_number=student.roll_number,
                name=student.name,
                year=student.year.value,
                section=student.section.value,
                department=student.department,
                row=coords[0] if coords else None,
                column=coords[1] if coords else None,
            )
        )

    for report in reports.values():
        report.seats.sort(key=lambda s: (s.bench_number, s.seat_position))
    return sorted(reports.values(), key=lambda r: r.classroom.room_number)


def attendance_sheet(report):
    data = [
        [s.roll_number, s.name, s.year, s.section, s.department, s.bench_number, s.seat, ""]
        for s in report.seats
    ]
    return pd.DataFrame(data, columns=ATTENDANCE_COLUMNS)


def sheet_names(labels):
    """Excel-safe, pairwise distinct sheet names for `labels`, in order.

    Forbidden characters become "-", names are cut to 31 characters, and a
    clash (Excel compares case-insensitively) gets a " (2)", " (3)" ... suffix
    that still fits the limit.
    """
    names = []
    taken = set()
    for label in labels:
        base = SHEET_NAME_FORBIDDEN.sub("-", str(label)).strip().strip("'") or "Room"
        name = base[:SHEET_NAME_LIMIT]
        n = 1
        while name.lower() in taken:
            n += 1
            suffix = f" ({n})"
            name = base[:SHEET_NAME_LIMIT - len(suffix)].rstrip() + suffix
        taken.add(name.lower())
        names.append(name)
    return names


def export_report_excel(reports, file_path):
    """Write one attendance sheet per classroom into an .xlsx workbook."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with pd.ExcelWriter(file_path, engine="openpyxl") as writer:
        if not reports:
            pd.DataFrame(columns=ATTENDANCE_COLUMNS).to_excel(writer, sheet_name="Allocation", index=False)
        names = sheet_names(r.classroom.room_number for r in reports)
        for report, sheet in zip(reports, names):
            attendance_sheet(report).to_excel(writer, sheet_name=sheet, index=False)

    return file_path
