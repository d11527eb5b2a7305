"""Tests for seating reports and export."""
from pathlib import Path

import pandas as pd
from conftest import make_exam, make_roster

from seat_allocator.allocator import allocate
from seat_allocator.models import Classroom, Section, Year
from seat_allocator.report import (
    ATTENDANCE_COLUMNS,
    attendance_sheet,
    build_seating_report,
    export_report_excel,
    sheet_names,
)


def _allocated():
    rooms = [
        Classroom(id="r2", room_number="B-201", total_benches=3, benches_per_row=2),
        Classroom(id="r1", room_number="A-101", total_benches=2),
    ]
    roster = make_roster([((Year.YEAR_2, Section.A), 5), ((Year.YEAR_3, Section.B), 3)])
    allocations = allocate(make_exam(Year.YEAR_2, Year.YEAR_3), rooms, roster, "alternate")
    return allocations, {s.id: s for s in roster}, {c.id: c for c in rooms}


def test_report_groups_by_classroom_and_sorts_seats() -> None:
    allocations, students, rooms = _allocated()
    reports = build_seating_report(list(reversed(allocations)), students, rooms)

    assert [r.classroom.room_number for r in reports] == ["A-101", "B-201"]
    assert [r.occupied for r in reports] == [4, 4]
    for r in reports:
        keys = [(s.bench_number, s.seat_position) for s in r.seats]
        assert keys == sorted(keys)


def test_report_rows_carry_layout_details() -> None:
    allocations, students, rooms = _allocated()
    reports = build_seating_report(allocations, students, rooms)

    first = reports[0].seats[0]
    assert first.seat == "Left"
    assert first.row is None

    b201 = reports[1].seats
    bench_2 = [s for s in b201 if s.bench_number == 2]
    assert bench_2[0].row == 1 and bench_2[0].column == 2
    assert [s.seat for s in bench_2] == ["Left", "Right"]


def test_attendance_sheet_columns() -> None:
    allocations, students, rooms = _allocated()
    sheet = attendance_sheet(build_seating_report(allocations, students, rooms)[0])
    assert list(sheet.columns) == ATTENDANCE_COLUMNS
    assert len(sheet) == 4
    assert (sheet["Signature"] == "").all()


def test_export_one_sheet_per_classroom(tmp_path: Path) -> None:
    allocations, students, rooms = _allocated()
    path = export_report_excel(build_seating_report(allocations, students, rooms), tmp_path / "out" / "seats.xlsx")
    sheets = pd.read_excel(path, sheet_name=None)
    assert list(sheets) == ["A-101", "B-201"]
    assert len(sheets["B-201"]) == 4


def test_empty_report() -> None:
    assert build_seating_report([], {}, {}) == []


def test_sheet_names_are_excel_safe_and_distinct() -> None:
    names = sheet_names([
        "CSE/101",
        "Lab [2]: *main*?",
        "Main Building Ground Floor Hall A",
        "Main Building Ground Floor Hall B",
        "cse-101",
    ])
    assert names[0] == "CSE-101"
    assert names[1] == "Lab -2-- -main--"
    assert names[2] == "Main Building Ground Floor Hall"
    assert names[3] == "Main Building Ground Floor (2)"
    assert names[4] == "cse-101 (2)"
    assert all(len(n) <= 31 for n in names)


def test_export_keeps_every_room_with_awkward_labels(tmp_path: Path) -> None:
    rooms = [
        Classroom(id="r1", room_number="CSE/101", total_benches=2),
        Classroom(id="r2", room_number="Main Building Ground Floor Hall A", total_benches=2),
        Classroom(id="r3", room_number="Main Building Ground Floor Hall B", total_benches=2),
    ]
    roster = make_roster([((Year.YEAR_2, Section.A), 12)])
    allocations = allocate(make_exam(Year.YEAR_2), rooms, roster, "block")
    reports = build_seating_report(allocations, {s.id: s for s in roster}, {c.id: c for c in rooms})

    path = export_report_excel(reports, tmp_path / "seats.xlsx")
    sheets = pd.read_excel(path, sheet_name=None)
    assert len(sheets) == 3
    assert sum(len(df) for df in sheets.values()) == 12
    assert "CSE-101" in sheets
