import argparse
import sys

from seat_allocator.allocator import allocate
from seat_allocator.errors import SeatAllocationError
from seat_allocator.logging_setup import setup_logging
from seat_allocator.models import Classroom, Exam, Year
from seat_allocator.report import build_seating_report
from seat_allocator.student_import import RosterImportError, import_students


DEFAULT_ROOMS = ["A-101:30", "A-102:25", "B-201:35", "B-202:28"]


def parse_room(value):
    """LABEL:BENCHES[:PER_BENCH] -> Classroom"""
    parts = value.split(":")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(f"room must be LABEL:BENCHES[:PER_BENCH], got {value!r}")
    try:
        benches = int(parts[1])
        per_bench = int(parts[2]) if len(parts) == 3 else 2
    except ValueError:
        raise argparse.ArgumentTypeError(f"bench counts must be integers in {value!r}") from None
    if benches < 1:
        raise argparse.ArgumentTypeError(f"a room needs at least one bench, got {value!r}")
    if not 1 <= per_bench <= 3:
        raise argparse.ArgumentTypeError(f"students per bench must be 1 to 3, got {value!r}")
    return Classroom(id=parts[0], room_number=parts[0], total_benches=benches, students_per_bench=per_bench)


def main():
    parser = argparse.ArgumentParser(description="Allocate exam seats for a roster file")
    parser.add_argument("roster", help="students .xlsx or .csv")
    parser.add_argument("--years", nargs="+", required=True, help='e.g. "II Year" "III Year"')
    parser.add_argument("--strategy", default="alternate", help="alternate | block | random")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--room", dest="rooms", action="append", type=parse_room, metavar="LABEL:BENCHES[:PER_BENCH]")
    parser.add_argument("--subject", default="Demo Exam")
    args = parser.parse_args()

    setup_logging(environment="development", level="WARNING")

    try:
        years = frozenset(Year.parse(y) for y in args.years)
    except ValueError as e:
        parser.error(str(e))

    rooms = args.rooms or [parse_room(r) for r in DEFAULT_ROOMS]

    try:
        result = import_students(args.roster)
    except RosterImportError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)
    for err in result.errors:
        print(f"[WARNING] {err}", file=sys.stderr)

    exam = Exam(id=1, subject=args.subject, years=years)

    try:
        allocations = allocate(exam, rooms, result.students, args.strategy, random_seed=args.seed)
    except SeatAllocationError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    students = {s.id: s for s in result.students}
    classrooms = {c.id: c for c in rooms}

    print("\n--- Seat Allocation ---")
    for report in build_seating_report(allocations, students, classrooms):
        for s in report.seats:
            print(
                f"{s.name} -> Room {report.classroom.room_number} | Bench {s.bench_number} | Seat {s.seat}"
            )
    print(f"\n{len(allocations)} student(s) seated.")


if __name__ == "__main__":
    main()
