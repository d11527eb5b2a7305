import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import pandas as pd

from seat_allocator.models import Section, Student, Year


logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["roll_number", "name", "year", "section", "department"]
COLUMN_ALIASES = {"roll number": "roll_number"}


class RosterImportError(ValueError):
    """The roster file itself is unusable (unreadable, or a required column is missing)."""


@dataclass
class ImportResult:
    students: List[Student] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def _read_frame(source, filename=None):
    name = Path(filename or "roster").name
    try:
        if name.lower().endswith(".csv"):
            return pd.read_csv(source, dtype=str, keep_default_na=False)
        return pd.read_excel(source, dtype=str, keep_default_na=False)
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        logger.warning("Could not parse roster %s: %s", name, e)
        raise RosterImportError(f"Could not read {name} as a .csv or .xlsx roster") from e


def _normalize_columns(df):
    renamed = {}
    for col in df.columns:
        key = str(col).strip().lower()
        renamed[col] = COLUMN_ALIASES.get(key, key)
    return df.rename(columns=renamed)


def import_students(source, filename=None):
    """Read a roster from a path or an open binary file.

    `filename` names an open file so its extension picks the parser.
    """
    if filename is None and isinstance(source, (str, Path)):
        filename = str(source)
    df = _normalize_columns(_read_frame(source, filename))

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise RosterImportError(f"Missing columns: {', '.join(missing)}")

    result = ImportResult()
    seen = set()

    # row 1 is the header
    for row_no, (_, row) in enumerate(df.iterrows(), start=2):
        values = {c: str(row[c]).strip() for c in REQUIRED_COLUMNS}
        empty = [c for c, v in values.items() if not v]
        if empty:
            result.errors.append(f"Row {row_no}: Missing required fields ({', '.join(empty)})")
            continue

        try:
            year = Year.parse(values["year"])
            section = Section.parse(values["section"])
        except ValueError as e:
            result.errors.append(f"Row {row_no}: {e}")
            continue

        roll = values["roll_number"]
        if roll in seen:
            result.errors.append(f'Row {row_no}: Roll number "{roll}" appears more than once')
            continue
        seen.add(roll)

        email = str(row["email"]).strip() if "email" in df.columns else ""
        result.students.append(
            Student(
                id=roll,
                roll_number=roll,
                name=values["name"],
                year=year,
                section=section,
                department=values["department"],
                email=email or None,
            )
        )

    logger.info("Read %d student(s) from %s, %d row error(s)", len(result.students), filename, len(result.errors))
    return result
