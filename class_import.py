"""
Bulk Class Reassignment Import
Validates a student_id,new_grade,new_class_name file against the current
roster and applies every row, or none of them.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence

from csv_processor import (
    ReassignmentImportError,
    split_rows,
    validate_header,
)
from models import Student


logger = logging.getLogger(__name__)

MIN_GRADE = 1
MAX_GRADE = 12
EXPECTED_COLUMNS = 3

_LEADING_INTEGER_RE = re.compile(r'\s*([+-]?[0-9]+)')


# --- Per-row errors (collected, never raised) ---


class RowError:
    def __init__(self, row: int):
        self.row = row

    @property
    def message(self) -> str:
        raise NotImplementedError

    def __str__(self):
        return self.message

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.message!r}>'


class ColumnCountError(RowError):
    def __init__(self, row: int, count: int):
        super().__init__(row)
        self.count = count

    @property
    def message(self):
        return f'Row {self.row}: Invalid number of columns. Expected {EXPECTED_COLUMNS}, got {self.count}.'


class EmptyFieldError(RowError):
    def __init__(self, row: int, field_name: str):
        super().__init__(row)
        self.field_name = field_name

    @property
    def message(self):
        return f"Row {self.row}: '{self.field_name}' cannot be empty."


class UnknownStudentError(RowError):
    def __init__(self, row: int, student_id: str):
        super().__init__(row)
        self.student_id = student_id

    @property
    def message(self):
        return f'Row {self.row}: Student ID "{self.student_id}" not found.'


class InvalidGradeError(RowError):
    def __init__(self, row: int, value: str):
        super().__init__(row)
        self.value = value

    @property
    def message(self):
        return f'Row {self.row}: Invalid grade "{self.value}". Must be a number between {MIN_GRADE} and {MAX_GRADE}.'


class Reassignment:
    """One validated request: move a student to a grade and class."""

    def __init__(self, student_id: str, new_grade: int, new_class_name: str):
        self.student_id = student_id
        self.new_grade = new_grade
        self.new_class_name = new_class_name

    def __eq__(self, other):
        if not isinstance(other, Reassignment):
            return NotImplemented
        return (self.student_id, self.new_grade, self.new_class_name) == \
            (other.student_id, other.new_grade, other.new_class_name)

    def __repr__(self):
        return f'<Reassignment {self.student_id} -> {self.new_grade}/{self.new_class_name}>'


def parse_grade(value: str) -> Optional[int]:
    """
    Base-10 grade from the leading digits of the value, or None.

    Anything after the digits is ignored, so "6B" and "6.5" read as 6.
    """
    match = _LEADING_INTEGER_RE.match(value)
    if match is None:
        return None
    grade = int(match.group(1))
    if grade < MIN_GRADE or grade > MAX_GRADE:
        return None
    return grade


def validate_row(row_number: int, row: str, known_ids) -> tuple:
    """
    Check one data line.

    Returns:
        Tuple of (Reassignment or None, list of RowError)
    """
    values = row.split(',')
    if len(values) != EXPECTED_COLUMNS:
        return None, [ColumnCountError(row_number, len(values))]

    student_id, grade_text, class_name = [v.strip() for v in values]
    errors: List[RowError] = []

    if not student_id:
        errors.append(EmptyFieldError(row_number, 'student_id'))
    elif student_id not in known_ids:
        errors.append(UnknownStudentError(row_number, student_id))

    new_grade = None
    if not grade_text:
        errors.append(EmptyFieldError(row_number, 'new_grade'))
    else:
        new_grade = parse_grade(grade_text)
        if new_grade is None:
            errors.append(InvalidGradeError(row_number, grade_text))

    if not class_name:
        errors.append(EmptyFieldError(row_number, 'new_class_name'))

    if errors:
        return None, errors
    return Reassignment(student_id, new_grade, class_name), []


def validate_rows(rows: Sequence[str], known_ids) -> tuple:
    """
    Validate every data row; never stops at the first bad one.

    Row numbers count the header as row 1, so rows[0] is reported as row 2.

    Returns:
        Tuple of (list of Reassignment, list of RowError)
    """
    known_ids = set(known_ids)
    updates: List[Reassignment] = []
    errors: List[RowError] = []
    for index, row in enumerate(rows):
        update, row_errors = validate_row(index + 2, row, known_ids)
        if row_errors:
            errors.extend(row_errors)
        else:
            updates.append(update)
    return updates, errors


def apply_updates(students: Iterable[Student], updates: Iterable[Reassignment]) -> List[Student]:
    """
    Return a new roster with every update applied.

    The input list and its records are left untouched. When a student appears
    in several updates the last one in file order wins.
    """
    latest: Dict[str, Reassignment] = {}
    for update in updates:
        latest[update.student_id] = update

    result = []
    for student in students:
        update = latest.get(student.id)
        if update is None:
            result.append(student)
        else:
            result.append(student.copy(grade=update.new_grade, class_name=update.new_class_name))
    return result


class ImportResult:
    def __init__(self, success: bool, errors=None, students=None, updated: int = 0):
        self.success = success
        self.errors: List[str] = list(errors or [])
        self.students: Optional[List[Student]] = students
        self.updated = updated

    def to_dict(self):
        if self.success:
            return {'success': True, 'updated': self.updated}
        return {'success': False, 'errors': self.errors}

    def __repr__(self):
        if self.success:
            return f'<ImportResult ok updated={self.updated}>'
        return f'<ImportResult failed errors={len(self.errors)}>'


def run_import(text: str, students: Sequence[Student]) -> ImportResult:
    """
    Parse, validate and apply a reassignment file against a roster.

    File-level problems (empty file, wrong header) end the import with that
    single message; row-level problems are all collected before deciding.
    """
    try:
        header, rows = split_rows(text)
        validate_header(header)
    except ReassignmentImportError as e:
        return ImportResult(False, errors=[str(e)])

    updates, row_errors = validate_rows(rows, (s.id for s in students))
    if row_errors:
        return ImportResult(False, errors=[e.message for e in row_errors])

    updated_students = apply_updates(students, updates)
    changed = len({u.student_id for u in updates})
    return ImportResult(True, students=updated_students, updated=changed)


def import_reassignments(text: str, roster_store) -> ImportResult:
    """
    Run an import against the roster store and commit the new student list.

    The store is only written when every row is valid. When the student list
    already holds unsaved edits the result is staged with them instead.
    """
    result = run_import(text, roster_store.get('students'))
    if not result.success:
        logger.info("[Import] Rejected class reassignment file with %d error(s)", len(result.errors))
        return result

    had_unsaved = 'students' in roster_store.dirty_keys
    roster_store.put('students', result.students)
    if had_unsaved:
        # Other student edits are still unsaved, so the import waits for "save" with them
        logger.info("[Import] Reassigned %d student(s); staged with unsaved student edits", result.updated)
        return result
    if not roster_store.commit(['students']):
        # Staged value stays, so a later "save" can still persist it
        logger.error("[Import] Reassignments applied but could not be saved")
    logger.info("[Import] Reassigned %d student(s)", result.updated)
    return result
