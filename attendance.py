"""
Teacher check-in/check-out and class attendance for students.

Teacher attendance is stored as {iso_day: [AttendanceRecord, ...]}; student
attendance is a flat list of StudentAttendanceRecord. All functions return
new containers and leave their inputs unchanged.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from models import AttendanceRecord, StudentAttendanceRecord


logger = logging.getLogger(__name__)

TEACHER_STATUSES = ('Present', 'Absent', 'Checked Out')
STUDENT_STATUSES = ('Present', 'Absent', 'Late')


def format_clock(moment: datetime) -> str:
    # 12-hour clock with leading zero, e.g. "08:05 AM"
    return moment.strftime('%I:%M %p')


# --- Teacher attendance ---


def sync_day(teachers, all_attendance: Dict[str, List[AttendanceRecord]], day: str):
    """
    Make the day's list hold exactly one record per current teacher.

    Existing records are kept as they are; teachers without one get an
    Absent record. Records of teachers no longer on staff are dropped.

    Returns:
        Tuple of (new attendance map, whether the day's list changed)
    """
    existing = {rec.teacher_id: rec for rec in all_attendance.get(day, [])}
    synced = [
        existing.get(t.id) or AttendanceRecord(teacher_id=t.id, teacher_name=t.name, status='Absent')
        for t in teachers
    ]
    changed = day not in all_attendance or all_attendance[day] != synced
    if not changed:
        return all_attendance, False

    updated = dict(all_attendance)
    updated[day] = synced
    logger.debug("[Attendance] Synced %d teacher record(s) for %s", len(synced), day)
    return updated, True


def _update_teacher(all_attendance, day, teacher_id, change):
    records = all_attendance.get(day, [])
    if not any(rec.teacher_id == teacher_id for rec in records):
        raise KeyError(teacher_id)
    updated = dict(all_attendance)
    updated[day] = [change(rec) if rec.teacher_id == teacher_id else rec for rec in records]
    return updated


def check_in(all_attendance, day: str, teacher_id: str, now: datetime):
    """Mark Present. A second check-in keeps the first check-in time."""
    stamp = format_clock(now)
    return _update_teacher(
        all_attendance, day, teacher_id,
        lambda rec: rec.copy(status='Present', check_in_time=rec.check_in_time or stamp, check_out_time=None),
    )


def check_out(all_attendance, day: str, teacher_id: str, now: datetime):
    """Mark Checked Out. Only a teacher who is Present can check out."""
    stamp = format_clock(now)

    def change(rec):
        if rec.status != 'Present':
            raise ValueError(f"Teacher {teacher_id} is not checked in.")
        return rec.copy(status='Checked Out', check_out_time=stamp)

    return _update_teacher(all_attendance, day, teacher_id, change)


def summarize_teachers(records) -> Dict[str, int]:
    summary = {status: 0 for status in TEACHER_STATUSES}
    for rec in records:
        if rec.status in summary:
            summary[rec.status] += 1
    return summary


def filter_records(records, search: str = '', status: str = ''):
    search = (search or '').lower()
    return [
        rec for rec in records
        if (not search or search in rec.teacher_name.lower() or search in rec.teacher_id.lower())
        and (not status or rec.status == status)
    ]


# --- Student attendance ---


def assigned_class(teacher_id: str, class_assignments: Dict[str, str]) -> Optional[str]:
    for class_name, assigned_teacher in class_assignments.items():
        if assigned_teacher == teacher_id:
            return class_name
    return None


def class_roster(students, class_name: str):
    return sorted((s for s in students if s.class_name == class_name), key=lambda s: s.name)


def attendance_for_date(records, day: str) -> Dict[str, str]:
    return {rec.student_id: rec.status for rec in records if rec.date == day}


def _check_status(status):
    if status not in STUDENT_STATUSES:
        raise ValueError(f'Invalid attendance status "{status}". Expected one of: {", ".join(STUDENT_STATUSES)}')


def mark(records, student_id: str, day: str, status: str):
    """Set one student's status for a day, updating the existing record if there is one."""
    _check_status(status)
    updated = list(records)
    for index, rec in enumerate(updated):
        if rec.student_id == student_id and rec.date == day:
            updated[index] = rec.copy(status=status)
            return updated
    updated.append(StudentAttendanceRecord(student_id=student_id, date=day, status=status))
    return updated


def mark_all(records, roster, day: str, status: str):
    _check_status(status)
    roster_ids = [s.id for s in roster]
    in_class = set(roster_ids)
    updated = [
        rec.copy(status=status) if rec.date == day and rec.student_id in in_class else rec
        for rec in records
    ]
    already = {rec.student_id for rec in updated if rec.date == day and rec.student_id in in_class}
    for student_id in roster_ids:
        if student_id not in already:
            updated.append(StudentAttendanceRecord(student_id=student_id, date=day, status=status))
    return updated


def summarize_students(roster, records, day: str) -> Dict[str, int]:
    statuses = attendance_for_date(records, day)
    summary = {status: 0 for status in STUDENT_STATUSES}
    summary['Unmarked'] = 0
    for student in roster:
        status = statuses.get(student.id)
        if status in summary:
            summary[status] += 1
        else:
            summary['Unmarked'] += 1
    return summary
