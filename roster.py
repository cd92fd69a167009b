"""
Roster operations: ids, search filters, role-based visibility, class
grouping, single-student moves, dashboards and report cards.

Everything here is a pure function over model lists. Callers stage the
returned values in the store.
"""
import math
import re
from typing import Dict, List, Optional

from attendance import assigned_class
from class_import import MAX_GRADE, MIN_GRADE, parse_grade
from csv_processor import export_csv


EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

STUDENT_EXPORT_COLUMNS = ['id', 'name', 'grade', 'class_name', 'enrollment_date', 'guardian',
                          'date_of_birth', 'address', 'guardian_phone']
TEACHER_EXPORT_COLUMNS = ['id', 'name', 'subject', 'hire_date', 'email', 'phone', 'qualifications']
COURSE_EXPORT_COLUMNS = ['id', 'name', 'code', 'teacher', 'credits']


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def validate_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value or ''))


# --- Id generation ---


def next_student_id(students) -> str:
    highest = 0
    for student in students:
        try:
            number = int(student.id[1:])
        except ValueError:
            continue
        highest = max(highest, number)
    return f'S{highest + 1:03d}'


def _first_free(taken, number, render):
    # Counting from the list length can collide after a delete; skip taken ids
    while render(number) in taken:
        number += 1
    return render(number)


def next_course_id(courses) -> str:
    return _first_free({c.id for c in courses}, len(courses) + 101, lambda n: f'C{n}')


def next_assessment_id(assessments) -> str:
    return _first_free({a.id for a in assessments}, len(assessments) + 1, lambda n: f'A{n:03d}')


def next_event_id(events) -> int:
    if not events:
        return 1
    return max(event.id for event in events) + 1


# --- Search filters ---


def _contains(haystack, needle) -> bool:
    return needle.lower() in str(haystack).lower()


def filter_students(students, search: str = '', grade=None):
    search = search or ''
    result = []
    for s in students:
        if search and not (_contains(s.name, search) or _contains(s.id, search)):
            continue
        if grade not in (None, '') and str(s.grade) != str(grade):
            continue
        result.append(s)
    return result


def filter_teachers(teachers, search: str = '', subject: str = ''):
    search = search or ''
    return [
        t for t in teachers
        if (not search or _contains(t.name, search) or _contains(t.id, search))
        and (not subject or t.subject == subject)
    ]


def filter_courses(courses, search: str = '', teacher: str = '', credits=None):
    search = search or ''
    return [
        c for c in courses
        if (not search or _contains(c.name, search) or _contains(c.code, search))
        and (not teacher or c.teacher == teacher)
        and (credits in (None, '') or str(c.credits) == str(credits))
    ]


def filter_assessments(assessments, search: str = '', course: str = '', type_: str = '',
                       start_date: str = '', end_date: str = ''):
    """Dates are ISO strings, so the inclusive range check is a string compare."""
    search = search or ''
    result = []
    for a in assessments:
        if search and not (_contains(a.student_name, search) or _contains(a.course_name, search)
                           or _contains(a.id, search)):
            continue
        if course and a.course_name != course:
            continue
        if type_ and a.type != type_:
            continue
        if start_date and a.date < start_date:
            continue
        if end_date and a.date > end_date:
            continue
        result.append(a)
    return result


# --- Role-based visibility ---


def courses_for(user, courses, assessments):
    role = user['role']
    if role == 'teacher':
        return [c for c in courses if c.teacher == user['name']]
    if role == 'student':
        names = {a.course_name for a in assessments if a.student_name == user['name']}
        return [c for c in courses if c.name in names]
    return list(courses)


def students_for(user, students, courses, assessments):
    """
    Admins see everyone. Teachers see students who have an assessment in one
    of their courses. Students only see themselves.
    """
    role = user['role']
    if role == 'teacher':
        course_names = {c.name for c in courses if c.teacher == user['name']}
        names = {a.student_name for a in assessments if a.course_name in course_names}
        return [s for s in students if s.name in names]
    if role == 'student':
        return [s for s in students if s.id == user['id']]
    return list(students)


def assessments_for(user, assessments):
    if user['role'] == 'student':
        return [a for a in assessments if a.student_name == user['name']]
    return list(assessments)


# --- Class management ---


def group_by_grade_and_class(students) -> Dict[int, Dict[str, list]]:
    grouped: Dict[int, Dict[str, list]] = {}
    for student in students:
        grouped.setdefault(student.grade, {}).setdefault(student.class_name, []).append(student)
    return {grade: grouped[grade] for grade in sorted(grouped)}


def class_summaries(students, class_assignments=None, teachers=()):
    """One entry per class: grade of its first student, head count, class teacher."""
    class_assignments = class_assignments or {}
    teacher_names = {t.id: t.name for t in teachers}
    classes = {}
    for student in students:
        entry = classes.get(student.class_name)
        if entry is None:
            teacher_id = class_assignments.get(student.class_name)
            entry = classes[student.class_name] = {
                'class_name': student.class_name,
                'grade': student.grade,
                'student_count': 0,
                'teacher_id': teacher_id,
                'teacher_name': teacher_names.get(teacher_id),
            }
        entry['student_count'] += 1
    return sorted(classes.values(), key=lambda c: (c['grade'], c['class_name']))


def reassign_student(students, student_id: str, grade, class_name: str) -> List:
    """
    Move one student to a new grade and class.

    Raises:
        KeyError: If no student has that id
        ValueError: If the grade or class name is invalid
    """
    class_name = (class_name or '').strip()
    new_grade = parse_grade(str(grade).strip()) if grade is not None else None
    if new_grade is None:
        raise ValueError(f'Invalid grade "{grade}". Must be a number between {MIN_GRADE} and {MAX_GRADE}.')
    if not class_name:
        raise ValueError("'class_name' cannot be empty.")
    if not any(s.id == student_id for s in students):
        raise KeyError(student_id)

    return [
        s.copy(grade=new_grade, class_name=class_name) if s.id == student_id else s
        for s in students
    ]


def assign_class_teacher(class_assignments, class_name: str, teacher_id: str, teachers) -> Dict[str, str]:
    """
    Set or clear the class teacher of a class. An empty teacher id unassigns.

    Raises:
        KeyError: If the teacher id is not on the staff list
    """
    assignments = dict(class_assignments)
    if not teacher_id:
        assignments.pop(class_name, None)
        return assignments
    if not any(t.id == teacher_id for t in teachers):
        raise KeyError(teacher_id)
    assignments[class_name] = teacher_id
    return assignments


def toggle_reminder(reminders, event_id: int) -> List[int]:
    if event_id in reminders:
        return [r for r in reminders if r != event_id]
    return list(reminders) + [event_id]


# --- Dashboards and reports ---


def average_score(assessments) -> Optional[int]:
    if not assessments:
        return None
    return round_half_up(sum(a.score for a in assessments) / len(assessments))


def letter_grade(score) -> str:
    if score is None:
        return 'N/A'
    if score >= 90:
        return 'A'
    if score >= 80:
        return 'B'
    if score >= 70:
        return 'C'
    if score >= 60:
        return 'D'
    return 'F'


def dashboard(user, store) -> dict:
    students = store.get('students')
    courses = store.get('courses')
    assessments = store.get('assessments')
    role = user['role']

    if role == 'admin':
        return {
            'role': role,
            'school_name': store.get('school_name'),
            'total_students': len(students),
            'total_teachers': len(store.get('teachers')),
            'total_courses': len(courses),
            'upcoming_events': len(store.get('events')),
        }

    if role == 'teacher':
        return {
            'role': role,
            'my_students': len(students_for(user, students, courses, assessments)),
            'my_courses': len(courses_for(user, courses, assessments)),
            'assigned_class': assigned_class(user['id'], store.get('class_assignments')),
        }

    own = assessments_for(user, assessments)
    average = average_score(own)
    return {
        'role': role,
        'enrolled_courses': len(courses_for(user, courses, assessments)),
        'completed_assessments': len(own),
        'average_score': 'N/A' if average is None else average,
    }


def report_card(student, assessments, courses) -> dict:
    """Per-course averages and letter grades for one student, in first-seen course order."""
    own = [a for a in assessments if a.student_name == student.name]
    course_teachers = {c.name: c.teacher for c in courses}

    by_course: Dict[str, list] = {}
    for a in own:
        by_course.setdefault(a.course_name, []).append(a)

    results = []
    for course_name, items in by_course.items():
        average = average_score(items)
        results.append({
            'course_name': course_name,
            'teacher': course_teachers.get(course_name, 'N/A'),
            'assessments': [a.to_dict() for a in items],
            'average': average,
            'grade': letter_grade(average),
        })

    overall = average_score(own)
    return {
        'student': student.public_dict(),
        'courses': results,
        'overall_average': 'N/A' if overall is None else overall,
        'overall_grade': letter_grade(overall),
    }


def export_students(students) -> str:
    return export_csv((s.to_dict() for s in students), STUDENT_EXPORT_COLUMNS)


def export_teachers(teachers) -> str:
    return export_csv((t.to_dict() for t in teachers), TEACHER_EXPORT_COLUMNS)


def export_courses(courses) -> str:
    return export_csv((c.to_dict() for c in courses), COURSE_EXPORT_COLUMNS)
