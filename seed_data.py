"""
Default school data used when the store has nothing saved under a key.
Passwords here are legacy plaintext values; they are upgraded to bcrypt
hashes on first login.
"""
from models import (
    AdminUser, Assessment, Course, SchoolEvent, Student, Teacher
)

DEFAULT_SCHOOL_NAME = 'Katamanso KKMA 2 JHS'
DEFAULT_PASSWORD = 'password123'
DEFAULT_ADMIN_PASSWORD = 'admin123'

STUDENTS_DATA = [
    {'id': 'S001', 'name': 'Alice Johnson', 'grade': 5, 'class_name': '5A', 'enrollment_date': '2022-09-01', 'guardian': 'John Johnson', 'date_of_birth': '2014-05-20', 'address': '123 Maple St, Springfield', 'guardian_phone': '555-0101'},
    {'id': 'S002', 'name': 'Bob Williams', 'grade': 3, 'class_name': '3B', 'enrollment_date': '2023-01-15', 'guardian': 'Sarah Williams', 'date_of_birth': '2016-08-12', 'address': '456 Oak Ave, Shelbyville', 'guardian_phone': '555-0102'},
    {'id': 'S003', 'name': 'Charlie Brown', 'grade': 8, 'class_name': '8A', 'enrollment_date': '2021-09-01', 'guardian': 'James Brown', 'date_of_birth': '2011-02-28', 'address': '789 Pine Ln, Capital City', 'guardian_phone': '555-0103'},
    {'id': 'S004', 'name': 'Diana Miller', 'grade': 2, 'class_name': '2C', 'enrollment_date': '2023-09-01', 'guardian': 'Patricia Miller', 'date_of_birth': '2017-11-05', 'address': '101 Elm Ct, Ogdenville', 'guardian_phone': '555-0104'},
    {'id': 'S005', 'name': 'Ethan Davis', 'grade': 7, 'class_name': '7B', 'enrollment_date': '2022-01-20', 'guardian': 'Robert Davis', 'date_of_birth': '2012-07-19', 'address': '212 Birch Rd, North Haverbrook', 'guardian_phone': '555-0105'},
    {'id': 'S006', 'name': 'Fiona Garcia', 'grade': 1, 'class_name': '1A', 'enrollment_date': '2024-02-10', 'guardian': 'Maria Garcia', 'date_of_birth': '2018-04-30', 'address': '333 Cedar Blvd, Brockway', 'guardian_phone': '555-0106'},
]

TEACHERS_DATA = [
    {'id': 'T01', 'name': 'Mr. David Smith', 'subject': 'Mathematics', 'hire_date': '2018-08-15', 'email': 'd.smith@raphtech.edu', 'phone': '555-0101', 'qualifications': 'M.Ed. in Mathematics, B.S. in Applied Mathematics'},
    {'id': 'T02', 'name': 'Ms. Emily Jones', 'subject': 'Science', 'hire_date': '2020-07-22', 'email': 'e.jones@raphtech.edu', 'phone': '555-0102', 'qualifications': 'Ph.D. in Biology, B.S. in Chemistry'},
    {'id': 'T03', 'name': 'Mrs. Olivia Wilson', 'subject': 'English', 'hire_date': '2015-09-01', 'email': 'o.wilson@raphtech.edu', 'phone': '555-0103', 'qualifications': 'M.A. in English Literature'},
    {'id': 'T04', 'name': 'Mr. Michael Taylor', 'subject': 'History', 'hire_date': '2021-01-10', 'email': 'm.taylor@raphtech.edu', 'phone': '555-0104', 'qualifications': 'B.A. in History, Teaching Certification'},
]

COURSES_DATA = [
    {'id': 'C101', 'name': 'Algebra II', 'code': 'MATH-201', 'teacher': 'Mr. David Smith', 'credits': 4},
    {'id': 'C102', 'name': 'Biology', 'code': 'SCI-101', 'teacher': 'Ms. Emily Jones', 'credits': 4},
    {'id': 'C103', 'name': 'World Literature', 'code': 'ENG-301', 'teacher': 'Mrs. Olivia Wilson', 'credits': 3},
    {'id': 'C104', 'name': 'US History', 'code': 'HIST-202', 'teacher': 'Mr. Michael Taylor', 'credits': 3},
    {'id': 'C105', 'name': 'Introduction to Physics', 'code': 'SCI-201', 'teacher': 'Ms. Emily Jones', 'credits': 4},
]

ASSESSMENTS_DATA = [
    {'id': 'A001', 'student_name': 'Alice Johnson', 'course_name': 'Algebra II', 'type': 'Test', 'date': '2024-05-10', 'score': 88},
    {'id': 'A002', 'student_name': 'Bob Williams', 'course_name': 'Biology', 'type': 'Quiz', 'date': '2024-05-12', 'score': 92},
    {'id': 'A003', 'student_name': 'Alice Johnson', 'course_name': 'Algebra II', 'type': 'Homework', 'date': '2024-05-15', 'score': 95},
    {'id': 'A004', 'student_name': 'Charlie Brown', 'course_name': 'World Literature', 'type': 'Project', 'date': '2024-05-20', 'score': 78},
    {'id': 'A005', 'student_name': 'Bob Williams', 'course_name': 'Introduction to Physics', 'type': 'Test', 'date': '2024-05-18', 'score': 85},
    {'id': 'A006', 'student_name': 'Ethan Davis', 'course_name': 'US History', 'type': 'Quiz', 'date': '2024-05-14', 'score': 90},
]

EVENTS_DATA = [
    {'id': 1, 'title': 'Annual Sports Day', 'date': '2024-10-15', 'description': 'Get ready for a day of fun and competition! Sign-ups for events are now open.', 'category': 'Sports'},
    {'id': 2, 'title': 'Science Fair Submissions Due', 'date': '2024-10-25', 'description': 'All students participating in the science fair must submit their project proposals.', 'category': 'Academic'},
    {'id': 3, 'title': 'Parent-Teacher Meetings', 'date': '2024-11-05', 'description': 'Meetings will be held from 3 PM to 6 PM. Please book your slots online.', 'category': 'Community'},
    {'id': 4, 'title': 'School Play Auditions', 'date': '2024-11-10', 'description': 'Auditions for the annual school play "A Midsummer Night\'s Dream" will be held in the auditorium.', 'category': 'Arts'},
    {'id': 5, 'title': 'Mid-Term Exams Begin', 'date': '2024-11-18', 'description': 'Mid-term examinations for all grades will commence. Please check the schedule for details.', 'category': 'Academic'},
]


def _image_for(record_id):
    return f'https://picsum.photos/seed/{record_id}/200'


def default_students():
    return [
        Student(image_url=_image_for(row['id']), password=DEFAULT_PASSWORD, **row)
        for row in STUDENTS_DATA
    ]


def default_teachers():
    return [
        Teacher(image_url=_image_for(row['id']), password=DEFAULT_PASSWORD, **row)
        for row in TEACHERS_DATA
    ]


def default_for(key):
    """Fresh default value for a store key."""
    if key == 'school_name':
        return DEFAULT_SCHOOL_NAME
    if key == 'students':
        return default_students()
    if key == 'teachers':
        return default_teachers()
    if key == 'courses':
        return [Course(**row) for row in COURSES_DATA]
    if key == 'assessments':
        return [Assessment(**row) for row in ASSESSMENTS_DATA]
    if key == 'events':
        return [SchoolEvent(**row) for row in EVENTS_DATA]
    if key == 'admin':
        return AdminUser(password=DEFAULT_ADMIN_PASSWORD)
    if key in ('reminders', 'student_attendance'):
        return []
    if key in ('class_assignments', 'teacher_attendance'):
        return {}
    raise KeyError(key)
