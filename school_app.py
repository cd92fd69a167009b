from flask import Flask, request, jsonify, session, g, make_response, Response
from functools import wraps
from datetime import date, datetime
import logging
import time
import os

from dotenv import load_dotenv
from pydantic import ValidationError
from pyinstrument import Profiler
import redis

import attendance
import roster
from ai_service import (
    AIServiceError, GeminiClient, LessonPlanRequest, ReportCommentRequest,
    generate_lesson_plan, generate_report_card_comment,
)
from auth_jwt import (
    ACCESS_TOKEN_MAX_AGE, REFRESH_TOKEN_MAX_AGE,
    create_tokens, decode_token, init_revocation, revoke_token,
)
from class_import import MAX_GRADE, MIN_GRADE, import_reassignments
from csv_processor import read_upload_text
from models import (
    ASSESSMENT_TYPES, DEFAULT_NAMESPACE, DEFAULT_STORAGE_URL, EVENT_CATEGORIES,
    Assessment, Course, SchoolEvent, Student, Teacher, store,
)
from password_security import check_password, hash_password
from seed_data import DEFAULT_PASSWORD

# Load environment variables from .env file
load_dotenv()

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = Flask(__name__)
# Load configuration from environment variables
app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'fallback-secret-key')
app.config['STORAGE_URL'] = os.getenv('STORAGE_URL', DEFAULT_STORAGE_URL)
app.config['STORAGE_NAMESPACE'] = os.getenv('STORAGE_NAMESPACE', DEFAULT_NAMESPACE)
app.config['ENABLE_PROFILING'] = os.getenv('ENABLE_PROFILING', '').lower() in ('1', 'true', 'yes')

store.init_app(app)
init_revocation(os.getenv('REDIS_AUTH_URL'))

ROLES = ('admin', 'teacher', 'student')
MIN_PASSWORD_LENGTH = 6
INVALID_LOGIN = 'Invalid ID or password.'


# Profiling Middleware
@app.before_request
def before_request():
    request._start_time = time.time()

    if app.config['ENABLE_PROFILING'] and 'profile' in request.args:
        g.profiler = Profiler()
        g.profiler.start()


@app.after_request
def after_request(response):
    # Timing Log
    if hasattr(request, '_start_time'):
        elapsed = time.time() - request._start_time
        app.logger.info(f"[{request.remote_addr}] {request.method} {request.path} {elapsed:.3f}s")
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"

    # Profiler Report
    if hasattr(g, 'profiler'):
        g.profiler.stop()
        return make_response(g.profiler.output_html())

    return response


# --- Error translation ---

def error_response(message, status):
    return jsonify({'success': False, 'error': message}), status


@app.errorhandler(ValidationError)
def handle_validation_error(e):
    messages = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()]
    return jsonify({'success': False, 'error': 'Invalid request.', 'errors': messages}), 400


@app.errorhandler(ValueError)
def handle_value_error(e):
    return error_response(str(e), 400)


@app.errorhandler(AIServiceError)
def handle_ai_error(e):
    return error_response(str(e), 503)


@app.errorhandler(404)
def handle_not_found(e):
    return error_response('Not found', 404)


@app.errorhandler(405)
def handle_method_not_allowed(e):
    return error_response('Method not allowed', 405)


@app.errorhandler(500)
def handle_server_error(e):
    return error_response('Internal server error', 500)


# --- Request helpers ---

def request_data():
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def required_text(data, *names):
    values = {}
    for name in names:
        value = str(data.get(name) or '').strip()
        if not value:
            raise ValueError(f"'{name}' is required.")
        values[name] = value
    return values


def optional_text(data, *names):
    return {name: str(data.get(name) or '').strip() for name in names if name in data}


def parse_int(value, name, minimum=None, maximum=None):
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError(f"'{name}' must be a whole number.")
    if minimum is not None and maximum is not None and not minimum <= number <= maximum:
        raise ValueError(f"'{name}' must be between {minimum} and {maximum}.")
    if minimum is not None and number < minimum:
        raise ValueError(f"'{name}' must be at least {minimum}.")
    if maximum is not None and number > maximum:
        raise ValueError(f"'{name}' must be at most {maximum}.")
    return number


def iso_date(value, name='date'):
    try:
        return date.fromisoformat(str(value).strip()).isoformat()
    except ValueError:
        raise ValueError(f"'{name}' must be a date in YYYY-MM-DD format.")


def today():
    return date.today().isoformat()


def find_by_id(items, item_id):
    return next((item for item in items if str(item.id) == str(item_id)), None)


def replace_item(items, new_item):
    return [new_item if item.id == new_item.id else item for item in items]


def csv_response(text, filename):
    return Response(text, mimetype='text/csv',
                    headers={'Content-Disposition': f'attachment; filename={filename}'})


def gemini_client():
    client = app.extensions.get('gemini_client')
    if client is None:
        client = app.extensions['gemini_client'] = GeminiClient()
    return client


# --- Accounts ---

def account_key(role):
    return 'admin' if role == 'admin' else f'{role}s'


def find_account(role, user_id):
    """Stored record for a login id, matched case-insensitively."""
    if role not in ROLES or not user_id:
        return None
    user_id = str(user_id).strip().lower()
    if role == 'admin':
        admin = store.get('admin')
        return admin if admin.id.lower() == user_id else None
    return next((rec for rec in store.get(account_key(role)) if rec.id.lower() == user_id), None)


def store_password(role, account_id, hashed):
    """
    Save a new password hash for one account.

    Commits the account's key right away unless it already holds unsaved
    edits, in which case the hash is staged with them.
    """
    key = account_key(role)
    had_unsaved = key in store.dirty_keys
    if role == 'admin':
        store.put(key, store.get(key).copy(password=hashed))
    else:
        store.put(key, [rec.copy(password=hashed) if rec.id == account_id else rec for rec in store.get(key)])
    if had_unsaved:
        return True
    return store.commit([key])


def user_info(role, record):
    return {'id': record.id, 'role': role, 'name': record.name, 'image_url': record.image_url}


def get_current_user():
    """Get the current user from session or JWT"""
    if 'current_user' in g:
        return g.current_user

    role, user_id = None, None
    if 'user_id' in session:
        role, user_id = session.get('role'), session['user_id']
    else:
        token = request.cookies.get('access_token')
        payload = decode_token(token) if token else None
        if payload and payload['type'] == 'access':
            role, user_id = payload['role'], payload['sub']

    record = find_account(role, user_id)
    g.current_user = user_info(role, record) if record else None
    return g.current_user


# Authentication decorators
def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if get_current_user() is None:
            return error_response('Authentication required', 401)
        return f(*args, **kwargs)
    return decorated_function


def roles_required(*roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = get_current_user()
            if user is None:
                return error_response('Authentication required', 401)
            if user['role'] not in roles:
                return error_response('Access denied.', 403)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def set_token_cookies(resp, access_token, refresh_token):
    # HttpOnly, Secure if HTTPS
    is_secure = request.scheme == 'https'
    resp.set_cookie('access_token', access_token, httponly=True, secure=is_secure, samesite='Lax', max_age=ACCESS_TOKEN_MAX_AGE)
    resp.set_cookie('refresh_token', refresh_token, httponly=True, secure=is_secure, samesite='Lax', max_age=REFRESH_TOKEN_MAX_AGE)


# Authentication Routes
@app.route('/login', methods=['POST'])
def login():
    data = request_data()
    role = str(data.get('role') or '').strip().lower()
    record = find_account(role, data.get('id'))
    password = str(data.get('password') or '')

    is_valid, needs_upgrade = check_password(record.password, password) if record else (False, False)
    if not is_valid:
        app.logger.info("[Auth] Failed login for %s %r", role or 'unknown role', data.get('id'))
        return error_response(INVALID_LOGIN, 401)

    if needs_upgrade:
        # Legacy plaintext or weak hash: store a fresh bcrypt hash
        store_password(role, record.id, hash_password(password))
        app.logger.info("[Auth] Upgraded password hash for %s %s", role, record.id)

    access_token, refresh_token = create_tokens(record.id, role)

    session.clear()
    session['user_id'] = record.id
    session['role'] = role
    session['name'] = record.name

    resp = make_response(jsonify({'success': True, 'user': user_info(role, record)}))
    set_token_cookies(resp, access_token, refresh_token)
    return resp


@app.route('/refresh', methods=['POST'])
def refresh():
    refresh_token = request.cookies.get('refresh_token')
    if not refresh_token:
        return error_response('Missing refresh token', 401)

    payload = decode_token(refresh_token)
    if not payload or payload['type'] != 'refresh':
        return error_response('Invalid refresh token', 401)

    # Rotate tokens: Revoke old refresh token
    revoke_token(payload['jti'], REFRESH_TOKEN_MAX_AGE)

    new_access, new_refresh = create_tokens(payload['sub'], payload['role'])

    resp = make_response(jsonify({'success': True, 'message': 'Token refreshed'}))
    set_token_cookies(resp, new_access, new_refresh)
    return resp


@app.route('/logout', methods=['POST'])
def logout():
    # Revoke tokens if present
    for cookie, max_age in (('access_token', ACCESS_TOKEN_MAX_AGE), ('refresh_token', REFRESH_TOKEN_MAX_AGE)):
        token = request.cookies.get(cookie)
        payload = decode_token(token) if token else None
        if payload:
            revoke_token(payload['jti'], max_age)

    session.clear()
    resp = make_response(jsonify({'success': True, 'unsaved_changes': store.is_dirty}))
    resp.delete_cookie('access_token')
    resp.delete_cookie('refresh_token')
    return resp


@app.route('/account/password', methods=['POST'])
@login_required
def change_password():
    user = get_current_user()
    data = request_data()
    record = find_account(user['role'], user['id'])

    current_ok, _ = check_password(record.password, str(data.get('current_password') or ''))
    if not current_ok:
        return error_response('Current password is incorrect.', 400)
    new_password = str(data.get('new_password') or '')
    if len(new_password) < MIN_PASSWORD_LENGTH:
        return error_response(f'New password must be at least {MIN_PASSWORD_LENGTH} characters long.', 400)
    if new_password != data.get('confirm_password'):
        return error_response('New passwords do not match.', 400)

    if not store_password(user['role'], record.id, hash_password(new_password)):
        return error_response('Failed to save the new password.', 500)
    app.logger.info("[Auth] Password changed for %s %s", user['role'], record.id)
    return jsonify({'success': True})


# Health Check Endpoint (for load balancers, Docker, monitoring)
@app.route('/health')
def health_check():
    try:
        store.backend.ping()
        return jsonify({
            'status': 'healthy',
            'storage': repr(store.backend),
            'timestamp': datetime.now().isoformat()
        }), 200
    except (redis.exceptions.RedisError, OSError) as e:
        return jsonify({
            'status': 'unhealthy',
            'storage': repr(store.backend),
            'error': str(e),
            'timestamp': datetime.now().isoformat()
        }), 503


@app.route('/dashboard')
@login_required
def dashboard():
    return jsonify(roster.dashboard(get_current_user(), store))


@app.route('/settings/school-name', methods=['GET', 'PUT'])
@login_required
def school_name():
    if request.method == 'GET':
        return jsonify({'school_name': store.get('school_name')})

    if get_current_user()['role'] != 'admin':
        return error_response('Access denied.', 403)
    name = required_text(request_data(), 'school_name')['school_name']
    store.put('school_name', name)
    return jsonify({'success': True, 'school_name': name})


# Saving staged changes
# Teachers only save or discard what their own pages edit
TEACHER_KEYS = ('student_attendance',)


def own_keys():
    """Store keys the current user may save or discard, None for all of them."""
    if get_current_user()['role'] == 'admin':
        return None
    return list(TEACHER_KEYS)


@app.route('/save', methods=['POST'])
@roles_required('admin', 'teacher')
def save_changes():
    if not store.commit(own_keys()):
        return error_response('Failed to save changes.', 500)
    return jsonify({'success': True})


@app.route('/discard', methods=['POST'])
@roles_required('admin', 'teacher')
def discard_changes():
    store.rollback(own_keys())
    return jsonify({'success': True})


@app.route('/save/status')
@roles_required('admin', 'teacher')
def save_status():
    keys = own_keys()
    dirty = [key for key in store.dirty_keys if keys is None or key in keys]
    return jsonify({'unsaved_changes': bool(dirty), 'keys': dirty})


# Student Management
STUDENT_FIELDS = ('name', 'class_name', 'enrollment_date', 'guardian', 'date_of_birth',
                  'address', 'guardian_phone', 'image_url')


def visible_students():
    return roster.students_for(get_current_user(), store.get('students'),
                               store.get('courses'), store.get('assessments'))


@app.route('/students')
@login_required
def students():
    result = roster.filter_students(visible_students(), request.args.get('search', ''), request.args.get('grade'))
    return jsonify({'students': [s.public_dict() for s in result]})


@app.route('/students/export')
@login_required
def export_students():
    result = roster.filter_students(visible_students(), request.args.get('search', ''), request.args.get('grade'))
    return csv_response(roster.export_students(result), 'students.csv')


@app.route('/students', methods=['POST'])
@roles_required('admin')
def add_student():
    data = request_data()
    fields = required_text(data, 'name', 'class_name')
    fields.update(optional_text(data, 'guardian', 'date_of_birth', 'address', 'guardian_phone', 'image_url'))
    grade = parse_int(data.get('grade'), 'grade', MIN_GRADE, MAX_GRADE)

    all_students = store.get('students')
    student_id = roster.next_student_id(all_students)
    student = Student(
        id=student_id,
        grade=grade,
        enrollment_date=iso_date(data['enrollment_date'], 'enrollment_date') if data.get('enrollment_date') else today(),
        password=hash_password(data.get('password') or DEFAULT_PASSWORD),
        **fields,
    )
    if not student.image_url:
        student.image_url = f'https://picsum.photos/seed/{student_id}/200'

    store.put('students', all_students + [student])
    return jsonify({'success': True, 'student': student.public_dict()}), 201


@app.route('/students/<student_id>', methods=['PUT'])
@roles_required('admin')
def update_student(student_id):
    all_students = store.get('students')
    student = find_by_id(all_students, student_id)
    if student is None:
        return error_response('Student not found', 404)

    data = request_data()
    changes = optional_text(data, *STUDENT_FIELDS)
    for name in ('name', 'class_name'):
        if name in changes and not changes[name]:
            raise ValueError(f"'{name}' cannot be empty.")
    if 'grade' in data:
        changes['grade'] = parse_int(data['grade'], 'grade', MIN_GRADE, MAX_GRADE)

    updated = student.copy(**changes)
    store.put('students', replace_item(all_students, updated))
    return jsonify({'success': True, 'student': updated.public_dict()})


@app.route('/students/<student_id>', methods=['DELETE'])
@roles_required('admin')
def delete_student(student_id):
    all_students = store.get('students')
    if find_by_id(all_students, student_id) is None:
        return error_response('Student not found', 404)
    store.put('students', [s for s in all_students if s.id != student_id])
    return jsonify({'success': True})


@app.route('/students/<student_id>/report')
@login_required
def student_report(student_id):
    user = get_current_user()
    if user['role'] == 'student' and user['id'] != student_id:
        return error_response('Access denied.', 403)
    student = find_by_id(store.get('students'), student_id)
    if student is None:
        return error_response('Student not found', 404)
    return jsonify(roster.report_card(student, store.get('assessments'), store.get('courses')))


# Teacher Management
TEACHER_FIELDS = ('name', 'subject', 'hire_date', 'email', 'phone', 'qualifications', 'image_url')


def checked_email(value):
    if not roster.validate_email(value):
        raise ValueError('Please enter a valid email address.')
    return value


@app.route('/teachers')
@roles_required('admin')
def teachers():
    result = roster.filter_teachers(store.get('teachers'), request.args.get('search', ''),
                                    request.args.get('subject', ''))
    return jsonify({'teachers': [t.public_dict() for t in result]})


@app.route('/teachers/export')
@roles_required('admin')
def export_teachers():
    result = roster.filter_teachers(store.get('teachers'), request.args.get('search', ''),
                                    request.args.get('subject', ''))
    return csv_response(roster.export_teachers(result), 'teachers.csv')


@app.route('/teachers', methods=['POST'])
@roles_required('admin')
def add_teacher():
    data = request_data()
    fields = required_text(data, 'id', 'name', 'subject', 'hire_date', 'email')
    fields.update(optional_text(data, 'phone', 'qualifications', 'image_url'))
    fields['hire_date'] = iso_date(fields['hire_date'], 'hire_date')
    checked_email(fields['email'])

    all_teachers = store.get('teachers')
    if find_by_id(all_teachers, fields['id']) is not None:
        return error_response(f"A teacher with ID {fields['id']} already exists.", 409)

    teacher = Teacher(password=hash_password(data.get('password') or DEFAULT_PASSWORD), **fields)
    if not teacher.image_url:
        teacher.image_url = f'https://picsum.photos/seed/{teacher.id}/200'

    store.put('teachers', all_teachers + [teacher])
    return jsonify({'success': True, 'teacher': teacher.public_dict()}), 201


@app.route('/teachers/<teacher_id>', methods=['PUT'])
@roles_required('admin')
def update_teacher(teacher_id):
    all_teachers = store.get('teachers')
    teacher = find_by_id(all_teachers, teacher_id)
    if teacher is None:
        return error_response('Teacher not found', 404)

    changes = optional_text(request_data(), *TEACHER_FIELDS)
    for name in ('name', 'subject', 'hire_date', 'email'):
        if name in changes and not changes[name]:
            raise ValueError(f"'{name}' cannot be empty.")
    if 'email' in changes:
        checked_email(changes['email'])
    if 'hire_date' in changes:
        changes['hire_date'] = iso_date(changes['hire_date'], 'hire_date')

    updated = teacher.copy(**changes)
    store.put('teachers', replace_item(all_teachers, updated))
    return jsonify({'success': True, 'teacher': updated.public_dict()})


@app.route('/teachers/<teacher_id>', methods=['DELETE'])
@roles_required('admin')
def delete_teacher(teacher_id):
    all_teachers = store.get('teachers')
    if find_by_id(all_teachers, teacher_id) is None:
        return error_response('Teacher not found', 404)
    store.put('teachers', [t for t in all_teachers if t.id != teacher_id])

    # A removed teacher cannot stay class teacher
    assignments = store.get('class_assignments')
    if teacher_id in assignments.values():
        store.put('class_assignments', {c: t for c, t in assignments.items() if t != teacher_id})
    return jsonify({'success': True})


# Course Management
def visible_courses():
    return roster.courses_for(get_current_user(), store.get('courses'), store.get('assessments'))


def filtered_courses():
    return roster.filter_courses(visible_courses(), request.args.get('search', ''),
                                 request.args.get('teacher', ''), request.args.get('credits'))


def course_fields(data, partial=False):
    names = ('name', 'code', 'teacher')
    fields = optional_text(data, *names) if partial else required_text(data, *names)
    for name in names:
        if name in fields and not fields[name]:
            raise ValueError(f"'{name}' cannot be empty.")
    if not partial or 'credits' in data:
        fields['credits'] = parse_int(data.get('credits'), 'credits', 1)
    return fields


@app.route('/courses')
@login_required
def courses():
    return jsonify({'courses': [c.to_dict() for c in filtered_courses()]})


@app.route('/courses/export')
@login_required
def export_courses():
    return csv_response(roster.export_courses(filtered_courses()), 'courses.csv')


@app.route('/courses', methods=['POST'])
@roles_required('admin')
def add_course():
    all_courses = store.get('courses')
    course = Course(id=roster.next_course_id(all_courses), **course_fields(request_data()))
    store.put('courses', all_courses + [course])
    return jsonify({'success': True, 'course': course.to_dict()}), 201


@app.route('/courses/<course_id>', methods=['PUT'])
@roles_required('admin')
def update_course(course_id):
    all_courses = store.get('courses')
    course = find_by_id(all_courses, course_id)
    if course is None:
        return error_response('Course not found', 404)
    updated = course.copy(**course_fields(request_data(), partial=True))
    store.put('courses', replace_item(all_courses, updated))
    return jsonify({'success': True, 'course': updated.to_dict()})


@app.route('/courses/<course_id>', methods=['DELETE'])
@roles_required('admin')
def delete_course(course_id):
    all_courses = store.get('courses')
    if find_by_id(all_courses, course_id) is None:
        return error_response('Course not found', 404)
    store.put('courses', [c for c in all_courses if c.id != course_id])
    return jsonify({'success': True})


# Assessments
def assessment_fields(data, partial=False):
    names = ('student_name', 'course_name', 'type', 'date')
    fields = optional_text(data, *names) if partial else required_text(data, *names)
    for name in names:
        if name in fields and not fields[name]:
            raise ValueError(f"'{name}' cannot be empty.")
    if 'type' in fields and fields['type'] not in ASSESSMENT_TYPES:
        raise ValueError(f"'type' must be one of: {', '.join(ASSESSMENT_TYPES)}")
    if 'date' in fields:
        fields['date'] = iso_date(fields['date'])
    if not partial or 'score' in data:
        fields['score'] = parse_int(data.get('score'), 'score', 0, 100)
    return fields


@app.route('/assessments')
@login_required
def assessments():
    visible = roster.assessments_for(get_current_user(), store.get('assessments'))
    result = roster.filter_assessments(
        visible,
        search=request.args.get('search', ''),
        course=request.args.get('course', ''),
        type_=request.args.get('type', ''),
        start_date=request.args.get('start_date', ''),
        end_date=request.args.get('end_date', ''),
    )
    return jsonify({'assessments': [a.to_dict() for a in result]})


@app.route('/assessments', methods=['POST'])
@roles_required('admin')
def add_assessment():
    all_assessments = store.get('assessments')
    assessment = Assessment(id=roster.next_assessment_id(all_assessments), **assessment_fields(request_data()))
    store.put('assessments', all_assessments + [assessment])
    return jsonify({'success': True, 'assessment': assessment.to_dict()}), 201


@app.route('/assessments/<assessment_id>', methods=['PUT'])
@roles_required('admin')
def update_assessment(assessment_id):
    all_assessments = store.get('assessments')
    assessment = find_by_id(all_assessments, assessment_id)
    if assessment is None:
        return error_response('Assessment not found', 404)
    updated = assessment.copy(**assessment_fields(request_data(), partial=True))
    store.put('assessments', replace_item(all_assessments, updated))
    return jsonify({'success': True, 'assessment': updated.to_dict()})


@app.route('/assessments/<assessment_id>', methods=['DELETE'])
@roles_required('admin')
def delete_assessment(assessment_id):
    all_assessments = store.get('assessments')
    if find_by_id(all_assessments, assessment_id) is None:
        return error_response('Assessment not found', 404)
    store.put('assessments', [a for a in all_assessments if a.id != assessment_id])
    return jsonify({'success': True})


# Events
def event_fields(data, partial=False):
    names = ('title', 'date', 'description', 'category')
    fields = optional_text(data, *names) if partial else required_text(data, *names)
    for name in names:
        if name in fields and not fields[name]:
            raise ValueError(f"'{name}' cannot be empty.")
    if 'category' in fields and fields['category'] not in EVENT_CATEGORIES:
        raise ValueError(f"'category' must be one of: {', '.join(EVENT_CATEGORIES)}")
    if 'date' in fields:
        fields['date'] = iso_date(fields['date'])
    return fields


def event_dict(event, reminders):
    d = event.to_dict()
    d['reminder_set'] = event.id in reminders
    return d


@app.route('/events')
@login_required
def events():
    reminders = store.get('reminders')
    ordered = sorted(store.get('events'), key=lambda e: e.date)
    return jsonify({'events': [event_dict(e, reminders) for e in ordered]})


@app.route('/events', methods=['POST'])
@roles_required('admin')
def add_event():
    all_events = store.get('events')
    event = SchoolEvent(id=roster.next_event_id(all_events), **event_fields(request_data()))
    store.put('events', all_events + [event])
    return jsonify({'success': True, 'event': event_dict(event, store.get('reminders'))}), 201


@app.route('/events/<int:event_id>', methods=['PUT'])
@roles_required('admin')
def update_event(event_id):
    all_events = store.get('events')
    event = find_by_id(all_events, event_id)
    if event is None:
        return error_response('Event not found', 404)
    updated = event.copy(**event_fields(request_data(), partial=True))
    store.put('events', replace_item(all_events, updated))
    return jsonify({'success': True, 'event': event_dict(updated, store.get('reminders'))})


@app.route('/events/<int:event_id>', methods=['DELETE'])
@roles_required('admin')
def delete_event(event_id):
    all_events = store.get('events')
    if find_by_id(all_events, event_id) is None:
        return error_response('Event not found', 404)
    store.put('events', [e for e in all_events if e.id != event_id])
    reminders = store.get('reminders')
    if event_id in reminders:
        store.put('reminders', [r for r in reminders if r != event_id])
    return jsonify({'success': True})


@app.route('/events/<int:event_id>/reminder', methods=['POST'])
@roles_required('admin')
def toggle_event_reminder(event_id):
    if find_by_id(store.get('events'), event_id) is None:
        return error_response('Event not found', 404)
    reminders = roster.toggle_reminder(store.get('reminders'), event_id)
    store.put('reminders', reminders)
    return jsonify({'success': True, 'reminder_set': event_id in reminders})


# Class Management
@app.route('/classes')
@roles_required('admin')
def classes():
    all_students = store.get('students')
    grouped = roster.group_by_grade_and_class(all_students)
    return jsonify({
        'classes': roster.class_summaries(all_students, store.get('class_assignments'), store.get('teachers')),
        'grades': {
            str(grade): {name: [s.public_dict() for s in members] for name, members in by_class.items()}
            for grade, by_class in grouped.items()
        },
    })


@app.route('/classes/reassign', methods=['POST'])
@roles_required('admin')
def reassign_student():
    data = request_data()
    student_id = str(data.get('student_id') or '').strip()
    try:
        updated = roster.reassign_student(store.get('students'), student_id,
                                          data.get('new_grade'), data.get('new_class_name'))
    except KeyError:
        return error_response(f'Student ID "{student_id}" not found.', 404)
    store.put('students', updated)
    return jsonify({'success': True, 'student': find_by_id(updated, student_id).public_dict()})


@app.route('/classes/<class_name>/teacher', methods=['PUT'])
@roles_required('admin')
def assign_class_teacher(class_name):
    teacher_id = str(request_data().get('teacher_id') or '').strip()
    try:
        assignments = roster.assign_class_teacher(store.get('class_assignments'), class_name,
                                                  teacher_id, store.get('teachers'))
    except KeyError:
        return error_response(f'Teacher ID "{teacher_id}" not found.', 404)
    store.put('class_assignments', assignments)
    return jsonify({'success': True, 'class_assignments': assignments})


@app.route('/classes/import', methods=['POST'])
@roles_required('admin')
def import_class_reassignments():
    upload = request.files.get('file')
    if not upload:
        return jsonify({'success': False, 'errors': ['No file uploaded']}), 400

    try:
        text = read_upload_text(upload)
    except ValueError as exc:
        return jsonify({'success': False, 'errors': [str(exc)]}), 400

    result = import_reassignments(text, store)
    return jsonify(result.to_dict()), 200 if result.success else 400


# Teacher Attendance
def todays_teacher_attendance():
    """Today's records, creating Absent entries for teachers without one."""
    day = today()
    synced, changed = attendance.sync_day(store.get('teachers'), store.get('teacher_attendance'), day)
    if changed:
        store.put('teacher_attendance', synced)
    return day, synced


def teacher_attendance_payload(day, all_attendance):
    records = all_attendance.get(day, [])
    filtered = attendance.filter_records(records, request.args.get('search', ''), request.args.get('status', ''))
    return {
        'date': day,
        'records': [rec.to_dict() for rec in filtered],
        'summary': attendance.summarize_teachers(records),
    }


@app.route('/attendance/teachers')
@roles_required('admin')
def teacher_attendance():
    day, all_attendance = todays_teacher_attendance()
    return jsonify(teacher_attendance_payload(day, all_attendance))


@app.route('/attendance/teachers/refresh', methods=['POST'])
@roles_required('admin')
def refresh_teacher_attendance():
    day, all_attendance = todays_teacher_attendance()
    app.logger.info("[Attendance] Refreshed teacher list for %s", day)
    return jsonify(teacher_attendance_payload(day, all_attendance))


def record_teacher_clock(teacher_id, action):
    day, all_attendance = todays_teacher_attendance()
    try:
        updated = action(all_attendance, day, teacher_id, datetime.now())
    except KeyError:
        return error_response('Teacher not found', 404)
    store.put('teacher_attendance', updated)
    record = next(rec for rec in updated[day] if rec.teacher_id == teacher_id)
    return jsonify({'success': True, 'record': record.to_dict()})


@app.route('/attendance/teachers/<teacher_id>/check-in', methods=['POST'])
@roles_required('admin')
def teacher_check_in(teacher_id):
    return record_teacher_clock(teacher_id, attendance.check_in)


@app.route('/attendance/teachers/<teacher_id>/check-out', methods=['POST'])
@roles_required('admin')
def teacher_check_out(teacher_id):
    return record_teacher_clock(teacher_id, attendance.check_out)


# Student Attendance (class teachers)
def own_class_roster():
    class_name = attendance.assigned_class(get_current_user()['id'], store.get('class_assignments'))
    if class_name is None:
        return None, []
    return class_name, attendance.class_roster(store.get('students'), class_name)


NOT_CLASS_TEACHER = 'You are not assigned as a class teacher.'


@app.route('/attendance/students')
@roles_required('teacher')
def student_attendance():
    class_name, members = own_class_roster()
    if class_name is None:
        return error_response(NOT_CLASS_TEACHER, 404)

    day = iso_date(request.args['date']) if request.args.get('date') else today()
    records = store.get('student_attendance')
    statuses = attendance.attendance_for_date(records, day)
    return jsonify({
        'class_name': class_name,
        'date': day,
        'students': [{'id': s.id, 'name': s.name, 'status': statuses.get(s.id)} for s in members],
        'summary': attendance.summarize_students(members, records, day),
    })


@app.route('/attendance/students/mark-all', methods=['POST'])
@roles_required('teacher')
def mark_all_students():
    class_name, members = own_class_roster()
    if class_name is None:
        return error_response(NOT_CLASS_TEACHER, 404)

    data = request_data()
    day = iso_date(data['date']) if data.get('date') else today()
    records = attendance.mark_all(store.get('student_attendance'), members, day, data.get('status'))
    store.put('student_attendance', records)
    return jsonify({'success': True, 'summary': attendance.summarize_students(members, records, day)})


@app.route('/attendance/students/<student_id>', methods=['POST'])
@roles_required('teacher')
def mark_student(student_id):
    class_name, members = own_class_roster()
    if class_name is None:
        return error_response(NOT_CLASS_TEACHER, 404)
    if find_by_id(members, student_id) is None:
        return error_response('Student not found in your class', 404)

    data = request_data()
    day = iso_date(data['date']) if data.get('date') else today()
    records = attendance.mark(store.get('student_attendance'), student_id, day, data.get('status'))
    store.put('student_attendance', records)
    return jsonify({'success': True, 'summary': attendance.summarize_students(members, records, day)})


# AI writing helpers
@app.route('/ai/report-comment', methods=['POST'])
@roles_required('admin')
def ai_report_comment():
    req = ReportCommentRequest.model_validate(request_data())
    return jsonify({'success': True, 'comment': generate_report_card_comment(gemini_client(), req)})


@app.route('/ai/lesson-plan', methods=['POST'])
@roles_required('teacher')
def ai_lesson_plan():
    req = LessonPlanRequest.model_validate(request_data())
    return jsonify({'success': True, 'lesson_plan': generate_lesson_plan(gemini_client(), req)})


if __name__ == '__main__':
    app.run(debug=os.getenv('FLASK_DEBUG', '').lower() in ('1', 'true'), port=int(os.getenv('PORT', '5000')))
