import copy
import json
import logging
import threading
from typing import Any, Dict, List

import redis


logger = logging.getLogger(__name__)

DEFAULT_STORAGE_URL = 'redis://localhost:6379/0'
DEFAULT_NAMESPACE = 'school'


# --- Key-value backends ---


class MemoryBackend:
    """In-process backend used for tests and when redis is unreachable."""

    def __init__(self, data=None):
        self._data = dict(data or {})

    def ping(self):
        return True

    def get(self, key):
        return self._data.get(key)

    def set_many(self, mapping: Dict[str, str]):
        self._data.update(mapping)

    def __repr__(self):
        return '<MemoryBackend>'


class RedisBackend:
    def __init__(self, url: str):
        self.url = url
        self.client = redis.from_url(url, socket_connect_timeout=1, decode_responses=True)

    def ping(self):
        return self.client.ping()

    def get(self, key):
        return self.client.get(key)

    def set_many(self, mapping: Dict[str, str]):
        # MULTI/EXEC so a commit lands completely or not at all
        pipe = self.client.pipeline(transaction=True)
        for key, value in mapping.items():
            pipe.set(key, value)
        pipe.execute()

    def __repr__(self):
        return f'<RedisBackend {self.url}>'


def backend_from_url(url: str):
    if not url or url.startswith('memory://'):
        return MemoryBackend()
    if url.startswith(('redis://', 'rediss://', 'unix://')):
        return RedisBackend(url)
    raise ValueError(f'Unsupported storage URL: {url}')


# --- Model definitions ---


class BaseModel:
    # Declared fields and their defaults; anything else passed in is dropped
    fields: Dict[str, Any] = {}

    def __init__(self, **kwargs):
        for name, default in self.fields.items():
            setattr(self, name, kwargs.get(name, copy.copy(default)))

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.fields}

    def public_dict(self) -> Dict[str, Any]:
        d = self.to_dict()
        d.pop('password', None)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise TypeError(f'{cls.__name__} expects an object, got {type(data).__name__}')
        return cls(**data)

    def copy(self, **changes):
        d = self.to_dict()
        d.update(changes)
        return self.__class__(**d)

    def __eq__(self, other):
        if other.__class__ is not self.__class__:
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash((self.__class__.__name__, json.dumps(self.to_dict(), sort_keys=True)))


class Student(BaseModel):
    fields = {
        'id': '',
        'name': '',
        'grade': 1,
        'class_name': '',
        'enrollment_date': '',
        'guardian': '',
        'date_of_birth': '',
        'address': '',
        'guardian_phone': '',
        'image_url': '',
        'password': None,
    }

    def __repr__(self):
        return f'<Student {self.id} grade {self.grade} class {self.class_name}>'


class Teacher(BaseModel):
    fields = {
        'id': '',
        'name': '',
        'subject': '',
        'hire_date': '',
        'email': '',
        'phone': '',
        'qualifications': '',
        'image_url': '',
        'password': None,
    }

    def __repr__(self):
        return f'<Teacher {self.id} {self.name}>'


class AdminUser(BaseModel):
    fields = {
        'id': 'admin',
        'name': 'Admin User',
        'image_url': 'https://picsum.photos/seed/admin/200',
        'password': None,
    }

    def __repr__(self):
        return '<AdminUser>'


class Course(BaseModel):
    fields = {
        'id': '',
        'name': '',
        'code': '',
        'teacher': '',
        'credits': 0,
    }

    def __repr__(self):
        return f'<Course {self.code} {self.name}>'


ASSESSMENT_TYPES = ('Quiz', 'Test', 'Homework', 'Project')


class Assessment(BaseModel):
    fields = {
        'id': '',
        'student_name': '',
        'course_name': '',
        'type': 'Quiz',
        'date': '',
        'score': 0,
    }

    def __repr__(self):
        return f'<Assessment {self.id} {self.student_name} {self.course_name}>'


EVENT_CATEGORIES = ('Academic', 'Sports', 'Arts', 'Community')


class SchoolEvent(BaseModel):
    fields = {
        'id': 0,
        'title': '',
        'date': '',
        'description': '',
        'category': 'Academic',
    }

    def __repr__(self):
        return f'<SchoolEvent {self.id} {self.title}>'


class AttendanceRecord(BaseModel):
    """One teacher's attendance for one day."""

    fields = {
        'teacher_id': '',
        'teacher_name': '',
        'status': 'Absent',
        'check_in_time': None,
        'check_out_time': None,
    }

    def __repr__(self):
        return f'<AttendanceRecord {self.teacher_id} {self.status}>'


class StudentAttendanceRecord(BaseModel):
    fields = {
        'student_id': '',
        'date': '',
        'status': 'Present',
    }

    def __repr__(self):
        return f'<StudentAttendanceRecord {self.student_id} {self.date} {self.status}>'


# --- Roster store ---


def _encode(value):
    if isinstance(value, BaseModel):
        return value.to_dict()
    if isinstance(value, list):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    return value


def _decode(kind, model_cls, raw):
    if kind == 'value':
        return raw
    if kind == 'model':
        return model_cls.from_dict(raw)
    if kind == 'list':
        if not isinstance(raw, list):
            raise TypeError('expected a list')
        return [model_cls.from_dict(item) if model_cls else item for item in raw]
    if kind == 'map':
        if not isinstance(raw, dict):
            raise TypeError('expected an object')
        return dict(raw)
    if kind == 'daymap':
        if not isinstance(raw, dict):
            raise TypeError('expected an object')
        return {day: [model_cls.from_dict(item) for item in records] for day, records in raw.items()}
    raise ValueError(f'Unknown value kind: {kind}')


def _seed(key):
    # Imported here so the seed module can import the model classes
    import seed_data
    return seed_data.default_for(key)


# key -> (kind, model class)
STORE_SCHEMA = {
    'school_name': ('value', None),
    'students': ('list', Student),
    'teachers': ('list', Teacher),
    'courses': ('list', Course),
    'assessments': ('list', Assessment),
    'events': ('list', SchoolEvent),
    'reminders': ('list', None),
    'class_assignments': ('map', None),
    'student_attendance': ('list', StudentAttendanceRecord),
    'teacher_attendance': ('daymap', AttendanceRecord),
    'admin': ('model', AdminUser),
}


class RosterStore:
    """
    All school state as JSON values under fixed keys in a key-value backend.

    Changes are staged with put() and only reach the backend on commit().
    Readers always see staged values first, so the app behaves as if the
    change were made while the backend still holds the last saved state.
    """

    def __init__(self, backend=None, namespace: str = DEFAULT_NAMESPACE):
        self.backend = backend
        self.namespace = namespace
        self._loaded: Dict[str, Any] = {}
        self._staged: Dict[str, Any] = {}
        self._lock = threading.RLock()
        if backend is not None:
            self.load()

    def init_app(self, app):
        url = app.config.get('STORAGE_URL') or DEFAULT_STORAGE_URL
        self.namespace = app.config.get('STORAGE_NAMESPACE') or DEFAULT_NAMESPACE
        backend = backend_from_url(url)
        try:
            backend.ping()
            logger.info("[Storage] Connected to %r", backend)
        except (redis.exceptions.RedisError, OSError) as e:
            logger.warning("[Storage] Backend %r not available: %s", backend, e)
            logger.warning("[Storage] Running with in-memory storage; saved changes will not survive a restart")
            backend = MemoryBackend()
        self.init_backend(backend)
        app.extensions['roster_store'] = self

    def init_backend(self, backend):
        with self._lock:
            self.backend = backend
            self._staged.clear()
            self.load()

    def _full_key(self, key: str) -> str:
        return f'{self.namespace}:{key}'

    def load(self):
        with self._lock:
            loaded = {}
            for key, (kind, model_cls) in STORE_SCHEMA.items():
                raw = self.backend.get(self._full_key(key))
                if raw is None:
                    loaded[key] = _seed(key)
                    continue
                try:
                    loaded[key] = _decode(kind, model_cls, json.loads(raw))
                except (ValueError, TypeError) as e:
                    logger.warning("[Storage] Stored value for %r is unreadable (%s); using defaults", key, e)
                    loaded[key] = _seed(key)
            self._loaded = loaded

    def get(self, key: str):
        if key not in STORE_SCHEMA:
            raise KeyError(key)
        with self._lock:
            if key in self._staged:
                return self._staged[key]
            return self._loaded[key]

    def put(self, key: str, value):
        if key not in STORE_SCHEMA:
            raise KeyError(key)
        with self._lock:
            self._staged[key] = value

    @property
    def is_dirty(self) -> bool:
        return bool(self._staged)

    @property
    def dirty_keys(self) -> List[str]:
        return sorted(self._staged)

    def commit(self, keys=None) -> bool:
        """
        Write staged values to the backend in one transaction.

        Args:
            keys: Only commit these keys (default: everything staged)

        Returns:
            True if the backend accepted the write, False otherwise. On
            failure nothing is unstaged, so the commit can be retried.
        """
        with self._lock:
            if keys is None:
                keys = list(self._staged)
            else:
                keys = [key for key in keys if key in self._staged]
            if not keys:
                return True

            payload = {self._full_key(key): json.dumps(_encode(self._staged[key])) for key in keys}
            try:
                self.backend.set_many(payload)
            except (redis.exceptions.RedisError, OSError) as e:
                logger.error("[Storage] Commit of %s failed: %s", ', '.join(keys), e)
                return False

            for key in keys:
                self._loaded[key] = self._staged.pop(key)
            logger.info("[Storage] Committed %s", ', '.join(keys))
            return True

    def rollback(self, keys=None):
        """Drop staged values, all of them or only the given keys."""
        with self._lock:
            if keys is None:
                self._staged.clear()
                self.load()
                return
            for key in keys:
                self._staged.pop(key, None)


store = RosterStore()
