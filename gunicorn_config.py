"""
Gunicorn Configuration File
WSGI server configuration for the School Manager API

Run with: gunicorn -c gunicorn_config.py school_app:app
"""
import os

# Server Socket
bind = os.getenv('GUNICORN_BIND', '0.0.0.0:5000')
backlog = 2048

# Worker Processes
# Unsaved changes are staged in process memory, so every request has to reach
# the same process. Scale with threads, not workers.
workers = int(os.getenv('GUNICORN_WORKERS', 1))
worker_class = os.getenv('GUNICORN_WORKER_CLASS', 'gthread')
threads = int(os.getenv('GUNICORN_THREADS', 4))  # Threads per worker (for gthread)

# Worker Lifecycle
timeout = 120  # AI calls can take a while
graceful_timeout = 30
keepalive = 5

# Process Naming
proc_name = 'school_manager'

# Server Mechanics
daemon = False  # Don't daemonize (let systemd/Docker handle this)
pidfile = None
umask = 0
tmp_upload_dir = None

# Logging
accesslog = os.getenv('GUNICORN_ACCESS_LOG', '-')  # '-' means stdout
errorlog = os.getenv('GUNICORN_ERROR_LOG', '-')  # '-' means stderr
loglevel = os.getenv('GUNICORN_LOG_LEVEL', 'info')
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Security
limit_request_line = 4096
limit_request_fields = 100
limit_request_field_size = 8190


# Server Hooks
def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info(f"Starting Gunicorn with {workers} worker(s) and {threads} threads per worker")


def when_ready(server):
    server.log.info(f"Gunicorn is ready. Listening on: {bind}")


def worker_abort(worker):
    worker.log.warning(f"Worker received SIGABRT signal (pid: {worker.pid})")


def pre_request(worker, req):
    worker.log.debug(f"{req.method} {req.path}")


def on_exit(server):
    server.log.info("Shutting down Gunicorn")
