"""
Logging setup for the CLI and the provider service.

- Human format (coloured on a TTY) for the CLI, JSON lines for the service
- Request ids in a ContextVar, so every line logged while handling a
  provider request carries the id from the X-Request-ID header
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

NO_REQUEST = 'system'

request_id_var: ContextVar[str] = ContextVar('request_id', default=NO_REQUEST)

# Attributes passed via ``extra=`` that are copied into JSON lines
EXTRA_FIELDS = (
    'query', 'year', 'zelluloid_id', 'url', 'results',
    'status_code', 'endpoint', 'method', 'duration_ms',
)

NOISY_LOGGERS = ('urllib3', 'requests', 'werkzeug')


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def get_request_id() -> str:
    """Current request ID, or 'system' outside a request."""
    return request_id_var.get()


def set_request_id(request_id: str = None) -> str:
    """Set (or generate) the request ID for the current context and return it."""
    rid = request_id or new_request_id()
    request_id_var.set(rid)
    return rid


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line:
    {"timestamp": "...", "level": "INFO", "logger": "...", "request_id": "abc123", "message": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": get_request_id(),
            "message": record.getMessage(),
        }
        data.update({key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)})
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False, default=str)


class HumanFormatter(logging.Formatter):
    """
    INFO     [abc123] zelluloid_scraper: message

    The request id prefix only appears inside a provider request.
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True, stream=None, show_time: bool = False):
        super().__init__()
        stream = stream or sys.stderr
        self.use_colors = use_colors and getattr(stream, 'isatty', lambda: False)()
        self.show_time = show_time

    def _level(self, levelname: str) -> str:
        if self.use_colors:
            return f"{self.COLORS.get(levelname, '')}{levelname:8}{self.RESET}"
        return f"{levelname:8}"

    def format(self, record: logging.LogRecord) -> str:
        parts = []
        if self.show_time:
            parts.append(time.strftime('%H:%M:%S', time.localtime(record.created)))
        parts.append(self._level(record.levelname))

        request_id = get_request_id()
        if request_id != NO_REQUEST:
            parts.append(f"[{request_id}]")

        parts.append(f"{record.name}: {record.getMessage()}")
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    level: str = "INFO",
    structured: bool = False,
    use_colors: bool = True,
    stream=None,
) -> logging.Handler:
    """
    Replace the root handlers with a single stream handler.

    Logs go to stderr by default so CLI output on stdout stays clean.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        structured: JSON lines instead of the human format
        use_colors: Colour level names (human format on a TTY only)
        stream: Output stream, defaults to sys.stderr

    Returns:
        The installed handler
    """
    stream = stream or sys.stderr

    handler = logging.StreamHandler(stream)
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanFormatter(use_colors=use_colors, stream=stream, show_time=True))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler


# =============================================================================
# Flask request tracking
# =============================================================================

def _start_request():
    from flask import request, g

    rid = request.headers.get('X-Request-ID') or new_request_id()
    g.request_id = rid
    g.request_id_token = request_id_var.set(rid)
    g.request_start = time.perf_counter()


def _finish_request(response):
    from flask import request, g

    duration_ms = (time.perf_counter() - g.get('request_start', time.perf_counter())) * 1000
    logging.getLogger('http').info(
        f"{request.method} {request.path} -> {response.status_code} ({duration_ms:.0f}ms)",
        extra={
            'method': request.method,
            'endpoint': request.path,
            'status_code': response.status_code,
            'duration_ms': round(duration_ms, 2),
        },
    )
    response.headers['X-Request-ID'] = g.get('request_id') or get_request_id()
    return response


def _reset_request_id(exc=None):
    from flask import g

    token = g.pop('request_id_token', None)
    if token is not None:
        request_id_var.reset(token)


def setup_flask_request_id(app) -> None:
    """
    Register request id hooks on a Flask app.

    Takes the id from X-Request-ID (or generates one), logs every request
    with its duration, echoes the id in the response header and restores
    the previous id when the request ends.
    """
    app.before_request(_start_request)
    app.after_request(_finish_request)
    app.teardown_request(_reset_request_id)
