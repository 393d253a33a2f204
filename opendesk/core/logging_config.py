"""Structured logging configuration for OpenDesk.

JSON lines in production, readable text in development. Every record
carries the id of the request being served (``-`` outside a request), and
passes through a redaction filter before it reaches the handler. Drive
logs name object keys and presigned URLs, so the filter covers S3
signature parameters and credentials embedded in connection URLs as well
as bearer tokens and password fields.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional


request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")

_NO_REQUEST = "-"
_REDACTED = "***REDACTED***"

_SECRET_PATTERNS = [
    re.compile(r'(?i)(bearer\s+)[a-zA-Z0-9._\-]{20,}'),
    # Compact JWS: header.payload.signature, header always starts with {"
    re.compile(r'\beyJ[a-zA-Z0-9_\-]{10,}\.[a-zA-Z0-9_\-]{10,}\.[a-zA-Z0-9_\-]{10,}'),
    re.compile(
        r'(?i)((?:access_key|secret_key|secret|password|token|authorization)[=:]\s*)[^\s,\'"]{6,}'
    ),
    re.compile(r'(X-Amz-Signature=)[0-9a-f]{16,}'),
    re.compile(r'(X-Amz-Credential=)[^&\s]+'),
    # user:password@ in database and storage URLs
    re.compile(r'([a-z][a-z0-9+.\-]*://[^:/@\s]+:)[^@\s]+(?=@)'),
]

# Values of these ``extra=`` fields are dropped outright.
_SENSITIVE_FIELDS = frozenset({
    "password",
    "password_hash",
    "access_token",
    "token",
    "jwt_secret_key",
    "minio_secret_key",
    "minio_access_key",
})


def redact(text: str) -> str:
    """Mask every secret-looking substring of *text*."""
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(
            lambda m: m.group(1) + _REDACTED if m.lastindex else _REDACTED,
            text,
        )
    return text


_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()) | {
    "message",
    "asctime",
}


def _record_extras(record: logging.LogRecord) -> dict:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and key != "request_id"
    }


class _RequestIdFilter(logging.Filter):
    """Stamp ``record.request_id`` so both formats can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or _NO_REQUEST
        return True


class _SecretFilter(logging.Filter):
    """Redact secrets from the message, its arguments, extras and tracebacks."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Interpolate first so secrets passed as %-args are masked too.
        record.msg = redact(record.getMessage())
        record.args = ()
        if record.exc_text:
            record.exc_text = redact(record.exc_text)
        for key, value in _record_extras(record).items():
            if key in _SENSITIVE_FIELDS:
                setattr(record, key, _REDACTED)
            elif isinstance(value, str):
                setattr(record, key, redact(value))
        return True


class _JsonFormatter(logging.Formatter):
    """Emit each log record as a single JSON line.

    Fields passed through ``extra=`` are merged into the top-level object,
    so ``logger.info("moved", extra={"file_id": f.id})`` yields a
    ``file_id`` key next to the standard ones.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = getattr(record, "request_id", "") or request_id_var.get("")
        if rid and rid != _NO_REQUEST:
            payload["request_id"] = rid

        for key, value in _record_extras(record).items():
            payload.setdefault(key, value)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


_TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s"

# Library loggers that are noisy at INFO. passlib warns on every start
# about the bcrypt version probe.
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "urllib3": logging.WARNING,
    "multipart": logging.WARNING,
    "passlib": logging.ERROR,
}


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure application-wide logging.

    Args:
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Defaults to INFO.
        log_format: ``"json"`` for structured output, ``"text"`` for human-readable.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_RequestIdFilter())
    handler.addFilter(_SecretFilter())
    if fmt == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    logging.getLogger(__name__).info("Logging configured", extra={"level": level, "format": fmt})
