"""Root logger setup for the service.

Log lines are single JSON objects (or plain text) carrying the request id
from a context variable. Paste text, images and client identifiers are
redacted from structured extras, and paste codes are cut to a short
prefix since a full code is enough to read a paste.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from quickpaste.core.config import LogSettings, settings

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Structured fields whose values are replaced entirely
SENSITIVE_KEYS_DEFAULT: set[str] = {
    "authorization",
    "cookie",
    "set-cookie",
    "password",
    "secret",
    "token",
    "text",
    "image",
    "content",
    "client_id",
    "x-client-id",
    "redis_url",
}

# Structured fields holding paste codes; only a prefix is kept
CODE_KEYS_DEFAULT: set[str] = {"paste_code"}

REDACTED = "[REDACTED]"

# Logging fields we intentionally exclude from extra payload capture
_EXCLUDED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "stack",
}


def set_request_id(request_id: str | None) -> None:
    """Store the current request id in a context variable."""

    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    """Fetch the current request id from context."""

    return _request_id_var.get()


def clear_request_id() -> None:
    """Clear any stored request id from context."""

    _request_id_var.set(None)


def mask_code(code: Any, visible: int = 2) -> Any:
    """Keep the first ``visible`` characters of a paste code.

    Examples:
        >>> mask_code("ABCDE")
        'AB***'
        >>> mask_code(None) is None
        True
    """
    if not isinstance(code, str):
        return code
    return code[:visible] + "*" * max(0, len(code) - visible)


def _redact_value(value: Any, sensitive_keys: set[str], code_keys: set[str]) -> Any:
    """Recursively redact sensitive values within mappings and sequences."""

    if isinstance(value, Mapping):
        return {k: _redact_field(k, v, sensitive_keys, code_keys) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_value(v, sensitive_keys, code_keys) for v in value)
    return value


def _redact_field(key: str, value: Any, sensitive_keys: set[str], code_keys: set[str]) -> Any:
    lowered = key.lower()
    if lowered in sensitive_keys:
        return REDACTED
    if lowered in code_keys:
        return mask_code(value)
    return _redact_value(value, sensitive_keys, code_keys)


def _sanitize_record(
    record: LogRecord,
    sensitive_keys: set[str],
    code_keys: set[str],
) -> dict[str, Any]:
    """Convert a LogRecord's extras to a dict while redacting sensitive fields."""

    data: dict[str, Any] = {}

    for key, value in record.__dict__.items():
        if key in _EXCLUDED_ATTRS or key.startswith("_"):
            continue
        data[key] = _redact_field(key, value, sensitive_keys, code_keys)

    return data


def _default_timestamp() -> str:
    """Generate an ISO-8601 UTC timestamp string."""

    return datetime.now(timezone.utc).isoformat()


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact content fields and mask paste codes before formatting."""

    def __init__(
        self,
        sensitive_keys: Iterable[str] | None = None,
        *,
        mask_codes: bool = True,
    ) -> None:
        super().__init__()
        self.sensitive_keys = set(sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        self.code_keys = set(CODE_KEYS_DEFAULT) if mask_codes else set()

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        sanitized = _sanitize_record(record, self.sensitive_keys, self.code_keys)
        for key, value in sanitized.items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """Format LogRecord as a single JSON line."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self.sensitive_keys = set(sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        record_data = {
            "timestamp": _default_timestamp(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            record_data["request_id"] = request_id

        # Codes were already masked by SensitiveDataFilter when attached
        record_data.update(_sanitize_record(record, self.sensitive_keys, set()))

        if record.exc_info:
            record_data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(record_data, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """Construct the logging handler based on configuration."""

    if log_settings.output == "file":
        file_path = Path(log_settings.file_path or "logs/quickpaste.log")
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if log_settings.max_bytes:
            return RotatingFileHandler(
                file_path,
                maxBytes=log_settings.max_bytes,
                backupCount=log_settings.backup_count,
                encoding="utf-8",
            )
        return logging.FileHandler(file_path, encoding="utf-8")

    return logging.StreamHandler(sys.stdout)


def configure_logging(log_settings: LogSettings | None = None, *, debug: bool | None = None) -> None:
    """Configure root logger with formatter, redaction and request ids.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
        debug: Force DEBUG level; defaults to ``APP_DEBUG``.
    """

    cfg = log_settings or settings.log
    debug = settings.app.debug if debug is None else debug

    level = logging.DEBUG if debug else getattr(logging, cfg.level.upper(), logging.INFO)
    handler = _build_handler(cfg)

    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter(SENSITIVE_KEYS_DEFAULT, mask_codes=cfg.mask_codes))

    if cfg.format == "plain":
        formatter: logging.Formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
    else:
        formatter = JsonFormatter(sensitive_keys=SENSITIVE_KEYS_DEFAULT)

    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Avoid double logging from uvicorn if it gets re-configured
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
