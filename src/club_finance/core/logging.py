"""
Structured JSON logging.

Every line is one JSON object: ``event`` names what happened in dotted form
("workflow.transition", "ledger.expense.conflict") and the keyword fields of
``log_event`` are merged in next to the request and member context. Money,
enums and ids are rendered as strings so amounts never pass through float.
"""

from __future__ import annotations

import contextvars
import enum
import json
import logging
import time
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from club_finance.core.config import settings

ROOT_LOGGER = "club_finance"


@dataclass(frozen=True)
class LogContext:
    request_id: str | None = None
    member_id: str | None = None


_context: contextvars.ContextVar[LogContext] = contextvars.ContextVar(
    "club_finance_log_context", default=LogContext()
)


def _jsonable(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(_jsonable(v) for v in value)
    return str(value)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "ts": ts.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", None) or record.getMessage(),
        }
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            payload.update(fields)
        if record.exc_info:
            payload["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_jsonable, ensure_ascii=False)


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return
    resolved = logging.getLevelNamesMapping().get(
        (level or settings.log_level).upper(), logging.INFO
    )
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(resolved)
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def set_member_context(member_id: str | None) -> None:
    _context.set(replace(_context.get(), member_id=member_id))


def _merge_fields(fields: dict[str, Any]) -> dict[str, Any]:
    ctx = _context.get()
    merged = {
        "request_id": ctx.request_id,
        "member_id": ctx.member_id,
        **fields,
    }
    return {k: v for k, v in merged.items() if v is not None}


def log_event(
    logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any
) -> None:
    logger.log(level, event, extra={"event": event, "fields": _merge_fields(fields)})


def log_exception(logger: logging.Logger, event: str, **fields: Any) -> None:
    logger.exception(event, extra={"event": event, "fields": _merge_fields(fields)})


def monotonic_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every log line of a request with its id and echoes it as ``x-request-id``."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        token = _context.set(LogContext(request_id=request_id))
        logger = get_logger(__name__)
        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            log_exception(logger, "http.request.error", method=request.method, path=request.url.path)
            raise
        finally:
            _context.reset(token)

        response.headers["x-request-id"] = request_id
        log_event(
            logger,
            "http.request.finish",
            level=logging.WARNING if response.status_code >= 500 else logging.DEBUG,
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=monotonic_ms(start),
        )
        return response
