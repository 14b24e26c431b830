# Structured JSON logging plus a middleware that records one log line per
# request with route, site, status and latency for traceability.

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from time import monotonic
from typing import Any
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


REQUEST_ID_HEADER = "X-Request-ID"

_STANDARD_ATTRS = {
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
}

_ALWAYS_FIELDS = {
    "request_id",
    "site_id",
    "route",
    "method",
    "status_code",
    "duration_ms",
    "error_code",
}


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            if value is None and key not in _ALWAYS_FIELDS:
                continue
            payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=True, default=str)


def get_structured_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    logger.addHandler(handler)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    logger.propagate = False
    return logger


def configure_logging() -> None:
    """Route the orderhub.* loggers through the JSON formatter."""
    get_structured_logger("orderhub")


logger = get_structured_logger("api_logger")


def _resolve_route(request: Request) -> str:
    route = request.scope.get("route")
    route_path = getattr(route, "path", None)
    return route_path or request.url.path


class APILoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = monotonic()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id
        try:
            response = await call_next(request)
        except Exception:
            extra = {
                "request_id": request_id,
                "site_id": getattr(request.state, "site_id", None),
                "route": _resolve_route(request),
                "path": request.url.path,
                "method": request.method,
                "status_code": 500,
                "duration_ms": round((monotonic() - start) * 1000.0, 2),
                "error_code": "unhandled_exception",
            }
            logger.exception("request.failed", extra=extra)
            raise

        extra = {
            "request_id": request_id,
            "site_id": getattr(request.state, "site_id", None),
            "route": _resolve_route(request),
            "path": request.url.path,
            "method": request.method,
            "status_code": response.status_code,
            "duration_ms": round((monotonic() - start) * 1000.0, 2),
            "error_code": response.headers.get("X-Error-Code"),
        }
        logger.info("request.completed", extra=extra)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
