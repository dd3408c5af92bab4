"""Structured JSON logging for the auth API, correlated per request.

Every line carries the ``request_id`` of the request that produced it and,
inside a request, the caller's ``client_ip``. Auth flows add ``flow``,
``account_id`` and ``reason`` through ``extra=``; secrets never go there.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# Inbound ids are echoed into logs and responses; anything else gets a fresh uuid.
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

AUDIT_KEYS = ("flow", "account_id", "reason", "client_ip", "endpoint", "elapsed_ms")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stamped with the record's own creation time."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update({k: getattr(record, k) for k in AUDIT_KEYS if hasattr(record, k)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestContextFilter(logging.Filter):
    """Attach ``request_id`` (always) and ``client_ip`` (inside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            record.request_id = None
            return True
        record.request_id = ensure_request_id()
        if not hasattr(record, "client_ip"):
            record.client_ip = request.remote_addr
        return True


def _inbound_request_id() -> str | None:
    for header in CORRELATION_HEADERS:
        value = request.headers.get(header, "").strip()
        if _REQUEST_ID_RE.match(value):
            return value
    return None


def ensure_request_id() -> str:
    """Return the request's correlation id, adopting a well-formed inbound one.

    Outside a request a fresh id is returned on every call.
    """
    if not has_request_context():
        return str(uuid4())
    if "request_id" not in g:
        g.request_id = _inbound_request_id() or str(uuid4())
    return g.request_id


def mask_email(email: str | None) -> str:
    """Return a log-safe form of ``email`` (``j***@example.com``)."""
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


def configure_logging(level: str | int = "INFO") -> None:
    """Send the root logger to stdout as JSON lines at ``level``."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestContextFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)


def init_app(app: Flask) -> None:
    """Seed the request id before each request and echo it on the response."""

    app.logger.addFilter(RequestContextFilter())

    @app.before_request
    def _seed_request_id() -> None:  # pragma: no cover - integration glue
        ensure_request_id()

    @app.after_request
    def _inject_response_header(response):  # pragma: no cover - integration glue
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["configure_logging", "init_app", "ensure_request_id", "mask_email"]
