"""
Logging setup and request logging middleware.
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Request, Response
from pythonjsonlogger.json import JsonFormatter
from starlette.middleware.base import BaseHTTPMiddleware


# Request id for the request currently being handled
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

TEXT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """Attach the current request id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_ctx.get()
        return True


class InboxJsonFormatter(JsonFormatter):
    """JSON formatter with ISO-8601 UTC timestamps and the level name."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("ts"):
            log_record["ts"] = (
                datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
            )
        log_record["level"] = record.levelname
        if log_record.get("request_id") is None:
            log_record.pop("request_id", None)


def setup_logging(log_level: str = "INFO", json_output: bool = True) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit JSON lines instead of plain text

    Returns:
        The configured root logger
    """
    logger = logging.getLogger()
    logger.setLevel(log_level.upper())
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(InboxJsonFormatter("%(ts)s %(level)s %(name)s %(message)s"))
    else:
        handler.setFormatter(logging.Formatter(TEXT_LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    logger.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False

    # Request lines come from RequestLoggingMiddleware; the access log would
    # also record client addresses.
    logging.getLogger("uvicorn.access").disabled = True

    return logger


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every HTTP request as one structured record.

    Logged keys: request_id, method, path, status, latency_ms. The client
    address is never logged, so anonymous senders stay untraceable.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id

            log_data = {
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": round((time.perf_counter() - start_time) * 1000, 2),
            }
            error_kind = response.headers.get("X-Error-Kind")
            if error_kind:
                log_data["error_kind"] = error_kind

            logger = logging.getLogger("app.requests")
            if response.status_code >= 500:
                logger.error("Request completed", extra=log_data)
            elif response.status_code >= 400:
                logger.warning("Request completed", extra=log_data)
            else:
                logger.info("Request completed", extra=log_data)

            return response
        finally:
            request_id_ctx.reset(token)
