import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from pythonjsonlogger import jsonlogger

from sms_gateway.metrics import record_http_request


REQUEST_ID_HEADER = "X-Request-ID"

# Set by the middleware for the lifetime of one request
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Routes whose own traffic is not counted in http_requests_total
UNMETERED_PATHS = frozenset({"/metrics"})


class GatewayJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines with a UTC millisecond `ts`, `level`, and the current request id."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        # Named format fields arrive pre-populated with None
        if not log_record.get("ts"):
            log_record["ts"] = (
                datetime.fromtimestamp(record.created, tz=timezone.utc)
                .isoformat(timespec="milliseconds")
                .replace("+00:00", "Z")
            )
        log_record["level"] = record.levelname
        request_id = request_id_ctx.get()
        if request_id and "request_id" not in log_record:
            log_record["request_id"] = request_id


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Send every gateway and uvicorn log line to stdout as JSON.

    uvicorn's access log is switched off; RequestLoggingMiddleware writes one
    line per request instead, carrying the channel method and outcome.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(GatewayJsonFormatter("%(ts)s %(level)s %(name)s %(message)s"))

    root = logging.getLogger()
    root.setLevel(log_level.upper())
    root.handlers = [handler]

    for name in ("uvicorn", "uvicorn.error"):
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.propagate = False
    logging.getLogger("uvicorn.access").disabled = True

    return root


def _level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One structured log line and one metrics sample per HTTP request.

    Fields: request_id, method, path, status, latency_ms. Channel calls add
    channel_method, outcome and, on failure, the error code (see
    log_channel_call). A request id sent by the caller is reused so host
    and gateway logs can be joined.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            elapsed = time.perf_counter() - started
            response.headers[REQUEST_ID_HEADER] = request_id

            path = request.url.path
            if path not in UNMETERED_PATHS:
                record_http_request(
                    method=request.method,
                    path=path,
                    status=response.status_code,
                    latency_seconds=elapsed,
                )

            fields = {
                "request_id": request_id,
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "latency_ms": round(elapsed * 1000, 2),
            }
            fields.update(getattr(request.state, "channel_log_data", {}))

            logging.getLogger("sms_gateway.requests").log(
                _level_for_status(response.status_code), "Request completed", extra=fields
            )
            return response
        finally:
            request_id_ctx.reset(token)


def log_channel_call(request: Request, method: str, outcome: str, code: Optional[str] = None):
    """
    Record the channel method and its outcome for the request log line.

    outcome is one of success, not_implemented or error; code is the
    SmsGatewayError code when outcome is error.
    """
    channel_data = {"channel_method": method, "outcome": outcome}
    if code is not None:
        channel_data["code"] = code
    request.state.channel_log_data = channel_data
