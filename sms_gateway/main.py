import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any, Optional

from fastapi import FastAPI, Response, Request, Depends, Body, HTTPException, status
from fastapi.responses import JSONResponse

from sms_gateway import __version__
from sms_gateway.channel import CHANNEL_NAME, SmsChannelHandler
from sms_gateway.config import settings
from sms_gateway.errors import MethodNotImplemented, SmsGatewayError
from sms_gateway.gateway import MessageStoreGateway
from sms_gateway.logging_utils import setup_logging, RequestLoggingMiddleware, log_channel_call
from sms_gateway.metrics import record_channel_call, get_metrics, get_metrics_content_type
from sms_gateway.permissions import (
    HostPermissionProvider,
    InteractiveContext,
    PermissionGate,
)
from sms_gateway.schemas import (
    ActivityRequest,
    ChannelResponse,
    ErrorResponse,
    HealthResponse,
    NotImplementedResponse,
    PermissionResultRequest,
    StatusResponse,
)
from sms_gateway.storage import SessionLocal, check_db_health, init_db


setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: optionally create the store schema (development only).
    """
    if settings.INIT_SCHEMA:
        init_db()
    logger.info(f"SMS gateway started on channel {CHANNEL_NAME}, methods: {app.state.channel_handler.methods}")
    yield


app = FastAPI(
    title="SMS Gateway",
    description="Read-only access to the device SMS store over a named-operation channel",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

# Host permission state, the gate in front of the store, and the channel
permission_provider = HostPermissionProvider(granted=settings.granted_permissions)
permission_gate = PermissionGate(provider=permission_provider)
if settings.INTERACTIVE_CONTEXT:
    permission_gate.attach_context(InteractiveContext(name="main"))

app.state.permissions = permission_provider
app.state.permission_gate = permission_gate
app.state.channel_handler = SmsChannelHandler(
    MessageStoreGateway(SessionLocal, permission_gate),
    permission_gate,
)


def get_channel_handler(request: Request) -> SmsChannelHandler:
    return request.app.state.channel_handler


def get_permission_gate(request: Request) -> PermissionGate:
    return request.app.state.permission_gate


def get_permission_provider(request: Request) -> HostPermissionProvider:
    return request.app.state.permissions


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """
    Liveness probe - always returns 200 once the app is running.
    """
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if the message store is reachable
    and exposes the sms and conversations tables. Otherwise 503.
    """
    reason = check_db_health()
    if reason is not None:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", reason=reason)

    return HealthResponse(status="ready")


# =============================================================================
# Channel Route
# =============================================================================

@app.post(
    "/channel/{method}",
    response_model=ChannelResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid argument"},
        403: {"model": ErrorResponse, "description": "Permission denied"},
        409: {"model": ErrorResponse, "description": "No interactive context"},
        500: {"model": ErrorResponse, "description": "Store read error"},
        501: {"model": NotImplementedResponse, "description": "Unknown method"},
    }
)
def channel_call(
    method: str,
    request: Request,
    arguments: Annotated[Any, Body()] = None,
    handler: SmsChannelHandler = Depends(get_channel_handler),
):
    """
    Invoke one named channel method.

    Body: JSON object of method arguments (may be omitted). Any other JSON
    value is answered with INVALID_ARGUMENT for known methods and with the
    not-implemented signal for unknown ones.

    Methods:
        - getAllSms
        - getSmsByAddress {address}
        - getMessagesByAddress {address}
        - getConversations {limit, offset}
        - getConversationMessages {threadId}
        - checkPermission
        - requestPermission

    Runs in the threadpool: store queries block for their duration.
    """
    logger.info(f"Channel call received: {method}")

    try:
        payload = handler.on_method_call(method, arguments)
    except MethodNotImplemented:
        record_channel_call(method, "not_implemented")
        log_channel_call(request, method, "not_implemented")
        return JSONResponse(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            content=NotImplementedResponse(method=method).model_dump(),
        )
    except SmsGatewayError as e:
        logger.warning(f"Channel call {method} failed: {e.code}: {e.message}")
        record_channel_call(method, e.code)
        log_channel_call(request, method, "error", code=e.code)
        return JSONResponse(status_code=e.status_code, content=e.to_dict())

    record_channel_call(method, "success")
    log_channel_call(request, method, "success")
    return ChannelResponse(result=payload)


# =============================================================================
# Host Routes
# =============================================================================

@app.post("/host/activity", response_model=StatusResponse)
async def attach_activity(
    body: Optional[ActivityRequest] = None,
    gate: PermissionGate = Depends(get_permission_gate),
) -> StatusResponse:
    """
    Attach (or reattach) the foreground context used for consent prompts.
    """
    name = body.name if body is not None else "main"
    gate.attach_context(InteractiveContext(name=name))
    logger.info(f"Interactive context attached: {name}")
    return StatusResponse(status="ok")


@app.delete("/host/activity", response_model=StatusResponse)
async def detach_activity(
    gate: PermissionGate = Depends(get_permission_gate),
) -> StatusResponse:
    """
    Detach the foreground context; permission requests fail with NO_ACTIVITY
    until one is attached again.
    """
    gate.detach_context()
    logger.info("Interactive context detached")
    return StatusResponse(status="ok")


@app.post(
    "/host/permissions/result",
    response_model=StatusResponse,
    responses={404: {"description": "No pending prompt with this request code"}},
)
async def permission_result(
    body: PermissionResultRequest,
    provider: HostPermissionProvider = Depends(get_permission_provider),
) -> StatusResponse:
    """
    Deliver the host's asynchronous answer to a consent prompt.

    Callers observe the new state through checkPermission.
    """
    if not provider.deliver_result(body.request_code, body.granted):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"no pending permission request with code {body.request_code}"
        )
    return StatusResponse(status="ok")


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.

    - http_requests_total: Total HTTP requests by method, path, status
    - channel_calls_total: Channel calls by method and outcome
    - store_queries_total: Queries issued against the message store
    - request_latency_seconds: Request latency histogram
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
