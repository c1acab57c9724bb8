# File: wpstudio/middleware/error_handler.py
# Purpose: Map external-service errors to HTTP statuses and register FastAPI exception handlers with SSE support
from fastapi import Request, status
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog
import json
from typing import Any, Optional, Union

from wpstudio.api.responses import ApiResponse
from wpstudio.core.exceptions import ErrorKind, ExternalServiceError
from wpstudio.infrastructure.logging.formatters import SensitiveDataFilter

logger = structlog.get_logger("external")

USER_MESSAGES = {
    502: "Unable to complete operation. The service may be temporarily unavailable.",
    503: "Service is temporarily unavailable. Please try again later.",
    504: "The request took too long to complete. Please try again.",
    401: "Authentication required. Please log in and try again.",
    403: "You do not have permission to perform this action.",
    404: "The requested resource was not found.",
    400: "Invalid request. Please check your input and try again.",
}
DEFAULT_USER_MESSAGE = "An error occurred while processing your request. Please try again."


def map_http_status(error: ExternalServiceError, source_status: Optional[int]) -> int:
    """
    Outward HTTP status for an external-service failure.

    Timeouts map to 504 and unavailability to 503 regardless of upstream
    status. Otherwise a known upstream 503 passes through, other 5xx become
    502, 401/403/404 pass through, other 4xx become 400 and anything else
    (including no status at all) is 502.
    """
    if error.kind is ErrorKind.TIMEOUT:
        return 504
    if error.kind is ErrorKind.SERVICE_UNAVAILABLE:
        return 503

    if source_status is None:
        return 502
    if source_status == 503:
        return 503
    if 500 <= source_status < 600:
        return 502
    if source_status in (401, 403, 404):
        return source_status
    if 400 <= source_status < 500:
        return 400
    return 502


def user_friendly_message(error: ExternalServiceError, status_code: int) -> str:
    if error.kind is ErrorKind.TIMEOUT:
        return USER_MESSAGES[504]
    if error.kind is ErrorKind.SERVICE_UNAVAILABLE:
        return USER_MESSAGES[503]
    return USER_MESSAGES.get(status_code, DEFAULT_USER_MESSAGE)


def log_level_for(error: ExternalServiceError, source_status: Optional[int]) -> str:
    if error.kind in (ErrorKind.TIMEOUT, ErrorKind.SERVICE_UNAVAILABLE):
        return "warning"
    if source_status is not None and source_status >= 500:
        return "error"
    if source_status is not None and source_status >= 400:
        return "warning"
    return "error"


def handle_external_service_error(
    error: ExternalServiceError,
    error_code: str,
    additional_meta: Optional[dict[str, Any]] = None,
    include_error_message: bool = False,
) -> JSONResponse:
    """
    Build the error envelope for an external-service failure and log it.

    Args:
        error: The failure raised by an SDK
        error_code: Stable machine-readable code, e.g. "wordpress.categories.index_failed"
        additional_meta: Extra meta merged last
        include_error_message: Expose the internal error message in meta (debug only)

    Returns:
        JSONResponse carrying the mapped status
    """
    source_status = error.source_status()
    mapped_status = map_http_status(error, source_status)

    meta: dict[str, Any] = {
        "source_status": source_status,
        "service": error.service,
        "error_kind": error.kind.value,
    }
    if include_error_message:
        meta["error_message"] = error.message
        meta.update(SensitiveDataFilter.redact(error.context))
    meta.update(additional_meta or {})

    getattr(logger, log_level_for(error, source_status))(
        "external_service_error",
        error_code=error_code,
        exception_type=type(error).__name__,
        mapped_status=mapped_status,
        **{**meta, "error_message": error.message, "context": error.context},
    )

    return ApiResponse.error(
        code=error_code,
        message=user_friendly_message(error, mapped_status),
        meta=meta,
        status=mapped_status,
    )


def handle_circuit_breaker_open(service: str, retry_after: int = 60) -> JSONResponse:
    """
    Envelope for calls refused while a service's circuit breaker is open.

    Args:
        service: Service name, e.g. "lmstudio"
        retry_after: Seconds until the breaker half-opens

    Returns:
        503 JSONResponse with a Retry-After header
    """
    logger.warning("circuit_breaker_open", service=service, retry_after=retry_after)

    return ApiResponse.error(
        code=f"{service}.circuit_breaker_open",
        message=USER_MESSAGES[503],
        meta={
            "service": service,
            "circuit_state": "open",
            "retry_after": retry_after,
        },
        status=503,
        headers={"Retry-After": str(retry_after)},
    )


async def external_service_exception_handler(
    request: Request, exc: ExternalServiceError
) -> Union[StreamingResponse, JSONResponse]:
    """
    Handler for every ExternalServiceError escaping a route.

    The error code is "{service}.{kind}", e.g. "wordpress.connection".
    """
    request_id = getattr(request.state, "request_id", None)
    debug = bool(getattr(request.app, "debug", False))

    if _is_sse_endpoint(request.url.path):
        mapped_status = map_http_status(exc, exc.source_status())
        logger.warning("external_service_stream_error", path=request.url.path, request_id=request_id,
                       **exc.to_log_context())
        return _create_sse_error_response(user_friendly_message(exc, mapped_status), request_id)

    return handle_external_service_error(
        exc,
        f"{exc.service}.{exc.kind.value}",
        additional_meta={"request_id": request_id} if request_id else None,
        include_error_message=debug,
    )


async def global_exception_handler(request: Request, exc: Exception) -> Union[StreamingResponse, JSONResponse]:
    """
    Global exception handler for all unhandled exceptions.

    Args:
        request: FastAPI request object
        exc: Exception that was raised

    Returns:
        SSE error frame for streaming endpoints, JSON envelope otherwise
    """
    request_id = getattr(request.state, "request_id", None)

    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        request_id=request_id,
        exc_info=True
    )

    if _is_sse_endpoint(request.url.path):
        return _create_sse_error_response(DEFAULT_USER_MESSAGE, request_id)

    return ApiResponse.error(
        code="internal_server_error",
        message=DEFAULT_USER_MESSAGE,
        meta={"request_id": request_id},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> Union[StreamingResponse, JSONResponse]:
    request_id = getattr(request.state, "request_id", None)

    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=exc.errors(),
        request_id=request_id
    )

    if _is_sse_endpoint(request.url.path):
        error_message = f"Invalid request: {_format_validation_errors(exc.errors())}"
        return _create_sse_error_response(error_message, request_id)

    return ApiResponse.error(
        code="validation_error",
        message="Request validation failed",
        meta={"errors": exc.errors(), "request_id": request_id},
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> Union[StreamingResponse, JSONResponse]:
    request_id = getattr(request.state, "request_id", None)

    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=request_id
    )

    if _is_sse_endpoint(request.url.path):
        return _create_sse_error_response(f"HTTP {exc.status_code}: {exc.detail}", request_id)

    return ApiResponse.error(
        code=_get_error_code(exc.status_code),
        message=str(exc.detail),
        meta={"request_id": request_id},
        status=exc.status_code,
    )


def _is_sse_endpoint(path: str) -> bool:
    return path.endswith("/stream")


def _create_sse_error_response(error_message: str, request_id: Optional[str] = None) -> StreamingResponse:
    """Create an SSE-formatted error response"""
    error_data = {
        "message": error_message,
        "request_id": request_id
    }

    def error_generator():
        yield f"event: error\ndata: {json.dumps(error_data)}\n\n"

    return StreamingResponse(
        error_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
            "X-Request-ID": request_id or "unknown"
        }
    )


def _format_validation_errors(errors: list) -> str:
    """Format Pydantic validation errors into a readable string"""
    return "; ".join(
        f"{' -> '.join(str(x) for x in error['loc'])}: {error['msg']}" for error in errors
    )


def _get_error_code(status_code: int) -> str:
    """Map HTTP status code to error code string"""
    error_codes = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        422: "validation_error",
        429: "too_many_requests",
        500: "internal_server_error",
        502: "bad_gateway",
        503: "service_unavailable",
        504: "gateway_timeout",
    }
    return error_codes.get(status_code, "unknown_error")
