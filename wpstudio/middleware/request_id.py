# File: wpstudio/middleware/request_id.py
# Purpose: Request ID middleware correlating inbound requests with the outbound API calls they trigger
import uuid
import time
import structlog

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = b"x-request-id"


class RequestIDMiddleware:
    """
    Pure ASGI middleware (keeps SSE responses unbuffered) that:
    - reuses the caller's X-Request-ID or generates one
    - exposes it as request.state.request_id
    - binds it into structlog contextvars so SDK logs carry it
    - echoes it in the response headers
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        incoming = headers.get(REQUEST_ID_HEADER, b"").decode("latin1").strip()
        request_id = incoming or str(uuid.uuid4())

        scope.setdefault("state", {})
        scope["state"]["request_id"] = request_id

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=scope.get("method"),
            path=scope.get("path"),
        )

        started_at = time.perf_counter()
        status_code = None

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status")
                response_headers = [
                    (key, value) for key, value in (message.get("headers") or [])
                    if key.lower() != REQUEST_ID_HEADER
                ]
                response_headers.append((REQUEST_ID_HEADER, request_id.encode("latin1")))
                message["headers"] = response_headers
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            logger.info(
                "http_request_completed",
                status_code=status_code,
                duration_ms=round((time.perf_counter() - started_at) * 1000, 2),
            )
            structlog.contextvars.clear_contextvars()
