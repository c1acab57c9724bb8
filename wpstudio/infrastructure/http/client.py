# File: wpstudio/infrastructure/http/client.py
# Purpose: Base external-service client with auth, timeout, retry, TLS toggle and error classification
import inspect
import json
import time
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from wpstudio.core.exceptions import (
    ExternalServiceError,
    InvalidJSONError,
    ServiceConnectionError,
    ServiceTimeoutError,
    ServiceUnavailableError,
)
from wpstudio.infrastructure.http.retry_policy import RetryPolicy
from wpstudio.infrastructure.logging.external import ExternalRequestLogger


TokenResolver = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


class ExternalServiceClient:
    """
    Base class for external REST API clients.

    Owns one httpx.AsyncClient configured with base URL, request and connect
    timeouts and TLS verification. Every call goes through ``_request`` which
    adds the bearer header, applies the retry policy, logs dispatch/outcome
    with redaction and turns httpx failures into ExternalServiceError.
    """

    service_name = "external"

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        token_resolver: Optional[TokenResolver] = None,
        timeout: float = 30.0,
        connect_timeout: float = 10.0,
        retry_policy: Optional[RetryPolicy] = None,
        verify_tls: bool = True,
        headers: Optional[dict[str, str]] = None,
        log_channel: str = "external",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize client.

        Args:
            base_url: Base URL all endpoints are resolved against
            api_key: Static bearer token
            token_resolver: Callable (sync or async) returning a bearer token per call
            timeout: Request timeout in seconds
            connect_timeout: Connection timeout in seconds
            retry_policy: Retry policy, defaults to no retries
            verify_tls: Whether to verify TLS certificates
            headers: Extra default headers
            log_channel: Log channel for request/response records
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.token_resolver = token_resolver
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.retry_policy = retry_policy or RetryPolicy(max_retries=0)
        self.verify_tls = verify_tls
        self.request_logger = ExternalRequestLogger(self.service_name, channel=log_channel)

        self.client = httpx.AsyncClient(
            base_url=self.base_url + "/",
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            limits=httpx.Limits(
                max_keepalive_connections=20,
                max_connections=100,
            ),
            headers=self._get_headers(headers),
            verify=verify_tls,
            transport=transport,
        )

    def _get_headers(self, extra: Optional[dict[str, str]] = None) -> dict:
        """Get default headers for requests"""
        return {
            "Accept": "application/json",
            **(extra or {}),
        }

    async def _authorization_headers(self) -> dict[str, str]:
        token = self.api_key
        if self.token_resolver is not None:
            resolved = self.token_resolver()
            if inspect.isawaitable(resolved):
                resolved = await resolved
            token = resolved or token

        if not isinstance(token, str) or token == "":
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json_body: Any = None,
        data: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        context: Optional[dict[str, Any]] = None,
        raw: bool = False,
    ) -> Any:
        """
        Perform one logical call, retrying transient failures.

        Args:
            method: HTTP method
            endpoint: Path relative to the base URL
            params: Query parameters; empty maps send no query string
            json_body: JSON request body
            data: Form fields
            files: Multipart files
            context: Extra error context (filter, payload, ...)
            raw: Return the httpx.Response instead of the decoded JSON body

        Returns:
            Decoded JSON body (an empty body decodes to {}), or the response when raw

        Raises:
            ServiceTimeoutError: Connect or read timeout
            ServiceUnavailableError: Upstream answered 503
            ServiceConnectionError: Any other transport failure or error status
            InvalidJSONError: The body is not valid JSON
        """
        method = method.upper()
        headers = await self._authorization_headers()
        params = params or None

        options: dict[str, Any] = {}
        if params:
            options["query"] = params
        if json_body is not None:
            options["json"] = json_body
        if data:
            options["form_params"] = data
        if files:
            options["files"] = sorted(files)
        if headers:
            options["headers"] = headers

        self.request_logger.dispatching(method, endpoint, options)
        started_at = time.perf_counter()
        telemetry_payload = self._payload_for_telemetry(params, json_body, data)

        async def attempt() -> httpx.Response:
            response = await self.client.request(
                method,
                endpoint,
                params=params,
                json=json_body,
                data=data,
                files=files,
                headers=headers,
            )
            response.raise_for_status()
            return response

        try:
            response = await self.retry_policy.run(attempt, description=f"{method} {endpoint}")
        except httpx.HTTPError as e:
            error = self._classify(method, endpoint, e, context)
            self.request_logger.failed(method, endpoint, error, options, status=error.source_status())
            self._record_telemetry(
                method, endpoint, started_at, success=False,
                status=error.source_status(), payload=telemetry_payload,
            )
            raise error from e

        self._record_telemetry(
            method, endpoint, started_at, success=True,
            status=response.status_code, payload=telemetry_payload,
        )

        if raw:
            self.request_logger.received(
                method, endpoint, response.status_code, options,
                {"content_type": response.headers.get("content-type"), "bytes": len(response.content)},
            )
            return response

        decoded = self._decode(method, endpoint, response, context)
        self.request_logger.received(method, endpoint, response.status_code, options, decoded)
        return decoded

    def _decode(
        self,
        method: str,
        endpoint: str,
        response: httpx.Response,
        context: Optional[dict[str, Any]] = None,
    ) -> Any:
        if not response.content.strip():
            return {}
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            error = InvalidJSONError(
                f"{self.service_name} returned invalid JSON for [{method.upper()} {endpoint}]: {e}",
                context={**(context or {}), "endpoint": endpoint, "method": method.upper(),
                         "status": response.status_code},
                service=self.service_name,
                cause=e,
            )
            self.request_logger.failed(method, endpoint, error, status=response.status_code)
            raise error from e

    def _classify(
        self,
        method: str,
        endpoint: str,
        exc: httpx.HTTPError,
        context: Optional[dict[str, Any]] = None,
    ) -> ExternalServiceError:
        """Map an httpx failure onto the error taxonomy."""
        base_context = {**(context or {}), "endpoint": endpoint, "method": method}
        label = f"{self.service_name} request [{method} {endpoint}] failed"

        if isinstance(exc, httpx.TimeoutException):
            timeout_type = "connection" if isinstance(exc, httpx.ConnectTimeout) else "request"
            limit = self.connect_timeout if timeout_type == "connection" else self.timeout
            return ServiceTimeoutError(
                f"{label}: timed out after {limit}s",
                timeout_type=timeout_type,
                context={**base_context, "timeout": limit},
                service=self.service_name,
                cause=exc,
            )

        if isinstance(exc, httpx.HTTPStatusError):
            status = exc.response.status_code
            body = exc.response.text[:500]
            status_context = {**base_context, "status": status, "body": body}
            if status == 503:
                return ServiceUnavailableError(
                    f"{label}: HTTP {status}: {body}",
                    context=status_context,
                    service=self.service_name,
                    cause=exc,
                )
            return ServiceConnectionError(
                f"{label}: HTTP {status}: {body}",
                code=status,
                context=status_context,
                service=self.service_name,
                cause=exc,
            )

        return ServiceConnectionError(
            f"{label}: {exc}",
            context=base_context,
            service=self.service_name,
            cause=exc,
        )

    def _record_telemetry(
        self,
        method: str,
        endpoint: str,
        started_at: float,
        success: bool,
        status: Optional[int] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> float:
        """Hook run once per logical call; subclasses may add their own sinks."""
        return self.request_logger.telemetry(
            method, endpoint, started_at, success=success, status=status, payload=payload
        )

    @staticmethod
    def _payload_for_telemetry(*parts: Optional[Any]) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for part in parts:
            if isinstance(part, dict):
                payload.update(part)
        return payload

    async def close(self):
        """Close HTTP client and cleanup resources"""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
