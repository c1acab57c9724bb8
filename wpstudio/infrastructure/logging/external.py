# File: wpstudio/infrastructure/logging/external.py
# Purpose: Redaction-aware request/response logging and telemetry for outbound API calls
import time
from typing import Any, Mapping, Optional

import structlog

from wpstudio.infrastructure.logging.formatters import SensitiveDataFilter


class ExternalRequestLogger:
    """
    Logs every outbound call made by an SDK on its channel (``external`` by
    default). The channel is the stdlib logger name, so records land in that
    channel's handlers.

    Options and bodies are passed through SensitiveDataFilter before they are
    handed to structlog, so passwords and tokens never reach a handler in
    clear text even when the global redaction processor is not configured.
    """

    def __init__(self, service: str, channel: str = "external"):
        self.service = service
        self.channel = channel
        self.logger = structlog.get_logger(channel)

    def _emit(self, level: str, event: str, **fields: Any) -> None:
        getattr(self.logger, level)(event, channel=self.channel, service=self.service, **fields)

    def dispatching(self, method: str, uri: str, options: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(
            "info",
            "external_request_dispatching",
            method=method.upper(),
            uri=uri,
            options=SensitiveDataFilter.redact(dict(options or {})),
        )

    def received(
        self,
        method: str,
        uri: str,
        status: int,
        options: Optional[Mapping[str, Any]] = None,
        response: Any = None,
    ) -> None:
        self._emit(
            "info",
            "external_response_received",
            method=method.upper(),
            uri=uri,
            status=status,
            options=SensitiveDataFilter.redact(dict(options or {})),
            response=SensitiveDataFilter.redact(response),
        )

    def failed(
        self,
        method: str,
        uri: str,
        error: BaseException,
        options: Optional[Mapping[str, Any]] = None,
        status: Optional[int] = None,
    ) -> None:
        self._emit(
            "error",
            "external_request_failed",
            method=method.upper(),
            uri=uri,
            status=status,
            error=str(error),
            error_type=type(error).__name__,
            options=SensitiveDataFilter.redact(dict(options or {})),
        )

    def telemetry(
        self,
        method: str,
        endpoint: str,
        started_at: float,
        success: bool,
        status: Optional[int] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> float:
        """
        Record duration and outcome of one SDK call.

        Args:
            started_at: time.perf_counter() value taken before dispatch

        Returns:
            Duration in milliseconds
        """
        duration_ms = round((time.perf_counter() - started_at) * 1000, 2)
        self._emit(
            "info" if success else "warning",
            "external_request_completed",
            method=method.upper(),
            endpoint=endpoint,
            status=status,
            duration_ms=duration_ms,
            success=success,
            payload_keys=sorted(str(key) for key in (payload or {})),
        )
        return duration_ms
