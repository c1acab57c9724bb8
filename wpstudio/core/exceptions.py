# File: wpstudio/core/exceptions.py
# Purpose: Typed error taxonomy raised at the boundary of every external service client
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Failure families the outward error mapper switches on."""
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    SERVICE_UNAVAILABLE = "service_unavailable"
    VALIDATION = "validation"
    STREAMING = "streaming"
    UNSUPPORTED_VERSION = "unsupported_version"
    FEATURE_UNAVAILABLE = "feature_unavailable"


class ExternalServiceError(Exception):
    """
    Base error for every failure talking to an external service.

    Carries a numeric code, a diagnostic context (endpoint, filter, payload,
    upstream status, ...) and the originating exception as ``__cause__``.
    """

    kind: ErrorKind = ErrorKind.CONNECTION
    default_code: int = 0

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[int] = None,
        cause: Optional[BaseException] = None,
        context: Optional[dict[str, Any]] = None,
        service: Optional[str] = None,
    ):
        """
        Args:
            message: Human readable description (never shown to end users)
            code: Numeric error code, defaults to the class default
            cause: Underlying exception, chained as __cause__
            context: Diagnostic key/value pairs
            service: Name of the external service, stored in context
        """
        super().__init__(message)
        self.message = message
        self.code = self.default_code if code is None else code
        self._code_from_upstream = code is not None
        self.context: dict[str, Any] = dict(context or {})
        if service:
            self.context["service"] = service
        self.context.setdefault("service", "external")
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    @property
    def service(self) -> str:
        return str(self.context.get("service", "external"))

    def source_status(self) -> Optional[int]:
        """
        Upstream HTTP status that produced this error, when known.

        Looks at context["status"] / context["source_status"] first and falls
        back to an explicitly passed code when it lies in the 4xx/5xx range.
        Class default codes (504 for timeouts, 503 for unavailability) are
        never reported as an upstream status.
        """
        for key in ("status", "source_status"):
            value = self.context.get(key)
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            if isinstance(value, str) and value.isdigit():
                return int(value)

        if self._code_from_upstream and 400 <= self.code <= 599:
            return self.code

        return None

    def to_log_context(self) -> dict[str, Any]:
        return {
            "error_kind": self.kind.value,
            "error_type": type(self).__name__,
            "error": self.message,
            "error_code": self.code,
            "context": self.context,
        }


class ServiceConnectionError(ExternalServiceError):
    """Transport failure or upstream error status."""
    kind = ErrorKind.CONNECTION


class ServiceTimeoutError(ServiceConnectionError):
    """The upstream did not answer within the configured timeout."""
    kind = ErrorKind.TIMEOUT
    default_code = 504

    def __init__(self, message: str = "", *, timeout_type: str = "request", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.context.setdefault("timeout_type", timeout_type)

    @property
    def timeout_type(self) -> str:
        return str(self.context.get("timeout_type", "request"))


class ServiceUnavailableError(ExternalServiceError):
    """The upstream answered 503 or is otherwise known to be down."""
    kind = ErrorKind.SERVICE_UNAVAILABLE
    default_code = 503


class ValidationError(ExternalServiceError, ValueError):
    """A payload failed construction-time or decode-time validation."""
    kind = ErrorKind.VALIDATION


class InvalidJSONError(ValidationError):
    """The upstream returned a body that is not valid JSON."""


class StreamingError(ExternalServiceError):
    """A streaming response failed after the request was dispatched."""
    kind = ErrorKind.STREAMING


class UnsupportedVersionError(ExternalServiceError):
    """The upstream server is older than the minimum supported release."""
    kind = ErrorKind.UNSUPPORTED_VERSION


class FeatureUnavailableError(ExternalServiceError):
    """The requested capability is disabled by configuration."""
    kind = ErrorKind.FEATURE_UNAVAILABLE
