# File: tests/test_error_mapping.py
# Purpose: Outward HTTP status mapping and error envelopes for external-service failures
import json

import pytest
from structlog.testing import capture_logs

from wpstudio.core.exceptions import (
    ServiceConnectionError,
    ServiceTimeoutError,
    ServiceUnavailableError,
    StreamingError,
)
from wpstudio.middleware.error_handler import (
    USER_MESSAGES,
    handle_circuit_breaker_open,
    handle_external_service_error,
    map_http_status,
)


def body_of(response):
    return json.loads(response.body)


class TestMapHttpStatus:
    """Status table for connection errors"""

    @pytest.mark.parametrize("source_status, expected", [
        (None, 502),
        (200, 502),
        (401, 401),
        (403, 403),
        (404, 404),
        (440, 400),
        (422, 400),
        (500, 502),
        (503, 503),
        (599, 502),
    ])
    def test_connection_error_table(self, source_status, expected):
        assert map_http_status(ServiceConnectionError("failed"), source_status) == expected

    @pytest.mark.parametrize("source_status", [None, 200, 404, 500, 503])
    def test_timeout_always_504(self, source_status):
        assert map_http_status(ServiceTimeoutError("slow"), source_status) == 504

    @pytest.mark.parametrize("source_status", [None, 404, 500])
    def test_unavailable_always_503(self, source_status):
        assert map_http_status(ServiceUnavailableError("down"), source_status) == 503

    def test_streaming_error_uses_status_table(self):
        assert map_http_status(StreamingError("cut"), 500) == 502


class TestHandleExternalServiceError:
    """Envelope built for a failed upstream call"""

    def test_envelope_for_not_found(self):
        error = ServiceConnectionError(
            "wordpress request [GET wp/v2/categories/9] failed: HTTP 404",
            code=404,
            context={"status": 404, "endpoint": "wp/v2/categories/9"},
            service="wordpress",
        )

        response = handle_external_service_error(error, "wordpress.categories.update_failed", {"category_id": 9})

        assert response.status_code == 404
        body = body_of(response)
        assert body["ok"] is False
        assert body["code"] == "wordpress.categories.update_failed"
        assert body["status"] == 404
        assert body["message"] == USER_MESSAGES[404]
        assert body["data"] is None
        assert body["meta"] == {
            "source_status": 404,
            "service": "wordpress",
            "error_kind": "connection",
            "category_id": 9,
        }

    def test_internal_message_hidden_by_default(self):
        error = ServiceConnectionError("secret internals", context={"status": 500})
        body = body_of(handle_external_service_error(error, "x.failed"))
        assert "error_message" not in body["meta"]
        assert "secret internals" not in json.dumps(body)

    def test_debug_meta_is_redacted(self):
        error = ServiceConnectionError(
            "token exchange failed",
            context={"status": 403, "payload": {"username": "admin", "password": "secret123"}},
            service="wordpress",
        )
        body = body_of(handle_external_service_error(error, "wordpress.token_failed", include_error_message=True))

        assert body["meta"]["error_message"] == "token exchange failed"
        assert body["meta"]["payload"] == {"username": "admin", "password": "se****"}

    def test_timeout_message_and_status(self):
        response = handle_external_service_error(ServiceTimeoutError("slow", service="lmstudio"), "lmstudio.chat_failed")
        assert response.status_code == 504
        assert body_of(response)["message"] == USER_MESSAGES[504]

    def test_conflict_maps_to_bad_request(self):
        response = handle_external_service_error(ServiceConnectionError("x", context={"status": 409}), "x.failed")
        assert response.status_code == 400
        assert body_of(response)["message"] == USER_MESSAGES[400]

    def test_logs_server_errors_at_error_level(self):
        error = ServiceConnectionError("boom", context={"status": 500}, service="wordpress")
        with capture_logs() as logs:
            handle_external_service_error(error, "wordpress.posts.failed")

        record = next(log for log in logs if log["event"] == "external_service_error")
        assert record["log_level"] == "error"
        assert record["mapped_status"] == 502
        assert record["error_code"] == "wordpress.posts.failed"

    def test_logs_client_errors_at_warning_level(self):
        error = ServiceConnectionError("nope", context={"status": 404})
        with capture_logs() as logs:
            handle_external_service_error(error, "x.failed")

        record = next(log for log in logs if log["event"] == "external_service_error")
        assert record["log_level"] == "warning"


class TestCircuitBreakerOpen:
    def test_envelope_and_retry_after(self):
        with capture_logs() as logs:
            response = handle_circuit_breaker_open("lmstudio", retry_after=30)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"
        body = body_of(response)
        assert body["ok"] is False
        assert body["code"] == "lmstudio.circuit_breaker_open"
        assert body["message"] == USER_MESSAGES[503]
        assert body["meta"] == {"service": "lmstudio", "circuit_state": "open", "retry_after": 30}
        assert logs[0]["event"] == "circuit_breaker_open"

    def test_default_retry_after(self):
        response = handle_circuit_breaker_open("wordpress")
        assert response.headers["Retry-After"] == "60"
