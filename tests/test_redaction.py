# File: tests/test_redaction.py
# Purpose: Credential masking applied to log events and outbound payloads
import logging

import pytest
import structlog
from structlog.testing import capture_logs

from wpstudio.infrastructure.logging.action_logger import ActionLogger
from wpstudio.infrastructure.logging.external import ExternalRequestLogger
from wpstudio.infrastructure.logging.formatters import SensitiveDataFilter, redact_event_processor
from wpstudio.infrastructure.logging.setup import setup_logging


@pytest.fixture()
def stdlib_structlog():
    """Route structlog through stdlib loggers so records keep their logger name."""
    structlog.configure(
        processors=[structlog.stdlib.render_to_log_kwargs],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


class TestSensitiveDataFilter:
    """Masking rules"""

    def test_password_keeps_two_characters(self):
        assert SensitiveDataFilter.mask_password("secret123") == "se****"

    def test_short_password_fully_masked(self):
        assert SensitiveDataFilter.mask_password("ab") == "****"

    def test_token_keeps_first_and_last_four(self):
        assert SensitiveDataFilter.mask_token("abcdef123456") == "abcd*****3456"

    def test_short_token(self):
        assert SensitiveDataFilter.mask_token("abcdefgh") == "a*******"
        assert SensitiveDataFilter.mask_token("ab") == "a****"

    def test_bearer_scheme_stays_readable(self):
        assert SensitiveDataFilter.mask_token("Bearer abcdef123456") == "Bearer abcd*****3456"
        assert SensitiveDataFilter.mask_token("Basic dXNlcjpwYXNz") == "Basic dXNl*****YXNz"

    def test_unknown_scheme_masks_whole_value(self):
        masked = SensitiveDataFilter.mask_token("hunter2 is my secret phrase")
        assert "hunter2" not in masked
        assert masked == "hunt*****rase"

    def test_single_character_fully_masked(self):
        assert SensitiveDataFilter.mask_token("x") == "****"
        assert SensitiveDataFilter.mask_token("") == "****"

    def test_redact_nested_structures(self):
        data = {
            "json": {"username": "admin", "password": "secret123"},
            "headers": {"Authorization": "Bearer abcdef123456"},
            "items": [{"token": "abcdef123456", "name": "keep"}],
        }

        assert SensitiveDataFilter.redact(data) == {
            "json": {"username": "admin", "password": "se****"},
            "headers": {"Authorization": "Bearer abcd*****3456"},
            "items": [{"token": "abcd*****3456", "name": "keep"}],
        }

    def test_keys_match_case_insensitively_and_exactly(self):
        redacted = SensitiveDataFilter.redact({
            "PASSWORD": "secret123",
            "X-Api-Key": "abcdef123456",
            "author": "jane",
            "tokens_used": 42,
        })

        assert redacted["PASSWORD"] == "se****"
        assert redacted["X-Api-Key"] == "abcd*****3456"
        assert redacted["author"] == "jane"
        assert redacted["tokens_used"] == 42

    def test_input_is_not_mutated(self):
        data = {"password": "secret123"}
        SensitiveDataFilter.redact(data)
        assert data == {"password": "secret123"}

    def test_none_values_untouched(self):
        assert SensitiveDataFilter.redact({"token": None}) == {"token": None}

    def test_event_processor(self):
        event = redact_event_processor(None, "info", {"event": "login", "password": "secret123"})
        assert event == {"event": "login", "password": "se****"}


class TestExternalRequestLogger:
    """Outbound call records never carry clear-text credentials"""

    def test_dispatching_redacts_options(self):
        request_logger = ExternalRequestLogger("wordpress")
        with capture_logs() as logs:
            request_logger.dispatching("post", "jwt-auth/v1/token", {
                "json": {"username": "admin", "password": "secret123"},
            })

        assert logs == [{
            "event": "external_request_dispatching",
            "log_level": "info",
            "channel": "external",
            "service": "wordpress",
            "method": "POST",
            "uri": "jwt-auth/v1/token",
            "options": {"json": {"username": "admin", "password": "se****"}},
        }]

    def test_received_redacts_response(self):
        request_logger = ExternalRequestLogger("wordpress", channel="audit")
        with capture_logs() as logs:
            request_logger.received("POST", "jwt-auth/v1/token", 200, {}, {"token": "abcdef123456"})

        assert logs[0]["channel"] == "audit"
        assert logs[0]["status"] == 200
        assert logs[0]["response"] == {"token": "abcd*****3456"}

    def test_telemetry_reports_duration_and_payload_keys(self):
        request_logger = ExternalRequestLogger("lmstudio")
        with capture_logs() as logs:
            duration = request_logger.telemetry(
                "get", "/v1/models", 0.0, success=False, status=503, payload={"b": 1, "a": 2}
            )

        assert duration >= 0
        record = logs[0]
        assert record["event"] == "external_request_completed"
        assert record["log_level"] == "warning"
        assert record["success"] is False
        assert record["status"] == 503
        assert record["payload_keys"] == ["a", "b"]

    def test_records_go_to_the_configured_channel_logger(self, stdlib_structlog, caplog):
        caplog.set_level(logging.INFO)

        ExternalRequestLogger("lmstudio", channel="lmstudio_calls").dispatching("get", "/v1/models")

        [record] = [r for r in caplog.records if r.getMessage() == "external_request_dispatching"]
        assert record.name == "lmstudio_calls"

    def test_default_channel_is_external(self, stdlib_structlog, caplog):
        caplog.set_level(logging.INFO)

        ExternalRequestLogger("wordpress").failed("get", "wp/v2/tags", RuntimeError("boom"))

        [record] = [r for r in caplog.records if r.getMessage() == "external_request_failed"]
        assert record.name == "external"


class TestActionLogger:
    def test_records_redacted_snapshots(self):
        with capture_logs() as logs:
            ActionLogger().log(
                "wordpress.category.updated",
                actor="editor",
                before={"name": "Old"},
                after={"name": "New"},
                metadata={"api_key": "abcdef123456"},
            )

        record = logs[0]
        assert record["event"] == "domain_action_recorded"
        assert record["channel"] == "action"
        assert record["operation"] == "wordpress.category.updated"
        assert record["actor"] == "editor"
        assert record["before"] == {"name": "Old"}
        assert record["after"] == {"name": "New"}
        assert record["metadata"] == {"api_key": "abcd*****3456"}
        assert record["occurred_at"]


class TestLoggingSetup:
    def test_configured_channel_gets_its_own_file(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging(log_dir=str(tmp_path), extra_channels=["lmstudio_calls", ""])

            assert logging.getLogger("lmstudio_calls").handlers
            assert (tmp_path / "wpstudio_lmstudio_calls.log").exists()
            assert (tmp_path / "wpstudio_external.log").exists()
            assert not (tmp_path / "wpstudio_.log").exists()
        finally:
            for name in ("external", "action", "lmstudio_calls"):
                channel_logger = logging.getLogger(name)
                for handler in channel_logger.handlers:
                    handler.close()
                channel_logger.handlers.clear()
            for handler in root.handlers:
                if handler not in saved_handlers:
                    handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
            structlog.reset_defaults()
