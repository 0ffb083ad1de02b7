"""Unit tests for observability logging."""

from __future__ import annotations

import io
import json
import logging

import structlog

from depot_notify.observability.logging import (
    DEFAULT_SENSITIVE_FIELDS,
    SensitiveFieldsFilter,
    bound_context,
    configure_logging,
    get_logger,
)


# ---------------------------------------------------------------------------
# SensitiveFieldsFilter
# ---------------------------------------------------------------------------


class TestSensitiveFieldsFilter:
    def test_redacts_known_sensitive_key(self) -> None:
        result = SensitiveFieldsFilter().redact({"password": "s3cr3t", "name": "alice"})
        assert result["password"] == SensitiveFieldsFilter.REDACTED
        assert result["name"] == "alice"

    def test_redacts_all_default_sensitive_fields(self) -> None:
        result = SensitiveFieldsFilter().redact({f: "value" for f in DEFAULT_SENSITIVE_FIELDS})
        assert set(result.values()) == {SensitiveFieldsFilter.REDACTED}

    def test_case_insensitive(self) -> None:
        result = SensitiveFieldsFilter().redact({"Authorization": "Bearer x"})
        assert result["Authorization"] == SensitiveFieldsFilter.REDACTED

    def test_custom_field_set(self) -> None:
        f = SensitiveFieldsFilter(frozenset({"pin"}))
        result = f.redact({"pin": "1234", "password": "kept"})
        assert result == {"pin": SensitiveFieldsFilter.REDACTED, "password": "kept"}

    def test_redact_deep_nested(self) -> None:
        data = {"provider": {"api_key": "k", "url": "u"}, "items": [{"token": "t"}, 3]}
        result = SensitiveFieldsFilter().redact_deep(data)
        assert result["provider"] == {"api_key": SensitiveFieldsFilter.REDACTED, "url": "u"}
        assert result["items"] == [{"token": SensitiveFieldsFilter.REDACTED}, 3]

    def test_does_not_mutate_input(self) -> None:
        data = {"secret": "s"}
        SensitiveFieldsFilter().redact_deep(data)
        assert data == {"secret": "s"}

    def test_works_as_structlog_processor(self) -> None:
        out = SensitiveFieldsFilter()(None, "info", {"event": "x", "auth_token": "t"})
        assert out == {"event": "x", "auth_token": SensitiveFieldsFilter.REDACTED}


# ---------------------------------------------------------------------------
# configure_logging / get_logger
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def _capture(self) -> io.StringIO:
        stream = io.StringIO()
        configure_logging(logging.DEBUG, handler=logging.StreamHandler(stream))
        return stream

    def teardown_method(self) -> None:
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()

    def test_emits_json_with_event_and_fields(self) -> None:
        stream = self._capture()
        get_logger("tests.logging").info("email_queue.batch_done", processed=2, sent=1)
        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert record["event"] == "email_queue.batch_done"
        assert record["processed"] == 2
        assert record["level"] == "info"
        assert record["logger"] == "tests.logging"

    def test_masks_credentials(self) -> None:
        stream = self._capture()
        get_logger("tests.logging").warning("provider.configured", api_key="SG.secret")
        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert record["api_key"] == SensitiveFieldsFilter.REDACTED

    def test_initial_values_are_bound(self) -> None:
        stream = self._capture()
        get_logger("tests.logging", component="worker").info("tick")
        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert record["component"] == "worker"

    def test_bound_context_tags_lines_inside_only(self) -> None:
        stream = self._capture()
        log = get_logger("tests.logging")
        with bound_context(intent_id="i-1"):
            log.info("inside")
        log.info("outside")
        inside, outside = (json.loads(line) for line in stream.getvalue().strip().splitlines()[-2:])
        assert inside["intent_id"] == "i-1"
        assert "intent_id" not in outside
