"""Unit tests for structured logging."""

import json
import logging

import pytest
import structlog

from cpmgmt.observability.logger import (
    REDACTED,
    TRACE,
    VERBOSE,
    LogContext,
    _context_processor,
    _log_context,
    _redact_processor,
    add_context,
    clear_all_context,
    clear_context,
    configure_logging,
    get_log_level,
    redact,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_all_context()
    yield
    clear_all_context()


class TestRedact:
    """Test masking of secret values."""

    def test_top_level_secrets(self):
        payload = {"user": "admin", "password": "hunter2", "api-key": "k"}

        assert redact(payload) == {"user": "admin", "password": REDACTED, "api-key": REDACTED}

    def test_nested_values(self):
        payload = {
            "shared-secret": "s3",
            "requests": [{"ip-address": "10.0.0.1", "shared-secret": "s3"}],
            "login": {"sid": "abc"},
        }

        result = redact(payload)

        assert result["shared-secret"] == REDACTED
        assert result["requests"][0] == {"ip-address": "10.0.0.1", "shared-secret": REDACTED}
        assert result["login"]["sid"] == REDACTED

    def test_input_not_modified(self):
        payload = {"password": "hunter2"}

        redact(payload)

        assert payload["password"] == "hunter2"

    def test_scalars_unchanged(self):
        assert redact("password") == "password"
        assert redact(42) == 42


class TestLogContext:
    def test_context_manager(self):
        with LogContext(server="mgmt01"):
            assert _log_context.get() == {"server": "mgmt01"}
            with LogContext(domain="SMC User"):
                assert _log_context.get() == {"server": "mgmt01", "domain": "SMC User"}
            assert _log_context.get() == {"server": "mgmt01"}

        assert _log_context.get() == {}

    def test_add_and_clear(self):
        add_context(server="mgmt01", domain="d")
        clear_context("domain")
        clear_context("missing")

        assert _log_context.get() == {"server": "mgmt01"}

    def test_context_processor(self):
        add_context(server="mgmt01")

        event = _context_processor(None, "info", {"event": "Logging in"})

        assert event == {"event": "Logging in", "server": "mgmt01"}

    def test_redact_processor(self):
        event = _redact_processor(None, "debug", {"event": "Request", "payload": {"password": "x"}})

        assert event["payload"]["password"] == REDACTED


class TestLogLevels:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("TRACE", TRACE),
            ("verbose", VERBOSE),
            ("DEBUG", logging.DEBUG),
            ("warning", logging.WARNING),
            ("nonsense", logging.INFO),
        ],
    )
    def test_get_log_level(self, name, expected):
        assert get_log_level(name) == expected

    def test_custom_level_names(self):
        assert logging.getLevelName(TRACE) == "TRACE"
        assert logging.getLevelName(VERBOSE) == "VERBOSE"


class TestConfigureLogging:
    """Test configure_logging."""

    def test_sets_root_level(self):
        configure_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG

    def test_httpx_quiet_unless_tracing(self):
        configure_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING

        configure_logging(level="TRACE")
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_json_file_output_redacts_secrets(self, tmp_path):
        log_file = tmp_path / "logs" / "client.log"
        configure_logging(level="INFO", json_logs=True, log_file=log_file)

        structlog.get_logger("cpmgmt.test").info("Logging in", user="admin", password="hunter2")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "Logging in"
        assert record["password"] == REDACTED
        assert "hunter2" not in line

    def test_console_output(self):
        configure_logging(level="WARNING", json_logs=False)

        logger = structlog.get_logger("cpmgmt.test")
        logger.warning("Something happened")
