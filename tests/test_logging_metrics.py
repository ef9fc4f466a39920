"""
Tests for structured logging and transfer metrics.
"""

import json
import logging
import sys

import pytest
import requests
from prometheus_client import REGISTRY
from requests_mock import Mocker

from vault_transports import RequestsTransport, TransportError
from vault_transports.logging_setup import JsonFormatter, redact_headers, setup_structured_logger
from vault_transports.metrics import record_transfer


@pytest.fixture
def restore_logger():
    """Undo setup_structured_logger changes after the test"""
    package_logger = logging.getLogger("vault.transports")
    saved = (package_logger.level, list(package_logger.handlers), package_logger.propagate)
    yield package_logger
    package_logger.setLevel(saved[0])
    package_logger.handlers = saved[1]
    package_logger.propagate = saved[2]


def _count(transport, method, outcome):
    value = REGISTRY.get_sample_value(
        "vault_transport_requests_total",
        {"transport": transport, "method": method, "outcome": outcome},
    )
    return value or 0.0


class TestRedactHeaders:
    def test_redacts_credentials(self):
        redacted = redact_headers(
            {"X-Vault-Token": ["s.abc"], "authorization": ["Bearer x"], "Accept": ["*/*"]}
        )

        assert redacted == {
            "X-Vault-Token": ["***REDACTED***"],
            "authorization": ["***REDACTED***"],
            "Accept": ["*/*"],
        }

    def test_does_not_modify_input(self):
        headers = {"X-Vault-Token": ["s.abc"]}
        redact_headers(headers)

        assert headers == {"X-Vault-Token": ["s.abc"]}


class TestJsonFormatter:
    def test_format_with_extras(self):
        record = logging.LogRecord("vault.transports.requests", logging.WARNING, __file__, 1, "Transfer failed", (), None)
        record.transport = "requests"
        record.method = "GET"
        record.uri = "http://127.0.0.1:8200/v1/secret/foo"

        payload = json.loads(JsonFormatter().format(record))

        assert payload["name"] == "vault.transports.requests"
        assert payload["level"] == "WARNING"
        assert payload["msg"] == "Transfer failed"
        assert payload["transport"] == "requests"
        assert payload["method"] == "GET"
        assert payload["uri"] == "http://127.0.0.1:8200/v1/secret/foo"
        assert "exc" not in payload

    def test_format_exception(self):
        try:
            raise TransportError("Connection refused", code=111)
        except TransportError:
            record = logging.LogRecord("vault.transports", logging.ERROR, __file__, 1, "boom", (), sys.exc_info())

        payload = json.loads(JsonFormatter().format(record))

        assert "TransportError: Connection refused" in payload["exc"]

    def test_setup_structured_logger(self, restore_logger):
        setup_structured_logger(logging.DEBUG)

        assert restore_logger.level == logging.DEBUG
        assert restore_logger.propagate is False
        assert isinstance(restore_logger.handlers[0].formatter, JsonFormatter)


class TestTransferLogging:
    def test_token_never_logged(self, caplog):
        transport = RequestsTransport()

        with caplog.at_level(logging.DEBUG, logger="vault.transports"):
            with Mocker() as m:
                m.get("http://127.0.0.1:8200/v1/secret/foo", text="{}")
                transport.request("GET", "/v1/secret/foo", {"headers": {"X-Vault-Token": "s.secret"}})

        transport.close()

        assert "Request GET http://127.0.0.1:8200/v1/secret/foo" in caplog.text
        assert "s.secret" not in caplog.text

    def test_failure_logged_as_warning(self, caplog):
        transport = RequestsTransport()

        with caplog.at_level(logging.WARNING, logger="vault.transports"):
            with Mocker() as m:
                m.get("http://127.0.0.1:8200/v1/secret/foo", exc=requests.exceptions.ConnectionError("refused"))
                with pytest.raises(TransportError):
                    transport.request("GET", "/v1/secret/foo")

        transport.close()

        assert any(r.levelno == logging.WARNING and "Transfer failed" in r.getMessage() for r in caplog.records)


class TestMetrics:
    def test_record_transfer(self):
        before = _count("unit", "GET", "200")
        record_transfer("unit", "GET", 200, 0.01)

        assert _count("unit", "GET", "200") == before + 1

    def test_transfers_are_counted(self):
        transport = RequestsTransport()
        before_ok = _count("requests", "GET", "404")

        with Mocker() as m:
            m.get("http://127.0.0.1:8200/v1/secret/missing", text="{}", status_code=404)
            transport.request("GET", "/v1/secret/missing")

        transport.close()

        assert _count("requests", "GET", "404") == before_ok + 1
