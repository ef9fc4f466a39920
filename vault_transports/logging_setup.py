"""
Structured JSON Logging for Vault transports

Provides a JSON formatter and header redaction for transport logs.
Useful for log aggregation systems like ELK, Datadog, CloudWatch.
"""

import logging
import sys
import json
from typing import Any, Dict, List, Mapping

SENSITIVE_HEADERS = {
    "x-vault-token",
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
}

REDACTED = "***REDACTED***"


class JsonFormatter(logging.Formatter):
    """Formats log records as JSON for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": int(record.created * 1000),  # milliseconds
            "name": record.name,
            "level": record.levelname,
            "msg": record.getMessage(),
        }

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        for field in ("transport", "method", "uri", "status"):
            if hasattr(record, field):
                payload[field] = getattr(record, field)

        return json.dumps(payload, default=str)


def setup_structured_logger(level: int = logging.INFO) -> None:
    """
    Configure structured JSON logging for the transports.

    Args:
        level: Logging level (default: logging.INFO)

    Example:
        >>> from vault_transports.logging_setup import setup_structured_logger
        >>> setup_structured_logger(logging.DEBUG)
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    transport_logger = logging.getLogger("vault.transports")
    transport_logger.setLevel(level)
    transport_logger.handlers = [handler]
    transport_logger.propagate = False


def redact_headers(headers: Mapping[str, List[str]]) -> Dict[str, List[str]]:
    """
    Remove credentials from headers before they are logged.

    Args:
        headers: Normalized headers (name to list of values)

    Returns:
        Copy of the headers with sensitive values redacted

    Example:
        >>> redact_headers({"X-Vault-Token": ["s.abc"], "Accept": ["*/*"]})
        {'X-Vault-Token': ['***REDACTED***'], 'Accept': ['*/*']}
    """
    return {
        name: [REDACTED] if name.lower() in SENSITIVE_HEADERS else list(values)
        for name, values in headers.items()
    }
