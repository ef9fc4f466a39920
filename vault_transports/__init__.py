"""
Vault HTTP transports

Engine independent transport layer for Vault API clients.
"""

__version__ = "0.1.0"

from .config import TransportConfig
from .message import HttpRequest, HttpResponse, build_request
from .exceptions import VaultError, TransportError
from .http import Transport, PendingResult, RequestsTransport, AiohttpTransport

__all__ = [
    "TransportConfig",
    "HttpRequest",
    "HttpResponse",
    "build_request",
    "VaultError",
    "TransportError",
    "Transport",
    "PendingResult",
    "RequestsTransport",
    "AiohttpTransport",
    "__version__",
]
