"""
HTTP transports for Vault clients.
"""

from .transport import Transport
from .pending import PendingResult
from .requests_transport import RequestsTransport
from .aiohttp_transport import AiohttpTransport

__all__ = ["Transport", "PendingResult", "RequestsTransport", "AiohttpTransport"]
