"""
Read a secret through either transport.

Demonstrates synchronous and asynchronous reads and transfer error handling.

Usage:
    export VAULT_ADDR="http://127.0.0.1:8200"
    export VAULT_TOKEN="s.xxx"
    python examples/read_secret.py secret/foo [requests|aiohttp]
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from vault_transports import AiohttpTransport, RequestsTransport, TransportError
from vault_transports.logging_setup import setup_structured_logger


def main():
    path = sys.argv[1] if len(sys.argv) > 1 else "secret/foo"
    engine = sys.argv[2] if len(sys.argv) > 2 else "requests"
    transport_class = AiohttpTransport if engine == "aiohttp" else RequestsTransport

    setup_structured_logger()

    config = {"base_uri": os.getenv("VAULT_ADDR", "http://127.0.0.1:8200")}
    options = {"headers": {"X-Vault-Token": os.getenv("VAULT_TOKEN", "")}}

    with transport_class(config) as transport:
        try:
            response = transport.request("GET", f"/v1/{path}", options)
            print(f"[sync]  {response.status_code} {response.reason_phrase}: {response.text}")

            pending = transport.request_async("GET", "/v1/sys/health")
            health = pending.wait(timeout=10)
            print(f"[async] health {health.status_code}: {health.text}")
        except TransportError as e:
            print(f"Transfer failed (code={e.code}): {e}")
            sys.exit(1)


if __name__ == "__main__":
    main()
