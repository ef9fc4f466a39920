"""
Requests-based transport (blocking engine, worker pool for async sends).
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Mapping, Optional, Union

import requests

from ..config import TransportConfig
from ..logging_setup import redact_headers
from ..message import HttpRequest, HttpResponse
from ..metrics import record_transfer
from .pending import PendingResult
from .transport import (
    FUTURE_OPTION,
    Options,
    PreparedTransfer,
    Transport,
    prepare_transfer,
    wrap_transfer_error,
)

logger = logging.getLogger("vault.transports.requests")

# Options consumed by requests.Request; everything else goes to Session.send
REQUEST_OPTIONS = ("params", "auth", "cookies", "json", "files")


class RequestsTransport(Transport):
    """
    Vault transport using the requests library.

    requests has no native futures, so ``send_async`` runs the blocking
    transfer on a worker pool owned by the transport. Cancelling a
    PendingResult only stops transfers the pool has not started yet.

    No retry adapter is mounted on the session; retries belong to the
    caller.

    Examples:
        >>> transport = RequestsTransport({"base_uri": "https://vault.example.com:8200"})
        >>> response = transport.request(
        ...     "GET", "/v1/secret/foo", {"headers": {"X-Vault-Token": "s.abc"}}
        ... )
        >>> response.status_code
        200
    """

    name = "requests"

    def __init__(
        self,
        config: Optional[Union[TransportConfig, Mapping[str, Any]]] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize requests transport.

        Args:
            config: Transport configuration
            session: Optional requests.Session instance (not closed by the transport)
        """
        super().__init__(config)
        self._external_session = session is not None
        self.session = session or requests.Session()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="vault-transport",
        )

    def send(self, request: HttpRequest, options: Optional[Options] = None) -> HttpResponse:
        return self._raw_send(request, dict(options or {}))

    def send_async(self, request: HttpRequest, options: Optional[Options] = None) -> PendingResult:
        options = dict(options or {})
        options[FUTURE_OPTION] = True
        return self._raw_send(request, options)

    def _raw_send(self, request: HttpRequest, options: Dict[str, Any]) -> Any:
        future = options.pop(FUTURE_OPTION, False)
        transfer = prepare_transfer(request, options, self.config)
        prepared, send_kwargs = self._build(transfer)

        if future:
            return PendingResult(self._executor.submit(self._transfer, prepared, send_kwargs))
        return self._transfer(prepared, send_kwargs)

    def _build(self, transfer: PreparedTransfer):
        """
        Build the native request.

        Session defaults (headers, cookies, auth) are merged here by
        ``prepare_request``. Malformed URLs raise requests' ValueError
        subclasses (MissingSchema, InvalidURL) unwrapped.
        """
        send_kwargs = dict(transfer.options)
        request_kwargs = {key: send_kwargs.pop(key) for key in REQUEST_OPTIONS if key in send_kwargs}

        native = requests.Request(
            method=transfer.method,
            url=transfer.url,
            headers=transfer.headers,
            data=transfer.body,
            **request_kwargs,
        )
        prepared = self.session.prepare_request(native)

        # Same environment merge Session.request performs (proxies, CA bundle)
        send_kwargs.update(
            self.session.merge_environment_settings(
                prepared.url,
                send_kwargs.pop("proxies", None) or {},
                send_kwargs.pop("stream", None),
                send_kwargs.pop("verify", None),
                send_kwargs.pop("cert", None),
            )
        )
        return prepared, send_kwargs

    def _transfer(self, prepared: requests.PreparedRequest, send_kwargs: Dict[str, Any]) -> HttpResponse:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Request %s %s %s",
                prepared.method,
                prepared.url,
                redact_headers({k: [v] for k, v in prepared.headers.items()}),
                extra={"transport": self.name, "method": prepared.method, "uri": prepared.url},
            )

        start = time.time()
        try:
            response = self.session.send(prepared, **send_kwargs)
        except requests.exceptions.RequestException as e:
            record_transfer(self.name, prepared.method, "error", time.time() - start)
            logger.warning(
                "Transfer failed: %s %s: %s",
                prepared.method,
                prepared.url,
                e,
                extra={"transport": self.name, "method": prepared.method, "uri": prepared.url},
            )
            raise wrap_transfer_error(e) from e

        record_transfer(self.name, prepared.method, response.status_code, time.time() - start)
        logger.debug("Response %d %s", response.status_code, prepared.url, extra={"status": response.status_code})

        return self._to_response(response)

    @staticmethod
    def _to_response(response: requests.Response) -> HttpResponse:
        # urllib3 keeps repeated headers apart; requests folds them into one line
        raw = response.raw
        raw_headers = getattr(raw, "headers", None)
        if hasattr(raw_headers, "getlist"):
            headers = [(name, value) for name in raw_headers for value in raw_headers.getlist(name)]
        else:
            headers = list(response.headers.items())

        version = getattr(raw, "version", None)
        if isinstance(version, int) and version:
            protocol_version = f"{version // 10}.{version % 10}"
        else:
            protocol_version = "1.1"

        return HttpResponse(
            status_code=response.status_code,
            headers=headers,
            body=response.content,
            protocol_version=protocol_version,
            reason_phrase=response.reason or "",
        )

    def close(self) -> None:
        """Shut down the worker pool and close the session we own."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        if not self._external_session:
            self.session.close()
