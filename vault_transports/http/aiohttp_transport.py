"""
Aiohttp-based transport (coroutine engine on a private event loop).
"""

import asyncio
import logging
import threading
import time
from typing import Any, Callable, Dict, Mapping, Optional, Union

import aiohttp
from multidict import CIMultiDict
from yarl import URL

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

logger = logging.getLogger("vault.transports.aiohttp")

SessionFactory = Callable[[TransportConfig], aiohttp.ClientSession]


def default_session_factory(config: TransportConfig) -> aiohttp.ClientSession:
    """Create the ClientSession used when no factory is given."""
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=config.timeout),
        raise_for_status=config.http_errors,
    )


class AiohttpTransport(Transport):
    """
    Vault transport using the aiohttp library.

    The transport runs its own event loop in a daemon thread, so it can be
    used from plain synchronous code. ``send`` blocks on the scheduled
    coroutine; ``send_async`` returns its future, and cancelling that
    future cancels the task, aborting the in-flight transfer.

    Features:
    - Connection pooling via one long-lived ClientSession
    - Per-request timeouts
    - Thread-safe: any thread may send through the same transport

    Examples:
        >>> with AiohttpTransport({"base_uri": "https://vault.example.com:8200"}) as transport:
        ...     pending = transport.request_async("GET", "/v1/sys/health")
        ...     response = pending.wait()
    """

    name = "aiohttp"

    def __init__(
        self,
        config: Optional[Union[TransportConfig, Mapping[str, Any]]] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        """
        Initialize aiohttp transport.

        Args:
            config: Transport configuration
            session_factory: Optional callable building the ClientSession;
                it is called on the transport's event loop
        """
        super().__init__(config)
        self._session_factory = session_factory or default_session_factory
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="vault-transport-aiohttp",
            daemon=True,
        )
        self._thread.start()
        self.session: aiohttp.ClientSession = self._call(self._create_session())

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _call(self, coro: Any) -> Any:
        if threading.current_thread() is self._thread:
            coro.close()
            raise RuntimeError("Blocking call from the transport event loop would deadlock")
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    async def _create_session(self) -> aiohttp.ClientSession:
        return self._session_factory(self.config)

    def send(self, request: HttpRequest, options: Optional[Options] = None) -> HttpResponse:
        return self._raw_send(request, dict(options or {}))

    def send_async(self, request: HttpRequest, options: Optional[Options] = None) -> PendingResult:
        options = dict(options or {})
        options[FUTURE_OPTION] = True
        return self._raw_send(request, options)

    def _raw_send(self, request: HttpRequest, options: Dict[str, Any]) -> Any:
        future = options.pop(FUTURE_OPTION, False)
        transfer = prepare_transfer(request, options, self.config)
        url, headers, kwargs = self._build(transfer)

        if self._loop.is_closed():
            raise RuntimeError("Transport is closed")

        coro = self._transfer(transfer.method, url, headers, transfer.body, kwargs)
        if future:
            return PendingResult(asyncio.run_coroutine_threadsafe(coro, self._loop))
        return self._call(coro)

    @staticmethod
    def _build(transfer: PreparedTransfer):
        """
        Build the native request arguments.

        Raises:
            aiohttp.InvalidURL: If the resolved URL is not absolute
        """
        url = URL(transfer.url)
        if not url.is_absolute() or not url.host:
            raise aiohttp.InvalidURL(transfer.url)

        kwargs = dict(transfer.options)
        timeout = kwargs.pop("timeout", None)
        if timeout is not None:
            if not isinstance(timeout, aiohttp.ClientTimeout):
                timeout = aiohttp.ClientTimeout(total=timeout)
            kwargs["timeout"] = timeout

        if not kwargs.pop("verify", True):
            kwargs.setdefault("ssl", False)

        # requests sends raw bytes without a Content-Type; do the same
        kwargs.setdefault("skip_auto_headers", ("Content-Type",))

        return url, CIMultiDict(transfer.headers), kwargs

    async def _transfer(
        self,
        method: str,
        url: URL,
        headers: CIMultiDict,
        body: Optional[bytes],
        kwargs: Dict[str, Any],
    ) -> HttpResponse:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Request %s %s %s",
                method,
                url,
                redact_headers({k: headers.getall(k) for k in headers.keys()}),
                extra={"transport": self.name, "method": method, "uri": str(url)},
            )

        start = time.time()
        try:
            async with self.session.request(method, url, headers=headers, data=body, **kwargs) as response:
                content = await response.read()
        except aiohttp.InvalidURL:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            record_transfer(self.name, method, "error", time.time() - start)
            logger.warning(
                "Transfer failed: %s %s: %r",
                method,
                url,
                e,
                extra={"transport": self.name, "method": method, "uri": str(url)},
            )
            raise wrap_transfer_error(e) from e

        record_transfer(self.name, method, response.status, time.time() - start)
        logger.debug("Response %d %s", response.status, url, extra={"status": response.status})

        return self._to_response(response, content)

    @staticmethod
    def _to_response(response: aiohttp.ClientResponse, content: bytes) -> HttpResponse:
        version = response.version
        protocol_version = f"{version.major}.{version.minor}" if version else "1.1"

        return HttpResponse(
            status_code=response.status,
            headers=list(response.headers.items()),
            body=content,
            protocol_version=protocol_version,
            reason_phrase=response.reason or "",
        )

    async def _shutdown(self) -> None:
        tasks = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.session.close()

    def close(self) -> None:
        """Cancel in-flight transfers, close the session and stop the loop."""
        if self._loop.is_closed():
            return

        self._call(self._shutdown())
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()
