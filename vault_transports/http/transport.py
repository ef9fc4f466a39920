"""
Base transport interface and the request translation shared by adapters.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Union
from urllib.parse import urljoin

from ..config import TransportConfig, load_config
from ..exceptions import TransportError
from ..message import HeadersInput, HttpRequest, HttpResponse, build_request, normalize_headers, body_bytes
from .pending import PendingResult

Options = Mapping[str, Any]

# Internal flag asking the raw send path for a PendingResult
FUTURE_OPTION = "future"


class PreparedTransfer(NamedTuple):
    """Engine neutral description of one transfer."""

    method: str
    url: str
    headers: Dict[str, str]
    body: Optional[bytes]
    options: Dict[str, Any]


class Transport(ABC):
    """
    Abstract base class for Vault transports.

    A transport sends HttpRequest values through one HTTP engine and
    returns HttpResponse values, so the Vault client never depends on the
    engine's own request and response types.
    """

    #: Engine name used in logs and metrics
    name = "transport"

    def __init__(self, config: Optional[Union[TransportConfig, Options]] = None):
        """
        Initialize transport.

        Args:
            config: TransportConfig, mapping of its fields, or None for defaults
        """
        self.config = load_config(config)

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def request(self, method: str, uri: Any, options: Optional[Options] = None) -> HttpResponse:
        """
        Create and send an HTTP request.

        Use an absolute URI to override ``base_uri``, or a relative path to
        resolve against it. The URI can contain the query string as well.

        Args:
            method: HTTP method
            uri: URI string or parsed URI value
            options: Request options; ``headers`` and ``body`` build the
                request, everything else applies to the transfer

        Returns:
            HttpResponse

        Raises:
            ValueError: If the method or URI is malformed
            TransportError: On transfer failure
        """
        return self.send(build_request(method, uri, options), options)

    def request_async(self, method: str, uri: Any, options: Optional[Options] = None) -> PendingResult:
        """
        Create and send an HTTP request without blocking.

        Args:
            method: HTTP method
            uri: URI string or parsed URI value
            options: Request options

        Returns:
            PendingResult resolving to an HttpResponse

        Raises:
            ValueError: If the method or URI is malformed
        """
        return self.send_async(build_request(method, uri, options), options)

    @abstractmethod
    def send(self, request: HttpRequest, options: Optional[Options] = None) -> HttpResponse:
        """
        Send an HTTP request and block until the response arrives.

        Args:
            request: Request to send
            options: Options applied to the request and the transfer

        Returns:
            HttpResponse

        Raises:
            ValueError: If the engine rejects the request
            TransportError: On transfer failure
        """
        raise NotImplementedError

    @abstractmethod
    def send_async(self, request: HttpRequest, options: Optional[Options] = None) -> PendingResult:
        """
        Send an HTTP request without blocking.

        Args:
            request: Request to send
            options: Options applied to the request and the transfer

        Returns:
            PendingResult; transfer failures surface from ``wait()``

        Raises:
            ValueError: If the engine rejects the request
        """
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release engine resources owned by the transport."""
        raise NotImplementedError

    def get_config(self, option: Optional[str] = None) -> Any:
        """
        Get an engine configuration default.

        Args:
            option: Option name (``base_uri``, ``timeout``, ``http_errors``,
                ``headers``, ...) or None for the whole configuration

        Returns:
            The option value, None for unknown names, or a dict of every
            option when no name is given
        """
        values = self.config.model_dump()
        if option is None:
            return values
        return values.get(option)


def merge_headers(*layers: HeadersInput) -> Dict[str, List[str]]:
    """
    Merge header layers, later layers replacing earlier ones per name.

    Args:
        layers: Header containers from lowest to highest precedence

    Returns:
        Merged headers (name to list of values)
    """
    merged: Dict[str, List[str]] = {}
    spelling: Dict[str, str] = {}

    for layer in layers:
        for name, values in normalize_headers(layer).items():
            lowered = name.lower()
            if lowered in spelling:
                del merged[spelling[lowered]]
            spelling[lowered] = name
            merged[name] = values

    return merged


def resolve_uri(base_uri: str, uri: str) -> str:
    """Resolve a request URI against the configured base URI."""
    return urljoin(base_uri, uri)


def prepare_transfer(request: HttpRequest, options: Options, config: TransportConfig) -> PreparedTransfer:
    """
    Merge a request with the options bag and the configured defaults.

    Headers: config defaults < ``options["headers"]`` < request headers.
    Body: the request body when not empty, else ``options["body"]``.
    ``timeout`` and ``verify`` default to the configured values; other
    option keys pass through untouched.

    Args:
        request: Request to send
        options: Per-call options (``future`` already removed)
        config: Transport configuration

    Returns:
        PreparedTransfer
    """
    options = dict(options)
    option_headers = options.pop("headers", None)
    option_body = options.pop("body", None)

    headers = merge_headers(config.headers, option_headers, request.headers)
    body = request.body or body_bytes(option_body)

    options.setdefault("timeout", config.timeout)
    options.setdefault("verify", config.verify)

    return PreparedTransfer(
        method=request.method,
        url=resolve_uri(config.base_uri, request.uri),
        headers={name: ", ".join(values) for name, values in headers.items()},
        body=body or None,
        options=options,
    )


def transfer_error_code(exc: BaseException) -> Optional[int]:
    """
    Find the socket errno behind an engine exception.

    Engines wrap the OSError several levels deep (requests wraps urllib3
    which wraps the socket error), so the exception chain is searched
    breadth first.
    """
    seen = set()
    pending: List[Any] = [exc]

    while pending:
        current = pending.pop(0)
        if not isinstance(current, BaseException) or id(current) in seen:
            continue
        seen.add(id(current))

        errno = getattr(current, "errno", None)
        if isinstance(errno, int):
            return errno

        pending.append(getattr(current, "reason", None))
        pending.append(current.__cause__)
        pending.append(current.__context__)
        pending.extend(current.args)

    return None


def wrap_transfer_error(exc: BaseException) -> TransportError:
    """Build the TransportError for an engine transfer failure."""
    return TransportError(str(exc) or type(exc).__name__, code=transfer_error_code(exc))
