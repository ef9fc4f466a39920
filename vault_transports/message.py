"""
Engine independent HTTP message model.

Requests and responses crossing the transport boundary are immutable
pydantic models, so callers never see a requests.Response or an
aiohttp.ClientResponse.
"""

import json
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

HeaderValues = Union[str, Iterable[str]]
HeadersInput = Union[Mapping[str, HeaderValues], Iterable[Tuple[str, str]], None]

_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


def _header_value(value: Any) -> str:
    if isinstance(value, bytes):
        value = value.decode("latin-1")
    value = str(value)
    if "\r" in value or "\n" in value:
        raise ValueError(f"Invalid header value: {value!r}")
    return value.strip(" \t")


def normalize_headers(headers: HeadersInput) -> Dict[str, List[str]]:
    """
    Normalize any header container to ``{name: [values]}``.

    Names are matched case-insensitively; the first spelling seen for a
    name is kept. Repeated names (multidicts, lists of pairs) accumulate
    their values in order.

    Args:
        headers: Mapping of name to value(s), iterable of pairs, or None

    Returns:
        Dictionary of header name to list of values

    Raises:
        ValueError: If a header name is not a valid token or a value
            contains a line break
    """
    if not headers:
        return {}

    items = headers.items() if isinstance(headers, Mapping) else headers
    result: Dict[str, List[str]] = {}
    spelling: Dict[str, str] = {}

    for name, value in items:
        name = name.decode("latin-1") if isinstance(name, bytes) else str(name)
        if not _TOKEN.fullmatch(name):
            raise ValueError(f"Invalid header name: {name!r}")

        if isinstance(value, (str, bytes, int, float)):
            values = [value]
        else:
            values = list(value)

        key = spelling.setdefault(name.lower(), name)
        result.setdefault(key, []).extend(_header_value(v) for v in values)

    return result


def body_bytes(body: Any) -> bytes:
    if body is None:
        return b""
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, (bytearray, memoryview)):
        return bytes(body)
    if hasattr(body, "read"):
        return body_bytes(body.read())
    raise ValueError(f"Unsupported body type: {type(body).__name__}")


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    headers: Dict[str, List[str]] = Field(default_factory=dict)
    body: bytes = b""
    protocol_version: str = "1.1"

    @field_validator("headers", mode="before")
    @classmethod
    def validate_headers(cls, v):
        return normalize_headers(v)

    @field_validator("body", mode="before")
    @classmethod
    def validate_body(cls, v):
        return body_bytes(v)

    def _lookup(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key in self.headers:
            if key.lower() == lowered:
                return key
        return None

    def has_header(self, name: str) -> bool:
        return self._lookup(name) is not None

    def get_header(self, name: str) -> List[str]:
        """Return every value of a header, or an empty list."""
        key = self._lookup(name)
        return list(self.headers[key]) if key is not None else []

    def get_header_line(self, name: str) -> str:
        """Return the values of a header joined with a comma."""
        return ", ".join(self.get_header(name))

    def _replaced_headers(self, name: str, value: HeaderValues) -> Dict[str, List[str]]:
        headers = {k: list(v) for k, v in self.headers.items() if k.lower() != name.lower()}
        headers.update(normalize_headers({name: value}))
        return headers


class HttpRequest(_Message):
    """
    Outgoing HTTP request.

    Examples:
        >>> request = HttpRequest(
        ...     method="GET",
        ...     uri="/v1/secret/foo",
        ...     headers={"X-Vault-Token": "abc"},
        ... )
        >>> request.get_header_line("x-vault-token")
        'abc'
    """

    method: str
    uri: str

    @field_validator("method")
    @classmethod
    def validate_method(cls, v):
        if not _TOKEN.fullmatch(v):
            raise ValueError(f"Invalid HTTP method: {v!r}")
        return v

    @field_validator("uri", mode="before")
    @classmethod
    def validate_uri(cls, v):
        if hasattr(v, "geturl"):
            v = v.geturl()
        elif v is not None and not isinstance(v, str):
            v = str(v)
        if not v or not v.strip():
            raise ValueError("URI must not be empty")
        return v

    def with_header(self, name: str, value: HeaderValues) -> "HttpRequest":
        """Return a copy of the request with a header replaced."""
        return self.model_copy(update={"headers": self._replaced_headers(name, value)})


class HttpResponse(_Message):
    """Response reconstructed from whatever the engine returned"""

    status_code: int
    reason_phrase: str = ""

    @field_validator("status_code")
    @classmethod
    def validate_status_code(cls, v):
        if not 100 <= v <= 599:
            raise ValueError(f"Invalid status code: {v}")
        return v

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json_body(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body) if self.body else None


def build_request(method: str, uri: Any, options: Optional[Mapping[str, Any]] = None) -> HttpRequest:
    """
    Build a request from a method, URI and the options bag.

    Args:
        method: HTTP method (GET, POST, etc.)
        uri: URI string or parsed URI value
        options: Request options; ``headers`` and ``body`` are used

    Returns:
        HttpRequest

    Raises:
        ValueError: If the method, URI or headers are malformed
    """
    options = options or {}
    return HttpRequest(
        method=method,
        uri=uri,
        headers=options.get("headers"),
        body=options.get("body"),
    )
