"""
Transport configuration.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger("vault.transports")

DEFAULT_BASE_URI = "http://127.0.0.1:8200"
DEFAULT_TIMEOUT = 15.0


class TransportConfig(BaseModel):
    """Engine defaults shared by every request a transport sends"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_uri: str = Field(DEFAULT_BASE_URI, description="Vault address relative URIs resolve against")
    timeout: float = Field(DEFAULT_TIMEOUT, description="Default request timeout in seconds")
    http_errors: bool = Field(False, description="Raise on HTTP error statuses (always disabled)")
    headers: Dict[str, str] = Field(default_factory=dict, description="Headers sent with every request")
    verify: bool = Field(True, description="Verify TLS certificates")
    max_workers: int = Field(10, description="Worker threads for asynchronous sends")
    debug: bool = Field(False, description="Enable debug logging")

    @field_validator("base_uri")
    @classmethod
    def validate_base_uri(cls, v):
        if not v:
            raise ValueError("base_uri is required")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v):
        if v <= 0:
            raise ValueError("max_workers must be positive")
        return v

    @field_validator("http_errors")
    @classmethod
    def force_http_errors_off(cls, v):
        # HTTP statuses are returned to the caller, never raised
        if v:
            logger.warning("http_errors=True is not supported by Vault transports; disabled")
        return False


def load_config(config: Optional[Union[TransportConfig, Mapping[str, Any]]] = None) -> TransportConfig:
    """
    Normalize the config argument accepted by the transports.

    Args:
        config: A TransportConfig, a mapping of its fields, or None for defaults

    Returns:
        Validated TransportConfig

    Raises:
        pydantic.ValidationError: If a field is invalid
    """
    if config is None:
        config = TransportConfig()
    elif not isinstance(config, TransportConfig):
        config = TransportConfig(**dict(config))

    if config.debug:
        logging.getLogger("vault.transports").setLevel(logging.DEBUG)

    return config
