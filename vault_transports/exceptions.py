"""
Exception classes for Vault transports.
"""

from typing import Optional


class VaultError(Exception):
    """Base exception for all Vault transport errors."""

    pass


class TransportError(VaultError):
    """
    Transfer error exception.

    Raised when the HTTP engine fails below the HTTP semantic layer
    (connection refused, timeout, TLS or DNS failure). HTTP error statuses
    are never reported through this exception.
    """

    def __init__(self, message: str, code: Optional[int] = None):
        """
        Initialize transport error.

        Args:
            message: Error message of the underlying failure
            code: Numeric error code (socket errno) when one is known
        """
        super().__init__(message)
        self.message = message
        self.code = code

    @property
    def cause(self) -> Optional[BaseException]:
        """Original engine exception this error was raised from."""
        return self.__cause__

    def __repr__(self) -> str:
        return (
            f"TransportError(message={self.message!r}, "
            f"code={self.code!r}, "
            f"cause={type(self.__cause__).__name__ if self.__cause__ else None})"
        )
