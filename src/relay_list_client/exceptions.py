"""
Exception classes for the relay list client.

All exceptions inherit from RelayListError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional

from .enums import FetchErrorCode


class RelayListError(Exception):
    """Base exception for all relay list client errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class TransportError(RelayListError):
    """Raised when the request could not complete (network, TLS, timeout)."""

    pass


class UnexpectedStatusError(RelayListError):
    """Raised when the server answers with a status other than 200 or 304."""

    def __init__(self, status_code: int, details: Optional[dict] = None) -> None:
        self.status_code = status_code
        super().__init__(
            code=FetchErrorCode.UNEXPECTED_STATUS.value,
            message=f"Unexpected HTTP status: {status_code}",
            details={"status_code": status_code, **(details or {})},
        )


class DecodeError(RelayListError):
    """Raised when the response body is not valid JSON or does not match the schema."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(
            code=FetchErrorCode.DECODE_ERROR.value,
            message=message,
            details=details,
        )


class ConfigError(RelayListError):
    """Raised when a configuration file cannot be parsed."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(
            code=FetchErrorCode.CONFIG_ERROR.value,
            message=message,
            details=details,
        )
