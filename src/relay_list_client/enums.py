"""
Enumeration types for the relay list client.

These enums provide type-safe constants for log levels, transport protocols
and error codes used throughout the package.
"""

from enum import Enum


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def severity(self) -> int:
        """Numeric severity used for level filtering."""
        return _SEVERITY[self]


_SEVERITY = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}


class TransportProtocol(Enum):
    """Transport protocol of an OpenVPN port or Shadowsocks endpoint."""

    UDP = "udp"
    TCP = "tcp"


class EndpointType(Enum):
    """Which protocol section a relay was listed under."""

    OPENVPN = "openvpn"
    WIREGUARD = "wireguard"
    BRIDGE = "bridge"


class FetchErrorCode(Enum):
    """Error codes for relay list fetch operations."""

    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    TLS_ERROR = "tls_error"
    UNEXPECTED_STATUS = "unexpected_status"
    DECODE_ERROR = "decode_error"
    CONFIG_ERROR = "config_error"
