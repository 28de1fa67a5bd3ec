"""
Relay List Client - conditional fetching and normalization of VPN relay lists.

This package fetches a VPN provider's relay list over HTTP (with ETag based
caching) and converts the flat, per-protocol wire format into a hierarchy of
countries, cities and relays.
"""

__version__ = "0.1.0"

from relay_list_client.exceptions import (
    RelayListError,
    TransportError,
    UnexpectedStatusError,
    DecodeError,
    ConfigError,
)
from relay_list_client.enums import (
    LogLevel,
    TransportProtocol,
    EndpointType,
    FetchErrorCode,
)
from relay_list_client.config import (
    ClientConfig,
    LoggingConfig,
    SystemConfig,
    RELAY_LIST_TIMEOUT,
    load_config_from_file,
    save_config_to_file,
    apply_env_overrides,
)
from relay_list_client.audit_logger import (
    AuditLogger,
    LogEntry,
)
from relay_list_client.models import (
    PortRange,
    OpenVpnPort,
    ShadowsocksEndpoint,
    OpenVpnEndpointData,
    WireguardEndpointData,
    BridgeEndpointData,
    Quic,
    OpenVpnRelayEndpoint,
    WireguardRelayEndpoint,
    BridgeRelayEndpoint,
    Location,
    Relay,
    City,
    Country,
    RelayList,
)
from relay_list_client.wire_models import WireRelayList
from relay_list_client.location_code import (
    split_location_code,
    resolve_location_code,
)
from relay_list_client.features import resolve_wireguard_endpoint
from relay_list_client.topology import (
    TopologyBuilder,
    build_relay_list,
)
from relay_list_client.client import (
    RelayListClient,
    normalize_etag,
)
from relay_list_client.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "RelayListError",
    "TransportError",
    "UnexpectedStatusError",
    "DecodeError",
    "ConfigError",
    # Enums
    "LogLevel",
    "TransportProtocol",
    "EndpointType",
    "FetchErrorCode",
    # Configuration
    "ClientConfig",
    "LoggingConfig",
    "SystemConfig",
    "RELAY_LIST_TIMEOUT",
    "load_config_from_file",
    "save_config_to_file",
    "apply_env_overrides",
    # Logging
    "AuditLogger",
    "LogEntry",
    # Models
    "PortRange",
    "OpenVpnPort",
    "ShadowsocksEndpoint",
    "OpenVpnEndpointData",
    "WireguardEndpointData",
    "BridgeEndpointData",
    "Quic",
    "OpenVpnRelayEndpoint",
    "WireguardRelayEndpoint",
    "BridgeRelayEndpoint",
    "Location",
    "Relay",
    "City",
    "Country",
    "RelayList",
    # Wire format
    "WireRelayList",
    # Location codes
    "split_location_code",
    "resolve_location_code",
    # Topology
    "resolve_wireguard_endpoint",
    "TopologyBuilder",
    "build_relay_list",
    # Client
    "RelayListClient",
    "normalize_etag",
    # CLI
    "cli_main",
    "create_parser",
]
