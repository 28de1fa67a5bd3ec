"""
WireGuard capability resolution.

The API is migrating per-relay capabilities from top-level flags (``daita``)
to a ``features`` object. ``resolve_wireguard_endpoint`` merges both forms;
once the legacy ``daita`` flag is retired it can read ``features`` alone.
"""

from typing import Optional

from .audit_logger import AuditLogger
from .enums import LogLevel
from .models import PortRange, Quic, WireguardEndpointData, WireguardRelayEndpoint
from .wire_models import WireQuic, WireWireguardRelay, WireWireguardSection

COMPONENT = "features"


def resolve_daita(relay: WireWireguardRelay) -> bool:
    """The ``features.daita`` marker wins; otherwise the legacy flag."""
    if relay.features.daita:
        return True
    return relay.daita


def resolve_quic(quic: Optional[WireQuic]) -> Optional[Quic]:
    if quic is None:
        return None
    return Quic(addr_in=tuple(quic.addr_in), token=quic.token, domain=quic.domain)


def resolve_wireguard_endpoint(
    relay: WireWireguardRelay,
    logger: Optional[AuditLogger] = None,
) -> WireguardRelayEndpoint:
    """
    Build the per-relay WireGuard endpoint data.

    Args:
        relay: WireGuard relay as listed by the API
        logger: Optional logger for flag mismatches

    Returns:
        WireguardRelayEndpoint with resolved DAITA, QUIC and extra
        Shadowsocks addresses
    """
    # The new marker should never be present without the legacy flag.
    if relay.features.daita and not relay.daita and logger:
        logger.log(
            LogLevel.WARN,
            COMPONENT,
            "DAITA feature marker disagrees with legacy daita flag",
            {"hostname": relay.relay.hostname},
        )

    return WireguardRelayEndpoint(
        public_key=relay.public_key,
        daita=resolve_daita(relay),
        shadowsocks_extra_addr_in=frozenset(relay.shadowsocks_extra_addr_in),
        quic=resolve_quic(relay.features.quic),
    )


def wireguard_endpoint_data(section: WireWireguardSection) -> WireguardEndpointData:
    """Protocol-wide WireGuard settings, independent of the relays."""
    return WireguardEndpointData(
        port_ranges=[PortRange.from_pair(pair) for pair in section.port_ranges],
        ipv4_gateway=section.ipv4_gateway,
        ipv6_gateway=section.ipv6_gateway,
        shadowsocks_port_ranges=[
            PortRange.from_pair(pair) for pair in section.shadowsocks_port_ranges
        ],
    )
