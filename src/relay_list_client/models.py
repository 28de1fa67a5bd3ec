"""
Data models for the relay list client.

This module defines the protocol-agnostic domain model produced from a
fetched relay list: countries containing cities containing relays, plus
the per-protocol metadata shared by all relays of a protocol.
"""

import ipaddress
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from .enums import EndpointType, TransportProtocol

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


# ---------------------------------------------------------------------------
# Protocol metadata
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PortRange:
    """Inclusive range of ports."""

    start: int
    end: int

    @classmethod
    def from_pair(cls, pair: tuple[int, int]) -> "PortRange":
        return cls(start=pair[0], end=pair[1])

    def __contains__(self, port: int) -> bool:
        return self.start <= port <= self.end

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class OpenVpnPort:
    """A port/protocol combination OpenVPN relays listen on."""

    port: int
    protocol: TransportProtocol

    def to_dict(self) -> dict:
        return {"port": self.port, "protocol": self.protocol.value}


@dataclass(frozen=True)
class ShadowsocksEndpoint:
    """Shadowsocks configuration offered by bridge relays."""

    port: int
    cipher: str
    password: str
    protocol: TransportProtocol

    def to_dict(self) -> dict:
        return {
            "port": self.port,
            "cipher": self.cipher,
            "password": self.password,
            "protocol": self.protocol.value,
        }


@dataclass
class OpenVpnEndpointData:
    ports: list[OpenVpnPort] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"ports": [p.to_dict() for p in self.ports]}


@dataclass
class WireguardEndpointData:
    """Settings shared by every WireGuard relay."""

    port_ranges: list[PortRange]
    ipv4_gateway: ipaddress.IPv4Address
    ipv6_gateway: ipaddress.IPv6Address
    shadowsocks_port_ranges: list[PortRange] = field(default_factory=list)
    # Not advertised by the API; kept for consumers that expect the field.
    udp2tcp_ports: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "port_ranges": [r.to_dict() for r in self.port_ranges],
            "ipv4_gateway": str(self.ipv4_gateway),
            "ipv6_gateway": str(self.ipv6_gateway),
            "shadowsocks_port_ranges": [r.to_dict() for r in self.shadowsocks_port_ranges],
            "udp2tcp_ports": list(self.udp2tcp_ports),
        }


@dataclass
class BridgeEndpointData:
    shadowsocks: list[ShadowsocksEndpoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"shadowsocks": [s.to_dict() for s in self.shadowsocks]}


# ---------------------------------------------------------------------------
# Per-relay endpoint data
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Quic:
    """Parameters for connecting through a relay's QUIC obfuscator."""

    addr_in: tuple[IpAddress, ...]
    token: str
    domain: str

    def to_dict(self) -> dict:
        return {
            "addr_in": [str(a) for a in self.addr_in],
            "token": self.token,
            "domain": self.domain,
        }


@dataclass(frozen=True)
class OpenVpnRelayEndpoint:
    endpoint_type = EndpointType.OPENVPN

    def to_dict(self) -> dict:
        return {"type": self.endpoint_type.value}


@dataclass(frozen=True)
class BridgeRelayEndpoint:
    endpoint_type = EndpointType.BRIDGE

    def to_dict(self) -> dict:
        return {"type": self.endpoint_type.value}


@dataclass(frozen=True)
class WireguardRelayEndpoint:
    """WireGuard data specific to a single relay."""

    public_key: str
    daita: bool = False
    shadowsocks_extra_addr_in: frozenset = frozenset()
    quic: Optional[Quic] = None

    endpoint_type = EndpointType.WIREGUARD

    def to_dict(self) -> dict:
        return {
            "type": self.endpoint_type.value,
            "public_key": self.public_key,
            "daita": self.daita,
            "shadowsocks_extra_addr_in": sorted(
                str(a) for a in self.shadowsocks_extra_addr_in
            ),
            "quic": self.quic.to_dict() if self.quic else None,
        }


RelayEndpointData = Union[OpenVpnRelayEndpoint, WireguardRelayEndpoint, BridgeRelayEndpoint]


# ---------------------------------------------------------------------------
# Topology
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Location:
    """Where a relay is, copied from the country and city it belongs to."""

    country: str
    country_code: str
    city: str
    city_code: str
    latitude: float
    longitude: float

    def to_dict(self) -> dict:
        return {
            "country": self.country,
            "country_code": self.country_code,
            "city": self.city,
            "city_code": self.city_code,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


@dataclass
class Relay:
    """A single relay server."""

    hostname: str
    ipv4_addr_in: ipaddress.IPv4Address
    ipv6_addr_in: Optional[ipaddress.IPv6Address]
    include_in_country: bool
    active: bool
    owned: bool
    provider: str
    weight: int
    endpoint_data: RelayEndpointData
    location: Location
    # Set later by user-supplied IP overrides, never by the fetch itself.
    overridden_ipv4: bool = False
    overridden_ipv6: bool = False

    @property
    def endpoint_type(self) -> EndpointType:
        return self.endpoint_data.endpoint_type

    def to_dict(self) -> dict:
        return {
            "hostname": self.hostname,
            "ipv4_addr_in": str(self.ipv4_addr_in),
            "ipv6_addr_in": str(self.ipv6_addr_in) if self.ipv6_addr_in else None,
            "overridden_ipv4": self.overridden_ipv4,
            "overridden_ipv6": self.overridden_ipv6,
            "include_in_country": self.include_in_country,
            "active": self.active,
            "owned": self.owned,
            "provider": self.provider,
            "weight": self.weight,
            "endpoint_data": self.endpoint_data.to_dict(),
            "location": self.location.to_dict(),
        }


@dataclass
class City:
    code: str
    name: str
    latitude: float
    longitude: float
    relays: list[Relay] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "relays": [r.to_dict() for r in self.relays],
        }


@dataclass
class Country:
    code: str
    name: str
    cities: list[City] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "cities": [c.to_dict() for c in self.cities],
        }


@dataclass
class RelayList:
    """
    Complete relay list as served to relay selection and UI layers.

    ``etag`` is an opaque validator to send back as If-None-Match on the
    next fetch.
    """

    etag: Optional[str]
    openvpn: OpenVpnEndpointData
    wireguard: WireguardEndpointData
    bridge: BridgeEndpointData
    countries: list[Country] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "RelayList":
        """A relay list with no relays and unspecified gateways."""
        return cls(
            etag=None,
            openvpn=OpenVpnEndpointData(),
            wireguard=WireguardEndpointData(
                port_ranges=[],
                ipv4_gateway=ipaddress.IPv4Address("0.0.0.0"),
                ipv6_gateway=ipaddress.IPv6Address("::"),
            ),
            bridge=BridgeEndpointData(),
        )

    def relays(self) -> Iterator[Relay]:
        """Iterate over all relays in country, city, relay order."""
        for country in self.countries:
            for city in country.cities:
                yield from city.relays

    def find_country(self, code: str) -> Optional[Country]:
        code = code.lower()
        for country in self.countries:
            if country.code == code:
                return country
        return None

    def to_dict(self) -> dict:
        return {
            "etag": self.etag,
            "openvpn": self.openvpn.to_dict(),
            "wireguard": self.wireguard.to_dict(),
            "bridge": self.bridge.to_dict(),
            "countries": [c.to_dict() for c in self.countries],
        }
