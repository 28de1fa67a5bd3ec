"""
Wire format of the relay list endpoint.

Typed mirror of the server's JSON schema. Values are built from a decoded
response body with ``WireRelayList.from_dict`` and consumed exactly once by
the topology builder. Parsing is strict about the fields it knows and
ignores everything else; any problem raises DecodeError and no partial
value is produced.
"""

import base64
import binascii
import ipaddress
import math
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .enums import TransportProtocol
from .exceptions import DecodeError
from .models import OpenVpnPort, ShadowsocksEndpoint

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

WIREGUARD_KEY_LENGTH = 32
MAX_QUIC_ADDRESSES = 2
MAX_WEIGHT = 2**64 - 1


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _fail(path: str, expected: str, value: Any) -> DecodeError:
    return DecodeError(
        f"Invalid value at `{path}`: expected {expected}",
        details={"path": path, "value_type": type(value).__name__},
    )


def _field(data: dict, key: str, path: str) -> Any:
    if key not in data:
        raise DecodeError(f"Missing field `{path}.{key}`", details={"path": f"{path}.{key}"})
    return data[key]


def _object(value: Any, path: str) -> dict:
    if not isinstance(value, dict):
        raise _fail(path, "object", value)
    return value


def _list(value: Any, path: str) -> list:
    if not isinstance(value, list):
        raise _fail(path, "array", value)
    return value


def _str(value: Any, path: str) -> str:
    if not isinstance(value, str):
        raise _fail(path, "string", value)
    return value


def _bool(value: Any, path: str) -> bool:
    if not isinstance(value, bool):
        raise _fail(path, "boolean", value)
    return value


def _uint(value: Any, path: str, maximum: Optional[int] = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise _fail(path, "unsigned integer", value)
    if maximum is not None and value > maximum:
        raise _fail(path, f"integer <= {maximum}", value)
    return value


def _port(value: Any, path: str) -> int:
    return _uint(value, path, maximum=0xFFFF)


def _float(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _fail(path, "number", value)
    try:
        number = float(value)
    except OverflowError as e:
        raise _fail(path, "finite number", value) from e
    if not math.isfinite(number):
        raise _fail(path, "finite number", value)
    return number


def _ipv4(value: Any, path: str) -> ipaddress.IPv4Address:
    try:
        return ipaddress.IPv4Address(_str(value, path))
    except ipaddress.AddressValueError as e:
        raise _fail(path, "IPv4 address", value) from e


def _ipv6(value: Any, path: str) -> ipaddress.IPv6Address:
    try:
        address = ipaddress.IPv6Address(_str(value, path))
    except ipaddress.AddressValueError as e:
        raise _fail(path, "IPv6 address", value) from e
    if address.scope_id is not None:
        raise _fail(path, "IPv6 address without zone", value)
    return address


def _ip(value: Any, path: str) -> IpAddress:
    try:
        address = ipaddress.ip_address(_str(value, path))
    except ValueError as e:
        raise _fail(path, "IP address", value) from e
    if getattr(address, "scope_id", None) is not None:
        raise _fail(path, "IP address without zone", value)
    return address


def _port_pair(value: Any, path: str) -> tuple[int, int]:
    pair = _list(value, path)
    if len(pair) != 2:
        raise _fail(path, "[low, high] pair", value)
    return _port(pair[0], f"{path}[0]"), _port(pair[1], f"{path}[1]")


def _protocol(value: Any, path: str) -> TransportProtocol:
    try:
        return TransportProtocol(_str(value, path))
    except ValueError as e:
        raise _fail(path, "'udp' or 'tcp'", value) from e


def _public_key(value: Any, path: str) -> str:
    text = _str(value, path)
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise _fail(path, "base64 WireGuard public key", value) from e
    if len(raw) != WIREGUARD_KEY_LENGTH:
        raise _fail(path, f"{WIREGUARD_KEY_LENGTH}-byte WireGuard public key", value)
    return text


def _optional(data: dict, key: str) -> Any:
    """Value of an optional key; an explicit null counts as absent."""
    return data.get(key)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

@dataclass
class WireLocation:
    """A point of presence, keyed in the payload by its location code."""

    city: str
    country: str
    latitude: float
    longitude: float

    @classmethod
    def from_dict(cls, value: Any, path: str) -> "WireLocation":
        data = _object(value, path)
        return cls(
            city=_str(_field(data, "city", path), f"{path}.city"),
            country=_str(_field(data, "country", path), f"{path}.country"),
            latitude=_float(_field(data, "latitude", path), f"{path}.latitude"),
            longitude=_float(_field(data, "longitude", path), f"{path}.longitude"),
        )


@dataclass
class WireRelay:
    """Fields shared by relays of every protocol section."""

    hostname: str
    active: bool
    owned: bool
    location: str
    provider: str
    ipv4_addr_in: ipaddress.IPv4Address
    ipv6_addr_in: Optional[ipaddress.IPv6Address]
    weight: int
    include_in_country: bool

    @classmethod
    def from_dict(cls, value: Any, path: str) -> "WireRelay":
        data = _object(value, path)
        ipv6 = _optional(data, "ipv6_addr_in")
        return cls(
            hostname=_str(_field(data, "hostname", path), f"{path}.hostname"),
            active=_bool(_field(data, "active", path), f"{path}.active"),
            owned=_bool(_field(data, "owned", path), f"{path}.owned"),
            location=_str(_field(data, "location", path), f"{path}.location"),
            provider=_str(_field(data, "provider", path), f"{path}.provider"),
            ipv4_addr_in=_ipv4(_field(data, "ipv4_addr_in", path), f"{path}.ipv4_addr_in"),
            ipv6_addr_in=_ipv6(ipv6, f"{path}.ipv6_addr_in") if ipv6 is not None else None,
            weight=_uint(_field(data, "weight", path), f"{path}.weight", maximum=MAX_WEIGHT),
            include_in_country=_bool(
                _field(data, "include_in_country", path), f"{path}.include_in_country"
            ),
        )


@dataclass
class WireQuic:
    """Parameters of the QUIC obfuscator running on a relay."""

    addr_in: list[IpAddress]
    token: str
    domain: str

    @classmethod
    def from_dict(cls, value: Any, path: str) -> "WireQuic":
        data = _object(value, path)
        addresses = _list(_field(data, "addr_in", path), f"{path}.addr_in")
        if len(addresses) > MAX_QUIC_ADDRESSES:
            raise _fail(f"{path}.addr_in", f"at most {MAX_QUIC_ADDRESSES} addresses", addresses)
        return cls(
            addr_in=[_ip(a, f"{path}.addr_in[{i}]") for i, a in enumerate(addresses)],
            token=_str(_field(data, "token", path), f"{path}.token"),
            domain=_str(_field(data, "domain", path), f"{path}.domain"),
        )


@dataclass
class WireFeatures:
    """
    Optional per-relay capabilities.

    DAITA has no parameters; only the presence of the key matters.
    """

    daita: bool = False
    quic: Optional[WireQuic] = None

    @classmethod
    def from_dict(cls, value: Any, path: str) -> "WireFeatures":
        if value is None:
            return cls()
        data = _object(value, path)
        daita = _optional(data, "daita")
        if daita is not None:
            _object(daita, f"{path}.daita")
        quic = _optional(data, "quic")
        return cls(
            daita=daita is not None,
            quic=WireQuic.from_dict(quic, f"{path}.quic") if quic is not None else None,
        )


@dataclass
class WireWireguardRelay:
    """A WireGuard relay: the shared relay fields plus WireGuard data."""

    relay: WireRelay
    public_key: str
    daita: bool = False
    shadowsocks_extra_addr_in: list[IpAddress] = field(default_factory=list)
    features: WireFeatures = field(default_factory=WireFeatures)

    @classmethod
    def from_dict(cls, value: Any, path: str) -> "WireWireguardRelay":
        data = _object(value, path)
        daita = _optional(data, "daita")
        extra = _optional(data, "shadowsocks_extra_addr_in")
        extra = _list(extra, f"{path}.shadowsocks_extra_addr_in") if extra is not None else []
        return cls(
            relay=WireRelay.from_dict(data, path),
            public_key=_public_key(_field(data, "public_key", path), f"{path}.public_key"),
            daita=_bool(daita, f"{path}.daita") if daita is not None else False,
            shadowsocks_extra_addr_in=[
                _ip(a, f"{path}.shadowsocks_extra_addr_in[{i}]") for i, a in enumerate(extra)
            ],
            features=WireFeatures.from_dict(_optional(data, "features"), f"{path}.features"),
        )


@dataclass
class WireOpenVpnSection:
    ports: list[OpenVpnPort]
    relays: list[WireRelay]

    @classmethod
    def from_dict(cls, value: Any, path: str) -> "WireOpenVpnSection":
        data = _object(value, path)
        ports = []
        for i, item in enumerate(_list(_field(data, "ports", path), f"{path}.ports")):
            item_path = f"{path}.ports[{i}]"
            port_data = _object(item, item_path)
            ports.append(OpenVpnPort(
                port=_port(_field(port_data, "port", item_path), f"{item_path}.port"),
                protocol=_protocol(_field(port_data, "protocol", item_path), f"{item_path}.protocol"),
            ))
        relays = _list(_field(data, "relays", path), f"{path}.relays")
        return cls(
            ports=ports,
            relays=[WireRelay.from_dict(r, f"{path}.relays[{i}]") for i, r in enumerate(relays)],
        )


@dataclass
class WireWireguardSection:
    port_ranges: list[tuple[int, int]]
    ipv4_gateway: ipaddress.IPv4Address
    ipv6_gateway: ipaddress.IPv6Address
    relays: list[WireWireguardRelay]
    # Shadowsocks port ranges available on all WireGuard relays
    shadowsocks_port_ranges: list[tuple[int, int]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, value: Any, path: str) -> "WireWireguardSection":
        data = _object(value, path)
        ranges = _list(_field(data, "port_ranges", path), f"{path}.port_ranges")
        ss_ranges = _optional(data, "shadowsocks_port_ranges")
        ss_ranges = _list(ss_ranges, f"{path}.shadowsocks_port_ranges") if ss_ranges is not None else []
        relays = _list(_field(data, "relays", path), f"{path}.relays")
        return cls(
            port_ranges=[_port_pair(r, f"{path}.port_ranges[{i}]") for i, r in enumerate(ranges)],
            ipv4_gateway=_ipv4(_field(data, "ipv4_gateway", path), f"{path}.ipv4_gateway"),
            ipv6_gateway=_ipv6(_field(data, "ipv6_gateway", path), f"{path}.ipv6_gateway"),
            relays=[
                WireWireguardRelay.from_dict(r, f"{path}.relays[{i}]")
                for i, r in enumerate(relays)
            ],
            shadowsocks_port_ranges=[
                _port_pair(r, f"{path}.shadowsocks_port_ranges[{i}]")
                for i, r in enumerate(ss_ranges)
            ],
        )


@dataclass
class WireBridgeSection:
    shadowsocks: list[ShadowsocksEndpoint]
    relays: list[WireRelay]

    @classmethod
    def from_dict(cls, value: Any, path: str) -> "WireBridgeSection":
        data = _object(value, path)
        endpoints = []
        for i, item in enumerate(_list(_field(data, "shadowsocks", path), f"{path}.shadowsocks")):
            item_path = f"{path}.shadowsocks[{i}]"
            ss = _object(item, item_path)
            endpoints.append(ShadowsocksEndpoint(
                port=_port(_field(ss, "port", item_path), f"{item_path}.port"),
                cipher=_str(_field(ss, "cipher", item_path), f"{item_path}.cipher"),
                password=_str(_field(ss, "password", item_path), f"{item_path}.password"),
                protocol=_protocol(_field(ss, "protocol", item_path), f"{item_path}.protocol"),
            ))
        relays = _list(_field(data, "relays", path), f"{path}.relays")
        return cls(
            shadowsocks=endpoints,
            relays=[WireRelay.from_dict(r, f"{path}.relays[{i}]") for i, r in enumerate(relays)],
        )


@dataclass
class WireRelayList:
    """Top-level relay list payload."""

    locations: dict[str, WireLocation]
    openvpn: WireOpenVpnSection
    wireguard: WireWireguardSection
    bridge: WireBridgeSection

    @classmethod
    def from_dict(cls, value: Any) -> "WireRelayList":
        """
        Parse a decoded JSON document.

        Raises:
            DecodeError: If the document does not match the relay list schema
        """
        data = _object(value, "$")
        locations = _object(_field(data, "locations", "$"), "$.locations")
        return cls(
            locations={
                _str(code, "$.locations"): WireLocation.from_dict(loc, f"$.locations[{code!r}]")
                for code, loc in locations.items()
            },
            openvpn=WireOpenVpnSection.from_dict(_field(data, "openvpn", "$"), "$.openvpn"),
            wireguard=WireWireguardSection.from_dict(_field(data, "wireguard", "$"), "$.wireguard"),
            bridge=WireBridgeSection.from_dict(_field(data, "bridge", "$"), "$.bridge"),
        )
