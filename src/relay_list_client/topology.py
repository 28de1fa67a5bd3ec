"""
Topology builder.

Turns the flat wire format (a map of locations plus one relay array per
protocol) into countries, cities and relays. The build runs in two phases:
the locations map is indexed first, then relays are attached by direct
lookup. Rows that cannot be placed are logged and dropped; they never fail
the build.

The builder only touches its own local index, so it is safe to run
concurrently or in a worker thread.
"""

from dataclasses import replace
from typing import Callable, Optional

from .audit_logger import AuditLogger
from .enums import EndpointType, LogLevel
from .features import resolve_wireguard_endpoint, wireguard_endpoint_data
from .location_code import resolve_location_code
from .models import (
    BridgeEndpointData,
    BridgeRelayEndpoint,
    City,
    Country,
    Location,
    OpenVpnEndpointData,
    OpenVpnRelayEndpoint,
    Relay,
    RelayEndpointData,
    RelayList,
)
from .wire_models import WireLocation, WireRelay, WireRelayList

COMPONENT = "topology"


class TopologyBuilder:
    """
    Country/city index that relays are attached to.

    Countries are keyed by lowercase code; the first location seen for a
    country names it. City codes are not deduplicated: every location adds
    a city, but lookups resolve to the first city registered under a code.
    """

    def __init__(self, logger: Optional[AuditLogger] = None) -> None:
        self._logger = logger
        self._countries: dict[str, Country] = {}
        self._cities: dict[str, dict[str, City]] = {}
        self.dropped_relays = 0

    def _log(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(LogLevel.WARN, COMPONENT, message, data)

    def add_locations(self, locations: dict[str, WireLocation]) -> None:
        """Build the country/city skeleton, walking codes in sorted order."""
        for code, location in sorted(locations.items()):
            parts = resolve_location_code(code)
            if parts is None:
                self._log("Bad location code", {"location": code})
                continue

            country_code, city_code = parts
            country = self._countries.get(country_code)
            if country is None:
                country = Country(code=country_code, name=location.country)
                self._countries[country_code] = country
                self._cities[country_code] = {}

            city = City(
                code=city_code,
                name=location.city,
                latitude=location.latitude,
                longitude=location.longitude,
            )
            country.cities.append(city)
            self._cities[country_code].setdefault(city_code, city)

    def locate(self, location_code: str) -> Optional[tuple[Country, City]]:
        """Find the country and city a (lowercase) location code points at."""
        parts = resolve_location_code(location_code)
        if parts is None:
            return None
        country_code, city_code = parts
        country = self._countries.get(country_code)
        if country is None:
            return None
        city = self._cities[country_code].get(city_code)
        if city is None:
            return None
        return country, city

    def attach(
        self,
        relay: WireRelay,
        endpoint_type: EndpointType,
        endpoint_data: Callable[[WireRelay], RelayEndpointData],
    ) -> Optional[Relay]:
        """
        Place a relay in its city.

        ``endpoint_data`` is only called for relays that could be placed.

        Returns:
            The domain relay, or None if its location could not be resolved
        """
        relay = replace(
            relay,
            hostname=relay.hostname.lower(),
            location=relay.location.lower(),
        )

        found = self.locate(relay.location)
        if found is None:
            self.dropped_relays += 1
            self._log(
                "Dropping relay with unknown location",
                {
                    "hostname": relay.hostname,
                    "location": relay.location,
                    "endpoint_type": endpoint_type.value,
                },
            )
            return None

        country, city = found
        domain_relay = Relay(
            hostname=relay.hostname,
            ipv4_addr_in=relay.ipv4_addr_in,
            ipv6_addr_in=relay.ipv6_addr_in,
            include_in_country=relay.include_in_country,
            active=relay.active,
            owned=relay.owned,
            provider=relay.provider,
            weight=relay.weight,
            endpoint_data=endpoint_data(relay),
            location=Location(
                country=country.name,
                country_code=country.code,
                city=city.name,
                city_code=city.code,
                latitude=city.latitude,
                longitude=city.longitude,
            ),
        )
        city.relays.append(domain_relay)
        return domain_relay

    def countries(self) -> list[Country]:
        """All countries, ordered by code, empty ones included."""
        return [self._countries[code] for code in sorted(self._countries)]


def build_relay_list(
    wire: WireRelayList,
    etag: Optional[str] = None,
    logger: Optional[AuditLogger] = None,
) -> RelayList:
    """
    Convert a parsed relay list payload into the domain model.

    Relays are attached OpenVPN first, then WireGuard, then bridges, each in
    input order, so that is the order they appear in within a city.

    Args:
        wire: Parsed payload
        etag: Already normalized validator to store on the result
        logger: Optional logger for skipped rows

    Returns:
        RelayList holding every relay that could be placed
    """
    builder = TopologyBuilder(logger)
    builder.add_locations(wire.locations)

    for relay in wire.openvpn.relays:
        builder.attach(relay, EndpointType.OPENVPN, lambda _: OpenVpnRelayEndpoint())

    for wg_relay in wire.wireguard.relays:
        builder.attach(
            wg_relay.relay,
            EndpointType.WIREGUARD,
            lambda placed, wg=wg_relay: resolve_wireguard_endpoint(
                replace(wg, relay=placed), logger
            ),
        )

    for relay in wire.bridge.relays:
        builder.attach(relay, EndpointType.BRIDGE, lambda _: BridgeRelayEndpoint())

    relay_list = RelayList(
        etag=etag,
        openvpn=OpenVpnEndpointData(ports=list(wire.openvpn.ports)),
        wireguard=wireguard_endpoint_data(wire.wireguard),
        bridge=BridgeEndpointData(shadowsocks=list(wire.bridge.shadowsocks)),
        countries=builder.countries(),
    )

    if logger:
        logger.log(
            LogLevel.DEBUG,
            COMPONENT,
            "Built relay list",
            {
                "countries": len(relay_list.countries),
                "relays": sum(1 for _ in relay_list.relays()),
                "dropped_relays": builder.dropped_relays,
            },
        )

    return relay_list
