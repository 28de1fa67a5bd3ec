"""
Property-based tests for WireGuard capability resolution.

Covers the legacy ``daita`` flag versus the ``features`` object, QUIC
pass-through, and deduplication of extra Shadowsocks addresses.
"""

import ipaddress
from io import StringIO
from typing import Optional

from hypothesis import given, settings
from hypothesis import strategies as st

from relay_list_client.audit_logger import AuditLogger
from relay_list_client.enums import LogLevel
from relay_list_client.features import (
    resolve_daita,
    resolve_wireguard_endpoint,
    wireguard_endpoint_data,
)
from relay_list_client.models import PortRange, WireguardRelayEndpoint
from relay_list_client.topology import build_relay_list
from relay_list_client.wire_models import WireRelayList, WireWireguardRelay

from payloads import PUBLIC_KEY, payload, wireguard_relay


def _wire_relay(**kwargs) -> WireWireguardRelay:
    return WireWireguardRelay.from_dict(wireguard_relay("se-wg-001", "se-sto", **kwargs), "$")


def _features(daita: bool, quic: Optional[dict] = None) -> dict:
    features = {}
    if daita:
        features["daita"] = {}
    if quic is not None:
        features["quic"] = quic
    return features


class TestDaitaResolutionProperty:
    """
    Resolved DAITA is true when the ``features.daita`` marker is present,
    and falls back to the legacy flag otherwise.
    """

    @given(legacy=st.one_of(st.none(), st.booleans()), marker=st.booleans())
    @settings(max_examples=50)
    def test_marker_wins_over_legacy_flag(self, legacy: Optional[bool], marker: bool) -> None:
        relay = _wire_relay(daita=legacy, features=_features(marker))

        expected = True if marker else bool(legacy)
        assert resolve_daita(relay) is expected
        assert resolve_wireguard_endpoint(relay).daita is expected

    def test_legacy_true_without_features(self) -> None:
        relay = _wire_relay(daita=True)

        assert resolve_wireguard_endpoint(relay).daita is True

    def test_marker_with_legacy_false_is_true_and_warns(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())
        relay = _wire_relay(daita=False, features={"daita": {}})

        endpoint = resolve_wireguard_endpoint(relay, logger)

        assert endpoint.daita is True
        assert len(logger.entries) == 1
        assert logger.entries[0].level == LogLevel.WARN

    def test_agreeing_flags_do_not_warn(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())
        relay = _wire_relay(daita=True, features={"daita": {}})

        resolve_wireguard_endpoint(relay, logger)

        assert logger.entries == []

    def test_null_marker_counts_as_absent(self) -> None:
        relay = _wire_relay(daita=False, features={"daita": None})

        assert resolve_wireguard_endpoint(relay).daita is False


class TestQuicPassThrough:
    """QUIC parameters are copied verbatim when present."""

    @given(
        addresses=st.lists(
            st.one_of(st.ip_addresses(v=4), st.ip_addresses(v=6)),
            min_size=0,
            max_size=2,
        ),
        token=st.text(min_size=0, max_size=30),
        domain=st.text(alphabet="abcdefghijklmnopqrstuvwxyz.", min_size=1, max_size=30),
    )
    @settings(max_examples=50)
    def test_quic_copied(self, addresses, token: str, domain: str) -> None:
        quic = {"addr_in": [str(a) for a in addresses], "token": token, "domain": domain}
        relay = _wire_relay(features=_features(False, quic))

        endpoint = resolve_wireguard_endpoint(relay)

        assert endpoint.quic is not None
        assert list(endpoint.quic.addr_in) == [ipaddress.ip_address(str(a)) for a in addresses]
        assert endpoint.quic.token == token
        assert endpoint.quic.domain == domain

    def test_no_quic_without_feature(self) -> None:
        assert resolve_wireguard_endpoint(_wire_relay()).quic is None


class TestShadowsocksExtraAddresses:

    @given(addresses=st.lists(st.ip_addresses(v=4), min_size=0, max_size=6))
    @settings(max_examples=50)
    def test_addresses_deduplicated(self, addresses) -> None:
        raw = [str(a) for a in addresses] * 2
        relay = _wire_relay(shadowsocks_extra_addr_in=raw)

        endpoint = resolve_wireguard_endpoint(relay)

        assert endpoint.shadowsocks_extra_addr_in == frozenset(addresses)

    def test_default_is_empty(self) -> None:
        endpoint = resolve_wireguard_endpoint(_wire_relay())

        assert endpoint == WireguardRelayEndpoint(public_key=PUBLIC_KEY)


class TestWireguardMetadata:
    """Protocol-wide WireGuard data is built once from the section."""

    def test_port_ranges_are_inclusive(self) -> None:
        wire = WireRelayList.from_dict(payload())

        data = wireguard_endpoint_data(wire.wireguard)

        assert data.port_ranges == [PortRange(53, 53), PortRange(4000, 33433)]
        assert 53 in data.port_ranges[0]
        assert 33433 in data.port_ranges[1]
        assert 33434 not in data.port_ranges[1]
        assert data.shadowsocks_port_ranges == [PortRange(100, 200)]

    def test_shadowsocks_port_ranges_default_empty(self) -> None:
        data = payload()
        del data["wireguard"]["shadowsocks_port_ranges"]

        wire = WireRelayList.from_dict(data)

        assert wireguard_endpoint_data(wire.wireguard).shadowsocks_port_ranges == []

    @given(relay_count=st.integers(min_value=0, max_value=10))
    @settings(max_examples=20)
    def test_metadata_independent_of_relays(self, relay_count: int) -> None:
        relays = [wireguard_relay(f"wg{i}", "se-sto") for i in range(relay_count)]
        with_relays = build_relay_list(WireRelayList.from_dict(payload(wireguard_relays=relays)))
        without = build_relay_list(WireRelayList.from_dict(payload()))

        assert with_relays.wireguard == without.wireguard

    def test_only_placed_relays_are_resolved(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())
        data = payload(wireguard_relays=[
            wireguard_relay("wg1", "xx-nowhere", daita=False, features={"daita": {}}),
        ])

        build_relay_list(WireRelayList.from_dict(data), logger=logger)

        messages = [e.message for e in logger.entries]
        assert "DAITA feature marker disagrees with legacy daita flag" not in messages
