"""
Property-based tests for the relay list client.

Requests are served by httpx.MockTransport, so no network access is needed.
"""

import asyncio
import json
from io import StringIO
from typing import Callable, Optional

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from relay_list_client.audit_logger import AuditLogger
from relay_list_client.client import RelayListClient, normalize_etag
from relay_list_client.config import RELAY_LIST_TIMEOUT, ClientConfig
from relay_list_client.enums import FetchErrorCode, LogLevel
from relay_list_client.exceptions import DecodeError, TransportError, UnexpectedStatusError

from payloads import location, payload, relay

API_URL = "https://api.example.test"

etag_text = st.text(
    alphabet=st.characters(min_codepoint=0x21, max_codepoint=0x7E),
    min_size=1,
    max_size=40,
)


class RecordingHandler:
    """Mock transport handler that records requests and returns a fixed response."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self._respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)


def _ok(body: Optional[dict] = None, etag: Optional[bytes] = None):
    content = json.dumps(body if body is not None else payload()).encode()
    headers = [(b"content-type", b"application/json")]
    if etag is not None:
        headers.append((b"etag", etag))
    return lambda request: httpx.Response(200, headers=headers, content=content)


def _status(code: int):
    return lambda request: httpx.Response(code)


def _fetch(handler, prior_etag: Optional[str] = None, logger=None, **kwargs):
    async def run():
        async with RelayListClient(
            config=ClientConfig(api_base_url=API_URL),
            logger=logger,
            transport=httpx.MockTransport(handler),
            **kwargs,
        ) as client:
            return await client.fetch(prior_etag)

    return asyncio.run(run())


class TestEtagNormalizationProperty:
    """A strong validator is stored with the weak prefix; anything else as is."""

    @given(tag=etag_text)
    @settings(max_examples=100)
    def test_prefix_iff_leading_quote(self, tag: str) -> None:
        normalized = normalize_etag(tag)

        if tag.startswith('"'):
            assert normalized == "W/" + tag
        else:
            assert normalized == tag

    def test_none_stays_none(self) -> None:
        assert normalize_etag(None) is None

    def test_weak_tag_unchanged(self) -> None:
        assert normalize_etag('W/"abc"') == 'W/"abc"'


class TestRequestConstruction:

    def test_get_without_precondition(self) -> None:
        handler = RecordingHandler(_ok())

        _fetch(handler)

        request = handler.requests[0]
        assert request.method == "GET"
        assert str(request.url) == f"{API_URL}/app/v1/relays"
        assert "if-none-match" not in request.headers

    @given(tag=etag_text)
    @settings(max_examples=30)
    def test_precondition_sent(self, tag: str) -> None:
        handler = RecordingHandler(_status(304))

        _fetch(handler, prior_etag=tag)

        assert handler.requests[0].headers["if-none-match"] == tag

    def test_fixed_timeout_on_request(self) -> None:
        handler = RecordingHandler(_ok())

        _fetch(handler)

        timeout = handler.requests[0].extensions["timeout"]
        assert timeout["read"] == RELAY_LIST_TIMEOUT
        assert timeout["connect"] == RELAY_LIST_TIMEOUT


class TestStatusHandlingProperty:

    @given(tag=etag_text)
    @settings(max_examples=30)
    def test_not_modified_with_etag_returns_none(self, tag: str) -> None:
        assert _fetch(RecordingHandler(_status(304)), prior_etag=tag) is None

    def test_not_modified_without_etag_returns_none_and_warns(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        result = _fetch(RecordingHandler(_status(304)), logger=logger)

        assert result is None
        assert any(e.level == LogLevel.WARN for e in logger.entries)

    @given(code=st.integers(min_value=100, max_value=599).filter(lambda c: c not in (200, 304)))
    @settings(max_examples=50)
    def test_other_statuses_raise(self, code: int) -> None:
        with pytest.raises(UnexpectedStatusError) as exc_info:
            _fetch(RecordingHandler(_status(code)))

        assert exc_info.value.status_code == code
        assert exc_info.value.code == FetchErrorCode.UNEXPECTED_STATUS.value


class TestFreshListProperty:

    def test_ok_without_etag_header(self) -> None:
        result = _fetch(RecordingHandler(_ok()))

        assert result is not None
        assert result.etag is None

    @given(tag=etag_text)
    @settings(max_examples=50)
    def test_ok_stores_normalized_etag(self, tag: str) -> None:
        result = _fetch(RecordingHandler(_ok(etag=tag.encode("ascii"))))

        assert result is not None
        assert result.etag == normalize_etag(tag)

    def test_strong_etag_becomes_weak(self) -> None:
        result = _fetch(RecordingHandler(_ok(etag=b'"abc123"')))

        assert result.etag == 'W/"abc123"'

    def test_invalid_etag_bytes_are_ignored(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        result = _fetch(RecordingHandler(_ok(etag=b'"caf\xe9"')), logger=logger)

        assert result is not None
        assert result.etag is None
        assert any(
            e.level == LogLevel.ERROR and e.message == "Ignoring invalid tag from server"
            for e in logger.entries
        )

    def test_body_is_transformed(self) -> None:
        body = payload(
            locations={"se-sto": location()},
            openvpn_relays=[relay("SE1", "se-sto")],
        )

        result = _fetch(RecordingHandler(_ok(body)))

        assert [c.code for c in result.countries] == ["se"]
        assert [r.hostname for r in result.relays()] == ["se1"]

    def test_offloaded_transform_gives_same_result(self) -> None:
        body = payload(openvpn_relays=[relay("SE1", "se-sto")])

        inline = _fetch(RecordingHandler(_ok(body, etag=b'"x"')))
        offloaded = _fetch(RecordingHandler(_ok(body, etag=b'"x"')), offload_transform=True)

        assert inline == offloaded


class TestFailures:

    def test_malformed_json_raises_decode_error(self) -> None:
        handler = RecordingHandler(lambda request: httpx.Response(200, content=b"{not json"))

        with pytest.raises(DecodeError):
            _fetch(handler)

    def test_schema_mismatch_raises_decode_error(self) -> None:
        handler = RecordingHandler(_ok({"locations": {}}))

        with pytest.raises(DecodeError):
            _fetch(handler)

    @pytest.mark.parametrize(
        "body",
        [
            b'{"weight": ' + b"1" * 5000 + b"}",
            b"[" * 100000,
        ],
    )
    def test_unparsable_body_raises_decode_error(self, body: bytes) -> None:
        handler = RecordingHandler(lambda request: httpx.Response(200, content=body))

        with pytest.raises(DecodeError):
            _fetch(handler)

    @pytest.mark.parametrize("latitude", ["NaN", "-Infinity"])
    def test_non_json_constant_raises_decode_error(self, latitude: str) -> None:
        data = payload(locations={"se-sto": location(latitude=12.5)})
        content = json.dumps(data).replace('"latitude": 12.5', f'"latitude": {latitude}')
        handler = RecordingHandler(
            lambda request: httpx.Response(200, content=content.encode())
        )

        with pytest.raises(DecodeError) as exc_info:
            _fetch(handler)

        assert latitude in exc_info.value.message

    def test_huge_latitude_raises_decode_error(self) -> None:
        latitude = "9" * 400
        data = payload(locations={"se-sto": location(latitude=12.5)})
        content = json.dumps(data).replace('"latitude": 12.5', f'"latitude": {latitude}')
        handler = RecordingHandler(
            lambda request: httpx.Response(200, content=content.encode())
        )

        with pytest.raises(DecodeError) as exc_info:
            _fetch(handler)

        assert exc_info.value.details["path"].endswith(".latitude")

    def test_timeout_raises_transport_error(self) -> None:
        def respond(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportError) as exc_info:
            _fetch(RecordingHandler(respond))

        assert exc_info.value.code == FetchErrorCode.TIMEOUT.value
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)

    def test_connect_error_raises_transport_error(self) -> None:
        def respond(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError) as exc_info:
            _fetch(RecordingHandler(respond))

        assert exc_info.value.code == FetchErrorCode.NETWORK_ERROR.value

    def test_tls_error_is_classified(self) -> None:
        def respond(request):
            raise httpx.ConnectError("SSL: CERTIFICATE_VERIFY_FAILED", request=request)

        with pytest.raises(TransportError) as exc_info:
            _fetch(RecordingHandler(respond))

        assert exc_info.value.code == FetchErrorCode.TLS_ERROR.value
