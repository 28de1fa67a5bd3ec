"""
Relay list client.

Fetches the relay list from ``<api>/app/v1/relays`` with conditional-request
support: the ETag of the last fetched list is sent back as If-None-Match,
and a 304 answer means the caller's copy is still current.
"""

import asyncio
import json
from typing import Optional

import httpx

from .audit_logger import AuditLogger
from .config import RELAY_LIST_TIMEOUT, ClientConfig
from .enums import FetchErrorCode, LogLevel
from .exceptions import DecodeError, TransportError, UnexpectedStatusError
from .models import RelayList
from .topology import build_relay_list
from .wire_models import WireRelayList

RELAY_LIST_PATH = "app/v1/relays"

# Marker that turns a strong validator into a weak one.
WEAK_VALIDATOR_PREFIX = "W/"

COMPONENT = "relay_list_client"


def normalize_etag(etag: Optional[str]) -> Optional[str]:
    """
    Store strong validators as weak ones.

    A tag starting with a double quote gets the ``W/`` prefix; anything
    else is kept as is.
    """
    if etag is None:
        return None
    if etag.startswith('"'):
        return WEAK_VALIDATOR_PREFIX + etag
    return etag


def _header_text(raw: bytes) -> Optional[str]:
    """Header bytes as text, or None if they are not visible ASCII."""
    if all(b == 0x09 or 0x20 <= b < 0x7F for b in raw):
        return raw.decode("ascii")
    return None


def _reject_constant(name: str) -> None:
    # NaN and Infinity are not JSON.
    raise ValueError(f"Invalid JSON constant: {name}")


class RelayListClient:
    """
    Async client for the relay list endpoint.

    Only 200 and 304 are accepted. Transport problems are raised as
    TransportError and are not retried here.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        logger: Optional[AuditLogger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        offload_transform: bool = False,
    ) -> None:
        """
        Initialize the relay list client.

        Args:
            config: Client configuration (defaults to ClientConfig())
            logger: Optional logger
            transport: Optional httpx transport to send requests through
            offload_transform: Build the domain model in a worker thread
        """
        self._config = config or ClientConfig()
        self._logger = logger
        self._transport = transport
        self._offload_transform = offload_transform
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "RelayListClient":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    @property
    def url(self) -> str:
        return f"{self._config.api_base_url.rstrip('/')}/{RELAY_LIST_PATH}"

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self._config.verify_tls,
                timeout=httpx.Timeout(self._config.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, COMPONENT, message, data)

    def build_request_headers(self, prior_etag: Optional[str]) -> dict[str, str]:
        """Headers for a relay list request, with a precondition if we have a tag."""
        headers = {
            "Accept": "application/json",
            "User-Agent": self._config.user_agent,
        }
        if prior_etag is not None:
            headers["If-None-Match"] = prior_etag
        return headers

    def extract_etag(self, response: httpx.Response) -> Optional[str]:
        """
        Read the ETag header of a response.

        A header that is not valid text is logged and ignored.
        """
        for name, value in response.headers.raw:
            if name.lower() != b"etag":
                continue
            tag = _header_text(value)
            if tag is None:
                if self._logger:
                    self._logger.log_error(
                        COMPONENT,
                        "Ignoring invalid tag from server",
                        request_url=str(response.request.url),
                        additional_data={"etag_bytes": value.hex()},
                    )
                return None
            return tag
        return None

    async def _send(self, prior_etag: Optional[str]) -> httpx.Response:
        client = self._ensure_client()
        try:
            response = await client.get(
                self.url,
                headers=self.build_request_headers(prior_etag),
                timeout=httpx.Timeout(RELAY_LIST_TIMEOUT),
            )
        except httpx.TimeoutException as e:
            raise TransportError(
                code=FetchErrorCode.TIMEOUT.value,
                message=f"Relay list request timed out after {RELAY_LIST_TIMEOUT}s",
                details={"url": self.url},
            ) from e
        except httpx.ConnectError as e:
            error_msg = str(e)
            code = FetchErrorCode.NETWORK_ERROR
            if "ssl" in error_msg.lower() or "certificate" in error_msg.lower():
                code = FetchErrorCode.TLS_ERROR
            raise TransportError(
                code=code.value,
                message=f"Connection error: {error_msg}",
                details={"url": self.url},
            ) from e
        except httpx.TransportError as e:
            raise TransportError(
                code=FetchErrorCode.NETWORK_ERROR.value,
                message=f"Transport error: {e}",
                details={"url": self.url},
            ) from e

        if response.status_code not in (httpx.codes.OK, httpx.codes.NOT_MODIFIED):
            raise UnexpectedStatusError(response.status_code, details={"url": self.url})

        return response

    async def fetch(self, prior_etag: Optional[str] = None) -> Optional[RelayList]:
        """
        Fetch the relay list.

        Args:
            prior_etag: ETag of the relay list the caller already has

        Returns:
            The new RelayList, or None if the server reports it unchanged

        Raises:
            TransportError: If the request could not complete
            UnexpectedStatusError: If the status is neither 200 nor 304
            DecodeError: If the body is not a valid relay list
        """
        try:
            response = await self._send(prior_etag)
        except (TransportError, UnexpectedStatusError) as e:
            self._log(LogLevel.ERROR, "Relay list fetch failed", e.to_dict())
            raise

        if response.status_code == httpx.codes.NOT_MODIFIED:
            if prior_etag is None:
                # No precondition was sent, so the server should not say this.
                self._log(LogLevel.WARN, "Got 304 without sending an ETag")
            else:
                self._log(LogLevel.DEBUG, "Relay list not modified", {"etag": prior_etag})
            return None

        etag = normalize_etag(self.extract_etag(response))

        try:
            data = json.loads(response.content, parse_constant=_reject_constant)
        except (ValueError, RecursionError) as e:
            self._log(LogLevel.ERROR, "Relay list body is not valid JSON", {"error": str(e)})
            raise DecodeError(f"Failed to parse relay list: {e}") from e

        try:
            wire = WireRelayList.from_dict(data)
        except DecodeError as e:
            self._log(LogLevel.ERROR, "Relay list does not match schema", e.to_dict())
            raise

        if self._offload_transform:
            relay_list = await asyncio.to_thread(build_relay_list, wire, etag, self._logger)
        else:
            relay_list = build_relay_list(wire, etag, self._logger)

        self._log(
            LogLevel.INFO,
            "Fetched relay list",
            {"etag": etag, "countries": len(relay_list.countries)},
        )
        return relay_list

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
