"""
API client for the OilFox cloud.

This module is responsible *only* for:
- Talking to the remote HTTP endpoints (login + device summary)
- Parsing the JSON responses
- Converting low-level HTTP/JSON issues into integration-specific exceptions

It deliberately knows nothing about Home Assistant. The poller uses this
client via OilfoxClient.fetch() and reacts to AuthError / TransportError /
ParseError accordingly.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict

import aiohttp

from .const import API_V2, API_V3, DEFAULT_HOST, DEFAULT_TIMEOUT, USER_AGENT

_LOGGER = logging.getLogger(__name__)


# --------------------------------------------------------------------------------------
# API versions
# --------------------------------------------------------------------------------------
@dataclass(frozen=True)
class ApiVersion:
    """Endpoints and field names that differ between API generations."""

    name: str
    login_path: str
    summary_path: str
    token_field: str
    # "token" -> X-Auth-Token header, "bearer" -> Authorization: Bearer
    auth_scheme: str
    # Key of the device list inside the summary document
    collection_key: str

    def auth_headers(self, token: str) -> Dict[str, str]:
        """Return the header(s) carrying the session token."""
        if self.auth_scheme == "bearer":
            return {"Authorization": f"Bearer {token}"}
        return {"X-Auth-Token": token}


API_VERSIONS: Dict[str, ApiVersion] = {
    API_V2: ApiVersion(
        name=API_V2,
        login_path="/v2/backoffice/session",
        summary_path="/v2/user/summary",
        token_field="token",
        auth_scheme="token",
        collection_key="devices",
    ),
    API_V3: ApiVersion(
        name=API_V3,
        login_path="/customer-api/v1/login",
        summary_path="/customer-api/v1/device",
        token_field="access_token",
        auth_scheme="bearer",
        collection_key="items",
    ),
}


# --------------------------------------------------------------------------------------
# Custom exceptions
# --------------------------------------------------------------------------------------
class OilfoxError(Exception):
    """Base class for everything that can go wrong in a poll cycle."""


class AuthError(OilfoxError):
    """Credentials were rejected or the login yielded no usable token."""


class TransportError(OilfoxError):
    """Connection failure, timeout, or an unexpected HTTP status."""


class ParseError(OilfoxError):
    """A response body was not the JSON we expected."""


# --------------------------------------------------------------------------------------
# OilfoxClient implementation
# --------------------------------------------------------------------------------------
class OilfoxClient:
    """Thin wrapper around aiohttp.ClientSession for the OilFox cloud API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_version: str = API_V3,
        host: str = DEFAULT_HOST,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """
        Initialize the client with a shared aiohttp session.

        The session is created and managed by Home Assistant via
        async_get_clientsession(hass). We must NOT create our own session
        so that HA can manage connection pools, SSL, proxies, etc.
        """
        if api_version not in API_VERSIONS:
            raise ValueError(f"Unknown OilFox API version: {api_version!r}")

        self._session = session
        self._api = API_VERSIONS[api_version]
        self._host = host.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def api(self) -> ApiVersion:
        """Return the API version this client talks to."""
        return self._api

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        return f"{self._host}{path}"

    @staticmethod
    def _base_headers() -> Dict[str, str]:
        return {
            "Accept": "*/*",
            "User-Agent": USER_AGENT,
        }

    @staticmethod
    async def _read_json(resp: aiohttp.ClientResponse, what: str) -> Any:
        """Decode a response body as JSON regardless of its Content-Type."""
        try:
            return await resp.json(content_type=None)
        except ValueError as err:
            raise ParseError(f"Invalid JSON in {what} response: {err}") from err

    # ------------------------------------------------------------------
    # Public methods
    # ------------------------------------------------------------------
    async def login(self, email: str, password: str) -> str:
        """
        Exchange the account credentials for a session token.

        Raises AuthError when the server rejects the credentials or the
        response does not carry the token field of the configured API version.
        """
        headers = self._base_headers()
        headers["Content-Type"] = "application/json"

        _LOGGER.debug(
            "OilfoxClient: posting login to %s (api=%s)",
            self._api.login_path,
            self._api.name,
        )

        try:
            async with self._session.post(
                self._url(self._api.login_path),
                json={"email": email, "password": password},
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                if resp.status in (401, 403):
                    raise AuthError(f"Login unauthorized, HTTP {resp.status}")
                if resp.status >= 400:
                    raise TransportError(f"Login failed with HTTP {resp.status}")

                data = await self._read_json(resp, "login")

        except asyncio.TimeoutError as err:
            raise TransportError("Timeout posting login") from err
        except aiohttp.ClientError as err:
            raise TransportError(f"HTTP error during login: {err}") from err

        token = data.get(self._api.token_field) if isinstance(data, dict) else None
        if not token:
            raise AuthError(
                f"Login response has no {self._api.token_field!r} field"
            )
        if not isinstance(token, str):
            raise AuthError(
                f"Login response {self._api.token_field!r} is not a string "
                f"(type={type(token).__name__})"
            )

        _LOGGER.debug("OilfoxClient: login succeeded")
        return token

    async def get_summary(self, token: str) -> Dict[str, Any]:
        """
        Fetch the account/device summary using a session token.

        The returned document is expected to be a JSON object holding scalar
        account fields and a list of device records under the collection key
        of the API version (e.g. { "items": [ {...}, ... ] }).
        """
        headers = self._base_headers()
        headers.update(self._api.auth_headers(token))

        _LOGGER.debug(
            "OilfoxClient: requesting summary from %s", self._api.summary_path
        )

        try:
            async with self._session.get(
                self._url(self._api.summary_path),
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                if resp.status in (401, 403):
                    raise AuthError(f"Summary request unauthorized, HTTP {resp.status}")
                if resp.status >= 400:
                    raise TransportError(
                        f"Summary request failed with HTTP {resp.status}"
                    )

                data = await self._read_json(resp, "summary")

        except asyncio.TimeoutError as err:
            raise TransportError("Timeout requesting summary") from err
        except aiohttp.ClientError as err:
            raise TransportError(f"HTTP error requesting summary: {err}") from err

        if not isinstance(data, dict):
            raise ParseError(
                f"Summary response is not a JSON object (type={type(data).__name__})"
            )

        records = data.get(self._api.collection_key)
        _LOGGER.debug(
            "OilfoxClient: fetched summary with %d record(s)",
            len(records) if isinstance(records, list) else 0,
        )
        return data

    async def fetch(self, email: str, password: str) -> Dict[str, Any]:
        """Log in and return the summary document in one call."""
        token = await self.login(email, password)
        return await self.get_summary(token)
