"""Tests for OilfoxClient against a fake OilFox API served by aiohttp."""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
import pytest
from aiohttp import test_utils, web

from custom_components.oilfox.api import (
    API_VERSIONS,
    AuthError,
    OilfoxClient,
    ParseError,
    TransportError,
)
from custom_components.oilfox.const import API_V2, API_V3, USER_AGENT


class FakeOilfoxApi:
    """Configurable stand-in for api.oilfox.io (both API versions)."""

    def __init__(self) -> None:
        self.login_status = 200
        self.login_body: Any = {"token": "v2-token", "access_token": "v3-token"}
        self.summary_status = 200
        self.summary_body: Any = None
        self.summary_delay = 0.0
        self.url = ""
        # (kind, lower-cased headers, json body)
        self.requests: list[tuple[str, dict[str, str], Any]] = []

    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.requests]

    @staticmethod
    def _respond(status: int, body: Any) -> web.Response:
        if isinstance(body, str):
            return web.Response(status=status, text=body, content_type="text/html")
        return web.json_response(body, status=status)

    async def handle_login(self, request: web.Request) -> web.Response:
        headers = {k.lower(): v for k, v in request.headers.items()}
        self.requests.append(("login", headers, await request.json()))
        return self._respond(self.login_status, self.login_body)

    async def handle_summary(self, request: web.Request) -> web.Response:
        headers = {k.lower(): v for k, v in request.headers.items()}
        self.requests.append(("summary", headers, None))
        if self.summary_delay:
            await asyncio.sleep(self.summary_delay)
        return self._respond(self.summary_status, self.summary_body)

    def app(self) -> web.Application:
        app = web.Application()
        for api in API_VERSIONS.values():
            app.router.add_post(api.login_path, self.handle_login)
            app.router.add_get(api.summary_path, self.handle_summary)
        return app


@pytest.fixture
async def fake_api():
    api = FakeOilfoxApi()
    server = test_utils.TestServer(api.app())
    await server.start_server()
    api.url = str(server.make_url("/")).rstrip("/")
    yield api
    await server.close()


@pytest.fixture
async def session():
    async with aiohttp.ClientSession() as session:
        yield session


def _client(session, fake_api, version: str, timeout: float = 5) -> OilfoxClient:
    return OilfoxClient(session, api_version=version, host=fake_api.url, timeout=timeout)


# ---------------------------------------------------------------------------
# Happy paths
# ---------------------------------------------------------------------------


class TestFetch:
    async def test_v2_uses_x_auth_token(self, session, fake_api, summary_v2) -> None:
        fake_api.summary_body = summary_v2

        document = await _client(session, fake_api, API_V2).fetch("me@example.com", "secret")

        assert document == summary_v2
        assert fake_api.kinds() == ["login", "summary"]

        _, login_headers, login_body = fake_api.requests[0]
        assert login_body == {"email": "me@example.com", "password": "secret"}
        assert login_headers["content-type"].startswith("application/json")
        assert login_headers["accept"] == "*/*"
        assert login_headers["user-agent"] == USER_AGENT

        _, summary_headers, _ = fake_api.requests[1]
        assert summary_headers["x-auth-token"] == "v2-token"
        assert "authorization" not in summary_headers

    async def test_v3_uses_bearer_token(self, session, fake_api, summary_v3) -> None:
        fake_api.summary_body = summary_v3

        document = await _client(session, fake_api, API_V3).fetch("me@example.com", "secret")

        assert document["items"][0]["id"] == "OF-3"
        _, summary_headers, _ = fake_api.requests[1]
        assert summary_headers["authorization"] == "Bearer v3-token"
        assert "x-auth-token" not in summary_headers

    async def test_login_returns_token(self, session, fake_api) -> None:
        token = await _client(session, fake_api, API_V3).login("me@example.com", "secret")
        assert token == "v3-token"


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


class TestLoginErrors:
    async def test_missing_token_is_auth_error_and_skips_summary(self, session, fake_api, summary_v2) -> None:
        fake_api.login_body = {"message": "ok"}
        fake_api.summary_body = summary_v2

        with pytest.raises(AuthError):
            await _client(session, fake_api, API_V2).fetch("me@example.com", "secret")

        assert fake_api.kinds() == ["login"]

    async def test_token_under_other_version_field_is_not_accepted(self, session, fake_api) -> None:
        fake_api.login_body = {"token": "v2-token"}

        with pytest.raises(AuthError):
            await _client(session, fake_api, API_V3).login("me@example.com", "secret")

    @pytest.mark.parametrize("token", [12345, {"value": "abc"}, ["abc"], True])
    async def test_non_string_token_is_auth_error(self, session, fake_api, token) -> None:
        fake_api.login_body = {"token": token}

        with pytest.raises(AuthError):
            await _client(session, fake_api, API_V2).fetch("me@example.com", "secret")

        assert fake_api.kinds() == ["login"]

    @pytest.mark.parametrize("status", [401, 403])
    async def test_unauthorized_is_auth_error(self, session, fake_api, status) -> None:
        fake_api.login_status = status
        fake_api.login_body = {"error": "bad credentials"}

        with pytest.raises(AuthError):
            await _client(session, fake_api, API_V2).fetch("me@example.com", "wrong")

        assert fake_api.kinds() == ["login"]

    async def test_server_error_is_transport_error(self, session, fake_api) -> None:
        fake_api.login_status = 503
        fake_api.login_body = {"error": "maintenance"}

        with pytest.raises(TransportError):
            await _client(session, fake_api, API_V2).login("me@example.com", "secret")

    async def test_html_body_is_parse_error(self, session, fake_api) -> None:
        fake_api.login_body = "<html>login</html>"

        with pytest.raises(ParseError):
            await _client(session, fake_api, API_V2).login("me@example.com", "secret")


class TestSummaryErrors:
    async def test_timeout_is_transport_error(self, session, fake_api, summary_v2) -> None:
        fake_api.summary_body = summary_v2
        fake_api.summary_delay = 0.5

        with pytest.raises(TransportError):
            await _client(session, fake_api, API_V2, timeout=0.1).fetch("me@example.com", "secret")

    async def test_unauthorized_is_auth_error(self, session, fake_api) -> None:
        fake_api.summary_status = 401
        fake_api.summary_body = {"error": "expired"}

        with pytest.raises(AuthError):
            await _client(session, fake_api, API_V3).fetch("me@example.com", "secret")

    async def test_non_object_summary_is_parse_error(self, session, fake_api) -> None:
        fake_api.summary_body = [1, 2, 3]

        with pytest.raises(ParseError):
            await _client(session, fake_api, API_V2).fetch("me@example.com", "secret")

    async def test_invalid_json_is_parse_error(self, session, fake_api) -> None:
        fake_api.summary_body = "{not json"

        with pytest.raises(ParseError):
            await _client(session, fake_api, API_V2).fetch("me@example.com", "secret")


async def test_connection_refused_is_transport_error(session) -> None:
    client = OilfoxClient(session, api_version=API_V2, host="http://127.0.0.1:1", timeout=1)

    with pytest.raises(TransportError):
        await client.login("me@example.com", "secret")


def test_unknown_api_version_is_rejected() -> None:
    with pytest.raises(ValueError):
        OilfoxClient(session=None, api_version="v9")
