"""Tests for the aiohttp registry transport against a fake server."""
from __future__ import annotations

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from symsync.engine.api import RegistryApi
from symsync.engine.errors import NetworkFailure
from symsync.engine.models import SymbolScope
from symsync.engine.registry import SymbolRegistry


def _record(symbol_id: str, scope: str = "team", **extra) -> dict:
    return {
        "id": symbol_id,
        "name": f"Symbol {symbol_id}",
        "scope": scope,
        "ownerTeamId": "team-1",
        "createdBy": "user-a",
        "fragmentData": {"id": f"team-{symbol_id}", "tagName": "div"},
        "createdAt": "2025-01-02T10:00:00Z",
        **extra,
    }


class FakeRegistry:
    """In-process stand-in for the registry HTTP API."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, str, dict | None]] = []
        self.symbols = [_record("s1"), _record("s2", "organization")]

    async def _body(self, request: web.Request) -> dict | None:
        if request.can_read_body:
            return await request.json()
        return None

    async def _log(self, request: web.Request) -> dict | None:
        body = await self._body(request)
        self.requests.append((request.method, request.path, body))
        return body

    async def list_symbols(self, request: web.Request) -> web.Response:
        await self._log(request)
        if request.headers.get("Authorization") != "Bearer secret":
            return web.json_response({"message": "Unauthorized"}, status=401)
        return web.json_response({"symbols": self.symbols + [{"name": "no id"}]})

    async def get_symbol(self, request: web.Request) -> web.Response:
        await self._log(request)
        if request.match_info["symbol_id"] == "missing":
            return web.json_response({"message": "Symbol not found"}, status=404)
        return web.json_response(_record(request.match_info["symbol_id"]))

    async def create_symbol(self, request: web.Request) -> web.Response:
        body = await self._log(request)
        if body.get("scope") == "prototype" and not body.get("prototypeId"):
            return web.json_response(
                {"message": "prototypeId is required for prototype-scoped symbols"},
                status=400,
            )
        return web.json_response(
            _record("new", body["scope"], name=body["name"], fragmentData=body["fragmentData"]),
            status=201,
        )

    async def update_symbol(self, request: web.Request) -> web.Response:
        body = await self._log(request)
        return web.json_response(_record(request.match_info["symbol_id"], **body))

    async def delete_symbol(self, request: web.Request) -> web.Response:
        await self._log(request)
        return web.Response(status=204)

    async def promote_symbol(self, request: web.Request) -> web.Response:
        body = await self._log(request)
        if body["targetScope"] == "organization":
            return web.json_response(
                {"message": "Only organization admins can promote to organization"},
                status=403,
            )
        return web.json_response(
            _record("promoted", body["targetScope"], promotedFrom=request.match_info["symbol_id"]),
            status=201,
        )

    def app(self) -> web.Application:
        app = web.Application()
        base = "/teams/{team_id}/symbols"
        app.router.add_get(base, self.list_symbols)
        app.router.add_post(base, self.create_symbol)
        app.router.add_get(base + "/{symbol_id}", self.get_symbol)
        app.router.add_patch(base + "/{symbol_id}", self.update_symbol)
        app.router.add_delete(base + "/{symbol_id}", self.delete_symbol)
        app.router.add_post(base + "/{symbol_id}/promote", self.promote_symbol)
        return app


@pytest_asyncio.fixture
async def registry_server():
    fake = FakeRegistry()
    server = TestServer(fake.app())
    await server.start_server()
    try:
        yield fake, str(server.make_url("")).rstrip("/")
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_list_symbols_parses_records_and_skips_malformed(registry_server):
    fake, url = registry_server
    async with RegistryApi(url, auth_token="secret") as api:
        result = await api.list_symbols("team-1")
    assert result.success
    assert [s.id for s in result.data] == ["s1", "s2"]
    assert result.data[1].scope is SymbolScope.ORGANIZATION
    assert result.data[0].created_at.year == 2025
    assert fake.requests[0][:2] == ("GET", "/teams/team-1/symbols")


@pytest.mark.asyncio
async def test_server_error_message_is_surfaced(registry_server):
    _, url = registry_server
    async with RegistryApi(url, auth_token="wrong") as api:
        result = await api.list_symbols("team-1")
    assert not result.success
    assert result.error == "Unauthorized"
    assert result.status == 401
    assert result.failure.operation == "GET /teams/team-1/symbols"
    assert result.failure.reason == "Unauthorized"
    assert result.failure.status == 401


@pytest.mark.asyncio
async def test_get_symbol_not_found(registry_server):
    _, url = registry_server
    async with RegistryApi(url) as api:
        ok = await api.get_symbol("team-1", "s1")
        missing = await api.get_symbol("team-1", "missing")
    assert ok.data.id == "s1"
    assert missing.error == "Symbol not found"


@pytest.mark.asyncio
async def test_create_sends_wire_body(registry_server):
    fake, url = registry_server
    async with RegistryApi(url) as api:
        result = await api.create_symbol(
            "team-1", "Card", {"id": "proto-x", "tagName": "div"},
            SymbolScope.PROTOTYPE, "p-1",
        )
        rejected = await api.create_symbol(
            "team-1", "Card", {"tagName": "div"}, SymbolScope.PROTOTYPE,
        )
    assert result.success
    assert result.data.name == "Card"
    assert result.data.scope is SymbolScope.PROTOTYPE
    method, path, body = fake.requests[0]
    assert (method, path) == ("POST", "/teams/team-1/symbols")
    assert body == {
        "name": "Card",
        "fragmentData": {"id": "proto-x", "tagName": "div"},
        "scope": "prototype",
        "prototypeId": "p-1",
    }
    assert rejected.error == "prototypeId is required for prototype-scoped symbols"


@pytest.mark.asyncio
async def test_update_uses_patch_with_partial_body(registry_server):
    fake, url = registry_server
    async with RegistryApi(url) as api:
        result = await api.update_symbol("team-1", "s1", name="Renamed")
    assert result.data.name == "Renamed"
    assert fake.requests[0] == ("PATCH", "/teams/team-1/symbols/s1", {"name": "Renamed"})


@pytest.mark.asyncio
async def test_delete_accepts_empty_body(registry_server):
    fake, url = registry_server
    async with RegistryApi(url) as api:
        result = await api.delete_symbol("team-1", "s1")
    assert result.success
    assert result.status == 204
    assert fake.requests[0][:2] == ("DELETE", "/teams/team-1/symbols/s1")


@pytest.mark.asyncio
async def test_promote(registry_server):
    fake, url = registry_server
    async with RegistryApi(url) as api:
        promoted = await api.promote_symbol("team-1", "s1", SymbolScope.TEAM)
        denied = await api.promote_symbol("team-1", "s1", SymbolScope.ORGANIZATION)
    assert promoted.data.promoted_from == "s1"
    assert promoted.data.scope is SymbolScope.TEAM
    assert fake.requests[0] == (
        "POST", "/teams/team-1/symbols/s1/promote", {"targetScope": "team"},
    )
    assert denied.error == "Only organization admins can promote to organization"


@pytest.mark.asyncio
async def test_transport_failure_becomes_failed_result(unused_tcp_port):
    async with RegistryApi(f"http://127.0.0.1:{unused_tcp_port}") as api:
        result = await api.list_symbols("team-1")
    assert not result.success
    assert result.error == "Failed to fetch symbols"
    assert result.status is None
    assert isinstance(result.failure, NetworkFailure)
    assert result.failure.status is None


@pytest_asyncio.fixture
async def undecodable_server():
    async def list_symbols(request: web.Request) -> web.Response:
        return web.Response(
            body=b'{"symbols": ["\xff\xfe"]}',
            content_type="application/json",
            charset="utf-8",
        )

    app = web.Application()
    app.router.add_get("/teams/{team_id}/symbols", list_symbols)
    server = TestServer(app)
    await server.start_server()
    try:
        yield str(server.make_url("")).rstrip("/")
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_undecodable_body_becomes_failed_result(undecodable_server):
    async with RegistryApi(undecodable_server) as api:
        result = await api.list_symbols("team-1")
    assert not result.success
    assert result.error == "Failed to fetch symbols"
    assert result.status == 200
    assert result.failure.reason == "response body is not valid UTF-8"


@pytest.mark.asyncio
async def test_refresh_survives_undecodable_body(undecodable_server):
    async with RegistryApi(undecodable_server) as api:
        registry = SymbolRegistry(api, "team-1")
        await registry.refresh()
    assert registry.is_loading is False
    assert registry.symbols == []
    assert registry.error == "Failed to fetch symbols"
