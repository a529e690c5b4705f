"""Registry API transport.

Thin aiohttp client for the team symbol endpoints. Every call returns
an ApiResult and never raises: transport errors, non-success statuses
and malformed bodies all become a failed result with a message.
There is no client-side timeout; a request ends only when the
transport resolves or rejects it.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from .errors import NetworkFailure
from .models import ApiResult, Symbol, SymbolScope

logger = logging.getLogger(__name__)


def _team_symbols_path(team_id: str) -> str:
    return f"/teams/{quote(team_id, safe='')}/symbols"


def _team_symbol_path(team_id: str, symbol_id: str) -> str:
    return f"{_team_symbols_path(team_id)}/{quote(symbol_id, safe='')}"


class RegistryApi:
    """Async client for ``/teams/{teamId}/symbols``."""

    def __init__(
        self,
        base_url: str,
        *,
        auth_token: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._session = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> RegistryApi:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"Accept": "application/json"}
            if self._auth_token:
                headers["Authorization"] = f"Bearer {self._auth_token}"
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=None),
            )
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        default_error: str = "Request failed",
    ) -> ApiResult:
        url = f"{self._base_url}{path}"
        operation = f"{method} {path}"
        try:
            session = self._get_session()
            async with session.request(method, url, json=body) as resp:
                raw = await resp.read()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            failure = NetworkFailure(operation, str(exc) or type(exc).__name__)
            logger.debug("Registry transport error: %s", failure)
            return ApiResult.fail(default_error, failure=failure)

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            failure = NetworkFailure(operation, "response body is not valid UTF-8", status)
            logger.debug("Registry response undecodable: %s", failure)
            return ApiResult.fail(default_error, status=status, failure=failure)

        if status >= 400:
            message = _error_message(text) or default_error
            failure = NetworkFailure(operation, message, status)
            logger.debug("Registry request failed: %s", failure)
            return ApiResult.fail(message, status=status, failure=failure)
        data: Any = None
        if text:
            try:
                data = json.loads(text)
            except ValueError:
                # Non-JSON success body, e.g. an empty DELETE reply.
                data = None
        return ApiResult.ok(data, status=status)

    async def _symbol_request(
        self,
        method: str,
        path: str,
        team_id: str,
        *,
        body: dict[str, Any] | None = None,
        default_error: str,
    ) -> ApiResult:
        result = await self._request(method, path, body=body, default_error=default_error)
        if not result.success:
            return result
        try:
            symbol = Symbol.from_dict(result.data, team_id=team_id)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed symbol in %s %s response: %s", method, path, exc)
            return ApiResult.fail(default_error, status=result.status)
        return ApiResult.ok(symbol, status=result.status)

    async def list_symbols(self, team_id: str) -> ApiResult:
        """All symbols visible to the team, across every scope."""
        result = await self._request(
            "GET", _team_symbols_path(team_id),
            default_error="Failed to fetch symbols",
        )
        if not result.success:
            return result
        raw = result.data.get("symbols") if isinstance(result.data, dict) else None
        if not isinstance(raw, list):
            logger.warning("Symbol list response missing 'symbols' array")
            return ApiResult.fail("Failed to fetch symbols", status=result.status)
        symbols: list[Symbol] = []
        for record in raw:
            try:
                symbols.append(Symbol.from_dict(record, team_id=team_id))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed symbol record: %s", exc)
        return ApiResult.ok(symbols, status=result.status)

    async def get_symbol(self, team_id: str, symbol_id: str) -> ApiResult:
        return await self._symbol_request(
            "GET", _team_symbol_path(team_id, symbol_id), team_id,
            default_error="Failed to fetch symbol",
        )

    async def create_symbol(
        self,
        team_id: str,
        name: str,
        fragment_data: dict[str, Any],
        scope: SymbolScope,
        prototype_id: str | None = None,
    ) -> ApiResult:
        body: dict[str, Any] = {
            "name": name,
            "fragmentData": fragment_data,
            "scope": scope.value,
        }
        if prototype_id:
            body["prototypeId"] = prototype_id
        return await self._symbol_request(
            "POST", _team_symbols_path(team_id), team_id,
            body=body, default_error="Failed to create symbol",
        )

    async def update_symbol(
        self,
        team_id: str,
        symbol_id: str,
        *,
        name: str | None = None,
        fragment_data: dict[str, Any] | None = None,
    ) -> ApiResult:
        body: dict[str, Any] = {}
        if name is not None:
            body["name"] = name
        if fragment_data is not None:
            body["fragmentData"] = fragment_data
        return await self._symbol_request(
            "PATCH", _team_symbol_path(team_id, symbol_id), team_id,
            body=body, default_error="Failed to update symbol",
        )

    async def delete_symbol(self, team_id: str, symbol_id: str) -> ApiResult:
        return await self._request(
            "DELETE", _team_symbol_path(team_id, symbol_id),
            default_error="Failed to delete symbol",
        )

    async def promote_symbol(
        self, team_id: str, symbol_id: str, target_scope: SymbolScope,
    ) -> ApiResult:
        return await self._symbol_request(
            "POST", f"{_team_symbol_path(team_id, symbol_id)}/promote", team_id,
            body={"targetScope": target_scope.value},
            default_error="Failed to promote symbol",
        )


def _error_message(text: str) -> str | None:
    """Pull ``message`` out of a JSON error body, if there is one."""
    if not text:
        return None
    try:
        payload = json.loads(text)
    except ValueError:
        return None
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if isinstance(message, str) and message:
            return message
    return None
