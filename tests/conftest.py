"""Shared fixtures for the symsync test suite."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from symsync.engine.models import ApiResult, Role, Symbol, SymbolScope


def make_symbol(
    symbol_id: str = "sym-1",
    name: str = "Header",
    scope: SymbolScope = SymbolScope.TEAM,
    *,
    created_by: str | None = "user-a",
    fragment: dict | None = None,
) -> Symbol:
    if fragment is None:
        fragment = {"id": f"team-frag-{symbol_id}", "tagName": "header", "type": "default"}
    return Symbol(
        id=symbol_id,
        name=name,
        scope=scope,
        owner_team_id="team-1",
        fragment_data=fragment,
        created_by=created_by,
    )


@pytest.fixture
def symbol_factory():
    return make_symbol


@pytest.fixture
def fake_api():
    """RegistryApi stand-in: every method is an AsyncMock returning ok([])."""
    api = MagicMock()
    api.list_symbols = AsyncMock(return_value=ApiResult.ok([]))
    api.get_symbol = AsyncMock()
    api.create_symbol = AsyncMock()
    api.update_symbol = AsyncMock()
    api.delete_symbol = AsyncMock(return_value=ApiResult.ok(None))
    api.promote_symbol = AsyncMock()
    return api


@pytest.fixture
def team_admin():
    from symsync.engine.models import IdentityContext

    return IdentityContext(
        user_id="user-b", team_id="team-1", role=Role.TEAM_ADMIN,
    )
