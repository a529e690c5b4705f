"""Permission gate for symbol actions.

Denied actions are never sent to the server; the UI simply does not
offer them.
"""
from __future__ import annotations

from .errors import PermissionDenied
from .models import Role, Symbol, SymbolScope


def can_edit(symbol: Symbol, user_id: str | None, role: Role | str | None) -> bool:
    """Rename, update, delete and promote all require this."""
    if not user_id:
        return False
    role = Role.parse(role)
    is_creator = symbol.created_by is not None and symbol.created_by == user_id
    if symbol.scope is SymbolScope.ORGANIZATION:
        return is_creator or role is Role.ORG_ADMIN
    return is_creator or role in (Role.TEAM_ADMIN, Role.ORG_ADMIN)


def can_promote_to_team(symbol: Symbol) -> bool:
    return symbol.scope is SymbolScope.PROTOTYPE


def can_promote_to_org(symbol: Symbol, role: Role | str | None, has_org: bool) -> bool:
    return (
        symbol.scope in (SymbolScope.PROTOTYPE, SymbolScope.TEAM)
        and Role.parse(role) is Role.ORG_ADMIN
        and has_org
    )


def promotion_targets(
    symbol: Symbol, role: Role | str | None, has_org: bool,
) -> list[SymbolScope]:
    """Scopes this symbol may be promoted into, narrowest first."""
    targets: list[SymbolScope] = []
    if can_promote_to_team(symbol):
        targets.append(SymbolScope.TEAM)
    if can_promote_to_org(symbol, role, has_org):
        targets.append(SymbolScope.ORGANIZATION)
    return targets


def require_edit(symbol: Symbol, user_id: str | None, role: Role | str | None, action: str) -> None:
    """Raise PermissionDenied unless can_edit allows *action*."""
    if not can_edit(symbol, user_id, role):
        raise PermissionDenied(action, symbol.id)
