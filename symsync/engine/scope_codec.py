"""Scope prefix codec.

Session fragment ids carry a scope prefix so a fragment found in a
loaded document can be traced back to the registry it came from.
``global-`` is read for old documents and never written.
"""
from __future__ import annotations

from dataclasses import dataclass

from .models import SymbolScope

PROTOTYPE_PREFIX = "proto-"
TEAM_PREFIX = "team-"
ORG_PREFIX = "org-"
LEGACY_GLOBAL_PREFIX = "global-"

# Checked in this order; first match wins.
MANAGED_PREFIXES: tuple[str, ...] = (
    PROTOTYPE_PREFIX,
    TEAM_PREFIX,
    ORG_PREFIX,
    LEGACY_GLOBAL_PREFIX,
)

_SCOPE_PREFIXES: dict[SymbolScope, str] = {
    SymbolScope.PROTOTYPE: PROTOTYPE_PREFIX,
    SymbolScope.TEAM: TEAM_PREFIX,
    SymbolScope.ORGANIZATION: ORG_PREFIX,
}
_PREFIX_SCOPES: dict[str, SymbolScope] = {v: k for k, v in _SCOPE_PREFIXES.items()}


def prefix_for_scope(scope: SymbolScope | str | None) -> str:
    """Return the id prefix for *scope*; unknown values map to the team prefix."""
    parsed = SymbolScope.parse(scope, SymbolScope.TEAM)
    return _SCOPE_PREFIXES[parsed]


def scope_for_prefix(prefix: str | None) -> SymbolScope | None:
    """Inverse of prefix_for_scope. The legacy prefix has no scope."""
    if prefix is None:
        return None
    return _PREFIX_SCOPES.get(prefix)


@dataclass(frozen=True)
class StrippedId:
    clean_id: str
    matched_prefix: str | None


def strip_known_prefix(fragment_id: str) -> StrippedId:
    for prefix in MANAGED_PREFIXES:
        if fragment_id.startswith(prefix):
            return StrippedId(fragment_id[len(prefix):], prefix)
    return StrippedId(fragment_id, None)


def is_managed_id(fragment_id: str | None) -> bool:
    """True when the id carries any registry prefix, legacy included."""
    if not isinstance(fragment_id, str):
        return False
    return any(fragment_id.startswith(p) for p in MANAGED_PREFIXES)


def ensure_prefixed(fragment_id: str, scope: SymbolScope | str | None) -> str:
    """Qualify *fragment_id* for *scope* without ever doubling a prefix.

    An id already carrying the scope's prefix is returned unchanged; an
    id carrying a different known prefix is re-qualified.
    """
    prefix = prefix_for_scope(scope)
    if fragment_id.startswith(prefix):
        return fragment_id
    return prefix + strip_known_prefix(fragment_id).clean_id


@dataclass(frozen=True)
class ScopedId:
    """Explicit (scope, base id) pair behind a prefixed session id."""
    scope: SymbolScope
    base_id: str

    @property
    def session_id(self) -> str:
        return prefix_for_scope(self.scope) + self.base_id

    @classmethod
    def parse(cls, session_id: str) -> ScopedId | None:
        """Decode a session id; None for local or legacy ``global-`` ids."""
        stripped = strip_known_prefix(session_id)
        scope = scope_for_prefix(stripped.matched_prefix)
        if scope is None:
            return None
        return cls(scope=scope, base_id=stripped.clean_id)
