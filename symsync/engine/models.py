"""Core data models for symbol synchronization.

All dataclasses, enums, and type aliases. Single source of truth
to avoid circular imports.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .errors import NetworkFailure


class SymbolScope(str, Enum):
    """Sharing breadth of a symbol, narrowest first."""
    PROTOTYPE = "prototype"
    TEAM = "team"
    ORGANIZATION = "organization"

    @property
    def rank(self) -> int:
        return SCOPE_ORDER.index(self)

    def is_broader_than(self, other: SymbolScope) -> bool:
        return self.rank > other.rank

    @classmethod
    def parse(cls, value: Any, default: SymbolScope | None = None) -> SymbolScope | None:
        """Coerce a wire value to a scope, returning *default* when unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default


SCOPE_ORDER: tuple[SymbolScope, ...] = (
    SymbolScope.PROTOTYPE,
    SymbolScope.TEAM,
    SymbolScope.ORGANIZATION,
)

# Scopes a symbol can be promoted into.
PROMOTION_TARGETS: tuple[SymbolScope, ...] = (
    SymbolScope.TEAM,
    SymbolScope.ORGANIZATION,
)


class Role(str, Enum):
    """Caller's role within the current team."""
    ORG_ADMIN = "org_admin"
    TEAM_ADMIN = "team_admin"
    TEAM_MEMBER = "team_member"
    TEAM_VIEWER = "team_viewer"

    @classmethod
    def parse(cls, value: Any) -> Role | None:
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


# Key added to session fragments pointing back at the registry record.
REGISTRY_REF_KEY = "_registryId"

NAME_MAX_LENGTH = 255


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp from the wire; None when unparseable."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class Symbol:
    """A server-persisted reusable fragment record."""
    id: str
    name: str
    scope: SymbolScope
    owner_team_id: str
    fragment_data: dict[str, Any] = field(default_factory=dict)
    created_by: str | None = None
    owner_prototype_id: str | None = None
    organization_id: str | None = None
    promoted_from: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def fragment_id(self) -> str:
        value = self.fragment_data.get("id") if isinstance(self.fragment_data, dict) else None
        return value if isinstance(value, str) else ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], team_id: str | None = None) -> Symbol:
        """Build a Symbol from a registry JSON record.

        Accepts the older ``symbolData``/``teamId``/``prototypeId`` names.
        Raises KeyError or TypeError on records missing id or name.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Symbol record must be an object, got {type(data).__name__}")
        fragment = data.get("fragmentData", data.get("symbolData"))
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            scope=SymbolScope.parse(data.get("scope"), SymbolScope.TEAM),
            owner_team_id=str(
                data.get("ownerTeamId") or data.get("teamId") or team_id or ""
            ),
            fragment_data=dict(fragment) if isinstance(fragment, dict) else {},
            created_by=data.get("createdBy"),
            owner_prototype_id=data.get("ownerPrototypeId") or data.get("prototypeId"),
            organization_id=data.get("organizationId"),
            promoted_from=data.get("promotedFrom"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "scope": self.scope.value,
            "ownerTeamId": self.owner_team_id,
            "ownerPrototypeId": self.owner_prototype_id,
            "organizationId": self.organization_id,
            "promotedFrom": self.promoted_from,
            "createdBy": self.created_by,
            "fragmentData": copy.deepcopy(self.fragment_data),
            "createdAt": _format_timestamp(self.created_at),
            "updatedAt": _format_timestamp(self.updated_at),
        }


@dataclass
class IdentityContext:
    """Read-only identity/authorization input for the permission gate."""
    user_id: str | None = None
    team_id: str | None = None
    organization_id: str | None = None
    role: Role | None = None
    prototype_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def has_organization(self) -> bool:
        return bool(self.organization_id)


@dataclass
class ApiResult:
    """Outcome of one registry request. Callers must check ``success``.

    A failed result may carry the underlying ``failure`` for diagnostics.
    """
    success: bool
    data: Any = None
    error: str | None = None
    status: int | None = None
    failure: NetworkFailure | None = None

    @classmethod
    def ok(cls, data: Any = None, status: int | None = None) -> ApiResult:
        return cls(success=True, data=data, status=status)

    @classmethod
    def fail(
        cls,
        error: str,
        status: int | None = None,
        failure: NetworkFailure | None = None,
    ) -> ApiResult:
        return cls(success=False, error=error, status=status, failure=failure)
