"""Display helpers for the symbols panel."""

from __future__ import annotations

from datetime import datetime

from symsync.engine.models import SymbolScope, parse_timestamp

SCOPE_LABELS: dict[SymbolScope, str] = {
    SymbolScope.PROTOTYPE: "Prototype",
    SymbolScope.TEAM: "Team",
    SymbolScope.ORGANIZATION: "Organization",
}

SCOPE_BADGES: dict[SymbolScope, str] = {
    SymbolScope.PROTOTYPE: "P",
    SymbolScope.TEAM: "T",
    SymbolScope.ORGANIZATION: "O",
}

# Rich styles, one per scope
SCOPE_STYLES: dict[SymbolScope, str] = {
    SymbolScope.PROTOTYPE: "bold magenta",
    SymbolScope.TEAM: "bold cyan",
    SymbolScope.ORGANIZATION: "bold yellow",
}

EMPTY_MESSAGE = "No symbols yet. Select an element and create one."
NO_MATCH_MESSAGE = "No symbols match your search"
DEMO_MESSAGE = "Symbol registry is not configured (demo mode)"


def scope_label(scope: SymbolScope | str) -> str:
    parsed = SymbolScope.parse(scope)
    return SCOPE_LABELS[parsed] if parsed is not None else str(scope)


def scope_badge(scope: SymbolScope | str) -> str:
    parsed = SymbolScope.parse(scope)
    return SCOPE_BADGES[parsed] if parsed is not None else "?"


def group_heading(scope: SymbolScope, count: int) -> str:
    return f"{SCOPE_LABELS[scope]} ({count})"


def format_created_date(value: datetime | str | None) -> str:
    """``Jan 2, 2025`` style; blank when the value cannot be parsed."""
    if isinstance(value, str):
        value = parse_timestamp(value)
    if not isinstance(value, datetime):
        return ""
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def promote_label(scope: SymbolScope) -> str:
    return f"Promote to {SCOPE_LABELS[scope]}"
