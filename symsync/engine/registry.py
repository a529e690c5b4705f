"""Symbol registry client.

Owns the in-memory symbol list for one team and mediates every
server call. State lives in an immutable, versioned snapshot
(symbol tuple + id index); all mutation goes through the CRUD
methods so the mount guard and the one-request-per-symbol rule are
enforced here rather than at each call site.

Operations never raise. They return the new record (or True) on
success and None (or False) on failure, leaving a user-facing
message in ``error``.
"""
from __future__ import annotations

import copy
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from . import scope_codec
from .api import RegistryApi
from .errors import ValidationFailure
from .models import (
    NAME_MAX_LENGTH,
    PROMOTION_TARGETS,
    REGISTRY_REF_KEY,
    Symbol,
    SymbolScope,
)

logger = logging.getLogger(__name__)

NO_TEAM_ERROR = "No team selected"
DISABLED_ERROR = "Symbol registry is not available"


def validate_symbol_name(name: Any) -> str:
    """Trim and check a display name; raises ValidationFailure."""
    trimmed = name.strip() if isinstance(name, str) else ""
    if not trimmed:
        raise ValidationFailure("name", "Please enter a name for the symbol")
    if len(trimmed) > NAME_MAX_LENGTH:
        raise ValidationFailure(
            "name", f"Name must be {NAME_MAX_LENGTH} characters or less"
        )
    return trimmed


@dataclass(frozen=True)
class RegistrySnapshot:
    """One committed version of the symbol list."""
    version: int = 0
    symbols: tuple[Symbol, ...] = ()
    index: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(cls, version: int, symbols: list[Symbol] | tuple[Symbol, ...]) -> RegistrySnapshot:
        items = tuple(symbols)
        index = {s.id: i for i, s in enumerate(items)}
        return cls(version=version, symbols=items, index=MappingProxyType(index))

    def get(self, symbol_id: str) -> Symbol | None:
        pos = self.index.get(symbol_id)
        return self.symbols[pos] if pos is not None else None


class SymbolRegistry:
    """Registry client for one team's symbols across all three scopes."""

    def __init__(
        self,
        api: RegistryApi | None,
        team_id: str | None,
        *,
        prototype_id: str | None = None,
        enabled: bool = True,
    ) -> None:
        self._api = api
        self.team_id = team_id
        self.prototype_id = prototype_id
        self._enabled = enabled and api is not None
        self._snapshot = RegistrySnapshot()
        self.is_loading = False
        self.error: str | None = None
        self._mounted = True
        self._in_flight: set[str] = set()
        self._listeners: list[SnapshotListener] = []
        self._fragments_memo: tuple[int, list[dict[str, Any]]] | None = None
        self._fragment_index_memo: tuple[int, dict[str, Symbol]] | None = None

    # ── State ──

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def snapshot(self) -> RegistrySnapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    @property
    def symbols(self) -> list[Symbol]:
        return list(self._snapshot.symbols)

    def get(self, symbol_id: str) -> Symbol | None:
        return self._snapshot.get(symbol_id)

    def is_in_flight(self, symbol_id: str) -> bool:
        return symbol_id in self._in_flight

    def mount(self) -> None:
        self._mounted = True

    def unmount(self) -> None:
        """Tear down: results of requests still in flight are discarded."""
        self._mounted = False
        logger.debug("Registry for team %s unmounted", self.team_id)

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Subscribe to state changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Registry listener failed")

    def _commit(self, symbols: list[Symbol] | tuple[Symbol, ...]) -> None:
        self._snapshot = RegistrySnapshot.build(self._snapshot.version + 1, symbols)
        self.error = None
        self._notify()

    def _set_error(self, message: str) -> None:
        self.error = message
        self._notify()

    def _check_ready(self) -> bool:
        if not self.team_id:
            logger.debug("Registry operation rejected: no team selected")
            self._set_error(NO_TEAM_ERROR)
            return False
        if not self._enabled:
            logger.debug("Registry operation rejected: registry disabled")
            self._set_error(DISABLED_ERROR)
            return False
        return True

    # ── Reads ──

    async def list_symbols(self, team_id: str | None = None) -> list[Symbol]:
        """Fetch every symbol visible to *team_id* without touching the snapshot.

        A failed fetch returns an empty list and records ``error``.
        """
        team_id = team_id if team_id is not None else self.team_id
        if not team_id or not self._enabled:
            return []
        result = await self._api.list_symbols(team_id)
        if not result.success:
            logger.debug("list_symbols(%s) failed: %s", team_id, result.failure or result.error)
            self._set_error(result.error or "Failed to load symbols")
            return []
        return list(result.data)

    async def refresh(self) -> None:
        """Reload the list from the server (one request, all scopes)."""
        if not self._enabled or not self.team_id:
            self.is_loading = False
            self._commit([])
            return

        self.is_loading = True
        self.error = None
        self._notify()
        logger.debug("Loading symbols for team %s", self.team_id)

        result = await self._api.list_symbols(self.team_id)

        if not self._mounted:
            return
        self.is_loading = False
        if result.success:
            logger.debug("Loaded %d symbols (all scopes)", len(result.data))
            self._commit(result.data)
        else:
            logger.debug("Failed to load symbols: %s", result.failure or result.error)
            self._snapshot = RegistrySnapshot.build(self._snapshot.version + 1, [])
            self._set_error(result.error or "Failed to load symbols")

    async def fetch(self, symbol_id: str) -> Symbol | None:
        """Reload one symbol and replace (or add) it in the cached list."""
        if not self._check_ready():
            return None
        result = await self._api.get_symbol(self.team_id, symbol_id)
        if not self._mounted:
            return None
        if not result.success:
            self._set_error(result.error or "Failed to load symbol")
            return None
        self._replace_or_append(result.data)
        return result.data

    # ── Mutations ──

    async def create(
        self,
        name: str,
        fragment_data: dict[str, Any],
        scope: SymbolScope | str = SymbolScope.TEAM,
        prototype_id: str | None = None,
    ) -> Symbol | None:
        if not self._check_ready():
            return None
        try:
            clean_name = validate_symbol_name(name)
            parsed_scope = SymbolScope.parse(scope)
            if parsed_scope is None:
                raise ValidationFailure("scope", f"Unknown symbol scope: {scope}")
            proto_id = prototype_id or self.prototype_id
            if parsed_scope is SymbolScope.PROTOTYPE and not proto_id:
                raise ValidationFailure(
                    "prototype_id",
                    "prototypeId is required for prototype-scoped symbols",
                )
            if not isinstance(fragment_data, dict):
                raise ValidationFailure("fragment_data", "Symbol content is missing")
        except ValidationFailure as exc:
            logger.debug("Create rejected: %s", exc)
            self._set_error(str(exc))
            return None

        payload = copy.deepcopy(fragment_data)
        payload.pop(REGISTRY_REF_KEY, None)
        base_id = payload.get("id") or f"symbol-{int(time.time() * 1000)}"
        payload["id"] = scope_codec.ensure_prefixed(str(base_id), parsed_scope)
        logger.debug("Creating symbol %r scope=%s fragment=%s", clean_name, parsed_scope.value, payload["id"])

        result = await self._api.create_symbol(
            self.team_id,
            clean_name,
            payload,
            parsed_scope,
            proto_id if parsed_scope is SymbolScope.PROTOTYPE else None,
        )

        if not self._mounted:
            return None
        if result.success:
            logger.debug("Created symbol %s scope=%s", result.data.id, parsed_scope.value)
            self._commit([*self._snapshot.symbols, result.data])
            return result.data
        logger.debug("Create failed: %s", result.error)
        self._set_error(result.error or "Failed to create symbol")
        return None

    async def update(
        self,
        symbol_id: str,
        *,
        name: str | None = None,
        fragment_data: dict[str, Any] | None = None,
    ) -> Symbol | None:
        """Partial update; replaces the cached entry on success."""
        if not self._check_ready():
            return None
        try:
            if name is None and fragment_data is None:
                raise ValidationFailure("update", "Nothing to update")
            if name is not None:
                name = validate_symbol_name(name)
        except ValidationFailure as exc:
            self._set_error(str(exc))
            return None
        if symbol_id in self._in_flight:
            logger.debug("Update of %s skipped: request already in flight", symbol_id)
            return None

        logger.debug("Updating symbol %s", symbol_id)
        self._in_flight.add(symbol_id)
        try:
            result = await self._api.update_symbol(
                self.team_id, symbol_id, name=name, fragment_data=fragment_data,
            )
        finally:
            self._in_flight.discard(symbol_id)

        if not self._mounted:
            return None
        if result.success:
            logger.debug("Updated symbol %s", symbol_id)
            self._commit([
                result.data if s.id == symbol_id else s
                for s in self._snapshot.symbols
            ])
            return result.data
        self._set_error(result.error or "Failed to update symbol")
        return None

    async def remove(self, symbol_id: str) -> bool:
        """Delete; the cached entry goes only after the server confirms."""
        if not self._check_ready():
            return False
        if symbol_id in self._in_flight:
            logger.debug("Delete of %s skipped: request already in flight", symbol_id)
            return False

        logger.debug("Deleting symbol %s", symbol_id)
        self._in_flight.add(symbol_id)
        try:
            result = await self._api.delete_symbol(self.team_id, symbol_id)
        finally:
            self._in_flight.discard(symbol_id)

        if not self._mounted:
            return False
        if result.success:
            logger.debug("Deleted symbol %s", symbol_id)
            self._commit([s for s in self._snapshot.symbols if s.id != symbol_id])
            return True
        self._set_error(result.error or "Failed to delete symbol")
        return False

    async def promote(
        self, symbol_id: str, target_scope: SymbolScope | str,
    ) -> Symbol | None:
        """Server-side copy into a broader scope. The source is untouched."""
        if not self._check_ready():
            return None
        try:
            target = SymbolScope.parse(target_scope)
            if target not in PROMOTION_TARGETS:
                raise ValidationFailure(
                    "target_scope", f"Cannot promote to scope: {target_scope}"
                )
            source = self._snapshot.get(symbol_id)
            if source is not None and not target.is_broader_than(source.scope):
                raise ValidationFailure(
                    "target_scope",
                    f"Cannot promote a {source.scope.value} symbol to {target.value}",
                )
        except ValidationFailure as exc:
            self._set_error(str(exc))
            return None
        if symbol_id in self._in_flight:
            logger.debug("Promote of %s skipped: request already in flight", symbol_id)
            return None

        logger.debug("Promoting symbol %s to %s", symbol_id, target.value)
        self._in_flight.add(symbol_id)
        try:
            result = await self._api.promote_symbol(self.team_id, symbol_id, target)
        finally:
            self._in_flight.discard(symbol_id)

        if not self._mounted:
            return None
        if result.success:
            logger.debug("Promoted symbol %s, new id %s", symbol_id, result.data.id)
            self._commit([*self._snapshot.symbols, result.data])
            return result.data
        self._set_error(result.error or "Failed to promote symbol")
        return None

    def _replace_or_append(self, symbol: Symbol) -> None:
        if symbol.id in self._snapshot.index:
            self._commit([
                symbol if s.id == symbol.id else s for s in self._snapshot.symbols
            ])
        else:
            self._commit([*self._snapshot.symbols, symbol])

    # ── Derived views ──

    def as_session_fragments(self) -> list[dict[str, Any]]:
        """Fragments for the editing session, scope-prefixed and back-referenced.

        The same list object is returned until the symbol list changes.
        """
        memo = self._fragments_memo
        if memo is not None and memo[0] == self._snapshot.version:
            return memo[1]
        fragments: list[dict[str, Any]] = []
        for symbol in self._snapshot.symbols:
            fragment = copy.deepcopy(symbol.fragment_data)
            base_id = fragment.get("id") or symbol.id
            fragment["id"] = scope_codec.ensure_prefixed(str(base_id), symbol.scope)
            fragment[REGISTRY_REF_KEY] = symbol.id
            fragments.append(fragment)
        self._fragments_memo = (self._snapshot.version, fragments)
        return fragments

    def is_managed_id(self, fragment_id: str) -> bool:
        return scope_codec.is_managed_id(fragment_id)

    def find_by_fragment_id(self, session_id: str) -> Symbol | None:
        """Map a session fragment id back to its registry record.

        Tries the raw id, the id with its prefix stripped, then the
        stripped id under each known prefix; first match wins.
        """
        by_fragment = self._fragment_index()
        clean_id = scope_codec.strip_known_prefix(session_id).clean_id
        candidates = [session_id, clean_id]
        candidates.extend(p + clean_id for p in scope_codec.MANAGED_PREFIXES)
        for candidate in candidates:
            symbol = by_fragment.get(candidate)
            if symbol is not None:
                return symbol
        return None

    def _fragment_index(self) -> dict[str, Symbol]:
        memo = self._fragment_index_memo
        if memo is not None and memo[0] == self._snapshot.version:
            return memo[1]
        index: dict[str, Symbol] = {}
        for symbol in self._snapshot.symbols:
            fid = symbol.fragment_id
            if fid and fid not in index:
                index[fid] = symbol
        self._fragment_index_memo = (self._snapshot.version, index)
        return index


SnapshotListener = Callable[[SymbolRegistry], None]
