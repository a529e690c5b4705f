"""Presentation controller for the symbols panel.

Keeps the panel widgets free of registry and session logic: grouping
and filtering, the permission gate, per-item action state, and the
insert/drag paths into the editing session all live here. Widgets call
into it and re-render when ``on_change`` fires.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from symsync.engine import permissions
from symsync.engine.errors import PermissionDenied, ValidationFailure
from symsync.engine.fragment_format import FragmentFormat, classify_fragment, copy_content
from symsync.engine.models import (
    REGISTRY_REF_KEY,
    SCOPE_ORDER,
    IdentityContext,
    Symbol,
    SymbolScope,
)
from symsync.engine.reconcile import extract_for_persistence, merge_into_document
from symsync.engine.registry import SymbolRegistry, validate_symbol_name
from symsync.engine.scope_codec import ensure_prefixed, strip_known_prefix
from symsync.engine.session import EditingSession

logger = logging.getLogger(__name__)

DEFAULT_ERROR_CLEAR_SECONDS = 5.0
DRAG_BLOCK_PREFIX = "__symbol-drag-"


class ItemAction(str, Enum):
    IDLE = "idle"
    MENU_OPEN = "menu_open"
    RENAMING = "renaming"
    CONFIRMING_DELETE = "confirming_delete"
    CONFIRMING_PROMOTE = "confirming_promote"
    CONFIRMING_LIBRARY_SAVE = "confirming_library_save"


class InsertResult(str, Enum):
    LINKED = "linked"
    COPIED = "copied"
    SKIPPED = "skipped"


class ErrorSlot:
    """A user-visible message that clears itself after a delay.

    A new message replaces the pending one and restarts the timer.
    Must be set from inside the running event loop.
    """

    def __init__(self, delay: float, on_change: Callable[[], None] | None = None) -> None:
        self.delay = delay
        self.message: str | None = None
        self._handle: asyncio.TimerHandle | None = None
        self._on_change = on_change

    def show(self, message: str) -> None:
        self._cancel()
        self.message = message
        if self.delay > 0:
            loop = asyncio.get_running_loop()
            self._handle = loop.call_later(self.delay, self.clear)
        self._changed()

    def clear(self) -> None:
        self._cancel()
        if self.message is not None:
            self.message = None
            self._changed()

    def dispose(self) -> None:
        self._cancel()

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()


class SymbolItemController:
    """Action state for one symbol row.

    Walks ``idle -> menu_open -> {renaming | confirming_*} -> idle``.
    While a request for this item is outstanding, every other action on
    it is refused.
    """

    def __init__(self, owner: SymbolsController, symbol_id: str) -> None:
        self._owner = owner
        self.symbol_id = symbol_id
        self.state = ItemAction.IDLE
        self.promote_target: SymbolScope | None = None
        self._busy = False
        self._error = ErrorSlot(owner.error_clear_seconds, owner.notify)

    @property
    def symbol(self) -> Symbol | None:
        return self._owner.registry.get(self.symbol_id)

    @property
    def error(self) -> str | None:
        return self._error.message

    @property
    def busy(self) -> bool:
        return self._busy

    def show_error(self, message: str) -> None:
        logger.debug("Symbol %s: %s", self.symbol_id, message)
        self._error.show(message)

    def dispose(self) -> None:
        self._error.dispose()

    def _set_state(self, state: ItemAction) -> None:
        self.state = state
        if state is not ItemAction.CONFIRMING_PROMOTE:
            self.promote_target = None
        self._owner.notify()

    def _editable_symbol(self, action: str) -> Symbol:
        symbol = self.symbol
        if symbol is None:
            raise PermissionDenied(action, self.symbol_id)
        identity = self._owner.identity
        permissions.require_edit(symbol, identity.user_id, identity.role, action)
        return symbol

    # ── Transitions ──

    def open_menu(self) -> None:
        self._editable_symbol("menu")
        if self._busy:
            return
        self._set_state(ItemAction.MENU_OPEN)

    def close(self) -> None:
        if not self._busy:
            self._set_state(ItemAction.IDLE)

    def begin_rename(self) -> None:
        self._editable_symbol("rename")
        if not self._busy:
            self._set_state(ItemAction.RENAMING)

    def begin_delete(self) -> None:
        self._editable_symbol("delete")
        if not self._busy:
            self._set_state(ItemAction.CONFIRMING_DELETE)

    def begin_promote(self, target: SymbolScope | str) -> None:
        symbol = self._editable_symbol("promote")
        parsed = SymbolScope.parse(target)
        if parsed not in self._owner.promotion_targets(symbol):
            raise PermissionDenied(f"promote to {target}", self.symbol_id)
        if not self._busy:
            self.promote_target = parsed
            self._set_state(ItemAction.CONFIRMING_PROMOTE)

    def begin_library_save(self) -> None:
        self._editable_symbol("save to library")
        if not self._busy:
            self._set_state(ItemAction.CONFIRMING_LIBRARY_SAVE)

    # ── Confirmations ──

    async def submit_rename(self, value: str) -> bool:
        """Rename to the trimmed *value*.

        Only valid while renaming. Empty or unchanged input closes the
        action without a request. Returns True only when a request was
        issued and succeeded.
        """
        if self._busy:
            logger.debug("Rename of %s ignored: already submitting", self.symbol_id)
            return False
        if self.state is not ItemAction.RENAMING:
            logger.debug("Rename of %s ignored: not renaming", self.symbol_id)
            return False
        symbol = self.symbol
        if symbol is not None and not self._owner.can_edit(symbol):
            self._set_state(ItemAction.IDLE)
            self.show_error(str(PermissionDenied("rename", self.symbol_id)))
            return False
        trimmed = value.strip() if isinstance(value, str) else ""
        if symbol is None or not trimmed or trimmed == symbol.name:
            self._set_state(ItemAction.IDLE)
            return False
        try:
            validate_symbol_name(trimmed)
        except ValidationFailure as exc:
            self.show_error(str(exc))
            return False

        self._busy = True
        try:
            updated = await self._owner.registry.update(self.symbol_id, name=trimmed)
        finally:
            self._busy = False
        self._set_state(ItemAction.IDLE)
        if updated is None:
            self.show_error(self._owner.registry.error or "Failed to rename symbol")
            return False
        return True

    async def confirm_delete(self) -> bool:
        if self._busy or self.state is not ItemAction.CONFIRMING_DELETE:
            return False
        self._busy = True
        try:
            removed = await self._owner.registry.remove(self.symbol_id)
        finally:
            self._busy = False
        self._set_state(ItemAction.IDLE)
        if not removed:
            self.show_error(self._owner.registry.error or "Failed to delete symbol")
            return False
        self._owner.forget(self.symbol_id)
        return True

    async def confirm_promote(self) -> Symbol | None:
        target = self.promote_target
        if self._busy or self.state is not ItemAction.CONFIRMING_PROMOTE or target is None:
            return None
        self._busy = True
        try:
            promoted = await self._owner.registry.promote(self.symbol_id, target)
        finally:
            self._busy = False
        self._set_state(ItemAction.IDLE)
        if promoted is None:
            self.show_error(self._owner.registry.error or "Failed to promote symbol")
            return None
        self._owner.sync_session()
        return promoted

    async def confirm_library_save(self) -> bool:
        """Push the live main's current content back to the registry."""
        if self._busy or self.state is not ItemAction.CONFIRMING_LIBRARY_SAVE:
            return False
        symbol = self.symbol
        session = self._owner.session
        if session is None:
            return self._fail_library_save("Editor not available")
        if symbol is None:
            return self._fail_library_save("Failed to save symbol to library")
        main = self._owner.find_main(symbol)
        if main is None:
            return self._fail_library_save("Insert this symbol first to edit it")
        data = session.serialize(main)
        if not isinstance(data, dict):
            return self._fail_library_save("Failed to read symbol data")

        fragment = copy.deepcopy(data)
        fragment.pop(REGISTRY_REF_KEY, None)
        base_id = symbol.fragment_id or session.component_id(main) or symbol.id
        fragment["id"] = ensure_prefixed(base_id, symbol.scope)
        fragment["label"] = symbol.name

        self._busy = True
        try:
            updated = await self._owner.registry.update(self.symbol_id, fragment_data=fragment)
        finally:
            self._busy = False
        self._set_state(ItemAction.IDLE)
        if updated is None:
            self.show_error(self._owner.registry.error or "Failed to save symbol to library")
            return False
        return True

    def _fail_library_save(self, message: str) -> bool:
        self._set_state(ItemAction.IDLE)
        self.show_error(message)
        return False


class SymbolsController:
    """Listing, filtering and session integration for one registry."""

    def __init__(
        self,
        registry: SymbolRegistry,
        session: EditingSession | None,
        identity: IdentityContext,
        *,
        error_clear_seconds: float = DEFAULT_ERROR_CLEAR_SECONDS,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.registry = registry
        self.session = session
        self.identity = identity
        self.error_clear_seconds = error_clear_seconds
        self.on_change = on_change
        self.search = ""
        self.scope_filter: SymbolScope | None = None
        self._items: dict[str, SymbolItemController] = {}
        self._error = ErrorSlot(error_clear_seconds, self.notify)

    def notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    @property
    def error(self) -> str | None:
        """Panel-level message: local action errors first, then the registry's."""
        return self._error.message or self.registry.error

    def show_error(self, message: str) -> None:
        self._error.show(message)

    def dispose(self) -> None:
        self._error.dispose()
        for item in self._items.values():
            item.dispose()
        self._items.clear()

    # ── Items ──

    def item(self, symbol_id: str) -> SymbolItemController:
        item = self._items.get(symbol_id)
        if item is None:
            item = SymbolItemController(self, symbol_id)
            self._items[symbol_id] = item
        return item

    def forget(self, symbol_id: str) -> None:
        item = self._items.pop(symbol_id, None)
        if item is not None:
            item.dispose()

    # ── Listing ──

    def set_search(self, text: str) -> None:
        self.search = text or ""
        self.notify()

    def set_scope_filter(self, scope: SymbolScope | str | None) -> None:
        self.scope_filter = None if scope in (None, "", "all") else SymbolScope.parse(scope)
        self.notify()

    def filtered(self) -> list[Symbol]:
        needle = self.search.strip().lower()
        result = []
        for symbol in self.registry.symbols:
            if needle and needle not in symbol.name.lower():
                continue
            if self.scope_filter is not None and symbol.scope is not self.scope_filter:
                continue
            result.append(symbol)
        return result

    def grouped(self) -> list[tuple[SymbolScope, list[Symbol]]]:
        """Filtered symbols by scope in display order, empty groups omitted."""
        buckets: dict[SymbolScope, list[Symbol]] = {scope: [] for scope in SCOPE_ORDER}
        for symbol in self.filtered():
            buckets[symbol.scope].append(symbol)
        return [(scope, buckets[scope]) for scope in SCOPE_ORDER if buckets[scope]]

    # ── Permission gate ──

    def can_edit(self, symbol: Symbol) -> bool:
        return permissions.can_edit(symbol, self.identity.user_id, self.identity.role)

    def promotion_targets(self, symbol: Symbol) -> list[SymbolScope]:
        if not self.can_edit(symbol):
            return []
        return permissions.promotion_targets(
            symbol, self.identity.role, self.identity.has_organization,
        )

    # ── Session integration ──

    def sync_session(self) -> None:
        """Overlay the registry's fragments onto the session's fragment list."""
        if self.session is None:
            return
        merged = merge_into_document(
            self.session.get_fragments(), self.registry.as_session_fragments(),
        )
        self.session.set_fragments(merged)

    def persisted_fragments(self) -> list[Any]:
        """The session's fragment list as it should be saved."""
        if self.session is None:
            return []
        return extract_for_persistence(self.session.get_fragments())

    def find_main(self, symbol: Symbol) -> Any | None:
        """Live main definition for *symbol*, matched by stripped id."""
        session = self.session
        if session is None:
            return None
        base_id = symbol.fragment_id or symbol.id
        main = session.find_main(ensure_prefixed(base_id, symbol.scope))
        if main is not None:
            return main
        clean_id = strip_known_prefix(base_id).clean_id
        for candidate in session.get_mains():
            cid = session.component_id(candidate)
            if cid and strip_known_prefix(cid).clean_id == clean_id:
                return candidate
        return None

    def _insertion_point(self) -> tuple[Any, int | None]:
        session = self.session
        selected = session.get_selected()
        if selected is not None:
            parent = session.parent_of(selected)
            if parent is not None:
                index = session.index_of(selected)
                return parent, (index + 1 if index is not None else None)
        return (session.primary_container() or session.root()), None

    def _drag_content(self, symbol: Symbol) -> list[dict[str, Any]]:
        if classify_fragment(symbol.fragment_data) is FragmentFormat.NATIVE:
            main = self.find_main(symbol)
            if main is not None:
                instance = self.session.create_instance(main)
                data = self.session.serialize(instance) if instance is not None else None
                if isinstance(data, dict):
                    return [data]
        return copy_content(symbol.fragment_data)

    def insert(self, symbol: Symbol) -> InsertResult:
        """Place *symbol* after the selection (or in the main container).

        Native fragments with a live main get a linked instance;
        everything else is inserted as a plain copy of its content.
        """
        session = self.session
        if session is None:
            self.show_error("Editor not available")
            return InsertResult.SKIPPED
        with session.transaction():
            target, at = self._insertion_point()
            if classify_fragment(symbol.fragment_data) is FragmentFormat.NATIVE:
                main = self.find_main(symbol)
                instance = session.create_instance(main) if main is not None else None
                if instance is not None:
                    session.move(instance, target, at)
                    logger.debug("Inserted linked instance of %s", symbol.id)
                    return InsertResult.LINKED
            content = copy_content(symbol.fragment_data)
            if not content:
                logger.debug("Symbol %s has no insertable content", symbol.id)
                return InsertResult.SKIPPED
            session.insert_content(target, content, at)
        logger.debug("Inserted copy of %s", symbol.id)
        return InsertResult.COPIED

    def start_drag(self, symbol: Symbol) -> bool:
        """Stage *symbol* as a temporary block and begin dragging it.

        The block is removed when the drag stops, dropped or not.
        """
        session = self.session
        if session is None:
            return False
        block_id = f"{DRAG_BLOCK_PREFIX}{symbol.id}"
        content = self._drag_content(symbol)
        if not content:
            return False
        session.remove_block(block_id)
        session.add_block(block_id, symbol.name, content)
        if not session.start_drag(block_id, lambda: session.remove_block(block_id)):
            session.remove_block(block_id)
            return False
        return True

    async def create_from_selection(
        self, name: str, scope: SymbolScope | str = SymbolScope.TEAM,
    ) -> Symbol | None:
        """Turn the selected component into a new symbol."""
        session = self.session
        if session is None:
            self.show_error("Editor not available")
            return None
        selected = session.get_selected()
        if selected is None:
            self.show_error("Select an element to create a symbol")
            return None
        if session.is_symbol(selected):
            logger.debug("Create refused: selection is already a symbol")
            self.show_error("Selected element is already a symbol")
            return None
        try:
            validate_symbol_name(name)
        except ValidationFailure as exc:
            self.show_error(str(exc))
            return None
        data = session.serialize(selected)
        if not isinstance(data, dict):
            self.show_error("Failed to read symbol data")
            return None

        created = await self.registry.create(
            name, data, scope, prototype_id=self.identity.prototype_id,
        )
        if created is None:
            self.show_error(self.registry.error or "Failed to create symbol")
            return None
        self.sync_session()
        return created
