"""Main screen: document outline beside the symbols panel."""

from __future__ import annotations

import logging
from collections.abc import Callable

from textual import work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Footer, Header, Input, Select

from symsync.adapters.memory_session import InMemorySession
from symsync.engine.errors import PermissionDenied
from symsync.engine.models import SCOPE_ORDER, Symbol, SymbolScope
from symsync.shared.formatters.symbol import DEMO_MESSAGE, scope_label
from symsync.shared.services.document_store import DocumentStore
from symsync.tui.handlers.symbols_controller import (
    InsertResult,
    SymbolItemController,
    SymbolsController,
)
from symsync.tui.screens.confirm import ConfirmScreen
from symsync.tui.screens.create_symbol import CreateSymbolScreen
from symsync.tui.screens.rename import RenameScreen
from symsync.tui.screens.symbol_actions import SymbolActionsScreen
from symsync.tui.widgets.document_tree import DocumentTree
from symsync.tui.widgets.status_bar import StatusBar
from symsync.tui.widgets.symbols_panel import SymbolsPanel

logger = logging.getLogger(__name__)

ALL_SCOPES = "all"


class MainScreen(Screen):
    """Primary workspace."""

    BINDINGS = [
        ("n", "create_symbol", "New Symbol"),
        ("ctrl+r", "refresh", "Refresh"),
        ("ctrl+s", "save_document", "Save"),
        ("slash", "focus_search", "Search"),
    ]

    def __init__(
        self,
        controller: SymbolsController,
        session: InMemorySession,
        store: DocumentStore | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.controller = controller
        self.session = session
        self.store = store
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="workspace"):
            yield DocumentTree(self.session, id="document-tree")
            with Vertical(id="symbols-pane"):
                yield Input(placeholder="Search symbols...", id="symbol-search")
                yield Select(
                    [("All scopes", ALL_SCOPES)]
                    + [(scope_label(s), s.value) for s in SCOPE_ORDER],
                    value=ALL_SCOPES,
                    allow_blank=False,
                    id="scope-filter",
                )
                yield SymbolsPanel(self.controller, id="symbols-panel")
        yield StatusBar(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.controller.on_change = self._refresh_views
        self._unsubscribe = self.controller.registry.add_listener(
            lambda _registry: self._refresh_views()
        )
        self._refresh_views()
        self.refresh_symbols()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self.controller.registry.unmount()
        self.controller.on_change = None
        self.controller.dispose()

    # ── Rendering ──

    def _refresh_views(self) -> None:
        if not self.is_mounted:
            return
        registry = self.controller.registry
        self.query_one(SymbolsPanel).rebuild()
        self.query_one(DocumentTree).rebuild()
        bar = self.query_one(StatusBar)
        bar.team = registry.team_id or "no team"
        bar.count = len(registry.symbols)
        bar.mode = "live" if registry.enabled else "demo"
        bar.loading = registry.is_loading
        if not registry.enabled:
            bar.error = DEMO_MESSAGE
        else:
            bar.error = self.controller.error or ""

    # ── Workers ──

    @work(exclusive=True, name="refresh-symbols")
    async def refresh_symbols(self) -> None:
        await self.controller.registry.refresh()
        self.controller.sync_session()
        self._refresh_views()

    @work(name="rename-symbol")
    async def _rename(self, item: SymbolItemController, value: str) -> None:
        await item.submit_rename(value)

    @work(name="delete-symbol")
    async def _delete(self, item: SymbolItemController) -> None:
        await item.confirm_delete()

    @work(name="promote-symbol")
    async def _promote(self, item: SymbolItemController) -> None:
        promoted = await item.confirm_promote()
        if promoted is not None:
            self.notify(f"Promoted to {scope_label(promoted.scope)}")

    @work(name="library-save")
    async def _save_to_library(self, item: SymbolItemController) -> None:
        if await item.confirm_library_save():
            self.notify("Symbol saved to library")

    @work(name="create-symbol")
    async def _create(self, name: str, scope: SymbolScope) -> None:
        created = await self.controller.create_from_selection(name, scope)
        if created is not None:
            self.notify(f"Created symbol {created.name}")

    # ── Events ──

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "symbol-search":
            self.controller.set_search(event.value)

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id == "scope-filter":
            value = event.value if isinstance(event.value, str) else ALL_SCOPES
            self.controller.set_scope_filter(value)

    def on_symbols_panel_insert_requested(self, event: SymbolsPanel.InsertRequested) -> None:
        self._insert(event.symbol)

    def on_symbols_panel_menu_requested(self, event: SymbolsPanel.MenuRequested) -> None:
        symbol = event.symbol
        item = self.controller.item(symbol.id)
        can_edit = self.controller.can_edit(symbol)
        if can_edit:
            item.open_menu()
        self.app.push_screen(
            SymbolActionsScreen(
                symbol,
                can_edit=can_edit,
                promotion_targets=self.controller.promotion_targets(symbol),
            ),
            callback=lambda action: self._handle_action(symbol, item, action),
        )

    def on_document_tree_selection_changed(self, event: DocumentTree.SelectionChanged) -> None:
        self._refresh_views()

    def _insert(self, symbol: Symbol) -> None:
        result = self.controller.insert(symbol)
        if result is InsertResult.LINKED:
            self.notify(f"Inserted linked {symbol.name}")
        elif result is InsertResult.COPIED:
            self.notify(f"Inserted a copy of {symbol.name}")
        self._refresh_views()

    def _handle_action(self, symbol: Symbol, item: SymbolItemController, action: str | None) -> None:
        if action is None:
            item.close()
            return
        if action == "insert":
            item.close()
            self._insert(symbol)
            return
        safe_name = symbol.name.replace("[", "\\[")
        try:
            if action == "rename":
                item.begin_rename()
                self.app.push_screen(
                    RenameScreen(symbol.name),
                    callback=lambda value: self._after_rename(item, value),
                )
            elif action == "delete":
                item.begin_delete()
                self.app.push_screen(
                    ConfirmScreen(
                        "Delete symbol?",
                        f"[bold]{safe_name}[/bold] will be removed for everyone "
                        f"with {scope_label(symbol.scope).lower()} access.",
                        confirm_label="Delete",
                        destructive=True,
                    ),
                    callback=lambda ok: self._delete(item) if ok else item.close(),
                )
            elif action.startswith("promote:"):
                target = SymbolScope.parse(action.split(":", 1)[1])
                item.begin_promote(target)
                self.app.push_screen(
                    ConfirmScreen(
                        f"Promote to {scope_label(target)}?",
                        f"A copy of [bold]{safe_name}[/bold] is shared at "
                        f"{scope_label(target).lower()} scope. The original stays.",
                        confirm_label="Promote",
                    ),
                    callback=lambda ok: self._promote(item) if ok else item.close(),
                )
            elif action == "library":
                item.begin_library_save()
                self.app.push_screen(
                    ConfirmScreen(
                        "Save to library?",
                        f"Replace the stored content of [bold]{safe_name}[/bold] "
                        "with its current main definition.",
                        confirm_label="Save",
                    ),
                    callback=lambda ok: self._save_to_library(item) if ok else item.close(),
                )
        except PermissionDenied as exc:
            logger.debug("Action refused: %s", exc)
            item.close()
            self.notify(str(exc), severity="warning")

    def _after_rename(self, item: SymbolItemController, value: str | None) -> None:
        if value is None:
            item.close()
        else:
            self._rename(item, value)

    # ── Actions ──

    def action_refresh(self) -> None:
        self.refresh_symbols()

    def action_focus_search(self) -> None:
        self.query_one("#symbol-search", Input).focus()

    def action_create_symbol(self) -> None:
        if self.session.get_selected() is None:
            self.notify("Select an element in the document first", severity="warning")
            return
        scopes = [SymbolScope.TEAM]
        if self.controller.identity.prototype_id:
            scopes.insert(0, SymbolScope.PROTOTYPE)
        self.app.push_screen(CreateSymbolScreen(scopes), callback=self._after_create_dialog)

    def _after_create_dialog(self, result: tuple[str, SymbolScope] | None) -> None:
        if result is not None:
            self._create(*result)

    def action_save_document(self) -> None:
        if self.store is None:
            self.notify("No document file; start with --document to save", severity="warning")
            return
        path = self.store.save(self.session.to_project_data())
        self.notify(f"Saved {path}")
