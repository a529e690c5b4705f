"""SymSync TUI: Textual application class."""

from __future__ import annotations

from pathlib import Path

from textual.app import App

from symsync.adapters.memory_session import InMemorySession
from symsync.engine.api import RegistryApi
from symsync.shared.services.document_store import DocumentStore
from symsync.tui.handlers.symbols_controller import SymbolsController
from symsync.tui.screens.main import MainScreen


class SymSyncApp(App):
    """Terminal UI for browsing and placing shared symbols."""

    TITLE = "SymSync"
    SUB_TITLE = "Shared Symbols"
    CSS_PATH = Path("styles/app.tcss")

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        ("escape", "cancel_or_blur", "Cancel"),
    ]

    def __init__(
        self,
        controller: SymbolsController,
        session: InMemorySession,
        *,
        store: DocumentStore | None = None,
        api: RegistryApi | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.controller = controller
        self.session = session
        self.store = store
        self._api = api

    def on_mount(self) -> None:
        self.push_screen(MainScreen(self.controller, self.session, self.store))

    async def on_unmount(self) -> None:
        if self._api is not None:
            await self._api.close()

    def action_cancel_or_blur(self) -> None:
        self.screen.set_focus(None)
