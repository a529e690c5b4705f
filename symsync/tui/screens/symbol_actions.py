"""Symbol action menu, the popup behind ``m`` on a symbol row."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Static

from symsync.engine.models import Symbol, SymbolScope
from symsync.shared.formatters.symbol import promote_label, scope_label


class SymbolActionsScreen(ModalScreen[str | None]):
    """Returns the chosen action string, or None if dismissed.

    Actions: ``insert``, ``rename``, ``delete``, ``library`` and
    ``promote:<scope>``. Edit actions are only offered when allowed.
    """

    CSS_PATH = "../styles/modal.tcss"

    def __init__(
        self,
        symbol: Symbol,
        *,
        can_edit: bool,
        promotion_targets: list[SymbolScope],
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.symbol = symbol
        self.can_edit = can_edit
        self.promotion_targets = promotion_targets

    def compose(self) -> ComposeResult:
        safe_name = self.symbol.name.replace("[", "\\[")
        with Vertical(id="symbol-menu"):
            yield Static(
                f"[bold]{safe_name}[/bold] [dim]{scope_label(self.symbol.scope)}[/dim]",
                id="menu-title",
                markup=True,
            )
            yield Button("Insert", variant="primary", id="act-insert")
            if self.can_edit:
                yield Button("Rename", id="act-rename")
                yield Button("Save to Library", id="act-library")
                for scope in self.promotion_targets:
                    yield Button(promote_label(scope), id=f"act-promote-{scope.value}")
                yield Button("Delete", variant="error", id="act-delete")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        action = (event.button.id or "").removeprefix("act-")
        if action.startswith("promote-"):
            action = "promote:" + action.removeprefix("promote-")
        self.dismiss(action or None)

    def key_escape(self) -> None:
        self.dismiss(None)
