"""Create-symbol dialog: name plus target scope."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, RadioButton, RadioSet, Static

from symsync.engine.errors import ValidationFailure
from symsync.engine.models import SymbolScope
from symsync.engine.registry import validate_symbol_name
from symsync.shared.formatters.symbol import scope_label


class CreateSymbolScreen(ModalScreen[tuple[str, SymbolScope] | None]):
    """Collects a name and scope; validation errors are shown inline."""

    CSS_PATH = "../styles/modal.tcss"
    BINDINGS = [("escape", "cancel", "Cancel")]

    def __init__(self, scopes: list[SymbolScope], **kwargs) -> None:
        super().__init__(**kwargs)
        self.scopes = scopes or [SymbolScope.TEAM]

    def compose(self) -> ComposeResult:
        default = SymbolScope.TEAM if SymbolScope.TEAM in self.scopes else self.scopes[0]
        with Vertical(id="create-dialog"):
            yield Label("Create symbol from selection")
            yield Input(placeholder="Symbol name", id="create-name")
            with RadioSet(id="create-scope"):
                for scope in self.scopes:
                    yield RadioButton(
                        scope_label(scope), value=scope is default, id=f"scope-{scope.value}",
                    )
            yield Static("", id="create-error", classes="error-text")
            with Horizontal(id="create-actions"):
                yield Button("Create", variant="primary", id="btn-create")
                yield Button("Cancel", id="btn-cancel")

    def on_mount(self) -> None:
        self.query_one("#create-name", Input).focus()

    def _selected_scope(self) -> SymbolScope:
        pressed = self.query_one("#create-scope", RadioSet).pressed_button
        if pressed is None or pressed.id is None:
            return SymbolScope.TEAM
        return SymbolScope.parse(pressed.id.removeprefix("scope-"), SymbolScope.TEAM)

    def _submit(self) -> None:
        raw = self.query_one("#create-name", Input).value
        try:
            name = validate_symbol_name(raw)
        except ValidationFailure as exc:
            self.query_one("#create-error", Static).update(str(exc))
            return
        self.dismiss((name, self._selected_scope()))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self._submit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-create":
            self._submit()
        else:
            self.dismiss(None)

    def action_cancel(self) -> None:
        self.dismiss(None)
