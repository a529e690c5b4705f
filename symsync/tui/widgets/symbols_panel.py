"""Symbols panel: scope-grouped option list."""

from __future__ import annotations

from rich.text import Text
from textual.message import Message
from textual.widgets import OptionList
from textual.widgets.option_list import Option, OptionDoesNotExist

from symsync.engine.models import Symbol
from symsync.shared.formatters.symbol import (
    EMPTY_MESSAGE,
    NO_MATCH_MESSAGE,
    SCOPE_STYLES,
    format_created_date,
    group_heading,
    scope_badge,
)
from symsync.tui.handlers.symbols_controller import ItemAction, SymbolsController

HEADING_PREFIX = "heading-"


class SymbolsPanel(OptionList):
    """Lists the controller's grouped symbols.

    Enter inserts the highlighted symbol; ``m`` opens its action menu.
    """

    BINDINGS = [
        ("m", "open_menu", "Actions"),
        ("i", "insert", "Insert"),
    ]

    class InsertRequested(Message):
        def __init__(self, symbol: Symbol) -> None:
            super().__init__()
            self.symbol = symbol

    class MenuRequested(Message):
        def __init__(self, symbol: Symbol) -> None:
            super().__init__()
            self.symbol = symbol

    def __init__(self, controller: SymbolsController, **kwargs) -> None:
        super().__init__(**kwargs)
        self.controller = controller

    def rebuild(self) -> None:
        """Re-render from the controller, keeping the highlighted symbol."""
        previous = self.highlighted_symbol
        self.clear_options()
        groups = self.controller.grouped()
        if not groups:
            message = NO_MATCH_MESSAGE if self.controller.registry.symbols else EMPTY_MESSAGE
            self.add_option(Option(Text(message, style="dim"), disabled=True))
            return

        options: list[Option | None] = []
        for scope, symbols in groups:
            if options:
                options.append(None)
            options.append(Option(
                Text(group_heading(scope, len(symbols)), style=SCOPE_STYLES[scope]),
                id=f"{HEADING_PREFIX}{scope.value}",
                disabled=True,
            ))
            options.extend(Option(self._row(s), id=s.id) for s in symbols)
        self.add_options(options)

        if previous is not None:
            try:
                self.highlighted = self.get_option_index(previous.id)
            except OptionDoesNotExist:
                self.highlighted = None

    def _row(self, symbol: Symbol) -> Text:
        item = self.controller.item(symbol.id)
        row = Text()
        row.append(f"[{scope_badge(symbol.scope)}] ", style=SCOPE_STYLES[symbol.scope])
        row.append(symbol.name)
        created = format_created_date(symbol.created_at)
        if created:
            row.append(f"  {created}", style="dim")
        if not self.controller.can_edit(symbol):
            row.append("  read-only", style="dim italic")
        if item.state is not ItemAction.IDLE:
            row.append(f"  {item.state.value.replace('_', ' ')}", style="yellow")
        if item.error:
            row.append(f"  {item.error}", style="red")
        return row

    @property
    def highlighted_symbol(self) -> Symbol | None:
        if self.highlighted is None:
            return None
        option = self.get_option_at_index(self.highlighted)
        if option.id is None or option.id.startswith(HEADING_PREFIX):
            return None
        return self.controller.registry.get(option.id)

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        symbol = self.controller.registry.get(event.option_id or "")
        if symbol is not None:
            self.post_message(self.InsertRequested(symbol))

    def action_insert(self) -> None:
        symbol = self.highlighted_symbol
        if symbol is not None:
            self.post_message(self.InsertRequested(symbol))

    def action_open_menu(self) -> None:
        symbol = self.highlighted_symbol
        if symbol is not None:
            self.post_message(self.MenuRequested(symbol))
