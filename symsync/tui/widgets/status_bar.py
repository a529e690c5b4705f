"""Status bar: team, symbol count, registry mode and the current error."""

from __future__ import annotations

from textual.reactive import reactive
from textual.widget import Widget
from rich.text import Text


class StatusBar(Widget):
    """Single-line status bar under the symbols panel."""

    team: reactive[str] = reactive("no team")
    count: reactive[int] = reactive(0)
    mode: reactive[str] = reactive("live")
    loading: reactive[bool] = reactive(False)
    error: reactive[str] = reactive("")

    def watch_mode(self, value: str) -> None:
        if value == "demo":
            self.add_class("demo-mode")
        else:
            self.remove_class("demo-mode")

    def render(self) -> Text:
        bar = Text()
        if self.mode == "demo":
            bar.append(" ⚠ DEMO ", style="bold black on yellow")
            bar.append(" ")
        bar.append(f" {self.team} ", style="bold")
        bar.append(" │ ", style="dim")
        noun = "symbol" if self.count == 1 else "symbols"
        bar.append(f"{self.count} {noun}")
        if self.loading:
            bar.append(" │ ", style="dim")
            bar.append("loading…", style="yellow")
        if self.error:
            bar.append(" │ ", style="dim")
            bar.append(self.error, style="red bold")
        return bar
