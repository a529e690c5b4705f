"""Confirmation modal for destructive or publishing symbol actions.

Returns True if confirmed, False if cancelled.
"""
from __future__ import annotations

import time

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Static


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no dialog that ignores presses right after it opens."""

    CSS_PATH = "../styles/modal.tcss"

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
        ("y", "confirm", "Confirm"),
    ]

    _MOUNT_GUARD_SECONDS = 0.3

    def __init__(
        self,
        title: str,
        body: str,
        *,
        confirm_label: str = "Confirm",
        destructive: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.title_text = title
        self.body = body
        self.confirm_label = confirm_label
        self.destructive = destructive
        self._mount_time = 0.0

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Label(self.title_text)
            yield Static(self.body, id="confirm-body", markup=True)
            yield Button(
                f"[y] {self.confirm_label}",
                id="btn-confirm",
                variant="error" if self.destructive else "primary",
            )
            yield Button("[Esc] Cancel", id="btn-cancel")

    def on_mount(self) -> None:
        self._mount_time = time.monotonic()
        self.query_one("#btn-confirm", Button).focus()

    def _is_guarded(self) -> bool:
        return time.monotonic() - self._mount_time < self._MOUNT_GUARD_SECONDS

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if self._is_guarded():
            return
        self.dismiss(event.button.id == "btn-confirm")

    def action_confirm(self) -> None:
        if not self._is_guarded():
            self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)
