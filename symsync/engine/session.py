"""Editing session capability.

The editing session (component tree, main/instance linking, drag and
drop) is external. The core only calls the operations below, so any
engine adapter, or an in-memory fake in tests, can stand in for it.
"""
from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class EditingSession(Protocol):
    # Main definitions

    def get_mains(self) -> list[Any]: ...

    def find_main(self, fragment_id: str) -> Any | None: ...

    def component_id(self, component: Any) -> str | None: ...

    def create_instance(self, main: Any) -> Any | None:
        """New instance linked to *main*, not yet placed in the tree."""
        ...

    def is_symbol(self, component: Any) -> bool:
        """True for a main definition or an instance linked to one."""
        ...

    def serialize(self, component: Any) -> dict[str, Any] | None: ...

    # Persisted fragment list

    def get_fragments(self) -> list[dict[str, Any]]: ...

    def set_fragments(self, fragments: list[dict[str, Any]]) -> None: ...

    # Tree placement

    def get_selected(self) -> Any | None: ...

    def parent_of(self, component: Any) -> Any | None: ...

    def index_of(self, component: Any) -> int | None: ...

    def root(self) -> Any: ...

    def primary_container(self) -> Any | None: ...

    def move(self, component: Any, target: Any, at: int | None = None) -> None: ...

    def insert_content(
        self, target: Any, content: list[dict[str, Any]], at: int | None = None,
    ) -> list[Any]: ...

    # Drag staging

    def add_block(self, block_id: str, label: str, content: Any) -> None: ...

    def remove_block(self, block_id: str) -> None: ...

    def start_drag(self, block_id: str, on_stop: Callable[[], None]) -> bool:
        """Begin dragging a staged block; *on_stop* fires on drop or abandon."""
        ...

    def transaction(self) -> AbstractContextManager[None]:
        """Group the enclosed edits into one undo step."""
        ...
