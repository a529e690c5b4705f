"""In-memory editing session.

A small component tree that implements the EditingSession protocol:
native fragments loaded through set_fragments() become main
definitions, instances remember which main they track, and drag
staging is modelled as a block registry plus a single active drag.
Edits to a main are not propagated to its instances; that belongs to
a real editing engine.
"""
from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from symsync.engine.fragment_format import is_native_fragment

logger = logging.getLogger(__name__)

PRIMARY_CONTAINER_TAG = "main"
SYMBOL_LINK_KEY = "__symbol"


def _new_id() -> str:
    return f"c-{uuid.uuid4().hex[:10]}"


@dataclass(eq=False)
class Component:
    """One node of the document tree."""
    tag_name: str = "div"
    type: str = "default"
    id: str = field(default_factory=_new_id)
    attributes: dict[str, Any] = field(default_factory=dict)
    content: str = ""
    children: list[Component] = field(default_factory=list)
    main_id: str | None = None  # set on instances
    parent: Component | None = field(default=None, repr=False)

    @property
    def is_instance(self) -> bool:
        return self.main_id is not None

    def append(self, child: Component, at: int | None = None) -> None:
        child.parent = self
        if at is None or at >= len(self.children):
            self.children.append(child)
        else:
            self.children.insert(max(at, 0), child)

    def detach(self) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def walk(self) -> Iterator[Component]:
        yield self
        for child in self.children:
            yield from child.walk()

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tagName": self.tag_name, "type": self.type, "id": self.id}
        if self.attributes:
            data["attributes"] = dict(self.attributes)
        if self.content:
            data["content"] = self.content
        if self.children:
            data["components"] = [c.to_json() for c in self.children]
        if self.main_id is not None:
            data[SYMBOL_LINK_KEY] = self.main_id
        return data

    @classmethod
    def from_json(cls, data: dict[str, Any], *, keep_id: bool = True) -> Component:
        component = cls(
            tag_name=str(data.get("tagName") or "div"),
            type=str(data.get("type") or "default"),
            attributes=dict(data.get("attributes") or {}),
            content=str(data.get("content") or ""),
        )
        if keep_id and data.get("id"):
            component.id = str(data["id"])
        link = data.get(SYMBOL_LINK_KEY)
        if isinstance(link, str):
            component.main_id = link
        for child in data.get("components") or []:
            if isinstance(child, dict):
                component.append(cls.from_json(child, keep_id=keep_id))
        return component


class InMemorySession:
    """Reference EditingSession backed by plain Python objects."""

    def __init__(
        self,
        components: list[dict[str, Any]] | None = None,
        fragments: list[dict[str, Any]] | None = None,
    ) -> None:
        self._root = Component(tag_name="body", type="wrapper", id="wrapper")
        for data in components or []:
            self._root.append(Component.from_json(data))
        self._fragments: list[dict[str, Any]] = []
        self._mains: dict[str, Component] = {}
        self._selected: Component | None = None
        self.blocks: dict[str, dict[str, Any]] = {}
        self._drag: tuple[str, Callable[[], None]] | None = None
        self.undo_steps = 0
        self._tx_depth = 0
        self.set_fragments(fragments or [])

    @classmethod
    def from_project_data(cls, data: dict[str, Any]) -> InMemorySession:
        return cls(
            components=list(data.get("components") or []),
            fragments=list(data.get("symbols") or []),
        )

    def to_project_data(self) -> dict[str, Any]:
        return {
            "components": [c.to_json() for c in self._root.children],
            "symbols": self.get_fragments(),
        }

    # ── Main definitions ──

    def get_mains(self) -> list[Component]:
        return list(self._mains.values())

    def find_main(self, fragment_id: str) -> Component | None:
        return self._mains.get(fragment_id)

    def component_id(self, component: Component) -> str | None:
        return component.id if component is not None else None

    def create_instance(self, main: Component) -> Component | None:
        if main is None or main.id not in self._mains:
            return None
        instance = Component.from_json(main.to_json(), keep_id=False)
        instance.main_id = main.id
        return instance

    def is_symbol(self, component: Component) -> bool:
        if component is None:
            return False
        if component.is_instance:
            return True
        return any(main is component for main in self._mains.values())

    def instances_of(self, main_id: str) -> list[Component]:
        return [c for c in self._root.walk() if c.main_id == main_id]

    def serialize(self, component: Component) -> dict[str, Any] | None:
        if component is None:
            return None
        return component.to_json()

    # ── Persisted fragment list ──

    def get_fragments(self) -> list[dict[str, Any]]:
        fragments: list[dict[str, Any]] = []
        for fragment in self._fragments:
            main = self._mains.get(fragment.get("id", ""))
            if main is not None:
                # Extra keys (back-references) survive; content comes from the live main.
                fragment = {**fragment, **main.to_json()}
            fragments.append(copy.deepcopy(fragment))
        return fragments

    def set_fragments(self, fragments: list[dict[str, Any]]) -> None:
        self._fragments = [copy.deepcopy(f) for f in fragments if isinstance(f, dict)]
        mains: dict[str, Component] = {}
        for fragment in self._fragments:
            fid = fragment.get("id")
            if isinstance(fid, str) and fid and is_native_fragment(fragment):
                main = Component.from_json(fragment)
                main.id = fid
                mains[fid] = main
        self._mains = mains
        logger.debug("Session fragments replaced: %d total, %d mains", len(self._fragments), len(mains))

    # ── Tree placement ──

    def root(self) -> Component:
        return self._root

    def select(self, component: Component | None) -> None:
        self._selected = component

    def get_selected(self) -> Component | None:
        return self._selected

    def parent_of(self, component: Component) -> Component | None:
        return component.parent if component is not None else None

    def index_of(self, component: Component) -> int | None:
        parent = self.parent_of(component)
        if parent is None:
            return None
        for i, child in enumerate(parent.children):
            if child is component:
                return i
        return None

    def primary_container(self) -> Component | None:
        for component in self._root.walk():
            if component.tag_name == PRIMARY_CONTAINER_TAG:
                return component
        return None

    def find(self, component_id: str) -> Component | None:
        for component in self._root.walk():
            if component.id == component_id:
                return component
        return None

    def move(self, component: Component, target: Component, at: int | None = None) -> None:
        component.detach()
        target.append(component, at)

    def insert_content(
        self, target: Component, content: list[dict[str, Any]], at: int | None = None,
    ) -> list[Component]:
        inserted: list[Component] = []
        for offset, data in enumerate(content):
            component = Component.from_json(data, keep_id=False)
            target.append(component, None if at is None else at + offset)
            inserted.append(component)
        return inserted

    # ── Drag staging ──

    def add_block(self, block_id: str, label: str, content: Any) -> None:
        self.blocks[block_id] = {"label": label, "content": content}

    def remove_block(self, block_id: str) -> None:
        self.blocks.pop(block_id, None)

    def start_drag(self, block_id: str, on_stop: Callable[[], None]) -> bool:
        if block_id not in self.blocks or self._drag is not None:
            return False
        self._drag = (block_id, on_stop)
        return True

    @property
    def dragging(self) -> str | None:
        return self._drag[0] if self._drag is not None else None

    def drop(self, target: Component | None = None, at: int | None = None) -> list[Component]:
        """Complete the active drag by inserting the block content."""
        if self._drag is None:
            return []
        block_id, on_stop = self._drag
        self._drag = None
        content = self.blocks.get(block_id, {}).get("content")
        items = content if isinstance(content, list) else [content]
        inserted = self.insert_content(
            target or self._root, [c for c in items if isinstance(c, dict)], at,
        )
        on_stop()
        return inserted

    def abandon_drag(self) -> None:
        if self._drag is None:
            return
        _, on_stop = self._drag
        self._drag = None
        on_stop()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self._tx_depth += 1
        try:
            yield
        finally:
            self._tx_depth -= 1
            if self._tx_depth == 0:
                self.undo_steps += 1
