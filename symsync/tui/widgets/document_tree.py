"""Document tree: outline of the editing session's components."""

from __future__ import annotations

from rich.text import Text
from textual.message import Message
from textual.widgets import Tree
from textual.widgets._tree import TreeNode

from symsync.adapters.memory_session import Component, InMemorySession


class DocumentTree(Tree[Component]):
    """Selecting a node selects the component in the session."""

    class SelectionChanged(Message):
        def __init__(self, component: Component | None) -> None:
            super().__init__()
            self.component = component

    def __init__(self, session: InMemorySession, **kwargs) -> None:
        super().__init__("document", **kwargs)
        self.session = session
        self.show_root = False

    def rebuild(self) -> None:
        selected = self.session.get_selected()
        self.clear()
        self.root.data = self.session.root()
        for child in self.session.root().children:
            self._add(self.root, child)
        self.root.expand_all()
        if selected is not None and self.session.find(selected.id) is None:
            self.session.select(None)

    def _add(self, parent: TreeNode[Component], component: Component) -> None:
        label = Text(component.tag_name, style="bold")
        if component.is_instance:
            label.append(f"  ◆ {component.main_id}", style="magenta")
        elif component.content:
            label.append(f"  {component.content[:30]}", style="dim")
        if component.children:
            node = parent.add(label, data=component)
            for child in component.children:
                self._add(node, child)
        else:
            parent.add_leaf(label, data=component)

    def on_tree_node_selected(self, event: Tree.NodeSelected[Component]) -> None:
        event.stop()
        component = event.node.data
        if component is self.session.root():
            component = None
        self.session.select(component)
        self.post_message(self.SelectionChanged(component))
