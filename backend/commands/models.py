"""
ScriptMenu Command Tree Models.

A command tree is made of two node kinds: a Leaf per script file and a Group
per directory. Nodes compare by identity; siblings are kept ordered by
case-insensitive name.
Requires Python 3.11+.
"""

from bisect import bisect_left
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class NodeKind(str, Enum):
    """Kinds of nodes in the command tree."""

    GROUP = "group"
    LEAF = "leaf"


def sort_key(name: str) -> str:
    """Ordering key for sibling names."""
    return name.lower()


@dataclass(eq=False, slots=True)
class Leaf:
    """One invokable script file."""

    name: str
    path: Path
    action: Callable[[Path], Any]

    def invoke(self) -> Any:
        """Run the script this leaf is bound to."""
        return self.action(self.path)


@dataclass(eq=False, slots=True)
class Group:
    """One directory, holding its children in display order."""

    name: str
    path: Path
    children: list["CommandNode"] = field(default_factory=list)

    def child(self, name: str) -> "CommandNode | None":
        """Get the direct child with exactly this name."""
        for node in self.children:
            if node.name == name:
                return node
        return None

    @property
    def names(self) -> set[str]:
        """Names of the direct children."""
        return {node.name for node in self.children}

    def insert_sorted(self, node: "CommandNode") -> int:
        """
        Insert a child at its sorted position.

        The node goes before the first sibling whose name compares greater
        than or equal, ignoring case.

        Returns:
            The index the node was inserted at
        """
        index = bisect_left(
            self.children, sort_key(node.name), key=lambda n: sort_key(n.name)
        )
        self.children.insert(index, node)
        return index

    def remove(self, node: "CommandNode") -> None:
        """Remove a child by identity."""
        for i, existing in enumerate(self.children):
            if existing is node:
                del self.children[i]
                return
        raise ValueError(f"{node.name!r} is not a child of {self.name!r}")

    def find(self, relative_path: str) -> "CommandNode | None":
        """
        Resolve a '/'-separated path of names below this group.

        An empty path resolves to the group itself.
        """
        node: CommandNode = self
        for part in (p for p in relative_path.split("/") if p):
            match node:
                case Group():
                    found = node.child(part)
                case Leaf():
                    return None
            if found is None:
                return None
            node = found
        return node


CommandNode = Leaf | Group


def kind_of(node: CommandNode) -> NodeKind:
    """Get the kind tag of a node."""
    match node:
        case Group():
            return NodeKind.GROUP
        case Leaf():
            return NodeKind.LEAF


def iter_groups(group: Group) -> Iterator[Group]:
    """Yield a group and every group below it, depth first."""
    yield group
    for node in group.children:
        match node:
            case Group():
                yield from iter_groups(node)
            case Leaf():
                pass


def count_leaves(node: CommandNode) -> int:
    """Count the script leaves at or below a node."""
    match node:
        case Leaf():
            return 1
        case Group():
            return sum(count_leaves(child) for child in node.children)


def to_dict(node: CommandNode, root: Path | None = None) -> dict[str, Any]:
    """
    Render a node and its descendants for serialization.

    Paths are made relative to ``root`` when given.
    """
    path = node.path
    if root is not None:
        try:
            path = node.path.relative_to(root)
        except ValueError:
            pass

    match node:
        case Leaf():
            return {
                "name": node.name,
                "type": NodeKind.LEAF.value,
                "path": path.as_posix(),
                "children": [],
            }
        case Group():
            return {
                "name": node.name,
                "type": NodeKind.GROUP.value,
                "path": path.as_posix(),
                "children": [to_dict(child, root) for child in node.children],
            }
