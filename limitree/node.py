"""A generic, ordered tree of named nodes.

Limiter trees are built from ``Node`` instances: every node has a name that
is unique among its siblings, an optional value and a parent back-reference.
A node registers itself with its parent on construction, so a tree can only
ever grow downwards and cannot contain cycles.

Example::

    root = Node("root")
    api = Node("api", RateConfig("api", Rates.of(Rate.per_second(100))), root)
    Node("search", RateConfig("search", Rates.of(Rate.per_second(5))), api)

    print(root)
    # root
    #   api=RateConfig(...)
    #     search=RateConfig(...)
"""

from __future__ import annotations

import sys
from collections import deque
from collections.abc import Callable
from typing import Any

NodeConsumer = Callable[["Node[Any]"], None]
NodePredicate = Callable[["Node[Any]"], bool]


class Node[V]:
    """A named node holding an optional value.

    Args:
        name: Node name, unique among its siblings.
        value: Payload. None marks a structural node.
        parent: Parent node. The new node is appended to its children.

    Raises:
        ValueError: If the name is empty or already used by a sibling.
    """

    def __init__(self, name: str, value: V | None = None, parent: Node[V] | None = None):
        if not isinstance(name, str) or not name:
            raise ValueError(f"Node name must be a non-empty string, got {name!r}")
        self._name = name
        self._value = value
        self._parent = parent
        self._children: list[Node[V]] = []
        if parent is not None:
            parent.add_child(self)

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> V | None:
        return self._value

    @property
    def parent(self) -> Node[V] | None:
        return self._parent

    @property
    def children(self) -> tuple[Node[V], ...]:
        return tuple(self._children)

    def add_child(self, child: Node[V]) -> Node[V]:
        """Register ``child``, which must already name this node as its parent.

        Raises:
            ValueError: If the child belongs to another parent, is this node
                or one of its ancestors, or its name is taken.
        """
        if child is self or self._is_descendant_of(child):
            raise ValueError(f"Node {child.name!r} cannot be a child of its own descendant {self.name!r}")
        if child._parent is not self:
            parent_name = child._parent.name if child._parent is not None else None
            raise ValueError(f"Node {child.name!r} has parent {parent_name!r}, not {self.name!r}")
        if any(existing is child for existing in self._children):
            raise ValueError(f"Node {child.name!r} is already a child of {self.name!r}")
        if any(existing.name == child.name for existing in self._children):
            raise ValueError(f"Duplicate child name {child.name!r} under {self.name!r}")
        self._children.append(child)
        return child

    def _is_descendant_of(self, other: Node[V]) -> bool:
        node = self._parent
        while node is not None:
            if node is other:
                return True
            node = node._parent
        return False

    def get_child(self, name: str) -> Node[V] | None:
        for child in self._children:
            if child.name == name:
                return child
        return None

    def has_value(self) -> bool:
        return self._value is not None

    def require_value(self) -> V:
        if self._value is None:
            raise ValueError(f"Node {self._name!r} has no value")
        return self._value

    @property
    def is_root(self) -> bool:
        return self._parent is None

    @property
    def is_leaf(self) -> bool:
        return not self._children

    @property
    def level(self) -> int:
        """Distance from the root; the root is at level 0."""
        level = 0
        node = self._parent
        while node is not None:
            level += 1
            node = node._parent
        return level

    @property
    def root(self) -> Node[V]:
        node = self
        while node._parent is not None:
            node = node._parent
        return node

    def size(self) -> int:
        """Number of nodes in this subtree, this node included."""
        count = 0

        def increment(_node: Node[V]) -> None:
            nonlocal count
            count += 1

        self.visit_all(increment)
        return count

    def siblings(self) -> tuple[Node[V], ...]:
        if self._parent is None:
            return ()
        return tuple(child for child in self._parent._children if child is not self)

    def leaves(self) -> list[Node[V]]:
        """Leaf nodes of this subtree in depth-first order."""
        found: list[Node[V]] = []
        self.visit_all(found.append, lambda node: node.is_leaf)
        return found

    def visit_all(
        self,
        consumer: NodeConsumer,
        filter: NodePredicate | None = None,
        depth: int = sys.maxsize,
    ) -> None:
        """Depth-first, pre-order traversal of this subtree.

        Args:
            consumer: Called for every node that passes ``filter``.
            filter: Nodes failing it are not consumed but are still descended into.
            depth: How many levels below this node to visit. 0 visits only this node.
        """
        stack: list[tuple[Node[V], int]] = [(self, depth)]
        while stack:
            node, remaining = stack.pop()
            if filter is None or filter(node):
                consumer(node)
            if remaining > 0:
                stack.extend((child, remaining - 1) for child in reversed(node._children))

    def visit_all_breadth_first(
        self,
        consumer: NodeConsumer,
        filter: NodePredicate | None = None,
        depth: int = sys.maxsize,
    ) -> None:
        """Level-order counterpart of ``visit_all`` with the same arguments."""
        queue: deque[tuple[Node[V], int]] = deque([(self, depth)])
        while queue:
            node, remaining = queue.popleft()
            if filter is None or filter(node):
                consumer(node)
            if remaining > 0:
                queue.extend((child, remaining - 1) for child in node._children)

    def find_first(self, predicate: NodePredicate) -> Node[V] | None:
        """First node of this subtree, depth-first and starting here, matching ``predicate``."""
        stack: list[Node[V]] = [self]
        while stack:
            node = stack.pop()
            if predicate(node):
                return node
            stack.extend(reversed(node._children))
        return None

    def find_path(self, *values: Any) -> Node[V] | None:
        """Follow ``values`` downwards, each searched from the previous match.

        Returns:
            The node holding the last value, or None if any value is missing.
        """
        node: Node[V] | None = self
        for value in values:
            node = node.find_first(lambda candidate, wanted=value: candidate.value == wanted)
            if node is None:
                return None
        return node

    def any_match(self, predicate: NodePredicate) -> bool:
        return self.find_first(predicate) is not None

    def transform[T](
        self,
        value_fn: Callable[[V], T],
        name_fn: Callable[[str], str] | None = None,
        new_parent: Node[T] | None = None,
        filter: NodePredicate | None = None,
    ) -> Node[T] | None:
        """Build a converted copy of this subtree.

        Args:
            value_fn: Converts non-None values. Structural nodes stay structural.
            name_fn: Converts names; names are kept when None.
            new_parent: Parent for the copy of this node.
            filter: A node failing it is dropped along with its whole subtree.

        Returns:
            The copy of this node, or None if this node was filtered out.
        """
        if filter is not None and not filter(self):
            return None
        name = name_fn(self._name) if name_fn is not None else self._name
        value = value_fn(self._value) if self._value is not None else None
        copy: Node[T] = Node(name, value, new_parent)
        for child in self._children:
            child.transform(value_fn, name_fn, copy, filter)
        return copy

    def copy_to(self, new_parent: Node[V] | None = None) -> Node[V]:
        return self.transform(lambda value: value, new_parent=new_parent)

    def retain_all(self, predicate: NodePredicate, new_parent: Node[V] | None = None) -> Node[V] | None:
        """Copy only the nodes that match ``predicate`` or have a matching descendant."""
        return self.transform(
            lambda value: value,
            new_parent=new_parent,
            filter=lambda node: node.any_match(predicate),
        )

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Node):
            return NotImplemented
        return self._name == other._name and self._value == other._value and self._parent == other._parent

    def __hash__(self) -> int:
        return hash((self._name, self._parent))

    def __repr__(self) -> str:
        return f"Node(name={self._name!r}, value={self._value!r})"

    def __str__(self) -> str:
        return format_tree(self)


def format_tree(node: Node[Any], indent: str = "  ", max_depth: int = sys.maxsize) -> str:
    """Render ``node`` and its descendants one per line, indented by depth."""
    base = node.level
    lines: list[str] = []

    def render(current: Node[Any]) -> None:
        text = current.name if current.value is None else f"{current.name}={current.value}"
        lines.append(indent * (current.level - base) + text)

    node.visit_all(render, depth=max_depth)
    return "\n".join(lines)
