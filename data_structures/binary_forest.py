from __future__ import annotations

from typing import Iterator

from errors import PreconditionError

Node = int
INVALID = -1


class BinaryForest:
    """Arena of binary trees addressed by dense integer node ids.

    Nodes are numbered ``0 .. num_nodes() - 1`` in creation order. A node
    without a parent is a root and the roots, in creation order, define the
    tree indices. Each node has zero or two children; the first arc added to
    a parent becomes child 0 and the second becomes child 1.
    """

    def __init__(self) -> None:
        self._parents: list[int] = []
        self._children: list[list[int]] = []
        # Insertion-ordered set of roots; _root_list caches it for indexing.
        self._roots: dict[int, None] = {}
        self._root_list: list[int] | None = []
        self._num_arcs = 0

    def add_node(self) -> Node:
        node = len(self._parents)
        self._parents.append(INVALID)
        self._children.append([INVALID, INVALID])
        self._roots[node] = None
        self._root_list = None
        return node

    def add_arc(self, parent: Node, child: Node) -> None:
        self._check_node(parent)
        self._check_node(child)
        if parent == child:
            raise PreconditionError(f"BinaryForest.add_arc(): node {parent} cannot be its own child.")
        if self._parents[child] != INVALID:
            raise PreconditionError(
                f"BinaryForest.add_arc(): node {child} already has parent {self._parents[child]}."
            )
        if self._top(parent) == child:
            raise PreconditionError(
                f"BinaryForest.add_arc(): node {child} is an ancestor of node {parent}; the arc would close a cycle."
            )

        slots = self._children[parent]
        if slots[0] == INVALID:
            slots[0] = child
        elif slots[1] == INVALID:
            slots[1] = child
        else:
            raise PreconditionError(f"BinaryForest.add_arc(): node {parent} already has two children.")

        self._parents[child] = parent
        del self._roots[child]
        self._root_list = None
        self._num_arcs += 1

    def merge(self, other: BinaryForest) -> None:
        """Append the nodes and arcs of ``other``, shifting its ids by ``num_nodes()``."""
        offset = self.num_nodes()
        parents = list(other._parents)
        children = [list(slots) for slots in other._children]
        roots = list(other._roots)

        self._parents.extend(p if p == INVALID else p + offset for p in parents)
        self._children.extend([c if c == INVALID else c + offset for c in slots] for slots in children)
        self._roots.update((r + offset, None) for r in roots)
        self._root_list = None
        self._num_arcs += other._num_arcs

    def valid(self, node: Node) -> bool:
        return 0 <= node < len(self._parents)

    def nodes(self) -> Iterator[Node]:
        return iter(range(len(self._parents)))

    def num_nodes(self) -> int:
        return len(self._parents)

    def num_arcs(self) -> int:
        return self._num_arcs

    def num_roots(self) -> int:
        return len(self._roots)

    def get_root(self, tree_index: int) -> Node:
        root_list = self._root_list
        if root_list is None:
            root_list = self._root_list = list(self._roots)
        if not 0 <= tree_index < len(root_list):
            raise PreconditionError(
                f"BinaryForest.get_root(): tree index {tree_index} out of range [0, {len(root_list)})."
            )
        return root_list[tree_index]

    def get_child(self, node: Node, index: int) -> Node:
        self._check_node(node)
        if index not in (0, 1):
            raise PreconditionError(f"BinaryForest.get_child(): child index must be 0 or 1, got {index}.")
        child = self._children[node][index]
        if child == INVALID:
            raise PreconditionError(f"BinaryForest.get_child(): node {node} has no child {index}.")
        return child

    def get_parent(self, node: Node) -> Node:
        """Return the parent of ``node``, or -1 for a root."""
        self._check_node(node)
        return self._parents[node]

    def out_degree(self, node: Node) -> int:
        slots = self._children[node]
        return (slots[0] != INVALID) + (slots[1] != INVALID)

    def in_degree(self, node: Node) -> int:
        self._check_node(node)
        return 0 if self._parents[node] == INVALID else 1

    def _check_node(self, node: Node) -> None:
        if not self.valid(node):
            raise PreconditionError(f"BinaryForest: node {node} does not exist.")

    def _top(self, node: Node) -> Node:
        while self._parents[node] != INVALID:
            node = self._parents[node]
        return node
