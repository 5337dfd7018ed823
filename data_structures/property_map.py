from __future__ import annotations

from typing import Any, Iterator

from config import CONTAINER_TAGS
from errors import NodeLookupError, PreconditionError

_MISSING = object()


class PropertyMap:
    """Per-node attribute storage keyed by node id.

    ``container_tag="map"`` stores entries in a dict and suits sparse key sets
    (e.g. split tests, which only exist for internal nodes).
    ``container_tag="vector"`` stores entries in a list indexed by node id and
    suits dense key sets. Both backings behave identically: inserting an
    existing key replaces its value, and ``at`` raises ``NodeLookupError``
    for absent keys.
    """

    def __init__(self, container_tag: str = "map", name: str = "property map") -> None:
        if container_tag not in CONTAINER_TAGS:
            raise PreconditionError("container_tag must be one of: map, vector")
        self.container_tag = container_tag
        self.name = name
        self._dict: dict[int, Any] = {}
        self._vector: list[Any] = []
        self._size = 0

    def insert(self, node: int, value: Any) -> None:
        if node < 0:
            raise PreconditionError(f"PropertyMap.insert(): node id must be non-negative, got {node}.")

        if self.container_tag == "map":
            self._dict[node] = value
            return

        if node >= len(self._vector):
            self._vector.extend([_MISSING] * (node + 1 - len(self._vector)))
        if self._vector[node] is _MISSING:
            self._size += 1
        self._vector[node] = value

    def at(self, node: int) -> Any:
        if self.container_tag == "map":
            try:
                return self._dict[node]
            except KeyError:
                raise NodeLookupError(node, self.name) from None

        if 0 <= node < len(self._vector):
            value = self._vector[node]
            if value is not _MISSING:
                return value
        raise NodeLookupError(node, self.name)

    def erase(self, node: int) -> None:
        if node not in self:
            raise NodeLookupError(node, self.name)
        if self.container_tag == "map":
            del self._dict[node]
        else:
            self._vector[node] = _MISSING
            self._size -= 1

    def items(self) -> Iterator[tuple[int, Any]]:
        if self.container_tag == "map":
            return iter(list(self._dict.items()))
        return iter([(node, value) for node, value in enumerate(self._vector) if value is not _MISSING])

    def keys(self) -> Iterator[int]:
        return (node for node, _ in self.items())

    def __contains__(self, node: int) -> bool:
        if self.container_tag == "map":
            return node in self._dict
        return 0 <= node < len(self._vector) and self._vector[node] is not _MISSING

    def __len__(self) -> int:
        if self.container_tag == "map":
            return len(self._dict)
        return self._size
