class PreconditionError(ValueError):
    """Raised when the inputs of a forest operation violate its contract."""


class NodeLookupError(KeyError):
    """Raised when a node has no entry in a node attribute map."""

    def __init__(self, node: int, map_name: str = "property map") -> None:
        super().__init__(node)
        self.node = node
        self.map_name = map_name

    def __str__(self) -> str:
        return f"node {self.node} has no entry in the {self.map_name}"
