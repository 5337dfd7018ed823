from __future__ import annotations

from dataclasses import dataclass

CONTAINER_TAGS = ("map", "vector")


@dataclass(frozen=True)
class InferenceParams:
    n_threads: int = -1  # -1 uses every available core
    container_tag: str = "map"  # one of: map, vector

    def __post_init__(self) -> None:
        if self.n_threads != -1 and self.n_threads < 1:
            raise ValueError("n_threads must be -1 or a positive integer")
        if self.container_tag not in CONTAINER_TAGS:
            raise ValueError("container_tag must be one of: map, vector")
