"""
Data structures for forests of binary decision trees.

A forest is stored as a graph of integer node ids (``BinaryForest``), with
the per-node split tests and responses kept in separate ``PropertyMap``
instances and the training metadata in a ``ProblemSpec``.
"""

from data_structures.binary_forest import BinaryForest, Node
from data_structures.problem_spec import ProblemSpec
from data_structures.property_map import PropertyMap

__all__ = ["BinaryForest", "Node", "ProblemSpec", "PropertyMap"]
