from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

import numpy as np

from accumulators import ArgMaxAcc
from config import InferenceParams
from data_structures import BinaryForest, Node, ProblemSpec, PropertyMap
from errors import PreconditionError
from parallel import parallel_foreach, resolve_n_threads

logger = logging.getLogger(__name__)


class RandomForest:
    """A trained forest of binary decision trees, queried by sample.

    The forest is the graph plus two node attribute maps: ``split_tests``
    (one callable per internal node, mapping a feature row to child 0 or 1)
    and ``node_responses`` (one accumulator input per leaf). ``acc`` reduces
    the leaf responses of one sample to a class-probability row.

    All prediction methods return the average number of split comparisons
    per sample. They only read the forest and may run concurrently with
    each other, but not with ``merge``.
    """

    def __init__(
        self,
        graph: BinaryForest | None = None,
        split_tests: PropertyMap | None = None,
        node_responses: PropertyMap | None = None,
        problem_spec: ProblemSpec | None = None,
        acc: Callable[[list[Any], np.ndarray], None] | None = None,
        params: InferenceParams | None = None,
    ) -> None:
        self.params = params or InferenceParams()
        self.graph = graph if graph is not None else BinaryForest()
        self.split_tests = (
            split_tests
            if split_tests is not None
            else PropertyMap(self.params.container_tag, name="split tests")
        )
        self.node_responses = (
            node_responses
            if node_responses is not None
            else PropertyMap(self.params.container_tag, name="node responses")
        )
        self.problem_spec = problem_spec if problem_spec is not None else ProblemSpec()
        self.acc = acc if acc is not None else ArgMaxAcc()

    @property
    def num_nodes(self) -> int:
        return self.graph.num_nodes()

    @property
    def num_trees(self) -> int:
        return self.graph.num_roots()

    @property
    def num_classes(self) -> int:
        return self.problem_spec.n_classes

    def merge(self, other: RandomForest) -> None:
        """Grow this forest by appending the trees of ``other``.

        Node ids of ``other`` are shifted by this forest's node count, so the
        existing trees keep their ids and tree indices and the new trees are
        appended after them.
        """
        if self.problem_spec != other.problem_spec:
            raise PreconditionError(
                "RandomForest.merge(): cannot merge forests with different problem specs "
                f"({self.problem_spec} != {other.problem_spec})."
            )

        offset = self.num_nodes
        split_tests = list(other.split_tests.items())
        node_responses = list(other.node_responses.items())

        self.graph.merge(other.graph)
        for node, test in split_tests:
            self.split_tests.insert(node + offset, test)
        for node, response in node_responses:
            self.node_responses.insert(node + offset, response)

        logger.info(
            "Merged %d nodes at offset %d; forest now has %d nodes in %d trees",
            self.num_nodes - offset,
            offset,
            self.num_nodes,
            self.num_trees,
        )

    def traverse(self, features: np.ndarray, tree_index: int) -> tuple[Node, int]:
        """Return the leaf reached by one feature row in one tree and the number of comparisons."""
        features = np.asarray(features)
        if features.ndim != 1 or features.shape[0] != self.problem_spec.n_features:
            raise PreconditionError(
                f"RandomForest.traverse(): feature row has shape {features.shape}, "
                f"expected ({self.problem_spec.n_features},)."
            )
        if not 0 <= tree_index < self.num_trees:
            raise PreconditionError(
                f"RandomForest.traverse(): tree index {tree_index} out of range [0, {self.num_trees})."
            )
        return self._traverse(features, tree_index)

    def _traverse(self, features: np.ndarray, tree_index: int) -> tuple[Node, int]:
        graph = self.graph
        node = graph.get_root(tree_index)
        comparisons = 0
        while graph.out_degree(node) > 0:
            # Split tests may return numpy bools.
            child_index = int(self.split_tests.at(node)(features))
            node = graph.get_child(node, child_index)
            comparisons += 1
        return node, comparisons

    def predict(
        self,
        features: np.ndarray,
        labels: np.ndarray,
        n_threads: int | None = None,
        tree_indices: Iterable[int] = (),
    ) -> float:
        """Write the predicted label of every sample into ``labels``.

        ``labels`` must have shape ``(n_samples,)``. The label of a sample is
        the distinct class with the highest probability; ties go to the class
        that comes first in ``problem_spec.classes``.
        """
        if labels.ndim != 1:
            raise PreconditionError(f"RandomForest.predict(): labels must be 1D, got shape {labels.shape}.")
        features = self._check_features("predict", features, labels.shape[0])
        if self.num_classes == 0:
            raise PreconditionError("RandomForest.predict(): problem spec has no classes.")

        probs = np.zeros((features.shape[0], self.num_classes), dtype=np.float64)
        average_split_counts = self.predict_proba(features, probs, n_threads, tree_indices)

        classes = self.problem_spec.classes
        for i, label in enumerate(np.argmax(probs, axis=1)):
            labels[i] = classes[label]
        return average_split_counts

    def predict_proba(
        self,
        features: np.ndarray,
        probs: np.ndarray,
        n_threads: int | None = None,
        tree_indices: Iterable[int] = (),
    ) -> float:
        """Write the class probabilities of every sample into ``probs``.

        ``probs`` must have shape ``(n_samples, num_classes)``. The leaf
        responses of the selected trees are passed to the accumulator in
        ascending tree order.
        """
        if probs.ndim != 2:
            raise PreconditionError(
                f"RandomForest.predict_proba(): probabilities must be 2D, got shape {probs.shape}."
            )
        features = self._check_features("predict_proba", features, probs.shape[0])
        if probs.shape[1] != self.num_classes:
            raise PreconditionError(
                f"RandomForest.predict_proba(): number of classes in probabilities ({probs.shape[1]}) "
                f"differs from training ({self.num_classes})."
            )
        actual_tree_indices = self._resolve_tree_indices("predict_proba", tree_indices)

        ids = np.full((features.shape[0], self.num_trees), -1, dtype=np.int64)
        average_split_counts = self.leaf_ids(features, ids, n_threads, actual_tree_indices)

        for i in range(features.shape[0]):
            tree_results = self._gather_responses(ids[i], actual_tree_indices)
            self.acc(tree_results, probs[i])
        return average_split_counts

    def leaf_ids(
        self,
        features: np.ndarray,
        ids: np.ndarray,
        n_threads: int | None = None,
        tree_indices: Iterable[int] = (),
    ) -> float:
        """Write the leaf reached by sample ``i`` in tree ``k`` into ``ids[i, k]``.

        ``ids`` must have shape ``(n_samples, num_trees)`` and an integer
        dtype. Cells of trees not in ``tree_indices`` are set to -1. An empty
        ``tree_indices`` selects all trees.
        """
        if ids.ndim != 2:
            raise PreconditionError(f"RandomForest.leaf_ids(): leaf array must be 2D, got shape {ids.shape}.")
        features = self._check_features("leaf_ids", features, ids.shape[0])
        if ids.shape[1] != self.num_trees:
            raise PreconditionError(
                f"RandomForest.leaf_ids(): leaf array has {ids.shape[1]} columns, expected {self.num_trees}."
            )
        if not np.issubdtype(ids.dtype, np.signedinteger):
            raise PreconditionError(
                f"RandomForest.leaf_ids(): leaf array must have a signed integer dtype, got {ids.dtype}."
            )
        actual_tree_indices = self._resolve_tree_indices("leaf_ids", tree_indices)

        n_threads = resolve_n_threads(self.params.n_threads if n_threads is None else n_threads)
        num_instances = features.shape[0]
        split_comparisons = np.zeros(n_threads, dtype=np.float64)
        ids.fill(-1)

        def _work(thread_id: int, i: int) -> None:
            split_comparisons[thread_id] += self._leaf_ids_impl(features, ids, i, i + 1, actual_tree_indices)

        parallel_foreach(n_threads, num_instances, _work)

        if num_instances == 0:
            return 0.0
        average = float(split_comparisons.sum()) / num_instances
        logger.debug(
            "leaf_ids: %d samples, %d trees, %d threads, %.3f comparisons per sample",
            num_instances,
            len(actual_tree_indices),
            n_threads,
            average,
        )
        return average

    def _leaf_ids_impl(
        self,
        features: np.ndarray,
        ids: np.ndarray,
        start: int,
        stop: int,
        tree_indices: list[int],
    ) -> int:
        split_comparisons = 0
        for i in range(start, stop):
            row = features[i]
            for k in tree_indices:
                ids[i, k], comparisons = self._traverse(row, k)
                split_comparisons += comparisons
        return split_comparisons

    def _gather_responses(self, leaf_row: np.ndarray, tree_indices: list[int]) -> list[Any]:
        return [self.node_responses.at(int(leaf_row[k])) for k in tree_indices]

    def _check_features(self, method: str, features: np.ndarray, n_outputs: int) -> np.ndarray:
        features = np.asarray(features)
        if features.ndim != 2:
            raise PreconditionError(f"RandomForest.{method}(): features must be 2D, got shape {features.shape}.")
        if features.shape[0] != n_outputs:
            raise PreconditionError(
                f"RandomForest.{method}(): shape mismatch between features ({features.shape[0]} samples) "
                f"and output ({n_outputs} samples)."
            )
        if features.shape[1] != self.problem_spec.n_features:
            raise PreconditionError(
                f"RandomForest.{method}(): number of features ({features.shape[1]}) differs from "
                f"training ({self.problem_spec.n_features})."
            )
        return features

    def _resolve_tree_indices(self, method: str, tree_indices: Iterable[int]) -> list[int]:
        actual_tree_indices = sorted({int(k) for k in tree_indices})
        for k in actual_tree_indices:
            if not 0 <= k < self.num_trees:
                raise PreconditionError(
                    f"RandomForest.{method}(): tree index {k} out of range [0, {self.num_trees})."
                )
        if not actual_tree_indices:
            actual_tree_indices = list(range(self.num_trees))
        return actual_tree_indices
