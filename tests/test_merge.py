import numpy as np
import pytest

from config import InferenceParams
from data_structures import ProblemSpec
from errors import PreconditionError
from random_forest import RandomForest
from split_tests import LessEqualSplitTest


def _grow_forest(n_trees, depth, rng, n_features=3, n_classes=4, container_tag="map"):
    rf = RandomForest(
        problem_spec=ProblemSpec().num_features(n_features).distinct_classes(range(n_classes)),
        params=InferenceParams(container_tag=container_tag),
    )
    for _ in range(n_trees):
        frontier = [rf.graph.add_node()]
        for _ in range(depth):
            next_frontier = []
            for node in frontier:
                rf.split_tests.insert(
                    node, LessEqualSplitTest(int(rng.integers(n_features)), float(rng.uniform()))
                )
                for _ in range(2):
                    child = rf.graph.add_node()
                    rf.graph.add_arc(node, child)
                    next_frontier.append(child)
            frontier = next_frontier
        for leaf in frontier:
            rf.node_responses.insert(leaf, int(rng.integers(n_classes)))
    return rf


def _leaf_responses(rf, X, tree_indices):
    ids = np.zeros((X.shape[0], rf.num_trees), dtype=np.int64)
    rf.leaf_ids(X, ids, 1, tree_indices)
    return [[rf.node_responses.at(int(ids[i, k])) for k in tree_indices] for i in range(X.shape[0])]


@pytest.mark.parametrize("tags", [("map", "map"), ("vector", "vector"), ("map", "vector")])
def test_merge_appends_trees_and_offsets_node_ids(tags):
    a = _grow_forest(n_trees=3, depth=2, rng=np.random.default_rng(0), container_tag=tags[0])
    b = _grow_forest(n_trees=2, depth=3, rng=np.random.default_rng(1), container_tag=tags[1])
    X = np.random.default_rng(2).uniform(size=(30, 3))

    a_nodes, b_nodes = a.num_nodes, b.num_nodes
    a_ids_before = np.zeros((30, 3), dtype=np.int64)
    a.leaf_ids(X, a_ids_before)
    b_probs = np.zeros((30, 4))
    b.predict_proba(X, b_probs)
    b_responses = _leaf_responses(b, X, [0, 1])

    a.merge(b)

    assert a.num_nodes == a_nodes + b_nodes
    assert a.num_trees == 5
    assert a.graph.get_root(3) == b.graph.get_root(0) + a_nodes
    assert a.graph.get_root(4) == b.graph.get_root(1) + a_nodes

    a_ids_after = np.zeros((30, 5), dtype=np.int64)
    a.leaf_ids(X, a_ids_after)
    np.testing.assert_array_equal(a_ids_after[:, :3], a_ids_before)

    merged_probs = np.zeros((30, 4))
    a.predict_proba(X, merged_probs, tree_indices=[3, 4])
    np.testing.assert_allclose(merged_probs, b_probs)
    assert _leaf_responses(a, X, [3, 4]) == b_responses


def test_merge_keeps_the_other_forest_unchanged():
    a = _grow_forest(n_trees=1, depth=2, rng=np.random.default_rng(3))
    b = _grow_forest(n_trees=1, depth=1, rng=np.random.default_rng(4))

    a.merge(b)

    assert b.num_nodes == 3
    assert b.num_trees == 1
    assert sorted(b.split_tests.keys()) == [0]
    assert sorted(b.node_responses.keys()) == [1, 2]
    assert sorted(a.node_responses.keys()) == [3, 4, 5, 6, 8, 9]


def test_merge_with_itself_duplicates_the_trees():
    rf = _grow_forest(n_trees=2, depth=2, rng=np.random.default_rng(5))
    X = np.random.default_rng(6).uniform(size=(20, 3))
    before = np.zeros((20, 4))
    rf.predict_proba(X, before)
    n_nodes = rf.num_nodes

    rf.merge(rf)

    assert n_nodes == 14
    assert rf.num_nodes == 2 * n_nodes
    assert rf.num_trees == 4
    after = np.zeros((20, 4))
    rf.predict_proba(X, after, tree_indices=[2, 3])
    np.testing.assert_allclose(after, before)


def test_merge_rejects_different_problem_specs():
    a = _grow_forest(n_trees=1, depth=2, rng=np.random.default_rng(7))
    b = _grow_forest(n_trees=1, depth=2, rng=np.random.default_rng(8), n_classes=3)
    c = _grow_forest(n_trees=1, depth=2, rng=np.random.default_rng(9), n_features=4)

    with pytest.raises(PreconditionError, match="different problem specs"):
        a.merge(b)
    with pytest.raises(PreconditionError, match="different problem specs"):
        a.merge(c)

    assert a.num_nodes == 7
    assert a.num_trees == 1
    assert len(a.split_tests) == 3
    assert len(a.node_responses) == 4
