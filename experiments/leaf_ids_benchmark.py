import argparse
import logging
import time
import sys
from pathlib import Path

import numpy as np

# Allow running as: python experiments/leaf_ids_benchmark.py
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from data_structures import ProblemSpec
from random_forest import RandomForest
from split_tests import LessEqualSplitTest


def grow_random_forest(n_trees, max_depth, n_features, n_classes, rng, leaf_prob=0.2):
    """Grow trees with random axis-aligned splits; inner nodes stop early with ``leaf_prob``."""
    spec = ProblemSpec().num_features(n_features).distinct_classes(range(n_classes))
    rf = RandomForest(problem_spec=spec)

    for _ in range(n_trees):
        stack = [(rf.graph.add_node(), 0)]
        while stack:
            node, depth = stack.pop()
            if depth >= max_depth or (depth > 0 and rng.uniform() < leaf_prob):
                rf.node_responses.insert(node, int(rng.integers(n_classes)))
                continue

            rf.split_tests.insert(
                node,
                LessEqualSplitTest(int(rng.integers(n_features)), float(rng.uniform())),
            )
            left = rf.graph.add_node()
            right = rf.graph.add_node()
            rf.graph.add_arc(node, left)
            rf.graph.add_arc(node, right)
            stack.append((right, depth + 1))
            stack.append((left, depth + 1))

    return rf


def time_leaf_ids(rf, X, n_threads, repeats):
    ids = np.zeros((X.shape[0], rf.num_trees), dtype=np.int64)
    best = float("inf")
    avg_comparisons = 0.0
    for _ in range(repeats):
        start = time.perf_counter()
        avg_comparisons = rf.leaf_ids(X, ids, n_threads)
        best = min(best, time.perf_counter() - start)
    return ids, avg_comparisons, best


def main():
    parser = argparse.ArgumentParser(description="Time parallel leaf lookup on a merged random forest")
    parser.add_argument("--n-samples", type=int, default=2000)
    parser.add_argument("--n-features", type=int, default=8)
    parser.add_argument("--n-classes", type=int, default=3)
    parser.add_argument("--n-trees", type=int, default=16, help="Trees per forest; two forests are merged")
    parser.add_argument("--max-depth", type=int, default=8)
    parser.add_argument(
        "--threads",
        type=str,
        default="1,2,4,-1",
        help="Comma-separated thread counts; -1 uses every core",
    )
    parser.add_argument("--repeats", type=int, default=3)
    parser.add_argument("--random-state", type=int, default=42)
    parser.add_argument("--verbose", action="store_true", help="Log forest merges and traversal stats")

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    thread_counts = [int(t) for t in args.threads.split(",") if t.strip()]
    if not thread_counts:
        raise ValueError("No thread counts provided")

    rng = np.random.default_rng(args.random_state)
    rf = grow_random_forest(args.n_trees, args.max_depth, args.n_features, args.n_classes, rng)
    other = grow_random_forest(args.n_trees, args.max_depth, args.n_features, args.n_classes, rng)
    rf.merge(other)
    X = rng.uniform(size=(args.n_samples, args.n_features))

    print(f"Forest: trees={rf.num_trees} nodes={rf.num_nodes} samples={X.shape[0]}")

    reference = None
    for n_threads in thread_counts:
        ids, avg_comparisons, seconds = time_leaf_ids(rf, X, n_threads, args.repeats)
        if reference is None:
            reference = ids
        consistent = bool(np.array_equal(ids, reference))
        print(
            f"threads={n_threads}"
            f" time={seconds:.3f}s"
            f" avg_comparisons={avg_comparisons:.2f}"
            f" consistent={consistent}"
        )

    probs = np.zeros((X.shape[0], rf.num_classes))
    rf.predict_proba(X, probs, thread_counts[-1])
    print(f"Mean max probability: {float(np.mean(probs.max(axis=1))):.3f}")


if __name__ == "__main__":
    main()
