from __future__ import annotations

import logging
from typing import Callable

import numpy as np
from joblib import Parallel, cpu_count, delayed

logger = logging.getLogger(__name__)


def resolve_n_threads(n_threads: int) -> int:
    """Map ``-1`` to the number of available cores; never return less than 1."""
    if n_threads == -1:
        n_threads = cpu_count()
    return max(int(n_threads), 1)


def _run_partition(fn: Callable[[int, int], None], thread_id: int, items: np.ndarray) -> None:
    for i in items:
        fn(thread_id, int(i))


def parallel_foreach(n_threads: int, n_items: int, fn: Callable[[int, int], None]) -> None:
    """Call ``fn(thread_id, i)`` for every ``i`` in ``range(n_items)`` and block until done.

    The item range is split into at most ``n_threads`` contiguous partitions;
    partition ``k`` is processed sequentially by worker ``k``, so ``thread_id``
    can index a per-worker accumulator without locking.
    """
    n_threads = resolve_n_threads(n_threads)
    if n_items <= 0:
        return

    partitions = [p for p in np.array_split(np.arange(n_items), min(n_threads, n_items)) if p.size > 0]
    logger.debug("parallel_foreach: %d items in %d partitions", n_items, len(partitions))

    if len(partitions) == 1:
        _run_partition(fn, 0, partitions[0])
        return

    Parallel(n_jobs=len(partitions), require="sharedmem")(
        delayed(_run_partition)(fn, thread_id, items) for thread_id, items in enumerate(partitions)
    )
