"""Reductions from per-tree leaf responses to a class-probability row.

An accumulator is called once per sample with the responses of the selected
trees, in ascending tree order, and the sample's output row. It overwrites
the whole row.
"""
from __future__ import annotations

from typing import Sequence

import numpy as np

from errors import PreconditionError


class ArgMaxAcc:
    """Majority vote: each response is the class index a tree voted for.

    The output row holds the fraction of trees voting for each class.
    """

    def __call__(self, responses: Sequence[int], out: np.ndarray) -> None:
        out[:] = 0.0
        if len(responses) == 0:
            return

        votes = np.asarray(responses, dtype=np.int64)
        if votes.min() < 0 or votes.max() >= out.shape[0]:
            raise PreconditionError(
                f"ArgMaxAcc: class index out of range [0, {out.shape[0]}), got {votes.min()}..{votes.max()}."
            )
        out[:] = np.bincount(votes, minlength=out.shape[0]) / votes.size


class ArgMaxVectorAcc:
    """Sum per-tree class histograms and normalize the sum to 1.

    A row whose histograms sum to zero is left at zero.
    """

    def __call__(self, responses: Sequence[np.ndarray], out: np.ndarray) -> None:
        out[:] = 0.0
        for hist in responses:
            hist = np.asarray(hist, dtype=np.float64)
            if hist.shape != out.shape:
                raise PreconditionError(
                    f"ArgMaxVectorAcc: histogram shape {hist.shape} differs from output shape {out.shape}."
                )
            out += hist

        total = out.sum()
        if total > 0.0:
            out /= total
