"""Exact dynamic-programming segmentation.

Finds the partition maximizing the summed segment likelihood over all
partitions with at most ``max_segments`` segments. Needs O(N^2) likelihood
evaluations and O(max_segments * N^2) arithmetic.
"""
import logging
from typing import List, Tuple

import numpy as np
from tqdm import tqdm

from segopt.evaluator import LikelihoodCache
from segopt.types import Algorithm, Segment, Segmentation

logger = logging.getLogger(__name__)


def solve_exact(first: int, last: int, max_segments: int, cache: LikelihoodCache,
                progress: bool = False) -> List[Segment]:
    """Optimal partition of positions first..last into at most max_segments segments.

    Fills best[k, j], the best total for splitting the first j columns of the
    range into exactly k segments, one column j at a time. All LL(i+1, j)
    values of a column are fetched in one evaluator batch. Ties go to the
    earliest predecessor inside a cell and to the fewest segments overall.

    Args:
        first: First position of the range (1-based)
        last: Last position of the range (inclusive)
        max_segments: Segment budget for the range (>= 1)
        cache: Likelihood cache for this invocation
        progress: Show a tqdm bar over columns

    Returns:
        Segments in position order
    """
    n = last - first + 1
    n_segments = min(max_segments, n)
    if n_segments == 1:
        cache.fetch([(first, last)])
        return [Segment(first, last)]

    best = np.full((n_segments + 1, n + 1), -np.inf)
    back = np.zeros((n_segments + 1, n + 1), dtype=int)

    columns = tqdm(range(1, n + 1), desc="exact", disable=not progress, leave=False)
    for j in columns:
        # ll[i] is LL(i+1, j) in range-local positions
        ll = np.array(cache.fetch((first + i, first + j - 1) for i in range(j)))
        best[1, j] = ll[0]
        for k in range(2, min(n_segments, j) + 1):
            candidates = best[k - 1, k - 1:j] + ll[k - 1:j]
            i = int(np.argmax(candidates))
            best[k, j] = candidates[i]
            back[k, j] = k - 1 + i

    totals = best[1:, n]
    k_best = int(np.argmax(totals)) + 1
    logger.debug("Exact solve over [%d, %d]: %d segments, total %.6g",
                 first, last, k_best, totals[k_best - 1])

    segments = []
    j = n
    for k in range(k_best, 0, -1):
        i = int(back[k, j]) if k > 1 else 0
        segments.append(Segment(first + i, first + j - 1))
        j = i
    segments.reverse()
    return segments


def exact_segmentation(cache: LikelihoodCache, max_segments: int,
                       progress: bool = False) -> Segmentation:
    """Run the exact engine over the whole data held by cache."""
    n = cache.n_positions
    logger.debug("Exact segmentation of %d positions, max_segments=%d", n, max_segments)
    segments = solve_exact(1, n, max_segments, cache, progress=progress)
    return Segmentation(
        segments=tuple(segments),
        n_positions=n,
        likelihood=cache.total(segments),
        algorithm=Algorithm.EXACT,
    )
