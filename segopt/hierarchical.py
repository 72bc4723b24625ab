"""Hierarchical (divide-and-merge) segmentation.

Approximates the exact optimum by binary splitting. A range is split in two
only when the best two-part likelihood beats the range kept whole; each part
then inherits a share of the segment budget. Decisions are local, so a split
that only pays off deeper down is never discovered.
"""
import logging
from typing import List, Optional, Tuple

import numpy as np

from segopt.evaluator import LikelihoodCache
from segopt.exact import solve_exact
from segopt.types import Algorithm, Segment, Segmentation

logger = logging.getLogger(__name__)


def split_grid(start: int, end: int, max_candidates: int) -> List[int]:
    """Candidate split positions for [start, end].

    A split m gives the parts [start, m] and [m+1, end]. Every position is a
    candidate when there are at most max_candidates of them. Otherwise
    max_candidates interior positions are spread evenly over the range, and
    the one nearest the midpoint is moved onto it, so the midpoint is always
    tried.
    """
    n_splits = end - start
    if n_splits <= max_candidates:
        return list(range(start, end))
    # spacing (end - start) / (max_candidates + 1) >= 1, so rounded points stay distinct
    fractions = np.arange(1, max_candidates + 1) / (max_candidates + 1)
    grid = np.floor(start + n_splits * fractions + 0.5).astype(int)
    midpoint = int(np.floor(start + n_splits / 2 + 0.5))
    if midpoint not in grid:
        grid[np.argmin(np.abs(grid - midpoint))] = midpoint
    return sorted(int(m) for m in grid)


def split_budget(budget: int, left_length: int, right_length: int) -> Tuple[int, int]:
    """Divide a segment budget (>= 2) between two parts in proportion to their lengths.

    Each part gets at least one segment and never more segments than positions.
    """
    total = left_length + right_length
    left = (2 * budget * left_length + total) // (2 * total)
    left = max(1, min(left, budget - 1, left_length))
    right = max(1, min(budget - left, right_length))
    return left, right


def solve_hierarchical(first: int, last: int, max_segments: int, cache: LikelihoodCache,
                       split_candidates: int = 32,
                       exact_threshold: Optional[int] = None,
                       progress: bool = False) -> List[Segment]:
    """Approximate partition of positions first..last into at most max_segments segments.

    Works through an explicit list of (start, end, budget) items, one level
    at a time. Every likelihood needed by a level goes to the evaluator as a
    single batch, so sibling ranges are evaluated concurrently.

    Args:
        first: First position of the range (1-based)
        last: Last position of the range (inclusive)
        max_segments: Segment budget for the range (>= 1)
        cache: Likelihood cache for this invocation
        split_candidates: Split positions tried per range
        exact_threshold: When set, ranges at most this long are solved exactly
        progress: Passed to the exact engine for ranges it solves

    Returns:
        Segments in position order
    """
    leaves: List[Segment] = []
    level = [(first, last, max_segments)]
    depth = 0

    while level:
        pending = []
        for start, end, budget in level:
            length = end - start + 1
            if budget < 2 or length < 2:
                leaves.append(Segment(start, end))
            elif exact_threshold is not None and length <= exact_threshold:
                leaves.extend(solve_exact(start, end, budget, cache, progress=progress))
            else:
                pending.append((start, end, budget, split_grid(start, end, split_candidates)))

        if not pending:
            break

        ranges = []
        for start, end, _, grid in pending:
            ranges.append((start, end))
            for m in grid:
                ranges.append((start, m))
                ranges.append((m + 1, end))
        logger.debug("Hierarchical level %d: %d ranges, %d candidate segments",
                     depth, len(pending), len(ranges))
        cache.fetch(ranges)

        next_level = []
        for start, end, budget, grid in pending:
            whole = cache[(start, end)]
            totals = [cache[(start, m)] + cache[(m + 1, end)] for m in grid]
            best = int(np.argmax(totals))

            if totals[best] > whole:
                m = grid[best]
                left_budget, right_budget = split_budget(budget, m - start + 1, end - m)
                logger.debug("Split [%d, %d] at %d (%.6g > %.6g), budgets %d/%d",
                             start, end, m + 1, totals[best], whole,
                             left_budget, right_budget)
                next_level.append((start, m, left_budget))
                next_level.append((m + 1, end, right_budget))
            else:
                leaves.append(Segment(start, end))

        level = next_level
        depth += 1

    leaves.sort()
    return leaves


def hierarchical_segmentation(cache: LikelihoodCache, max_segments: int,
                              split_candidates: int = 32) -> Segmentation:
    """Run the hierarchical engine over the whole data held by cache."""
    n = cache.n_positions
    logger.debug("Hierarchical segmentation of %d positions, max_segments=%d", n, max_segments)
    segments = solve_hierarchical(1, n, max_segments, cache, split_candidates=split_candidates)
    return Segmentation(
        segments=tuple(segments),
        n_positions=n,
        likelihood=cache.total(segments),
        algorithm=Algorithm.HIERARCHICAL,
    )


def hybrid_segmentation(cache: LikelihoodCache, max_segments: int,
                        split_candidates: int = 32, exact_threshold: int = 50,
                        progress: bool = False) -> Segmentation:
    """Hierarchical splitting down to exact_threshold positions, exact solving below."""
    n = cache.n_positions
    logger.debug("Hybrid segmentation of %d positions, max_segments=%d, exact below %d",
                 n, max_segments, exact_threshold)
    segments = solve_hierarchical(1, n, max_segments, cache,
                                  split_candidates=split_candidates,
                                  exact_threshold=exact_threshold,
                                  progress=progress)
    return Segmentation(
        segments=tuple(segments),
        n_positions=n,
        likelihood=cache.total(segments),
        algorithm=Algorithm.HYBRID,
    )
