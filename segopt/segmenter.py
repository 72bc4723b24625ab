"""Segmentation entry points and algorithm dispatch."""
import logging
from typing import Any, Callable, Optional, Union

from segopt.evaluator import Likelihood, LikelihoodCache, ParallelEvaluator
from segopt.exact import exact_segmentation
from segopt.hierarchical import hierarchical_segmentation, hybrid_segmentation
from segopt.types import (
    Algorithm,
    SegmentConfig,
    Segmentation,
    SegmentationResult,
    as_data_matrix,
    assemble_result,
)

logger = logging.getLogger(__name__)


class Segmenter:
    """Partition a data matrix into segments maximizing a summed likelihood."""

    def __init__(self, config: Optional[SegmentConfig] = None,
                 pool: Optional[Callable] = None):
        """Initialize segmenter.

        Args:
            config: Segmentation configuration (defaults to exact, no budget cap)
            pool: Optional externally owned worker pool, e.g. ``joblib.Parallel``
        """
        self.config = config or SegmentConfig()
        self.pool = pool

    def segmentation(self, data: Any, likelihood: Likelihood) -> Segmentation:
        """Run the configured engine and return its raw partition.

        Args:
            data: Data matrix (rows = channels, columns = positions)
            likelihood: Oracle scoring a segment's sub-matrix; higher is better

        Returns:
            Segmentation over positions 1..N
        """
        matrix = as_data_matrix(data)
        max_segments = self.config.resolve_max_segments(matrix.shape[1])
        evaluator = ParallelEvaluator(self.pool, enabled=self.config.allow_parallel)
        cache = LikelihoodCache(matrix, likelihood, evaluator)

        algorithm = self.config.algorithm
        logger.debug("Segmenting %s data with %s (max_segments=%d, parallel=%s)",
                     matrix.shape, algorithm.value, max_segments, evaluator.parallel)

        if algorithm is Algorithm.EXACT:
            result = exact_segmentation(cache, max_segments, progress=self.config.progress)
        elif algorithm is Algorithm.HIERARCHICAL:
            result = hierarchical_segmentation(
                cache, max_segments, split_candidates=self.config.split_candidates
            )
        else:
            result = hybrid_segmentation(
                cache, max_segments,
                split_candidates=self.config.split_candidates,
                exact_threshold=self.config.exact_threshold,
                progress=self.config.progress,
            )

        logger.debug("%s segmentation found %d segments using %d likelihood evaluations",
                     algorithm.value, len(result), len(cache))
        return result

    def fit_segment(self, data: Any, likelihood: Likelihood) -> SegmentationResult:
        """Segment data and return changepoints and per-segment positions."""
        return assemble_result(self.segmentation(data, likelihood))


def segment(data: Any, likelihood: Likelihood,
            algorithm: Union[str, Algorithm] = Algorithm.EXACT,
            max_segments: Optional[int] = None,
            allow_parallel: bool = True,
            pool: Optional[Callable] = None,
            **options: Any) -> SegmentationResult:
    """Segment data with the named algorithm.

    Args:
        data: Data matrix (rows = channels, columns = positions)
        likelihood: Oracle scoring a segment's sub-matrix; higher is better
        algorithm: "exact", "hierarchical" or "hybrid"
        max_segments: Upper bound on segments (default: number of positions)
        allow_parallel: Use the pool when one is given
        pool: Optional externally owned worker pool
        **options: Further SegmentConfig fields (split_candidates, exact_threshold, progress)

    Returns:
        SegmentationResult with 1-based changepoints and segment positions

    Raises:
        ConfigurationError: Invalid data, budget or algorithm
        LikelihoodEvaluationError: The likelihood failed for some segment
        WorkerPoolError: The pool failed
    """
    config = SegmentConfig(
        algorithm=algorithm,
        max_segments=max_segments,
        allow_parallel=allow_parallel,
        **options,
    )
    return Segmenter(config, pool=pool).fit_segment(data, likelihood)


def exact_segment(data: Any, likelihood: Likelihood,
                  max_segments: Optional[int] = None,
                  allow_parallel: bool = True,
                  pool: Optional[Callable] = None,
                  progress: bool = False) -> SegmentationResult:
    """Globally optimal segmentation; O(N^2) likelihood evaluations."""
    return segment(data, likelihood, Algorithm.EXACT, max_segments=max_segments,
                   allow_parallel=allow_parallel, pool=pool, progress=progress)


def hierarchical_segment(data: Any, likelihood: Likelihood,
                         max_segments: Optional[int] = None,
                         allow_parallel: bool = True,
                         pool: Optional[Callable] = None,
                         split_candidates: int = 32) -> SegmentationResult:
    """Approximate segmentation by recursive binary splitting."""
    return segment(data, likelihood, Algorithm.HIERARCHICAL, max_segments=max_segments,
                   allow_parallel=allow_parallel, pool=pool,
                   split_candidates=split_candidates)


def hybrid_segment(data: Any, likelihood: Likelihood,
                   max_segments: Optional[int] = None,
                   allow_parallel: bool = True,
                   pool: Optional[Callable] = None,
                   split_candidates: int = 32,
                   exact_threshold: int = 50,
                   progress: bool = False) -> SegmentationResult:
    """Hierarchical splitting of long ranges, exact segmentation of short ones."""
    return segment(data, likelihood, Algorithm.HYBRID, max_segments=max_segments,
                   allow_parallel=allow_parallel, pool=pool,
                   split_candidates=split_candidates,
                   exact_threshold=exact_threshold, progress=progress)
