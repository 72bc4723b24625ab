"""Automatic length penalty for segment likelihoods.

The penalty ``p(l) = C1*exp(s1*(l - L/2)) + C2*exp(s2*(L/2 - l))`` is convex
with its minimum near ``L/2``. ``auto_penalize`` sizes it from the data so
that very short and very long segments lose a fixed fraction of their
typical likelihood.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

import numpy as np

from segopt.evaluator import Likelihood, LikelihoodCache, ParallelEvaluator
from segopt.exceptions import ConfigurationError
from segopt.types import as_data_matrix

logger = logging.getLogger(__name__)

DEFAULT_SMALL_SEGMENT_PENALTY = 10.0
DEFAULT_BIG_SEGMENT_PENALTY = 10.0


@dataclass(frozen=True)
class PenaltyModel:
    """Length penalty curve.

    Attributes:
        c1: Weight of the long-segment term
        s1: Growth rate of the long-segment term
        c2: Weight of the short-segment term
        s2: Growth rate of the short-segment term
        length: Total number of positions L
    """
    c1: float
    s1: float
    c2: float
    s2: float
    length: int

    def __post_init__(self):
        """Validate penalty parameters."""
        for name in ("c1", "s1", "c2", "s2"):
            value = getattr(self, name)
            if not (math.isfinite(value) and value > 0):
                raise ConfigurationError(f"{name} ({value}) must be a positive finite number")
        if self.length < 1:
            raise ConfigurationError(f"length ({self.length}) must be positive")

    def __call__(self, segment_length: float) -> float:
        """Penalty for a segment of the given length."""
        half = self.length / 2
        return (self.c1 * math.exp(self.s1 * (segment_length - half))
                + self.c2 * math.exp(self.s2 * (half - segment_length)))

    def curve(self, lengths: Optional[Iterable[float]] = None) -> np.ndarray:
        """Penalty evaluated at each length (default 1..L)."""
        if lengths is None:
            lengths = np.arange(1, self.length + 1)
        lengths = np.asarray(list(lengths), dtype=float)
        half = self.length / 2
        return (self.c1 * np.exp(self.s1 * (lengths - half))
                + self.c2 * np.exp(self.s2 * (half - lengths)))


class PenalizedLikelihood:
    """Likelihood minus the length penalty of the segment.

    Picklable, so it can be shipped to process-based worker pools.
    """

    def __init__(self, likelihood: Likelihood, penalty: PenaltyModel):
        self.likelihood = likelihood
        self.penalty = penalty

    def __call__(self, segment: Any) -> float:
        length = np.shape(segment)[-1]
        return float(self.likelihood(segment)) - self.penalty(length)

    def __repr__(self) -> str:
        return f"PenalizedLikelihood({self.likelihood!r}, {self.penalty!r})"


def sample_starts(n_positions: int, segment_length: int, n_samples: int) -> List[int]:
    """Up to n_samples start positions (1-based), spread evenly over the valid starts."""
    last_start = n_positions - segment_length + 1
    if last_start <= n_samples:
        return list(range(1, last_start + 1))
    starts = np.floor(np.linspace(1, last_start, n_samples) + 0.5).astype(int)
    return [int(s) for s in np.unique(starts)]


def penalty_from_means(small_mean: float, big_mean: float, n_positions: int,
                       small_segment_penalty: float = DEFAULT_SMALL_SEGMENT_PENALTY,
                       big_segment_penalty: float = DEFAULT_BIG_SEGMENT_PENALTY) -> PenaltyModel:
    """Derive the penalty curve from mean small- and big-segment likelihoods.

    Raises:
        ConfigurationError: A penalty factor is <= 1 or a mean likelihood is <= 0
    """
    check_penalty_factors(small_segment_penalty, big_segment_penalty)
    if not (small_mean > 0 and big_mean > 0):
        raise ConfigurationError(
            "auto_penalize needs positive mean likelihoods for small and big segments, "
            f"got small={small_mean:.6g}, big={big_mean:.6g}"
        )
    return PenaltyModel(
        c1=big_mean / big_segment_penalty,
        s1=4 * math.log(big_segment_penalty) / n_positions,
        c2=small_mean / small_segment_penalty,
        s2=4 * math.log(small_segment_penalty) / n_positions,
        length=n_positions,
    )


def check_penalty_factors(small_segment_penalty: float, big_segment_penalty: float) -> None:
    if not small_segment_penalty > 1:
        raise ConfigurationError(
            f"small_segment_penalty ({small_segment_penalty}) must be greater than 1"
        )
    if not big_segment_penalty > 1:
        raise ConfigurationError(
            f"big_segment_penalty ({big_segment_penalty}) must be greater than 1"
        )


def auto_penalize(data: Any, likelihood: Likelihood,
                  small_segment_penalty: float = DEFAULT_SMALL_SEGMENT_PENALTY,
                  big_segment_penalty: float = DEFAULT_BIG_SEGMENT_PENALTY,
                  n_samples: int = 10,
                  pool: Optional[Callable] = None) -> PenalizedLikelihood:
    """Wrap likelihood with a length penalty estimated from data.

    Samples segments of length 2 and of length L/2, averages their raw
    likelihoods and builds the penalty curve from those means.

    Args:
        data: Data matrix (rows = channels, columns = positions)
        likelihood: Raw likelihood oracle
        small_segment_penalty: Penalty factor for short segments (> 1)
        big_segment_penalty: Penalty factor for long segments (> 1)
        n_samples: Segments sampled per size
        pool: Optional worker pool for the sample evaluations

    Returns:
        PenalizedLikelihood usable by every engine
    """
    check_penalty_factors(small_segment_penalty, big_segment_penalty)
    if n_samples < 1:
        raise ConfigurationError(f"n_samples ({n_samples}) must be positive")

    matrix = as_data_matrix(data)
    n = matrix.shape[1]
    cache = LikelihoodCache(matrix, likelihood, ParallelEvaluator(pool))

    small_length = min(2, n)
    big_length = max(1, n // 2)
    small_ranges = [(s, s + small_length - 1) for s in sample_starts(n, small_length, n_samples)]
    big_ranges = [(s, s + big_length - 1) for s in sample_starts(n, big_length, n_samples)]

    values = cache.fetch(small_ranges + big_ranges)
    small_mean = float(np.mean(values[:len(small_ranges)]))
    big_mean = float(np.mean(values[len(small_ranges):]))
    logger.debug("auto_penalize: %d small (len %d, mean %.6g), %d big (len %d, mean %.6g)",
                 len(small_ranges), small_length, small_mean,
                 len(big_ranges), big_length, big_mean)

    penalty = penalty_from_means(small_mean, big_mean, n,
                                 small_segment_penalty=small_segment_penalty,
                                 big_segment_penalty=big_segment_penalty)
    return PenalizedLikelihood(likelihood, penalty)
