"""Likelihood evaluation fan-out over an optional joblib worker pool."""
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from joblib import delayed

from segopt.exceptions import LikelihoodEvaluationError, SegmentationError, WorkerPoolError

logger = logging.getLogger(__name__)

Likelihood = Callable[[np.ndarray], float]


class SegmentTask:
    """Zero-argument task evaluating the likelihood of one segment.

    Holds only a read-only view of the segment's columns, so process-based
    backends ship the segment rather than the whole matrix.
    """

    def __init__(self, likelihood: Likelihood, view: np.ndarray, start: int, end: int):
        self.likelihood = likelihood
        self.view = view
        self.start = start
        self.end = end

    def __call__(self) -> Any:
        return self.likelihood(self.view)

    def __repr__(self) -> str:
        return f"SegmentTask(start={self.start}, end={self.end})"


def run_task(task: Callable[[], Any]) -> float:
    """Run one task and check that it produced a usable likelihood value.

    Raises:
        LikelihoodEvaluationError: The task raised, or returned NaN, +inf or a non-number
    """
    start = getattr(task, "start", None)
    end = getattr(task, "end", None)
    try:
        value = task()
    except SegmentationError:
        raise
    except Exception as e:
        raise LikelihoodEvaluationError(start, end, e) from e

    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise LikelihoodEvaluationError(
            start, end, e, message=f"non-numeric value {value!r}"
        ) from e

    # -inf is a legal "never prefer this segment" score
    if math.isnan(value) or value == math.inf:
        raise LikelihoodEvaluationError(start, end, message=f"invalid value {value!r}")
    return value


class ParallelEvaluator:
    """Evaluates batches of independent tasks, in parallel when a pool is available.

    The pool is owned by the caller: a ``joblib.Parallel`` instance (ideally
    entered with ``with Parallel(...) as pool`` so workers are reused) or any
    callable that takes an iterable of ``joblib.delayed`` calls and returns
    their results in order.
    """

    def __init__(self, pool: Optional[Callable[[Iterable], Any]] = None, enabled: bool = True):
        """Initialize evaluator.

        Args:
            pool: Optional externally owned worker pool
            enabled: When False the pool is ignored and tasks run sequentially
        """
        self.pool = pool
        self.enabled = enabled

    @property
    def parallel(self) -> bool:
        return self.enabled and self.pool is not None

    def evaluate_all(self, tasks: Sequence[Callable[[], Any]]) -> List[float]:
        """Evaluate tasks and return their values in input order.

        Fails fast: the first failing task aborts the batch and no partial
        results are returned.

        Raises:
            LikelihoodEvaluationError: A task failed or returned an invalid value
            WorkerPoolError: The pool itself failed
        """
        tasks = list(tasks)
        if not tasks:
            return []

        if not self.parallel:
            return [run_task(task) for task in tasks]

        logger.debug("Dispatching %d likelihood evaluations to worker pool", len(tasks))
        try:
            # A generator lets joblib stop dispatching after the first failure
            results = list(self.pool(delayed(run_task)(task) for task in tasks))
        except SegmentationError:
            raise
        except Exception as e:
            raise WorkerPoolError(f"Worker pool failed: {e!r}") from e

        if len(results) != len(tasks):
            raise WorkerPoolError(
                f"Worker pool returned {len(results)} results for {len(tasks)} tasks"
            )
        return [float(value) for value in results]


class LikelihoodCache:
    """Memoized segment likelihoods for one engine invocation.

    Keys are 1-based inclusive ``(start, end)`` ranges. Missing values are
    computed in a single evaluator batch per ``fetch`` call.
    """

    def __init__(self, data: np.ndarray, likelihood: Likelihood, evaluator: ParallelEvaluator):
        self.data = data
        self.likelihood = likelihood
        self.evaluator = evaluator
        self._values: Dict[Tuple[int, int], float] = {}

    def __len__(self) -> int:
        """Number of distinct segments evaluated so far."""
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __getitem__(self, key: Tuple[int, int]) -> float:
        return self._values[key]

    @property
    def n_positions(self) -> int:
        return self.data.shape[1]

    def fetch(self, ranges: Iterable[Tuple[int, int]]) -> List[float]:
        """Return likelihoods for ranges, evaluating the missing ones in one batch."""
        ranges = list(ranges)
        missing = list(dict.fromkeys(r for r in ranges if r not in self._values))
        if missing:
            tasks = [
                SegmentTask(self.likelihood, self.data[:, start - 1:end], start, end)
                for start, end in missing
            ]
            values = self.evaluator.evaluate_all(tasks)
            self._values.update(zip(missing, values))
        return [self._values[r] for r in ranges]

    def total(self, ranges: Iterable[Tuple[int, int]]) -> float:
        """Sum of likelihoods over ranges, evaluating any that are missing."""
        return float(sum(self.fetch(ranges)))
