"""Tests for the hierarchical and hybrid engines."""
import numpy as np
import pytest

from segopt import (
    Algorithm,
    ConfigurationError,
    LikelihoodCache,
    ParallelEvaluator,
    exact_segment,
    hierarchical_segment,
    hybrid_segment,
)
from segopt.hierarchical import solve_hierarchical, split_budget, split_grid
from segopt.types import as_data_matrix


def piecewise_series(levels, length, seed=0):
    rng = np.random.default_rng(seed)
    values = np.repeat(np.asarray(levels, dtype=float), length)
    return values + 0.05 * rng.standard_normal(values.size)


class TestSplitGrid:
    def test_short_range_uses_every_position(self):
        """Every split is tried when there are few of them."""
        assert split_grid(1, 6, 32) == [1, 2, 3, 4, 5]

    def test_long_range_is_bounded(self):
        """Long ranges get an evenly spread, bounded grid of interior points."""
        assert split_grid(1, 101, 5) == [18, 34, 51, 68, 84]

    @pytest.mark.parametrize("max_candidates,expected", [
        (1, [51]),
        (2, [51, 68]),
    ])
    def test_small_grid_keeps_midpoint(self, max_candidates, expected):
        """Even one or two candidates include the midpoint split."""
        assert split_grid(1, 101, max_candidates) == expected

    def test_grid_stays_inside_range(self):
        """Candidates are distinct and leave both parts non-empty."""
        for max_candidates in range(1, 40):
            grid = split_grid(7, 47, max_candidates)

            assert len(grid) == len(set(grid)) == min(max_candidates, 40)
            assert 27 in grid
            assert all(7 <= m < 47 for m in grid)

    def test_grid_is_deterministic(self):
        """The same range always gives the same candidates."""
        assert split_grid(10, 500, 16) == split_grid(10, 500, 16)
        assert len(split_grid(10, 500, 16)) == 16


class TestSplitBudget:
    @pytest.mark.parametrize("budget,left,right,expected", [
        (2, 3, 3, (1, 1)),
        (4, 1, 9, (1, 3)),
        (5, 2, 2, (2, 2)),
        (6, 30, 30, (3, 3)),
    ])
    def test_proportional_split(self, budget, left, right, expected):
        """Budgets follow lengths, never exceed the parent or the part lengths."""
        assert split_budget(budget, left, right) == expected

    def test_each_part_gets_a_segment(self):
        """Both parts keep at least one segment."""
        for budget in range(2, 8):
            for left in range(1, 10):
                lb, rb = split_budget(budget, left, 10 - left)
                assert lb >= 1 and rb >= 1
                assert lb + rb <= budget


class TestHierarchicalSegment:
    def test_two_segment_step(self, step_data, neg_variance):
        """A single level shift is found at position 4."""
        result = hierarchical_segment(step_data, neg_variance, max_segments=2)

        assert result.changepoints == (4,)
        assert result.segments == ((1, 2, 3), (4, 5, 6))
        assert result.algorithm is Algorithm.HIERARCHICAL

    def test_single_segment_budget(self, step_data, neg_variance):
        """max_segments=1 returns the whole range."""
        result = hierarchical_segment(step_data, neg_variance, max_segments=1)

        assert result.changepoints == ()
        assert result.segments == ((1, 2, 3, 4, 5, 6),)

    def test_zero_budget_raises(self, step_data, neg_variance):
        """max_segments=0 is rejected."""
        with pytest.raises(ConfigurationError):
            hierarchical_segment(step_data, neg_variance, max_segments=0)

    def test_finds_balanced_shifts(self, neg_sse):
        """Shifts at the halving points are found on a long series."""
        data = piecewise_series([0, 4, -2, 6], 50)
        result = hierarchical_segment(data, neg_sse, max_segments=8, split_candidates=199)

        assert result.changepoints == (51, 101, 151)

    @pytest.mark.parametrize("max_segments", [1, 2, 3, 5])
    def test_respects_budget(self, max_segments, neg_sse):
        """The segment count never exceeds max_segments."""
        data = piecewise_series([0, 3, 0, 3, 0, 3], 8)
        result = hierarchical_segment(data, neg_sse, max_segments=max_segments)

        flat = [i for seg in result.segments for i in seg]
        assert flat == list(range(1, 49))
        assert 1 <= len(result.segments) <= max_segments
        assert len(result.changepoints) == len(result.segments) - 1

    @pytest.mark.parametrize("seed", range(5))
    def test_never_beats_exact(self, seed, neg_sse):
        """The approximation is bounded by the exact optimum."""
        data = np.random.default_rng(seed).normal(size=(2, 12))
        for max_segments in (2, 3, 6):
            approx = hierarchical_segment(data, neg_sse, max_segments=max_segments,
                                          split_candidates=4)
            exact = exact_segment(data, neg_sse, max_segments=max_segments)

            assert approx.likelihood <= exact.likelihood + 1e-9

    def test_parallel_matches_sequential(self, neg_sse, thread_pool):
        """Level batches give identical results with and without a pool."""
        data = piecewise_series([0, 2, 5, 1], 20, seed=4)
        parallel = hierarchical_segment(data, neg_sse, max_segments=6, pool=thread_pool)
        sequential = hierarchical_segment(data, neg_sse, max_segments=6, allow_parallel=False)

        assert parallel == sequential

    def test_one_batch_per_level(self, step_data, neg_variance):
        """All evaluations of a level go to the evaluator together."""
        batches = []

        class RecordingEvaluator(ParallelEvaluator):
            def evaluate_all(self, tasks):
                tasks = list(tasks)
                batches.append(len(tasks))
                return super().evaluate_all(tasks)

        cache = LikelihoodCache(as_data_matrix(step_data), neg_variance, RecordingEvaluator())
        segments = solve_hierarchical(1, 6, 2, cache)

        assert [tuple(seg) for seg in segments] == [(1, 3), (4, 6)]
        # whole range plus both halves of each of the five splits, deduplicated
        assert batches == [11]


class TestHybridSegment:
    def test_short_data_matches_exact(self, multichannel_data, neg_sse):
        """Below the threshold hybrid is the exact engine."""
        hybrid = hybrid_segment(multichannel_data, neg_sse, max_segments=5)
        exact = exact_segment(multichannel_data, neg_sse, max_segments=5)

        assert hybrid.algorithm is Algorithm.HYBRID
        assert hybrid.changepoints == exact.changepoints
        assert hybrid.likelihood == exact.likelihood

    def test_long_data_splits_then_solves(self, neg_sse):
        """Long ranges are split hierarchically, short ones solved exactly."""
        data = piecewise_series([0, 4, -2, 6, 1, 3], 20, seed=2)
        result = hybrid_segment(data, neg_sse, max_segments=8, exact_threshold=40,
                                split_candidates=119)

        flat = [i for seg in result.segments for i in seg]
        assert flat == list(range(1, 121))
        assert len(result.segments) <= 8
        assert result.changepoints == (21, 41, 61, 81, 101)

    @pytest.mark.parametrize("seed", range(3))
    def test_never_beats_exact(self, seed, neg_sse):
        """The hybrid result is bounded by the exact optimum."""
        data = np.random.default_rng(seed).normal(size=(1, 14))
        approx = hybrid_segment(data, neg_sse, max_segments=4, exact_threshold=5,
                                split_candidates=3)
        exact = exact_segment(data, neg_sse, max_segments=4)

        assert approx.likelihood <= exact.likelihood + 1e-9
