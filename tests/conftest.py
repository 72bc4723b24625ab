"""Pytest fixtures for segmentation tests."""
import numpy as np
import pytest
from joblib import Parallel


@pytest.fixture
def step_data():
    """Single-channel series with one level shift before position 4."""
    return np.array([[1, 1, 1, 10, 10, 10]], dtype=float)


@pytest.fixture
def multichannel_data():
    """Two channels with level shifts at positions 6 and 11 (N = 15)."""
    rng = np.random.default_rng(7)
    levels = np.repeat([0.0, 5.0, -3.0], 5)
    noise = 0.1 * rng.standard_normal((2, 15))
    return np.vstack([levels, 2 * levels]) + noise


@pytest.fixture
def neg_variance():
    """Likelihood: negative variance of all values in the segment."""
    def likelihood(segment):
        return -float(np.var(segment))
    return likelihood


@pytest.fixture
def neg_sse():
    """Likelihood: negative within-segment squared error minus a per-segment cost."""
    def likelihood(segment):
        centered = segment - segment.mean(axis=1, keepdims=True)
        return -float(np.sum(centered ** 2)) - 1.0
    return likelihood


@pytest.fixture
def thread_pool():
    """Reusable two-worker joblib pool (threading backend keeps tests fast)."""
    with Parallel(n_jobs=2, backend="threading") as pool:
        yield pool


@pytest.fixture
def process_pool():
    """Two-worker joblib pool on the default process-based (loky) backend."""
    with Parallel(n_jobs=2, backend="loky") as pool:
        yield pool
