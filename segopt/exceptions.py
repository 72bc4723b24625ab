"""Error hierarchy for segmentation runs."""
from __future__ import annotations

from typing import Optional


class SegmentationError(Exception):
    """Base error for all segmentation failures."""


# ---- Caller mistakes ----
class ConfigurationError(SegmentationError, ValueError):
    """Raised for invalid data, budgets, penalties or algorithm names."""


# ---- Failures while running ----
class LikelihoodEvaluationError(SegmentationError):
    """Raised when the likelihood fails or returns an invalid value for a segment.

    Attributes:
        start: First position of the offending segment (1-based), if known
        end: Last position of the offending segment (inclusive), if known
        cause: Underlying exception, or None for an invalid return value
    """

    def __init__(self, start: Optional[int], end: Optional[int],
                 cause: Optional[BaseException] = None, message: str = ""):
        # Keep every field in args so the error pickles across worker processes
        super().__init__(start, end, cause, message)
        self.start = start
        self.end = end
        self.cause = cause
        self.message = message

    def __str__(self) -> str:
        where = (
            f"segment [{self.start}, {self.end}]"
            if self.start is not None else "task"
        )
        if self.message:
            return f"Likelihood evaluation failed for {where}: {self.message}"
        return f"Likelihood evaluation failed for {where}: {self.cause!r}"


class WorkerPoolError(SegmentationError, RuntimeError):
    """Raised when the worker pool fails for reasons unrelated to the likelihood."""
