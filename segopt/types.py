"""Type definitions and configuration for segmentation."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, NamedTuple, Optional, Tuple, Union

import numpy as np
import pandas as pd

from segopt.exceptions import ConfigurationError
from segopt.validation import ValidationReport, validate_partition


class Algorithm(str, Enum):
    """Optimizers selectable by name."""
    EXACT = "exact"
    HIERARCHICAL = "hierarchical"
    HYBRID = "hybrid"

    @classmethod
    def parse(cls, value: Union[str, "Algorithm"]) -> "Algorithm":
        """Resolve an algorithm name (case-insensitive) or enum member."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            names = ", ".join(repr(a.value) for a in cls)
            raise ConfigurationError(
                f"Unknown algorithm {value!r}; expected one of {names}"
            ) from None


@dataclass
class SegmentConfig:
    """Configuration for a segmentation run.

    Attributes:
        algorithm: Optimizer to use
        max_segments: Upper bound on the number of segments (None = one per position)
        allow_parallel: Dispatch likelihood evaluations to the worker pool when one is given
        split_candidates: Split positions tried per range by the hierarchical search
        exact_threshold: Ranges at most this long are solved exactly by the hybrid algorithm
        progress: Show a progress bar while the exact engine fills its table
    """
    algorithm: Algorithm = Algorithm.EXACT
    max_segments: Optional[int] = None
    allow_parallel: bool = True
    split_candidates: int = 32
    exact_threshold: int = 50
    progress: bool = False

    def __post_init__(self):
        """Validate configuration parameters."""
        self.algorithm = Algorithm.parse(self.algorithm)
        if self.max_segments is not None and self.max_segments < 1:
            raise ConfigurationError(
                f"max_segments ({self.max_segments}) must be at least 1"
            )
        if self.split_candidates < 1:
            raise ConfigurationError(
                f"split_candidates ({self.split_candidates}) must be positive"
            )
        if self.exact_threshold < 1:
            raise ConfigurationError(
                f"exact_threshold ({self.exact_threshold}) must be positive"
            )

    def resolve_max_segments(self, n_positions: int) -> int:
        """Return the effective segment budget for data with n_positions columns."""
        return check_max_segments(self.max_segments, n_positions)


def check_max_segments(max_segments: Optional[int], n_positions: int) -> int:
    """Validate a segment budget against the data length; None means n_positions."""
    if n_positions < 1:
        raise ConfigurationError("Cannot segment empty data")
    if max_segments is None:
        return n_positions
    if max_segments < 1:
        raise ConfigurationError(f"max_segments ({max_segments}) must be at least 1")
    if max_segments > n_positions:
        raise ConfigurationError(
            f"max_segments ({max_segments}) must be <= number of positions ({n_positions})"
        )
    return int(max_segments)


def as_data_matrix(data: Any) -> np.ndarray:
    """Copy data into a read-only 2-D float matrix (rows = channels, columns = positions).

    A 1-D input is treated as a single channel.
    """
    if isinstance(data, (pd.DataFrame, pd.Series)):
        data = data.to_numpy()
    try:
        matrix = np.array(data, dtype=float)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Data must be numeric: {e}") from e

    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    if matrix.ndim != 2:
        raise ConfigurationError(
            f"Data must be one- or two-dimensional, got {matrix.ndim} dimensions"
        )
    if matrix.shape[0] == 0 or matrix.shape[1] == 0:
        raise ConfigurationError(f"Cannot segment empty data (shape {matrix.shape})")

    matrix.setflags(write=False)
    return matrix


class Segment(NamedTuple):
    """A contiguous, inclusive range of positions.

    Attributes:
        start: First position (1-based)
        end: Last position (inclusive)
    """
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def indices(self) -> Tuple[int, ...]:
        return tuple(range(self.start, self.end + 1))


@dataclass(frozen=True)
class Segmentation:
    """Ordered partition of positions 1..n_positions produced by an engine.

    Attributes:
        segments: Segments in position order
        n_positions: Number of positions partitioned
        likelihood: Sum of the likelihood over all segments
        algorithm: Algorithm that produced the partition
    """
    segments: Tuple[Segment, ...]
    n_positions: int
    likelihood: float
    algorithm: Algorithm

    def __len__(self) -> int:
        """Number of segments."""
        return len(self.segments)

    @property
    def changepoints(self) -> Tuple[int, ...]:
        return tuple(seg.start for seg in self.segments[1:])

    def validate(self, max_segments: Optional[int] = None) -> ValidationReport:
        """Check that the segments partition 1..n_positions within max_segments."""
        return validate_partition(self.segments, self.n_positions, max_segments)


@dataclass(frozen=True)
class SegmentationResult:
    """Caller-facing segmentation result.

    Attributes:
        changepoints: First position of every segment after the first
        segments: Positions covered by each segment, in order
        likelihood: Total likelihood of the segmentation
        algorithm: Algorithm that produced it
    """
    changepoints: Tuple[int, ...]
    segments: Tuple[Tuple[int, ...], ...]
    likelihood: float
    algorithm: Algorithm

    def __len__(self) -> int:
        return len(self.segments)

    def to_frame(self) -> pd.DataFrame:
        """One row per segment with start, end and length columns."""
        rows: List[dict] = [
            {"start": seg[0], "end": seg[-1], "length": len(seg)}
            for seg in self.segments
        ]
        return pd.DataFrame(rows, columns=["start", "end", "length"])

    def __str__(self) -> str:
        lines = [
            f"Segmentation ({self.algorithm.value}): {len(self.segments)} segments",
            f"Total likelihood: {self.likelihood:.6g}",
            f"Changepoints: {list(self.changepoints)}",
        ]
        return "\n".join(lines)


def assemble_result(segmentation: Segmentation) -> SegmentationResult:
    """Convert an engine partition into the caller-facing result."""
    return SegmentationResult(
        changepoints=segmentation.changepoints,
        segments=tuple(seg.indices for seg in segmentation.segments),
        likelihood=segmentation.likelihood,
        algorithm=segmentation.algorithm,
    )
