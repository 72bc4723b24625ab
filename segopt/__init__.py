"""Likelihood-maximizing segmentation of ordered multivariate data."""

from segopt.evaluator import LikelihoodCache, ParallelEvaluator, SegmentTask
from segopt.exceptions import (
    ConfigurationError,
    LikelihoodEvaluationError,
    SegmentationError,
    WorkerPoolError,
)
from segopt.penalty import PenalizedLikelihood, PenaltyModel, auto_penalize
from segopt.segmenter import (
    Segmenter,
    exact_segment,
    hierarchical_segment,
    hybrid_segment,
    segment,
)
from segopt.types import (
    Algorithm,
    Segment,
    SegmentConfig,
    Segmentation,
    SegmentationResult,
    assemble_result,
)
from segopt.validation import ValidationCheck, ValidationReport, validate_partition

__all__ = [
    # entry points
    "segment",
    "exact_segment",
    "hierarchical_segment",
    "hybrid_segment",
    "auto_penalize",
    "Segmenter",

    # types
    "Algorithm",
    "Segment",
    "SegmentConfig",
    "Segmentation",
    "SegmentationResult",
    "assemble_result",
    "PenaltyModel",
    "PenalizedLikelihood",
    "ValidationCheck",
    "ValidationReport",
    "validate_partition",

    # evaluation
    "ParallelEvaluator",
    "LikelihoodCache",
    "SegmentTask",

    # exceptions
    "SegmentationError",
    "ConfigurationError",
    "LikelihoodEvaluationError",
    "WorkerPoolError",
]
