"""Partition invariant checks for segmentations."""
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple


class ValidationCheck(NamedTuple):
    """Outcome of one partition invariant.

    Attributes:
        name: Invariant checked
        passed: Whether the partition satisfies it
        detail: Offending segment or count when failed, empty otherwise
    """
    name: str
    passed: bool
    detail: str = ""


@dataclass(frozen=True)
class ValidationReport:
    """Checks run against one partition of positions 1..n_positions.

    Attributes:
        n_positions: Number of positions the partition should cover
        n_segments: Number of segments in the partition
        checks: One entry per invariant, in the order checked
    """
    n_positions: int
    n_segments: int
    checks: Tuple[ValidationCheck, ...]

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failures(self) -> List[ValidationCheck]:
        return [c for c in self.checks if not c.passed]

    def __str__(self) -> str:
        passed_count = len(self.checks) - len(self.failures)
        lines = [
            f"Partition of {self.n_positions} positions into {self.n_segments} segments: "
            f"{passed_count}/{len(self.checks)} checks passed"
        ]
        for check in self.checks:
            if check.passed:
                lines.append(f"  ok    {check.name}")
            else:
                lines.append(f"  FAIL  {check.name}: {check.detail}")
        return "\n".join(lines)


def validate_partition(segments: Sequence[Tuple[int, int]], n_positions: int,
                       max_segments: Optional[int] = None) -> ValidationReport:
    """Check that 1-based inclusive (start, end) segments partition 1..n_positions.

    Args:
        segments: Segments in position order
        n_positions: Number of positions to cover
        max_segments: Optional budget the segment count must not exceed

    Returns:
        ValidationReport naming the first offending segment of each failed check
    """
    segments = [(int(start), int(end)) for start, end in segments]
    checks = [ValidationCheck("At least one segment", bool(segments),
                              "" if segments else "no segments")]

    empty = next((s for s in segments if s[0] > s[1]), None)
    checks.append(ValidationCheck("Segments non-empty", empty is None,
                                  "" if empty is None else f"segment {list(empty)} is empty"))

    seam = next(
        ((left, right) for left, right in zip(segments, segments[1:])
         if left[1] + 1 != right[0]),
        None,
    )
    if seam is None:
        detail = ""
    elif seam[1][0] > seam[0][1] + 1:
        detail = f"positions {seam[0][1] + 1}..{seam[1][0] - 1} uncovered"
    else:
        detail = f"{list(seam[0])} and {list(seam[1])} overlap"
    checks.append(ValidationCheck("No gaps or overlaps", seam is None, detail))

    covered = (segments[0][0], segments[-1][1]) if segments else None
    full = covered == (1, n_positions)
    checks.append(ValidationCheck(
        "Full coverage", full,
        "" if full else f"covers {list(covered) if covered else 'nothing'}, "
                        f"expected [1, {n_positions}]",
    ))

    if max_segments is not None:
        within = len(segments) <= max_segments
        checks.append(ValidationCheck(
            "Segment count within budget", within,
            "" if within else f"{len(segments)} segments > {max_segments}",
        ))

    return ValidationReport(n_positions=n_positions, n_segments=len(segments),
                            checks=tuple(checks))
