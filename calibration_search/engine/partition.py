"""
Search Range Partitioning.

Splits the candidate window into contiguous half-open ranges, one per worker,
and checks that a set of ranges covers the window exactly once.
"""

from dataclasses import dataclass
from typing import Iterator, List, Sequence

import numpy as np

from calibration_search.config import CalibrationConfigError


class PartitionError(CalibrationConfigError):
    """Ranges leave a gap, overlap, or fall outside the search window."""


@dataclass(frozen=True)
class SearchRange:
    """Half-open interval [start, end) of candidate r7 values."""
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end))

    def __contains__(self, value: int) -> bool:
        return self.start <= value < self.end

    def __str__(self) -> str:
        return f"[{self.start}, {self.end})"


def partition_domain(start: int, end: int, num_workers: int) -> List[SearchRange]:
    """
    Split [start, end) into num_workers contiguous ranges.

    Sizes differ by at most one; the first (size % num_workers) ranges get the
    extra candidate, matching numpy.array_split.

    Args:
        start: First candidate (inclusive)
        end: Last candidate (exclusive)
        num_workers: Number of ranges to produce

    Returns:
        Ranges in increasing order

    Raises:
        PartitionError: If num_workers < 1 or the window cannot give every
            worker at least one candidate.
    """
    size = end - start
    if num_workers < 1:
        raise PartitionError(f"num_workers must be at least 1, got {num_workers}")
    if size < num_workers:
        raise PartitionError(
            f"Cannot split {size} candidates [{start}, {end}) across {num_workers} workers"
        )

    chunks = np.array_split(np.arange(start, end, dtype=np.int64), num_workers)
    ranges = [SearchRange(int(chunk[0]), int(chunk[-1]) + 1) for chunk in chunks]

    validate_partition(ranges, start, end)
    return ranges


def validate_partition(ranges: Sequence[SearchRange], start: int, end: int) -> None:
    """
    Check that ranges tile [start, end) with no gaps and no overlaps.

    Raises:
        PartitionError: On the first violation found.
    """
    if not ranges:
        raise PartitionError("Empty partition")

    expected = start
    for i, rng in enumerate(sorted(ranges, key=lambda r: (r.start, r.end))):
        if rng.end <= rng.start:
            raise PartitionError(f"Range {i} {rng} is empty")
        if rng.start < expected:
            raise PartitionError(f"Range {rng} overlaps previous range ending at {expected}")
        if rng.start > expected:
            raise PartitionError(f"Gap [{expected}, {rng.start}) is not assigned to any worker")
        expected = rng.end

    if expected != end:
        raise PartitionError(f"Partition ends at {expected}, expected {end}")
