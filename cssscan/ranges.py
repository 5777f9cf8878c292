"""Interval algebra for stylesheet coverage ranges."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True, slots=True)
class ByteRange:
    """Half-open ``[start, end)`` span into a stylesheet's text."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


def merge_ranges(ranges: Iterable[ByteRange]) -> List[ByteRange]:
    """Merge overlapping or adjacent ranges.

    e.g. ``[0, 10)`` and ``[5, 15)`` becomes ``[0, 15)``; ``[0, 5)`` and
    ``[5, 9)`` becomes ``[0, 9)``. The result is sorted by ``start``.
    """
    ordered = sorted(ranges, key=lambda r: r.start)
    if not ordered:
        return []

    merged: List[ByteRange] = []
    start, end = ordered[0].start, ordered[0].end
    for current in ordered[1:]:
        if current.start <= end:
            end = max(end, current.end)
        else:
            merged.append(ByteRange(start, end))
            start, end = current.start, current.end
    merged.append(ByteRange(start, end))
    return merged
