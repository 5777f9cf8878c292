"""Data structures shared by the coverage crawler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .ranges import ByteRange


@dataclass(frozen=True, slots=True)
class Viewport:
    """Browser viewport the collector sweeps through."""

    width: int
    height: int
    label: str


@dataclass(slots=True)
class CoverageEntry:
    """One stylesheet as observed during a single page visit."""

    key: str  # resource URL, empty for anonymous sheets
    text: str
    ranges: List[ByteRange] = field(default_factory=list)


@dataclass(slots=True)
class GlobalCoverageEntry:
    """Stylesheet text plus the ranges used on any visited page."""

    text: str
    ranges: List[ByteRange] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class CrawlTask:
    """Unit of frontier work."""

    url: str
    depth: int


@dataclass(frozen=True, slots=True)
class PageVisited:
    """Progress event emitted once per visited page."""

    url: str
    count: int


@dataclass(frozen=True)
class ScanResult:
    """Final, read-only outcome of a scan."""

    url: str
    total_bytes: int
    used_bytes: int
    unused_bytes: int
    unused_percentage: str
    scanned_viewports: List[str]
    output_file: str
    unused_output_file: str
    total_pages_scanned: int
    pages_list: List[str]
