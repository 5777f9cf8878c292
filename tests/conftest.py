"""Shared fakes standing in for the Playwright renderer."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pytest

from cssscan.config import ScanOptions
from cssscan.errors import NavigationError
from cssscan.frontier import LINKS_SCRIPT
from cssscan.models import CoverageEntry


@dataclass
class FakeDocument:
    entries: List[CoverageEntry] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    fail: bool = False


class FakePage:
    """In-memory RendererPage serving a fixed set of documents."""

    def __init__(self, site: Optional[Dict[str, FakeDocument]] = None) -> None:
        self.site = site or {}
        self.calls: List[Tuple[str, Any]] = []
        self.current: Optional[FakeDocument] = None
        self.closed = False

    async def start_coverage(self) -> None:
        self.calls.append(("start_coverage", None))

    async def stop_coverage(self) -> List[CoverageEntry]:
        self.calls.append(("stop_coverage", None))
        if self.current is None:
            return []
        return [
            CoverageEntry(key=e.key, text=e.text, ranges=list(e.ranges))
            for e in self.current.entries
        ]

    async def goto(self, url: str, *, wait_until: str, timeout_ms: int) -> None:
        self.calls.append(("goto", (url, wait_until, timeout_ms)))
        document = self.site.get(url)
        if document is None or document.fail:
            self.current = None
            raise NavigationError(url, "net::ERR_CONNECTION_REFUSED")
        self.current = document

    async def set_viewport(self, width: int, height: int) -> None:
        self.calls.append(("set_viewport", (width, height)))

    async def evaluate(self, script: str) -> Any:
        self.calls.append(("evaluate", script))
        if script == LINKS_SCRIPT:
            return list(self.current.links) if self.current else []
        return None

    async def close(self) -> None:
        self.closed = True

    def named(self, name: str) -> List[Any]:
        return [args for call, args in self.calls if call == name]


class FakeBrowser:
    """Browser factory recording how often it was opened and closed."""

    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.opened = 0
        self.closed = 0

    @asynccontextmanager
    async def __call__(self, options: ScanOptions):
        self.opened += 1
        try:
            yield self.page
        finally:
            self.closed += 1


@pytest.fixture
def fast_options(tmp_path) -> ScanOptions:
    return ScanOptions(settle_delay_ms=0, output_dir=str(tmp_path))
