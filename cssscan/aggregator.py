"""Cross-page accumulation of stylesheet coverage."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, Optional, Tuple

from .models import CoverageEntry, GlobalCoverageEntry
from .ranges import merge_ranges

LOGGER = logging.getLogger(__name__)


def aggregation_key(entry: CoverageEntry, page_ordinal: int) -> str:
    """Key a stylesheet by its URL, or by page ordinal and length if anonymous.

    Two anonymous sheets of equal length on the same page share a key and
    therefore have their ranges merged.
    """
    return entry.key or f"inline-{page_ordinal}-{len(entry.text)}"


class CoverageAggregator:
    """Stylesheet text and merged used ranges across all visited pages."""

    def __init__(self) -> None:
        self._entries: Dict[str, GlobalCoverageEntry] = {}

    def absorb(self, entries: Iterable[CoverageEntry], page_ordinal: int) -> None:
        for entry in entries:
            key = aggregation_key(entry, page_ordinal)
            existing = self._entries.get(key)
            if existing is None:
                self._entries[key] = GlobalCoverageEntry(
                    text=entry.text, ranges=list(entry.ranges)
                )
                continue
            # The first observed text is kept for the key.
            existing.ranges = merge_ranges([*existing.ranges, *entry.ranges])
        LOGGER.debug("Coverage map holds %d stylesheet(s)", len(self._entries))

    def get(self, key: str) -> Optional[GlobalCoverageEntry]:
        return self._entries.get(key)

    def items(self) -> Iterator[Tuple[str, GlobalCoverageEntry]]:
        return iter(self._entries.items())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
