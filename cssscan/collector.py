"""Per-page, multi-viewport stylesheet coverage collection."""

from __future__ import annotations

import asyncio
import logging
from typing import List

from .config import ScanOptions
from .errors import NavigationError
from .models import CoverageEntry
from .renderer import RendererPage

LOGGER = logging.getLogger(__name__)

SCROLL_TO_BOTTOM = "() => window.scrollTo(0, document.body.scrollHeight)"
SCROLL_TO_TOP = "() => window.scrollTo(0, 0)"


async def _settle(options: ScanOptions) -> None:
    await asyncio.sleep(options.settle_delay_ms / 1000)


async def collect_page_coverage(
    page: RendererPage, url: str, options: ScanOptions
) -> List[CoverageEntry]:
    """Visit ``url`` once and return the raw coverage of every stylesheet.

    The page is loaded at the first viewport and then resized through the
    remaining ones, scrolling to the bottom and back at each size so that
    lazy content and breakpoint-specific rules get applied.

    A failed navigation is logged and ignored; the entries captured so far
    are still returned. Any other renderer failure propagates.
    """
    await page.start_coverage()

    for index, viewport in enumerate(options.viewports):
        await page.set_viewport(viewport.width, viewport.height)
        if index == 0:
            try:
                await page.goto(
                    url,
                    wait_until=options.wait_until,
                    timeout_ms=options.navigation_timeout_ms,
                )
            except NavigationError as exc:
                LOGGER.warning("%s", exc)
        await _settle(options)
        await page.evaluate(SCROLL_TO_BOTTOM)
        await _settle(options)
        await page.evaluate(SCROLL_TO_TOP)
        LOGGER.debug("Swept %s at %s", url, viewport.label)

    return await page.stop_coverage()
