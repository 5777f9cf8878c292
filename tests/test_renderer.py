"""Tests for cssscan.renderer module."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from cssscan.config import ScanOptions
from cssscan.errors import FatalScanError, NavigationError
from cssscan.ranges import ByteRange
from cssscan.renderer import PlaywrightPage, open_browser


def _build_cdp(texts=None, usage=None):
    texts = texts or {}
    usage = usage or []

    async def send(method, params=None):
        if method == "CSS.getStyleSheetText":
            text = texts[params["styleSheetId"]]
            if isinstance(text, Exception):
                raise text
            return {"text": text}
        if method == "CSS.stopRuleUsageTracking":
            return {"ruleUsage": usage}
        return {}

    cdp = MagicMock()
    cdp.send = AsyncMock(side_effect=send)
    cdp.detach = AsyncMock()
    return cdp


def _sent(cdp):
    return [call.args[0] for call in cdp.send.await_args_list]


def _emit(cdp, sheet_id, url=""):
    handler = cdp.on.call_args.args[1]
    handler({"header": {"styleSheetId": sheet_id, "sourceURL": url}})


class TestPlaywrightPage:
    def test_subscribes_to_stylesheet_events(self):
        cdp = _build_cdp()
        PlaywrightPage(MagicMock(), cdp)
        assert cdp.on.call_args.args[0] == "CSS.styleSheetAdded"

    @pytest.mark.asyncio
    async def test_start_coverage_enables_tracking(self):
        cdp = _build_cdp()
        page = PlaywrightPage(MagicMock(), cdp)
        await page.start_coverage()
        assert _sent(cdp) == ["DOM.enable", "CSS.enable", "CSS.startRuleUsageTracking"]

    @pytest.mark.asyncio
    async def test_stop_coverage_builds_entries(self):
        cdp = _build_cdp(
            texts={"1": "a{color:red}b{color:blue}", "2": "p{margin:0}"},
            usage=[
                {"styleSheetId": "1", "startOffset": 0, "endOffset": 12, "used": True},
                {"styleSheetId": "1", "startOffset": 12, "endOffset": 25, "used": False},
                {"styleSheetId": "2", "startOffset": 0, "endOffset": 11, "used": True},
            ],
        )
        page = PlaywrightPage(MagicMock(), cdp)
        await page.start_coverage()
        _emit(cdp, "1", "https://a.com/site.css")
        _emit(cdp, "2", "")

        entries = await page.stop_coverage()

        assert [(e.key, e.text) for e in entries] == [
            ("https://a.com/site.css", "a{color:red}b{color:blue}"),
            ("", "p{margin:0}"),
        ]
        assert entries[0].ranges == [ByteRange(0, 12)]
        assert entries[1].ranges == [ByteRange(0, 11)]
        assert _sent(cdp)[-2:] == ["CSS.disable", "DOM.disable"]

    @pytest.mark.asyncio
    async def test_events_outside_tracking_are_ignored(self):
        cdp = _build_cdp(texts={"1": "a{}"})
        page = PlaywrightPage(MagicMock(), cdp)
        _emit(cdp, "1", "https://a.com/early.css")
        await page.start_coverage()

        entries = await page.stop_coverage()

        assert entries == []

    @pytest.mark.asyncio
    async def test_duplicate_stylesheet_events_counted_once(self):
        cdp = _build_cdp(texts={"1": "a{}"})
        page = PlaywrightPage(MagicMock(), cdp)
        await page.start_coverage()
        _emit(cdp, "1", "https://a.com/s.css")
        _emit(cdp, "1", "https://a.com/s.css")

        entries = await page.stop_coverage()

        assert len(entries) == 1

    @pytest.mark.asyncio
    async def test_unreadable_stylesheet_has_no_ranges(self):
        cdp = _build_cdp(
            texts={"1": PlaywrightError("No style sheet with given id found")},
            usage=[{"styleSheetId": "1", "startOffset": 0, "endOffset": 9, "used": True}],
        )
        page = PlaywrightPage(MagicMock(), cdp)
        await page.start_coverage()
        _emit(cdp, "1", "https://a.com/gone.css")

        entries = await page.stop_coverage()

        assert entries[0].text == ""
        assert entries[0].ranges == []

    @pytest.mark.asyncio
    async def test_ranges_clipped_to_text(self):
        cdp = _build_cdp(
            texts={"1": "abcdef"},
            usage=[
                {"styleSheetId": "1", "startOffset": 2, "endOffset": 50, "used": True},
                {"styleSheetId": "1", "startOffset": 0.0, "endOffset": 1.0, "used": True},
            ],
        )
        page = PlaywrightPage(MagicMock(), cdp)
        await page.start_coverage()
        _emit(cdp, "1", "https://a.com/s.css")

        entries = await page.stop_coverage()

        assert entries[0].ranges == [ByteRange(0, 1), ByteRange(2, 6)]

    @pytest.mark.asyncio
    async def test_navigation_drops_sheets_of_previous_document(self):
        pw_page = MagicMock()
        pw_page.goto = AsyncMock()
        cdp = _build_cdp(texts={"old": "p{margin:0}", "new": "a{color:red}"})
        page = PlaywrightPage(pw_page, cdp)
        await page.start_coverage()
        _emit(cdp, "old", "")

        await page.goto("https://a.com/b", wait_until="networkidle", timeout_ms=30000)
        _emit(cdp, "new", "")
        entries = await page.stop_coverage()

        assert [e.text for e in entries] == ["a{color:red}"]

    @pytest.mark.asyncio
    async def test_goto_wraps_playwright_errors(self):
        pw_page = MagicMock()
        pw_page.goto = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 30000ms exceeded"))
        page = PlaywrightPage(pw_page, _build_cdp())

        with pytest.raises(NavigationError, match="Timeout 30000ms exceeded") as info:
            await page.goto("https://a.com/", wait_until="networkidle", timeout_ms=30000)

        assert info.value.url == "https://a.com/"
        pw_page.goto.assert_awaited_once_with(
            "https://a.com/", wait_until="networkidle", timeout=30000
        )

    @pytest.mark.asyncio
    async def test_set_viewport_and_evaluate(self):
        pw_page = MagicMock()
        pw_page.set_viewport_size = AsyncMock()
        pw_page.evaluate = AsyncMock(return_value=["https://a.com/x"])
        page = PlaywrightPage(pw_page, _build_cdp())

        await page.set_viewport(768, 1024)
        links = await page.evaluate("() => []")

        pw_page.set_viewport_size.assert_awaited_once_with({"width": 768, "height": 1024})
        assert links == ["https://a.com/x"]

    @pytest.mark.asyncio
    async def test_close_detaches(self):
        pw_page = MagicMock()
        pw_page.close = AsyncMock()
        cdp = _build_cdp()
        page = PlaywrightPage(pw_page, cdp)

        await page.close()

        cdp.detach.assert_awaited_once()
        pw_page.close.assert_awaited_once()


def _build_playwright_mocks(launch_error=None):
    mock_page = MagicMock()
    mock_cdp = _build_cdp()

    mock_context = AsyncMock()
    mock_context.new_page = AsyncMock(return_value=mock_page)
    mock_context.new_cdp_session = AsyncMock(return_value=mock_cdp)

    mock_browser = AsyncMock()
    mock_browser.new_context = AsyncMock(return_value=mock_context)
    mock_browser.close = AsyncMock()

    mock_pw = MagicMock()
    mock_pw.chromium = MagicMock()
    if launch_error is not None:
        mock_pw.chromium.launch = AsyncMock(side_effect=launch_error)
    else:
        mock_pw.chromium.launch = AsyncMock(return_value=mock_browser)

    mock_pw_cm = AsyncMock()
    mock_pw_cm.__aenter__ = AsyncMock(return_value=mock_pw)
    mock_pw_cm.__aexit__ = AsyncMock(return_value=None)

    return mock_pw_cm, mock_pw, mock_browser


class TestOpenBrowser:
    @pytest.mark.asyncio
    async def test_yields_page_and_closes_browser(self):
        mock_pw_cm, mock_pw, mock_browser = _build_playwright_mocks()

        with patch("cssscan.renderer.async_playwright", return_value=mock_pw_cm):
            async with open_browser(ScanOptions(headless=False)) as page:
                assert isinstance(page, PlaywrightPage)

        mock_pw.chromium.launch.assert_awaited_once_with(headless=False)
        mock_browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_closes_browser_on_error(self):
        mock_pw_cm, _, mock_browser = _build_playwright_mocks()

        with patch("cssscan.renderer.async_playwright", return_value=mock_pw_cm):
            with pytest.raises(RuntimeError):
                async with open_browser(ScanOptions()):
                    raise RuntimeError("crawl failed")

        mock_browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_launch_failure_is_fatal(self):
        mock_pw_cm, _, _ = _build_playwright_mocks(
            launch_error=PlaywrightError("Executable doesn't exist")
        )

        with patch("cssscan.renderer.async_playwright", return_value=mock_pw_cm):
            with pytest.raises(FatalScanError, match="Failed to launch Chromium"):
                async with open_browser(ScanOptions()):
                    pass
