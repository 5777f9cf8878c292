"""Exception hierarchy for coverage scans."""

from __future__ import annotations


class CssScanError(Exception):
    """Base class for every error raised by cssscan."""


class NavigationError(CssScanError):
    """A page failed to load within the navigation timeout."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"Navigation to {url} failed: {message}")
        self.url = url


class OriginParseError(CssScanError, ValueError):
    """A URL has no usable scheme/host/port origin."""


class FormatError(CssScanError):
    """The CSS pretty-printer rejected its input."""


class FatalScanError(CssScanError):
    """The browser session could not be established or kept alive."""
