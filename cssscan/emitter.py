"""Coverage statistics and used/unused stylesheet output."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

import cssutils
from cssutils.serialize import Preferences

from .aggregator import CoverageAggregator
from .config import ScanOptions
from .errors import FormatError
from .models import GlobalCoverageEntry, ScanResult
from .ranges import merge_ranges

LOGGER = logging.getLogger(__name__)

# cssutils reports every parse problem through its own logger.
cssutils.log.setLevel(logging.CRITICAL)

_SIGNATURE_NOISE = re.compile(r"[\s;]+")


@dataclass
class CoverageStats:
    """Byte totals and the reconstructed used/unused CSS text."""

    total_bytes: int
    used_bytes: int
    used_css: str
    unused_css: str

    @property
    def unused_bytes(self) -> int:
        return self.total_bytes - self.used_bytes

    @property
    def unused_percentage(self) -> str:
        return unused_percentage(self.unused_bytes, self.total_bytes)


def unused_percentage(unused_bytes: int, total_bytes: int) -> str:
    """Percentage of unused bytes with two decimals, ``"0"`` for empty input."""
    if total_bytes <= 0:
        return "0"
    return f"{unused_bytes / total_bytes * 100:.2f}"


def compute_coverage(entries: Iterable[GlobalCoverageEntry]) -> CoverageStats:
    """Split every stylesheet into used and unused text.

    Ranges are re-merged first so the walk below never double counts.
    """
    total_bytes = 0
    used_bytes = 0
    used_parts: List[str] = []
    unused_parts: List[str] = []

    for entry in entries:
        text = entry.text
        total_bytes += len(text)

        cursor = 0
        for byte_range in merge_ranges(entry.ranges):
            start = max(byte_range.start, cursor)
            end = min(byte_range.end, len(text))
            if end <= start:
                continue
            if start > cursor:
                unused_parts.append(text[cursor:start] + "\n")
            used_parts.append(text[start:end] + "\n")
            used_bytes += end - start
            cursor = end
        if cursor < len(text):
            unused_parts.append(text[cursor:] + "\n")

    return CoverageStats(
        total_bytes=total_bytes,
        used_bytes=used_bytes,
        used_css="".join(used_parts),
        unused_css="".join(unused_parts),
    )


def balance_braces(css: str) -> str:
    """Close or open braces left dangling by slicing mid-rule."""
    depth = css.count("{") - css.count("}")
    if depth > 0:
        return css + "}\n" * depth
    if depth < 0:
        return "{\n" * -depth + css
    return css


def _serializer() -> cssutils.CSSSerializer:
    prefs = Preferences()
    # Preferences() ignores falsy keyword values, so set these afterwards.
    prefs.minimizeColorHash = False
    prefs.keepEmptyRules = True
    return cssutils.CSSSerializer(prefs=prefs)


def _find_unknown_rule(rules: Iterable[Any]) -> Optional[Any]:
    for rule in rules:
        if rule.type == cssutils.css.CSSRule.UNKNOWN_RULE:
            return rule
        nested = getattr(rule, "cssRules", None)
        if nested is not None:
            found = _find_unknown_rule(nested)
            if found is not None:
                return found
    return None


def _signature(css: str) -> str:
    return _SIGNATURE_NOISE.sub("", css)


def format_css(css: str) -> str:
    """Pretty-print CSS with cssutils.

    Only whitespace and semicolons may change. Rules cssutils does not
    understand (``@supports``, ``@container``, ...) and any output that
    rewrites values or drops rules are rejected.

    Raises:
        FormatError: If cssutils cannot parse or faithfully reprint the input.
    """
    parser = cssutils.CSSParser(
        loglevel=logging.CRITICAL, raiseExceptions=True, validate=False
    )
    try:
        sheet = parser.parseString(css)
    except Exception as exc:
        raise FormatError(str(exc) or type(exc).__name__) from exc

    unknown = _find_unknown_rule(sheet.cssRules)
    if unknown is not None:
        raise FormatError(f"Unsupported rule {unknown.atkeyword}")

    # Nested rules serialize through the module-level cssutils.ser.
    previous = cssutils.ser
    cssutils.setSerializer(_serializer())
    try:
        formatted = sheet.cssText.decode("utf-8")
    except Exception as exc:
        raise FormatError(str(exc) or type(exc).__name__) from exc
    finally:
        cssutils.setSerializer(previous)

    if _signature(formatted) != _signature(css):
        raise FormatError("Formatter output differs from its input")
    return formatted + "\n"


def format_fallback(css: str) -> str:
    """Regex formatter for CSS the pretty-printer rejects."""
    css = re.sub(r"\s*([{}])\s*", r" \1\n", css)
    css = re.sub(r";\s*", ";\n  ", css)
    css = re.sub(r"\s*{\s*", " {\n  ", css)
    css = re.sub(r"\n\s*}\s*", "\n}\n", css)
    css = re.sub(r",\s*", ", ", css)
    css = re.sub(r"\n\s*\n", "\n", css)
    return css


def write_css_file(path: Union[Path, str], content: str, header: str = "") -> str:
    """Balance, format and write ``content``; return the written path."""
    balanced = balance_braces(content)
    if header:
        balanced = header + balanced

    try:
        output = format_css(balanced)
    except FormatError as exc:
        LOGGER.warning("Formatter rejected %s, using fallback: %s", path, exc)
        output = format_fallback(balanced)

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(output, encoding="utf-8")
    LOGGER.info("Wrote %s", target)
    return str(target)


def finalize(
    aggregator: CoverageAggregator,
    *,
    seed_url: str,
    pages: List[str],
    options: ScanOptions,
) -> ScanResult:
    """Write used/unused stylesheets and summarize the scan."""
    stats = compute_coverage(entry for _, entry in aggregator.items())
    page_count = len(pages)
    out_dir = Path(options.output_dir)

    used_file = write_css_file(
        out_dir / options.used_filename,
        stats.used_css,
        f"/* {options.used_filename} - scanned {page_count} pages */\n",
    )
    unused_file = write_css_file(
        out_dir / options.unused_filename,
        stats.unused_css,
        f"/* {options.unused_filename} - scanned {page_count} pages */\n",
    )

    return ScanResult(
        url=seed_url,
        total_bytes=stats.total_bytes,
        used_bytes=stats.used_bytes,
        unused_bytes=stats.unused_bytes,
        unused_percentage=stats.unused_percentage,
        scanned_viewports=options.viewport_labels,
        output_file=used_file,
        unused_output_file=unused_file,
        total_pages_scanned=page_count,
        pages_list=list(pages),
    )
