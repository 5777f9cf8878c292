"""Output and formatting helpers for CLI commands."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from .models import ScanResult

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """Human-readable size, e.g. ``1536`` -> ``1.5 KB``."""
    if not num_bytes:
        return "0 Bytes"
    places = max(0, decimals)
    index = 0
    while num_bytes >= 1024 ** (index + 1) and index < len(_SIZE_UNITS) - 1:
        index += 1
    value = f"{num_bytes / 1024 ** index:.{places}f}"
    if places:
        value = value.rstrip("0").rstrip(".")
    return f"{value} {_SIZE_UNITS[index]}"


def result_to_dict(result: ScanResult) -> Dict[str, Any]:
    """Convert a scan result to a JSON-serializable dict."""
    return asdict(result)


def format_summary(result: ScanResult, *, depth: int, max_pages: int) -> str:
    """Format scan metrics as a plain-text block."""
    lines: List[str] = [
        "CSS Usage Metrics",
        "",
        f"Base URL: {result.url}",
        f"Pages Scanned: {result.total_pages_scanned}",
        f"Depth: {depth} | Max: {max_pages}",
        f"Viewports: {', '.join(result.scanned_viewports)}",
        "",
        f"{'Used:':<20}{format_bytes(result.used_bytes)}",
        f"{'Unused:':<20}{format_bytes(result.unused_bytes)}",
        f"{'Total:':<20}{format_bytes(result.total_bytes)}",
        "",
        f"{'Percentage Unused:':<20}{result.unused_percentage}%",
        "",
        f"Exported Used CSS: {result.output_file}",
        f"Exported Unused CSS: {result.unused_output_file}",
    ]
    return "\n".join(lines)


def format_summary_markdown(result: ScanResult) -> str:
    """Format scan metrics and the page list as markdown."""
    lines = [
        f"# CSS coverage: {result.url}",
        f"_Pages scanned: {result.total_pages_scanned}_",
        "",
        "| Metric | Value |",
        "| --- | --- |",
        f"| Used | {format_bytes(result.used_bytes)} |",
        f"| Unused | {format_bytes(result.unused_bytes)} |",
        f"| Total | {format_bytes(result.total_bytes)} |",
        f"| Unused % | {result.unused_percentage}% |",
        "",
        f"Used CSS: `{result.output_file}`",
        f"Unused CSS: `{result.unused_output_file}`",
        "",
        "## Pages",
    ]
    lines.extend(f"- {page}" for page in result.pages_list)
    return "\n".join(lines)
