"""Command-line interface for the CSS coverage scanner."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Callable, List, Optional

from .cli_output import format_summary, result_to_dict
from .config import load_env_config, options_from_env

load_env_config()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _is_http_url(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def _prompt_for_url(read: Optional[Callable[[str], str]] = None) -> str:
    """Ask for a URL until an http(s) one is entered."""
    read = read or input
    while True:
        raw = read("Enter a website URL to scan: ").strip()
        if _is_http_url(raw):
            return raw
        print("URL must start with http:// or https://")


def _parse_scan_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="css-scan",
        description="Measure used and unused CSS across pages and viewports.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Prompt for a URL
  css-scan

  # Single page
  css-scan --url https://example.com

  # Follow links two levels deep, at most 20 pages
  css-scan -u https://example.com -d 2 -m 20

  # Write used.css/unused.css into a directory, print JSON
  css-scan -u https://example.com -o report/ --json

Environment Variables:
  CSS_SCAN_DEPTH, CSS_SCAN_MAX_PAGES, CSS_SCAN_HEADLESS,
  CSS_SCAN_TIMEOUT_MS, CSS_SCAN_SETTLE_MS, CSS_SCAN_OUTPUT_DIR
""",
    )

    parser.add_argument(
        "-u",
        "--url",
        type=str,
        default=None,
        help="The URL to scan immediately",
    )
    parser.add_argument(
        "-d",
        "--depth",
        type=int,
        default=None,
        help="Link depth to crawl (default: 0, seed page only)",
    )
    parser.add_argument(
        "-m",
        "--max-pages",
        type=int,
        default=None,
        help="Maximum pages to scan (default: 1)",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        default=None,
        help="Directory for used.css and unused.css (default: current directory)",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the result as JSON",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


async def _run_scan_async(args: argparse.Namespace) -> int:
    """Main async entry point for css-scan."""
    from . import scan_css_coverage_async

    options = options_from_env(
        depth=args.depth,
        max_pages=args.max_pages,
        output_dir=args.output_dir,
        headless=False if args.headed else None,
    )

    def _on_progress(url: str, count: int) -> None:
        logging.info("Scanning page %d/%d: %s", count, options.max_pages, url)

    result = await scan_css_coverage_async(
        args.url, options=options, on_progress=_on_progress
    )

    if args.json_output:
        print(json.dumps(result_to_dict(result), indent=2, ensure_ascii=False))
    else:
        print(format_summary(result, depth=options.depth, max_pages=options.max_pages))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for css-scan."""
    args = _parse_scan_args(argv)
    _setup_logging(args.verbose)

    try:
        if not args.url:
            args.url = _prompt_for_url()
        elif not _is_http_url(args.url):
            logging.error("URL must start with http:// or https://")
            return 1
        return asyncio.run(_run_scan_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
