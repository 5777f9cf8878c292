"""Scan options and environment-driven configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .models import Viewport

LOGGER = logging.getLogger(__name__)

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "cssscan"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"

# Order matters: navigation happens on the first viewport only.
VIEWPORTS: Tuple[Viewport, ...] = (
    Viewport(1920, 1080, "Desktop (1920x1080)"),
    Viewport(768, 1024, "Tablet (768x1024)"),
    Viewport(375, 667, "Mobile (375x667)"),
)

DEFAULT_NAVIGATION_TIMEOUT_MS = 30_000
DEFAULT_SETTLE_DELAY_MS = 200

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class ScanOptions:
    """Options for a coverage scan.

    Attributes:
        depth: Link distance to follow from the seed (0 = seed page only).
        max_pages: Hard budget on visited pages.
        headless: Run Chromium without a window.
        navigation_timeout_ms: Ceiling for each page navigation. A page that
            fails to load within it still counts as visited and contributes
            whatever coverage was captured.
        wait_until: Playwright load state awaited on navigation.
        settle_delay_ms: Pause after each resize and scroll.
        output_dir: Directory receiving the used/unused stylesheets.
    """

    depth: int = 0
    max_pages: int = 1
    headless: bool = True
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS
    wait_until: str = "networkidle"
    settle_delay_ms: int = DEFAULT_SETTLE_DELAY_MS
    output_dir: str = "."
    used_filename: str = "used.css"
    unused_filename: str = "unused.css"
    viewports: List[Viewport] = field(default_factory=lambda: list(VIEWPORTS))

    def __post_init__(self) -> None:
        if self.depth < 0:
            raise ValueError("depth must be greater than or equal to 0")
        if self.max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        if self.navigation_timeout_ms <= 0:
            raise ValueError("navigation_timeout_ms must be greater than 0")
        if self.settle_delay_ms < 0:
            raise ValueError("settle_delay_ms must be greater than or equal to 0")
        if not self.viewports:
            raise ValueError("at least one viewport is required")

    @property
    def viewport_labels(self) -> List[str]:
        return [viewport.label for viewport in self.viewports]


def load_env_config(
    *,
    cwd: Optional[Path] = None,
    config_env_file: Path = CONFIG_ENV_FILE,
    load_env: Callable[[Path], bool] = load_dotenv,
) -> Optional[Path]:
    """Load .env configuration with fallback to the user config directory.

    Search order:
    1. .env in current working directory
    2. ~/.config/cssscan/.env

    Returns the file that was loaded, or None.
    """
    local_env = (cwd or Path.cwd()) / ".env"
    if local_env.is_file():
        load_env(local_env)
        return local_env

    if config_env_file.is_file():
        load_env(config_env_file)
        return config_env_file

    return None


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


_ENV_FIELDS: Dict[str, Tuple[str, Callable[[str, str], Any]]] = {
    "CSS_SCAN_DEPTH": ("depth", _parse_int),
    "CSS_SCAN_MAX_PAGES": ("max_pages", _parse_int),
    "CSS_SCAN_HEADLESS": ("headless", _parse_bool),
    "CSS_SCAN_TIMEOUT_MS": ("navigation_timeout_ms", _parse_int),
    "CSS_SCAN_SETTLE_MS": ("settle_delay_ms", _parse_int),
    "CSS_SCAN_OUTPUT_DIR": ("output_dir", lambda _name, raw: raw.strip()),
}


def options_from_env(
    environ: Optional[Mapping[str, str]] = None, **overrides: Any
) -> ScanOptions:
    """Build ScanOptions from ``CSS_SCAN_*`` variables.

    Keyword overrides that are not None win over the environment.
    """
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    for name, (attr, parse) in _ENV_FIELDS.items():
        raw = env.get(name)
        if raw is None or not raw.strip():
            continue
        values[attr] = parse(name, raw)

    for attr, value in overrides.items():
        if value is not None:
            values[attr] = value

    if values:
        LOGGER.debug("Scan options: %s", values)
    return ScanOptions(**values)
