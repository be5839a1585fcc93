"""sm2pspp - PrusaSlicer to Snapmaker 2.0 G-code post-processor."""

from __future__ import annotations

import logging
import re
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path


_logger = logging.getLogger(__name__)
_logger.addHandler(logging.NullHandler())

PROJECT_URL = "https://github.com/daniel-starke/sm2pspp"


def _resolve_version() -> str:
    """Resolve the installed package version with a source-tree fallback."""
    # Source-tree first: avoids stale installed metadata when running from git.
    try:
        pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
        if pyproject.is_file():
            content = pyproject.read_text(encoding="utf-8")
            match = re.search(r'(?m)^\s*version\s*=\s*"([^"]+)"\s*$', content)
            if match:
                return match.group(1)
    except OSError as exc:
        _logger.debug("Local pyproject version fallback failed: %s", exc)

    try:
        return version("sm2pspp")
    except PackageNotFoundError:
        return "unknown"


__version__ = _resolve_version()
