"""
File Scanner — Discovers eligible Rust source files under a root directory.

Build output, version control and hidden directories are never descended
into. Results are sorted so that every run sees files in the same order.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from rustguard.config import settings
from rustguard.core.errors import InvalidRootError
from rustguard.models.rule_models import IssueCategory, ScanIssue

logger = logging.getLogger("rustguard.core.file_scanner")


def discover_rust_files(root: str | Path) -> list[Path]:
    """Return every `*.rs` file under *root*, sorted by relative path."""
    root_path = Path(root)
    if not root_path.is_dir():
        raise InvalidRootError(f"Scan root is not a directory: {root_path}")

    excluded = set(settings.excluded_dirs)
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = sorted(
            d for d in dirnames if d not in excluded and not d.startswith(".")
        )
        for name in filenames:
            if name.endswith(".rs"):
                found.append(Path(dirpath) / name)

    found.sort(key=lambda p: p.relative_to(root_path).as_posix())
    logger.debug(f"Discovered {len(found)} Rust files under {root_path}")
    return found


def read_source(path: Path, display_path: str) -> tuple[str | None, ScanIssue | None]:
    """Read one file, turning every failure into a ScanIssue instead of raising."""
    try:
        size = path.stat().st_size
        if size > settings.max_file_size_bytes:
            return None, ScanIssue(
                category=IssueCategory.IO,
                file=display_path,
                message=f"File is {size} bytes, above the {settings.max_file_size_bytes} byte limit",
            )
        return path.read_text(encoding="utf-8"), None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Cannot read {display_path}: {e}")
        return None, ScanIssue(category=IssueCategory.IO, file=display_path, message=str(e))
