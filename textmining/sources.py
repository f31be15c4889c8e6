"""PDF file discovery on the local filesystem."""

from __future__ import annotations

import logging
from pathlib import Path

from .utils import PDF_PATTERN

log = logging.getLogger(__name__)


def discover_pdfs(
    folder: Path,
    pattern: str = PDF_PATTERN,
    *,
    recursive: bool = True,
) -> list[Path]:
    """Find files under *folder* matching *pattern*, sorted by path."""
    if not folder.exists():
        log.warning("Input folder does not exist: %s", folder)
        return []
    matches = folder.rglob(pattern) if recursive else folder.glob(pattern)
    found = sorted(p for p in matches if p.is_file())
    log.debug("discover_pdfs: %s files match %r in %s", len(found), pattern, folder)
    return found


def document_name(pdf_path: Path, root: Path | None = None) -> str:
    """Name a discovered file by its POSIX path relative to *root*.

    Files outside *root* (or with no root) are named by their filename.
    """
    if root is not None and pdf_path.is_relative_to(root):
        return pdf_path.relative_to(root).as_posix()
    return pdf_path.name
