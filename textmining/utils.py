"""Cross-cutting helpers: constants, path utilities, state and manifest I/O."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from .models import DocRecord

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PDF_PATTERN = "*.pdf"
DEFAULT_MIN_DOC_FREQ = 2
DEFAULT_MIN_TERM_COUNT = 1
DEFAULT_N_TOPICS = 4
DEFAULT_TOP_TERMS = 10
DEFAULT_N_CLUSTERS = 3
DEFAULT_RANDOM_STATE = 1234
DEFAULT_LDA_MAX_ITER = 50
LOG_RATIO_MIN_BETA = 0.001
AGGLOMERATIVE_METHODS = ("ward", "average", "centroid", "mcquitty")
STATE_FILE_NAME = "pipeline_state.json"
MANIFEST_FILE_NAME = "analysis_manifest.json"


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def ensure_output_dirs(output_dir: Path) -> tuple[Path, Path, Path]:
    """Create and return (text_dir, tables_dir, figures_dir) under *output_dir*."""
    text_dir = output_dir / "text"
    tables_dir = output_dir / "tables"
    figures_dir = output_dir / "figures"
    for path in (text_dir, tables_dir, figures_dir):
        path.mkdir(parents=True, exist_ok=True)
    return text_dir, tables_dir, figures_dir


def save_table(frame: pd.DataFrame, path: Path, *, index: bool = True) -> Path:
    """Write *frame* as CSV and return the path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path, index=index, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Page text cache
# ---------------------------------------------------------------------------


def page_cache_path(text_dir: Path, name: str) -> Path:
    """Cache file for a document *name* such as ``2019/report.pdf``.

    Subfolders are flattened with ``__`` (``2019__report.json``).
    """
    key = Path(name).with_suffix("").as_posix().replace("/", "__")
    return text_dir / f"{key}.json"


def save_page_text(text_dir: Path, record: DocRecord) -> Path:
    """Persist the extracted pages of *record* under its cache key."""
    path = page_cache_path(text_dir, record.filename)
    payload = {
        "filename": record.filename,
        "filepath": record.filepath,
        "title": record.title,
        "pages": record.pages,
    }
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)
    return path


def load_page_text(
    text_dir: Path,
    pdf_path: Path,
    name: str | None = None,
) -> DocRecord | None:
    """Rebuild a successful record from the page cache, or ``None``.

    A cache file written for a different PDF than *pdf_path* is ignored.
    """
    name = name or pdf_path.name
    path = page_cache_path(text_dir, name)
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (json.JSONDecodeError, OSError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    pages = payload.get("pages")
    if not isinstance(pages, list):
        return None
    cached_path = payload.get("filepath")
    if not cached_path or Path(str(cached_path)).resolve() != pdf_path.resolve():
        log.warning("Page cache %s belongs to %s, not %s", path.name, cached_path, pdf_path)
        return None
    return DocRecord(
        filename=name,
        filepath=str(pdf_path),
        pages=[str(page) for page in pages],
        num_pages=len(pages),
        title=str(payload.get("title") or pdf_path.stem),
        status="success",
    )


# ---------------------------------------------------------------------------
# Pipeline state
# ---------------------------------------------------------------------------


def _state_path(output_dir: Path) -> Path:
    return output_dir / STATE_FILE_NAME


def file_fingerprint(path: Path) -> dict[str, int]:
    """Return a cheap fingerprint for local change detection."""
    stat = path.stat()
    return {
        "size": stat.st_size,
        "mtime_ns": stat.st_mtime_ns,
    }


def is_unchanged_file(path: Path, previous: dict[str, Any] | None) -> bool:
    """Check whether *path* matches a previous successful state entry."""
    if not previous or previous.get("status") != "success":
        return False
    current = file_fingerprint(path)
    return (
        previous.get("size") == current["size"]
        and previous.get("mtime_ns") == current["mtime_ns"]
    )


def load_pipeline_state(output_dir: Path) -> dict[str, Any]:
    """Load persistent pipeline state from ``pipeline_state.json``."""
    path = _state_path(output_dir)
    if not path.exists():
        return {"files": {}}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            state = json.load(fh)
    except (json.JSONDecodeError, OSError, ValueError):
        return {"files": {}}

    if not isinstance(state, dict):
        return {"files": {}}

    files = state.get("files")
    if not isinstance(files, dict):
        state["files"] = {}
    return state


def save_pipeline_state(output_dir: Path, state: dict[str, Any]) -> Path:
    """Persist pipeline state and return the state file path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = _state_path(output_dir)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(state, fh, indent=2, ensure_ascii=False, default=str)
    return path


# ---------------------------------------------------------------------------
# Manifest I/O
# ---------------------------------------------------------------------------


def save_manifest(
    output_dir: Path,
    records: list[DocRecord],
    summary: dict[str, Any] | None = None,
) -> Path:
    """Write analysis_manifest.json and return its path.

    The manifest lists every input document with its extraction status and
    carries the run *summary* (matrix shape, topic count, figure paths...).
    """
    manifest_path = output_dir / MANIFEST_FILE_NAME
    documents = [
        {
            "filename": record.filename,
            "filepath": record.filepath,
            "title": record.title,
            "status": record.status,
            "num_pages": record.num_pages,
            "char_count": len(record.text),
            "extraction_time_s": record.extraction_time_s,
            "error": record.error,
        }
        for record in sorted(records, key=lambda r: (r.filename, r.filepath))
    ]
    manifest = {"documents": documents, "summary": summary or {}}
    output_dir.mkdir(parents=True, exist_ok=True)
    with open(manifest_path, "w", encoding="utf-8") as fh:
        json.dump(manifest, fh, indent=2, ensure_ascii=False, default=str)
    return manifest_path
