"""Shared fixtures for the analysis test suite.

The corpus is six short report abstracts on three clearly separated themes
(climate, peacekeeping, development financing), two documents per theme.
PDF extraction is exercised through stub Docling objects.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Configure verbose logging for test debugging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
    force=True,
)
logging.getLogger("matplotlib").setLevel(logging.WARNING)
log = logging.getLogger("conftest")

REPORT_TEXTS = {
    "climate_a.pdf": (
        "The General Assembly report on climate change notes rising sea levels, "
        "ocean warming and greenhouse emissions. Climate adaptation and emissions "
        "reduction protect small island states from sea level rise in 2021."
    ),
    "climate_b.pdf": (
        "Climate change report: greenhouse emissions, ocean acidification and sea "
        "level rise threaten island states. The Assembly urges climate adaptation "
        "and emissions cuts before 2030."
    ),
    "peace_a.pdf": (
        "Peacekeeping operations report: the Security Council mandate, ceasefire "
        "monitoring and protection of civilians in armed conflict. Peacekeeping "
        "troops support the ceasefire."
    ),
    "peace_b.pdf": (
        "The report on peacekeeping reviews armed conflict, civilian protection, "
        "ceasefire agreements and Security Council mandates for peacekeeping "
        "missions."
    ),
    "dev_a.pdf": (
        "Sustainable development financing report: poverty eradication, debt "
        "relief and official development assistance for least developed "
        "countries."
    ),
    "dev_b.pdf": (
        "Report on financing for sustainable development: debt relief, poverty "
        "reduction and development assistance to least developed countries."
    ),
}

THEMES = {
    "climate": ("climate_a.pdf", "climate_b.pdf"),
    "peace": ("peace_a.pdf", "peace_b.pdf"),
    "dev": ("dev_a.pdf", "dev_b.pdf"),
}


# ---------------------------------------------------------------------------
# Stub Docling objects
# ---------------------------------------------------------------------------


class FakeDoclingDocument:
    def __init__(self, name: str, pages: list[str]):
        self.name = name
        self.pages = {i + 1: object() for i in range(len(pages))}
        self._pages = pages

    def export_to_markdown(self, page_no: int | None = None) -> str:
        if page_no is None:
            return "\n".join(self._pages)
        return self._pages[page_no - 1]


class FakeResult:
    def __init__(self, document):
        self.document = document


class FakeConverter:
    """Converter returning canned pages per filename; unknown files fail."""

    def __init__(self, pages_by_name: dict[str, list[str]]):
        self.pages_by_name = pages_by_name
        self.calls: list[str] = []

    def convert(self, source: str):
        self.calls.append(source)
        name = Path(source).name
        if name not in self.pages_by_name:
            raise RuntimeError(f"cannot parse {name}")
        return FakeResult(FakeDoclingDocument(Path(name).stem, self.pages_by_name[name]))


def split_pages(text: str) -> list[str]:
    """Split a text into two pages at a sentence boundary."""
    head, _, tail = text.partition(". ")
    return [head + ".", tail] if tail else [text]


@pytest.fixture
def fake_converter() -> FakeConverter:
    return FakeConverter({name: split_pages(text) for name, text in REPORT_TEXTS.items()})


@pytest.fixture
def tmp_output(tmp_path: Path) -> Path:
    """Return a temporary output directory for a single test."""
    return tmp_path / "output"


@pytest.fixture
def pdf_dir(tmp_path: Path) -> Path:
    """Directory of placeholder PDF files named like the sample reports."""
    folder = tmp_path / "reports"
    folder.mkdir()
    for name in REPORT_TEXTS:
        (folder / name).write_bytes(b"%PDF-1.4 placeholder")
    return folder


# ---------------------------------------------------------------------------
# Analysis fixtures (session-scoped; each stage built once)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def report_texts() -> dict[str, str]:
    return dict(REPORT_TEXTS)


@pytest.fixture(scope="session")
def themes() -> dict[str, tuple[str, str]]:
    return dict(THEMES)


@pytest.fixture(scope="session")
def raw_corpus(report_texts):
    from textmining import corpus_from_texts

    return corpus_from_texts(report_texts)


@pytest.fixture(scope="session")
def stop_words() -> frozenset[str]:
    from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

    return frozenset(ENGLISH_STOP_WORDS)


@pytest.fixture(scope="session")
def clean_corpus(raw_corpus, stop_words):
    from textmining import normalize_corpus

    return normalize_corpus(raw_corpus, stopwords=stop_words)


@pytest.fixture(scope="session")
def dtm(clean_corpus):
    from textmining import build_document_term_matrix

    return build_document_term_matrix(clean_corpus)


@pytest.fixture(scope="session")
def tfidf(dtm):
    from textmining import weight_tfidf

    return weight_tfidf(dtm)


@pytest.fixture(scope="session")
def euclidean(tfidf):
    from textmining import euclidean_distance_matrix

    return euclidean_distance_matrix(tfidf)


@pytest.fixture(scope="session")
def lda_model(dtm):
    """Session-scoped LDA fit (fit once)."""
    log.info(">>> FIXTURE lda_model: fitting LDA ...")
    t0 = time.time()

    from textmining import fit_lda

    model = fit_lda(dtm, 3, random_state=1234, max_iter=30)
    log.info(f">>> FIXTURE lda_model: fitted in {time.time() - t0:.2f}s")
    return model
