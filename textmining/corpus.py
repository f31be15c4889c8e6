"""Corpus construction and text normalization.

Normalization mirrors the classic text-mining cleanup chain: lowercase,
strip punctuation, drop numbers, drop stopwords, stem, collapse whitespace.
Every step returns new text; a ``Corpus`` is never modified in place.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from .models import Corpus, DocRecord, Document

log = logging.getLogger(__name__)

_PUNCT_RE = re.compile(r"[^\w\s]|_")
_NUMBER_RE = re.compile(r"\d+")
_WS_RE = re.compile(r"\s+")

# ---------------------------------------------------------------------------
# Module-level caches (lazy-loaded)
# ---------------------------------------------------------------------------

_stopwords: dict[str, frozenset[str]] = {}
_stemmer = None


def _get_stemmer():
    global _stemmer
    if _stemmer is None:
        from nltk.stem.snowball import SnowballStemmer

        _stemmer = SnowballStemmer("english")
    return _stemmer


def load_stopwords(source: str = "nltk") -> frozenset[str]:
    """Return the English stopword list from *source*.

    ``"nltk"`` downloads the NLTK stopwords corpus on first use,
    ``"sklearn"`` uses scikit-learn's built-in list and ``"none"`` disables
    stopword removal.
    """
    if source in _stopwords:
        return _stopwords[source]

    if source == "nltk":
        import nltk

        nltk.download("stopwords", quiet=True)
        from nltk.corpus import stopwords

        words = frozenset(stopwords.words("english"))
    elif source == "sklearn":
        from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

        words = frozenset(ENGLISH_STOP_WORDS)
    elif source == "none":
        words = frozenset()
    else:
        raise ValueError(f"Unknown stopword source: {source!r}")

    log.debug("Loaded %s stopwords from %s", len(words), source)
    _stopwords[source] = words
    return words


# ---------------------------------------------------------------------------
# Corpus construction
# ---------------------------------------------------------------------------


def build_corpus(records: Iterable[DocRecord]) -> Corpus:
    """Wrap the text of successful records in a ``Corpus``, keeping input order."""
    documents = []
    for record in records:
        if record.status != "success":
            log.debug("build_corpus: skipping %s (%s)", record.filename, record.status)
            continue
        documents.append(
            Document(name=record.filename, text=record.text, num_pages=record.num_pages)
        )

    names = [doc.name for doc in documents]
    if len(names) != len(set(names)):
        raise ValueError("Document names must be unique within a corpus")

    log.info("Corpus built: %s documents", len(documents))
    return Corpus(documents=tuple(documents))


def corpus_from_texts(texts: dict[str, str]) -> Corpus:
    """Build a corpus directly from ``{name: text}``, in insertion order."""
    return Corpus(
        documents=tuple(Document(name=name, text=text) for name, text in texts.items())
    )


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_text(
    text: str,
    *,
    stop_words: Iterable[str] = (),
    lowercase: bool = True,
    remove_punctuation: bool = True,
    remove_numbers: bool = True,
    stem: bool = True,
) -> str:
    """Normalize one text and return the space-joined tokens."""
    if lowercase:
        text = text.lower()
    if remove_punctuation:
        text = _PUNCT_RE.sub(" ", text)
    if remove_numbers:
        text = _NUMBER_RE.sub(" ", text)

    stop = stop_words if isinstance(stop_words, (set, frozenset)) else set(stop_words)
    tokens = [tok for tok in _WS_RE.split(text) if tok and tok not in stop]

    if stem:
        stemmer = _get_stemmer()
        tokens = [stemmer.stem(tok) for tok in tokens]
    return " ".join(tokens)


def normalize_corpus(
    corpus: Corpus,
    *,
    stopwords: str | Iterable[str] = "nltk",
    lowercase: bool = True,
    remove_punctuation: bool = True,
    remove_numbers: bool = True,
    stem: bool = True,
) -> Corpus:
    """Return a new corpus with every document normalized.

    *stopwords* is either a source name understood by :func:`load_stopwords`
    or an explicit collection of words.
    """
    if isinstance(stopwords, str):
        stop_words = load_stopwords(stopwords)
    else:
        stop_words = frozenset(stopwords)

    documents = tuple(
        Document(
            name=doc.name,
            text=normalize_text(
                doc.text,
                stop_words=stop_words,
                lowercase=lowercase,
                remove_punctuation=remove_punctuation,
                remove_numbers=remove_numbers,
                stem=stem,
            ),
            num_pages=doc.num_pages,
        )
        for doc in corpus
    )
    log.info(
        "Normalized %s documents (%s stopwords, stem=%s)",
        len(documents),
        len(stop_words),
        stem,
    )
    return Corpus(documents=documents)
