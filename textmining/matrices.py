"""Term-document matrix construction, TF-IDF weighting and term statistics."""

from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from sklearn.feature_extraction.text import CountVectorizer, TfidfTransformer

from .models import DOCUMENT_TERM, Corpus, TermMatrix

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def build_document_term_matrix(
    corpus: Corpus,
    *,
    min_doc_freq: int = 1,
    min_term_count: int = 1,
) -> TermMatrix:
    """Count terms per document.

    Documents are expected to be normalized already; tokens are split on
    whitespace. A term is kept when it occurs in at least *min_doc_freq*
    documents and at least *min_term_count* times overall.
    """
    if len(corpus) == 0:
        raise ValueError("Cannot build a term matrix from an empty corpus")

    vectorizer = CountVectorizer(
        tokenizer=str.split,
        token_pattern=None,
        lowercase=False,
        min_df=max(1, min_doc_freq),
    )
    counts = vectorizer.fit_transform(corpus.texts).tocsr()
    terms = vectorizer.get_feature_names_out()

    if min_term_count > 1:
        totals = np.asarray(counts.sum(axis=0)).ravel()
        keep = np.flatnonzero(totals >= min_term_count)
        if keep.size == 0:
            raise ValueError(
                f"After pruning, no terms remain (min_term_count={min_term_count})"
            )
        counts = counts[:, keep]
        terms = terms[keep]

    log.info(
        "Document-term matrix: %s documents x %s terms (min_doc_freq=%s, "
        "min_term_count=%s)",
        counts.shape[0],
        counts.shape[1],
        min_doc_freq,
        min_term_count,
    )
    return TermMatrix(
        matrix=counts,
        row_labels=tuple(corpus.names),
        col_labels=tuple(str(t) for t in terms),
        orientation=DOCUMENT_TERM,
        weighting="tf",
    )


def build_term_document_matrix(corpus: Corpus, **kwargs) -> TermMatrix:
    """Same counts as :func:`build_document_term_matrix`, terms as rows."""
    return build_document_term_matrix(corpus, **kwargs).transpose()


# ---------------------------------------------------------------------------
# Weighting
# ---------------------------------------------------------------------------


def weight_tfidf(
    term_matrix: TermMatrix,
    *,
    norm: str | None = "l1",
    smooth_idf: bool = True,
    sublinear_tf: bool = False,
) -> TermMatrix:
    """Return a TF-IDF weighted copy of a raw count matrix.

    With ``norm="l1"`` every document with at least one term sums to one.
    The result keeps the orientation of *term_matrix*.
    """
    if term_matrix.weighting != "tf":
        raise ValueError(
            f"TF-IDF expects raw term counts, got weighting={term_matrix.weighting!r}"
        )

    transformer = TfidfTransformer(
        norm=norm,
        smooth_idf=smooth_idf,
        sublinear_tf=sublinear_tf,
    )
    weighted = transformer.fit_transform(term_matrix.document_term()).tocsr()
    if term_matrix.orientation != DOCUMENT_TERM:
        weighted = weighted.T.tocsr()

    log.info("TF-IDF weighting applied (norm=%s, smooth_idf=%s)", norm, smooth_idf)
    return TermMatrix(
        matrix=weighted,
        row_labels=term_matrix.row_labels,
        col_labels=term_matrix.col_labels,
        orientation=term_matrix.orientation,
        weighting="tf-idf",
    )


# ---------------------------------------------------------------------------
# Term statistics
# ---------------------------------------------------------------------------


def term_frequencies(term_matrix: TermMatrix) -> pd.Series:
    """Total weight per term across documents, highest first.

    Ties keep alphabetical order.
    """
    dtm = term_matrix.document_term()
    totals = np.asarray(dtm.sum(axis=0)).ravel()
    series = pd.Series(totals, index=list(term_matrix.terms), name="frequency")
    series = series.sort_index(kind="mergesort")
    return series.sort_values(ascending=False, kind="mergesort")


def find_frequent_terms(
    term_matrix: TermMatrix,
    low_freq: float = 0,
    high_freq: float = math.inf,
) -> list[str]:
    """Terms whose total frequency lies within ``[low_freq, high_freq]``."""
    freqs = term_frequencies(term_matrix)
    selected = freqs[(freqs >= low_freq) & (freqs <= high_freq)]
    return sorted(selected.index)


def find_associations(
    term_matrix: TermMatrix,
    term: str,
    min_corr: float = 0.5,
) -> pd.Series:
    """Correlate *term* with every other term over the documents.

    Returns correlations of at least *min_corr*, rounded to two decimals,
    highest first. Terms with a constant profile are left out.
    """
    terms = list(term_matrix.terms)
    try:
        idx = terms.index(term)
    except ValueError:
        raise ValueError(f"Unknown term: {term!r}") from None

    dense = term_matrix.document_term().toarray().astype(float)
    centered = dense - dense.mean(axis=0)
    norms = np.sqrt((centered**2).sum(axis=0))
    with np.errstate(divide="ignore", invalid="ignore"):
        corr = (centered.T @ centered[:, idx]) / (norms * norms[idx])

    series = pd.Series(corr, index=terms, name=term).drop(term)
    values = series.to_numpy()
    series = series[np.isfinite(values) & (values >= min_corr)].round(2)
    series = series.sort_index(kind="mergesort")
    return series.sort_values(ascending=False, kind="mergesort")


def sparsity(term_matrix: TermMatrix) -> float:
    """Share of zero cells in the matrix."""
    rows, cols = term_matrix.shape
    if rows * cols == 0:
        return 0.0
    return 1.0 - term_matrix.matrix.count_nonzero() / float(rows * cols)
