"""LDA topic modeling and the tidy probability tables derived from it.

Topics are numbered from 1 in every table and argument.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from sklearn.decomposition import LatentDirichletAllocation

from .models import TermMatrix, TopicModel
from .utils import DEFAULT_LDA_MAX_ITER, DEFAULT_RANDOM_STATE, LOG_RATIO_MIN_BETA

log = logging.getLogger(__name__)


def _row_normalize(values: np.ndarray) -> np.ndarray:
    totals = values.sum(axis=1, keepdims=True)
    totals[totals == 0] = 1.0
    return values / totals


def fit_lda(
    term_matrix: TermMatrix,
    n_topics: int,
    *,
    random_state: int | None = DEFAULT_RANDOM_STATE,
    max_iter: int = DEFAULT_LDA_MAX_ITER,
    learning_method: str = "batch",
    doc_topic_prior: float | None = None,
    topic_word_prior: float | None = None,
) -> TopicModel:
    """Fit LDA (variational Bayes) with a fixed number of topics on raw counts."""
    if term_matrix.weighting != "tf":
        raise ValueError(
            "LDA needs raw term counts, got weighting="
            f"{term_matrix.weighting!r}"
        )
    if n_topics < 1:
        raise ValueError("n_topics must be at least 1")

    counts = term_matrix.document_term()
    estimator = LatentDirichletAllocation(
        n_components=n_topics,
        learning_method=learning_method,
        max_iter=max_iter,
        random_state=random_state,
        doc_topic_prior=doc_topic_prior,
        topic_word_prior=topic_word_prior,
    )
    document_topic = estimator.fit_transform(counts)

    log.info(
        "LDA fitted: %s topics, %s documents, %s terms, %s iterations, "
        "perplexity %.2f",
        n_topics,
        counts.shape[0],
        counts.shape[1],
        estimator.n_iter_,
        estimator.perplexity(counts),
    )
    return TopicModel(
        estimator=estimator,
        terms=term_matrix.terms,
        documents=term_matrix.documents,
        topic_term=_row_normalize(np.asarray(estimator.components_, dtype=float)),
        document_topic=_row_normalize(np.asarray(document_topic, dtype=float)),
    )


def _check_topic(model: TopicModel, topic: int) -> int:
    if not 1 <= topic <= model.n_topics:
        raise ValueError(f"Topic {topic} out of range 1..{model.n_topics}")
    return topic - 1


# ---------------------------------------------------------------------------
# Tidy tables
# ---------------------------------------------------------------------------


def topic_term_table(model: TopicModel) -> pd.DataFrame:
    """Per-topic term probabilities (beta) as ``topic, term, beta`` rows."""
    n_topics, n_terms = model.topic_term.shape
    return pd.DataFrame(
        {
            "topic": np.repeat(np.arange(1, n_topics + 1), n_terms),
            "term": np.tile(np.asarray(model.terms, dtype=object), n_topics),
            "beta": model.topic_term.ravel(),
        }
    )


def document_topic_table(model: TopicModel) -> pd.DataFrame:
    """Per-document topic probabilities (gamma) as ``document, topic, gamma`` rows."""
    n_docs, n_topics = model.document_topic.shape
    return pd.DataFrame(
        {
            "document": np.repeat(np.asarray(model.documents, dtype=object), n_topics),
            "topic": np.tile(np.arange(1, n_topics + 1), n_docs),
            "gamma": model.document_topic.ravel(),
        }
    )


def top_terms(model: TopicModel, n: int = 10) -> pd.DataFrame:
    """The *n* most probable terms of every topic, best first."""
    table = topic_term_table(model)
    table = table.sort_values(
        ["topic", "beta", "term"],
        ascending=[True, False, True],
        kind="mergesort",
    )
    return table.groupby("topic", sort=True).head(n).reset_index(drop=True)


def topic_log_ratio(
    model: TopicModel,
    topic_a: int = 1,
    topic_b: int = 2,
    min_beta: float = LOG_RATIO_MIN_BETA,
) -> pd.DataFrame:
    """Compare two topics term by term with ``log2(beta_b / beta_a)``.

    Only terms with ``beta > min_beta`` in at least one of the two topics
    are kept. Positive ratios lean towards *topic_b*.
    """
    a = model.topic_term[_check_topic(model, topic_a)]
    b = model.topic_term[_check_topic(model, topic_b)]
    keep = (a > min_beta) | (b > min_beta)

    with np.errstate(divide="ignore"):
        ratio = np.log2(b[keep]) - np.log2(a[keep])

    table = pd.DataFrame(
        {
            "term": np.asarray(model.terms, dtype=object)[keep],
            f"topic{topic_a}": a[keep],
            f"topic{topic_b}": b[keep],
            "log_ratio": ratio,
        }
    )
    return table.sort_values("log_ratio", ascending=False, kind="mergesort").reset_index(
        drop=True
    )


def dominant_topics(model: TopicModel) -> pd.Series:
    """Most probable topic of each document."""
    best = model.document_topic.argmax(axis=1) + 1
    return pd.Series(best, index=list(model.documents), name="topic")
