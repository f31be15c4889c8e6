"""Pairwise document distances and similarities."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform
from sklearn.metrics.pairwise import cosine_similarity

from .models import TermMatrix

log = logging.getLogger(__name__)


def _labelled(values: np.ndarray, labels: tuple[str, ...]) -> pd.DataFrame:
    names = list(labels)
    return pd.DataFrame(values, index=names, columns=names)


def euclidean_distance_matrix(term_matrix: TermMatrix) -> pd.DataFrame:
    """Euclidean distance between every pair of documents."""
    dense = term_matrix.document_term().toarray()
    values = squareform(pdist(dense, metric="euclidean"))
    log.debug("Euclidean distances computed for %s documents", dense.shape[0])
    return _labelled(values, term_matrix.documents)


def cosine_similarity_matrix(term_matrix: TermMatrix) -> pd.DataFrame:
    """Cosine similarity between documents; symmetric with a unit diagonal.

    A document without any term has similarity 0 to every other document.
    """
    values = cosine_similarity(term_matrix.document_term())
    values = np.clip((values + values.T) / 2.0, -1.0, 1.0)
    np.fill_diagonal(values, 1.0)
    return _labelled(values, term_matrix.documents)


def cosine_distance_matrix(term_matrix: TermMatrix) -> pd.DataFrame:
    """``1 - cosine similarity``; symmetric with a zero diagonal."""
    similarity = cosine_similarity_matrix(term_matrix)
    values = np.clip(1.0 - similarity.to_numpy(), 0.0, 2.0)
    np.fill_diagonal(values, 0.0)
    return _labelled(values, term_matrix.documents)


def condensed(distances: pd.DataFrame) -> np.ndarray:
    """Validate a square distance frame and return scipy's condensed vector."""
    values = distances.to_numpy(dtype=float)
    if values.ndim != 2 or values.shape[0] != values.shape[1]:
        raise ValueError(f"Distance matrix must be square, got shape {values.shape}")
    if list(distances.index) != list(distances.columns):
        raise ValueError("Distance matrix rows and columns must carry the same labels")
    if not np.allclose(values, values.T):
        raise ValueError("Distance matrix must be symmetric")
    values = (values + values.T) / 2.0
    np.fill_diagonal(values, 0.0)
    return squareform(values, checks=False)
