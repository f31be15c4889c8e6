"""Shared data models for the analysis pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

import numpy as np
import pandas as pd
from scipy import sparse

DOCUMENT_TERM = "document-term"
TERM_DOCUMENT = "term-document"


@dataclass
class DocRecord:
    """Tracks extraction results and metadata for a single PDF."""

    filename: str
    filepath: str
    pages: list[str] = field(default_factory=list)
    num_pages: int = 0
    title: str = ""
    extraction_time_s: float = 0.0
    status: str = "pending"
    error: Optional[str] = None

    @property
    def text(self) -> str:
        return "\n".join(self.pages)


@dataclass(frozen=True)
class Document:
    """One raw or normalized text, tagged by its source filename."""

    name: str
    text: str
    num_pages: int = 0


@dataclass(frozen=True)
class Corpus:
    """Ordered, immutable collection of documents."""

    documents: tuple[Document, ...] = ()

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    def __getitem__(self, name: str) -> Document:
        for doc in self.documents:
            if doc.name == name:
                return doc
        raise KeyError(name)

    @property
    def names(self) -> list[str]:
        return [doc.name for doc in self.documents]

    @property
    def texts(self) -> list[str]:
        return [doc.text for doc in self.documents]


@dataclass(frozen=True)
class TermMatrix:
    """Sparse term/document table with labelled rows and columns.

    ``orientation`` is ``"document-term"`` (rows are documents) or
    ``"term-document"`` (rows are terms). ``weighting`` is ``"tf"`` for raw
    counts or ``"tf-idf"`` after reweighting. Instances are never modified;
    transposing or reweighting builds a new one.
    """

    matrix: sparse.csr_matrix
    row_labels: tuple[str, ...]
    col_labels: tuple[str, ...]
    orientation: str = DOCUMENT_TERM
    weighting: str = "tf"

    @property
    def shape(self) -> tuple[int, int]:
        return self.matrix.shape

    @property
    def documents(self) -> tuple[str, ...]:
        return self.row_labels if self.orientation == DOCUMENT_TERM else self.col_labels

    @property
    def terms(self) -> tuple[str, ...]:
        return self.col_labels if self.orientation == DOCUMENT_TERM else self.row_labels

    def transpose(self) -> "TermMatrix":
        flipped = TERM_DOCUMENT if self.orientation == DOCUMENT_TERM else DOCUMENT_TERM
        return TermMatrix(
            matrix=self.matrix.T.tocsr(),
            row_labels=self.col_labels,
            col_labels=self.row_labels,
            orientation=flipped,
            weighting=self.weighting,
        )

    def document_term(self) -> sparse.csr_matrix:
        """Return the underlying matrix with documents as rows."""
        if self.orientation == DOCUMENT_TERM:
            return self.matrix
        return self.matrix.T.tocsr()

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self.matrix.toarray(),
            index=list(self.row_labels),
            columns=list(self.col_labels),
        )


@dataclass(frozen=True)
class Dendrogram:
    """Binary merge tree over documents in scipy linkage-matrix form."""

    linkage: np.ndarray
    labels: tuple[str, ...]
    method: str

    @property
    def heights(self) -> np.ndarray:
        return self.linkage[:, 2]


@dataclass
class TopicModel:
    """Fitted LDA model with its two row-normalized probability tables."""

    estimator: Any
    terms: tuple[str, ...]
    documents: tuple[str, ...]
    topic_term: np.ndarray
    document_topic: np.ndarray

    @property
    def n_topics(self) -> int:
        return self.topic_term.shape[0]
