"""PDF reports -> corpus -> TF-IDF -> clustering -> LDA analysis pipeline.

Public API -- all symbols that tests and external code import live here.
Internally the code is split across focused submodules; this file
re-exports the stable public surface so ``from textmining import X`` works.
"""

from .clustering import (
    LINKAGE_METHODS,
    agglomerative,
    cophenetic_correlation,
    cut_tree,
    divisive,
    hierarchy_coefficient,
)
from .corpus import (
    build_corpus,
    corpus_from_texts,
    load_stopwords,
    normalize_corpus,
    normalize_text,
)
from .distances import (
    cosine_distance_matrix,
    cosine_similarity_matrix,
    euclidean_distance_matrix,
)
from .extraction import (
    create_converter,
    document_pages,
    extract_pdfs,
    extract_single_pdf,
)
from .matrices import (
    build_document_term_matrix,
    build_term_document_matrix,
    find_associations,
    find_frequent_terms,
    sparsity,
    term_frequencies,
    weight_tfidf,
)
from .models import Corpus, Dendrogram, DocRecord, Document, TermMatrix, TopicModel
from .sources import discover_pdfs, document_name
from .topics import (
    document_topic_table,
    dominant_topics,
    fit_lda,
    top_terms,
    topic_log_ratio,
    topic_term_table,
)
from .utils import (
    AGGLOMERATIVE_METHODS,
    DEFAULT_MIN_DOC_FREQ,
    DEFAULT_N_TOPICS,
    ensure_output_dirs,
    save_manifest,
)

__all__ = [
    # Models
    "DocRecord",
    "Document",
    "Corpus",
    "TermMatrix",
    "Dendrogram",
    "TopicModel",
    # Constants
    "AGGLOMERATIVE_METHODS",
    "DEFAULT_MIN_DOC_FREQ",
    "DEFAULT_N_TOPICS",
    "LINKAGE_METHODS",
    # Utils
    "ensure_output_dirs",
    "save_manifest",
    # Sources
    "discover_pdfs",
    "document_name",
    # Extraction
    "create_converter",
    "document_pages",
    "extract_single_pdf",
    "extract_pdfs",
    # Corpus
    "build_corpus",
    "corpus_from_texts",
    "load_stopwords",
    "normalize_text",
    "normalize_corpus",
    # Matrices
    "build_document_term_matrix",
    "build_term_document_matrix",
    "weight_tfidf",
    "term_frequencies",
    "find_frequent_terms",
    "find_associations",
    "sparsity",
    # Distances
    "euclidean_distance_matrix",
    "cosine_similarity_matrix",
    "cosine_distance_matrix",
    # Clustering
    "agglomerative",
    "divisive",
    "cut_tree",
    "hierarchy_coefficient",
    "cophenetic_correlation",
    # Topics
    "fit_lda",
    "topic_term_table",
    "document_topic_table",
    "top_terms",
    "topic_log_ratio",
    "dominant_topics",
]
