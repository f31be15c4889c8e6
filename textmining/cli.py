"""CLI entrypoint for the PDF -> corpus -> matrices -> clusters -> topics analysis.

Usage:
    python -m textmining --input-dir ./reports
    python -m textmining --input-dir ./reports --pattern "A_7*.pdf"
    python -m textmining --input-dir ./reports --n-topics 6 --min-doc-freq 3
    python -m textmining --input-dir ./reports --disable-ocr --skip-plots
    python -m textmining --input-dir ./reports --force-reprocess
"""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
import logging
from logging.handlers import RotatingFileHandler
import os
import subprocess
import sys
import time
from pathlib import Path
from typing import Any

from .utils import (
    AGGLOMERATIVE_METHODS,
    DEFAULT_LDA_MAX_ITER,
    DEFAULT_MIN_DOC_FREQ,
    DEFAULT_MIN_TERM_COUNT,
    DEFAULT_N_CLUSTERS,
    DEFAULT_N_TOPICS,
    DEFAULT_RANDOM_STATE,
    DEFAULT_TOP_TERMS,
    PDF_PATTERN,
)

log = logging.getLogger(__name__)


def _detect_gpu_vram_mib() -> int:
    try:
        completed = subprocess.run(
            [
                "nvidia-smi",
                "--query-gpu=memory.total",
                "--format=csv,noheader,nounits",
            ],
            check=True,
            capture_output=True,
            text=True,
            timeout=2,
        )
    except (subprocess.SubprocessError, FileNotFoundError):
        return 0

    first_line = completed.stdout.strip().splitlines()
    if not first_line:
        return 0

    try:
        return int(first_line[0].strip())
    except ValueError:
        return 0


def _recommended_runtime_defaults() -> dict[str, int]:
    cpu_count = max(1, os.cpu_count() or 1)
    gpu_vram_mib = _detect_gpu_vram_mib()
    has_gpu = gpu_vram_mib > 0

    return {
        "num_threads": min(16, max(4, cpu_count)),
        "ocr_batch_size": 12 if gpu_vram_mib >= 8 * 1024 else (8 if has_gpu else 4),
    }


def _setup_logging(
    *,
    verbose: bool,
    detailed_logging: bool,
    output_dir: Path,
    log_file: Path | None,
) -> None:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    root_level = logging.DEBUG if verbose else logging.INFO
    root_logger.setLevel(root_level)

    console_fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    detailed_fmt = (
        "%(asctime)s | %(levelname)-8s | %(name)s | "
        "%(filename)s:%(lineno)d | %(message)s"
    )
    formatter = logging.Formatter(
        detailed_fmt if detailed_logging else console_fmt,
        "%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(root_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    resolved_log_file = log_file
    if resolved_log_file is None and detailed_logging:
        resolved_log_file = output_dir / "analysis.log"

    if resolved_log_file is not None:
        resolved_log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            resolved_log_file,
            maxBytes=20 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(detailed_fmt, "%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(file_handler)

    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("docling").setLevel(logging.WARNING)
    logging.getLogger("nltk").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    tuned_defaults = _recommended_runtime_defaults()

    parser = argparse.ArgumentParser(
        description="PDF -> corpus -> TF-IDF -> clustering -> LDA analysis"
    )
    parser.add_argument(
        "--input-dir",
        type=Path,
        default=Path("data"),
        help="Directory with the PDF reports (default: data/)",
    )
    parser.add_argument(
        "--pattern",
        default=PDF_PATTERN,
        help=f"Filename pattern of input files (default: {PDF_PATTERN})",
    )
    parser.add_argument(
        "--no-recursive",
        action="store_true",
        help="Only look at the top level of --input-dir",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("output"),
        help="Output directory (default: output/)",
    )
    parser.add_argument(
        "--stopwords",
        choices=["nltk", "sklearn", "none"],
        default="nltk",
        help="English stopword list to remove (default: nltk)",
    )
    parser.add_argument(
        "--no-stem",
        action="store_true",
        help="Keep full word forms instead of stemming",
    )
    parser.add_argument(
        "--min-doc-freq",
        type=int,
        default=DEFAULT_MIN_DOC_FREQ,
        help=(
            "Keep terms occurring in at least this many documents "
            f"(default: {DEFAULT_MIN_DOC_FREQ})"
        ),
    )
    parser.add_argument(
        "--min-term-count",
        type=int,
        default=DEFAULT_MIN_TERM_COUNT,
        help="Keep terms occurring at least this many times overall",
    )
    parser.add_argument(
        "--tfidf-norm",
        choices=["l1", "l2"],
        default="l1",
        help="Row normalization applied after TF-IDF weighting (default: l1)",
    )
    parser.add_argument(
        "--n-clusters",
        type=int,
        default=DEFAULT_N_CLUSTERS,
        help=f"Groups cut from each dendrogram (default: {DEFAULT_N_CLUSTERS})",
    )
    parser.add_argument(
        "--n-topics",
        type=int,
        default=DEFAULT_N_TOPICS,
        help=f"Number of LDA topics (default: {DEFAULT_N_TOPICS})",
    )
    parser.add_argument(
        "--top-terms",
        type=int,
        default=DEFAULT_TOP_TERMS,
        help=f"Terms listed per topic (default: {DEFAULT_TOP_TERMS})",
    )
    parser.add_argument(
        "--random-state",
        type=int,
        default=DEFAULT_RANDOM_STATE,
        help=f"Seed for LDA (default: {DEFAULT_RANDOM_STATE})",
    )
    parser.add_argument(
        "--lda-max-iter",
        type=int,
        default=DEFAULT_LDA_MAX_ITER,
        help=f"LDA variational iterations (default: {DEFAULT_LDA_MAX_ITER})",
    )
    parser.add_argument(
        "--num-threads",
        type=int,
        default=tuned_defaults["num_threads"],
        help="Docling internal thread count",
    )
    parser.add_argument(
        "--ocr-batch-size",
        type=int,
        default=tuned_defaults["ocr_batch_size"],
        help="OCR batch size for Docling",
    )
    parser.add_argument(
        "--disable-ocr",
        action="store_true",
        help="Disable OCR for faster extraction of text PDFs",
    )
    parser.add_argument(
        "--force-reprocess",
        action="store_true",
        help="Extract every PDF even if unchanged in saved pipeline state",
    )
    parser.add_argument(
        "--skip-plots",
        action="store_true",
        help="Do not render charts",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--detailed-logging",
        action="store_true",
        help="Enable detailed logging (file/line, rotating log file)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help=(
            "Optional log file path "
            "(default: <output-dir>/analysis.log in detailed mode)"
        ),
    )
    return parser.parse_args(argv)


def _show(title: str, table: Any) -> None:
    log.info("%s\n%s", title, table.to_string())


def main(argv: list[str] | None = None) -> None:
    """Run the full analysis."""
    import pandas as pd
    from tqdm import tqdm

    from . import clustering, distances, extraction, matrices, plots, topics
    from .corpus import build_corpus, normalize_corpus
    from .sources import discover_pdfs, document_name
    from .utils import (
        ensure_output_dirs,
        file_fingerprint,
        is_unchanged_file,
        load_page_text,
        load_pipeline_state,
        save_manifest,
        save_page_text,
        save_pipeline_state,
        save_table,
    )

    args = parse_args(argv)
    _setup_logging(
        verbose=args.verbose,
        detailed_logging=args.detailed_logging,
        output_dir=args.output_dir,
        log_file=args.log_file,
    )

    overall_t0 = time.perf_counter()
    text_dir, tables_dir, figures_dir = ensure_output_dirs(args.output_dir)
    figures: dict[str, str] = {}

    # --- Step 1: File discovery ---
    pdf_files = discover_pdfs(
        args.input_dir,
        args.pattern,
        recursive=not args.no_recursive,
    )
    log.info("Total PDFs discovered: %s", len(pdf_files))
    if not pdf_files:
        log.warning("No PDFs found. Exiting.")
        sys.exit(0)

    # --- Step 2: Text extraction (reusing cached text of unchanged files) ---
    step_t0 = time.perf_counter()
    state = load_pipeline_state(args.output_dir)
    state_files: dict[str, dict[str, Any]] = state.setdefault("files", {})
    records_by_path: dict[Path, Any] = {}
    to_extract: list[Path] = []
    names = {path: document_name(path, args.input_dir) for path in pdf_files}
    for pdf_path in pdf_files:
        cached = None
        if not args.force_reprocess and is_unchanged_file(
            pdf_path, state_files.get(str(pdf_path.resolve()))
        ):
            cached = load_page_text(text_dir, pdf_path, names[pdf_path])
        if cached is None:
            to_extract.append(pdf_path)
        else:
            records_by_path[pdf_path] = cached

    log.info(
        "Resume check: %s unchanged reused, %s queued for extraction",
        len(records_by_path),
        len(to_extract),
    )

    if to_extract:
        converter, ocr_engine = extraction.create_converter(
            num_threads=max(1, args.num_threads),
            ocr_batch_size=max(1, args.ocr_batch_size),
            enable_ocr=not args.disable_ocr,
        )
        log.info("Converter OCR profile: %s", ocr_engine)
        for pdf_path in tqdm(to_extract, desc="Extracting PDFs"):
            record = extraction.extract_single_pdf(converter, pdf_path)
            record.filename = names[pdf_path]
            if record.status == "success":
                save_page_text(text_dir, record)
            records_by_path[pdf_path] = record

    records = [records_by_path[path] for path in pdf_files]
    failed = [r for r in records if r.status == "error"]
    log.info(
        "Extraction stage: %s documents ready, %s failed (%.2fs)",
        len(records) - len(failed),
        len(failed),
        time.perf_counter() - step_t0,
    )

    current_keys = {str(path.resolve()) for path in pdf_files}
    for key in list(state_files):
        if key not in current_keys:
            state_files.pop(key, None)
    processed_at = datetime.now(timezone.utc).isoformat()
    for path, record in zip(pdf_files, records):
        state_key = str(path.resolve())
        if path not in to_extract and state_key in state_files:
            continue
        entry: dict[str, Any] = {
            "filename": record.filename,
            "status": record.status,
            "processed_at": processed_at,
            **file_fingerprint(path),
        }
        if record.status == "error" and record.error:
            entry["error"] = record.error[:500]
        state_files[state_key] = entry
    state_path = save_pipeline_state(args.output_dir, state)

    # --- Steps 3-4: Corpus construction and normalization ---
    corpus = build_corpus(records)
    if len(corpus) < 2:
        log.error("At least two extracted documents are needed; got %s", len(corpus))
        save_manifest(args.output_dir, records, {"status": "insufficient documents"})
        sys.exit(1)
    clean = normalize_corpus(
        corpus,
        stopwords=args.stopwords,
        stem=not args.no_stem,
    )

    # --- Steps 5-6: Matrices and weighting ---
    dtm = matrices.build_document_term_matrix(
        clean,
        min_doc_freq=args.min_doc_freq,
        min_term_count=args.min_term_count,
    )
    tdm = dtm.transpose()
    tfidf = matrices.weight_tfidf(dtm, norm=args.tfidf_norm)
    log.info(
        "Term-document matrix: %s terms x %s documents, sparsity %.1f%%",
        tdm.shape[0],
        tdm.shape[1],
        100 * matrices.sparsity(tdm),
    )

    frequencies = matrices.term_frequencies(dtm)
    _show("Most frequent terms:", frequencies.head(args.top_terms))
    save_table(frequencies.to_frame(), tables_dir / "term_frequencies.csv")
    save_table(tfidf.to_frame(), tables_dir / "tfidf_matrix.csv")

    # --- Step 7: Distances ---
    euclidean = distances.euclidean_distance_matrix(tfidf)
    similarity = distances.cosine_similarity_matrix(tfidf)
    cosine = distances.cosine_distance_matrix(tfidf)
    _show("Euclidean distances (TF-IDF):", euclidean.round(4))
    _show("Cosine similarity (TF-IDF):", similarity.round(4))
    save_table(euclidean, tables_dir / "euclidean_distances.csv")
    save_table(similarity, tables_dir / "cosine_similarity.csv")
    save_table(cosine, tables_dir / "cosine_distances.csv")

    # --- Step 8: Hierarchical clustering ---
    trees = [clustering.agglomerative(euclidean, method) for method in AGGLOMERATIVE_METHODS]
    trees.append(clustering.divisive(euclidean))
    n_clusters = min(max(1, args.n_clusters), len(corpus))
    assignments = {tree.method: clustering.cut_tree(tree, n_clusters) for tree in trees}
    assignment_table = pd.DataFrame(assignments)
    _show(f"Cluster assignments ({n_clusters} groups):", assignment_table)
    save_table(assignment_table, tables_dir / "cluster_assignments.csv")
    coefficients = {
        tree.method: {
            "coefficient": round(clustering.hierarchy_coefficient(tree), 4),
            "cophenetic_correlation": round(
                clustering.cophenetic_correlation(tree, euclidean), 4
            ),
        }
        for tree in trees
    }
    _show("Hierarchy quality:", pd.DataFrame(coefficients).T)

    # --- Step 9: Topic model ---
    n_topics = max(1, args.n_topics)
    model = topics.fit_lda(
        dtm,
        n_topics,
        random_state=args.random_state,
        max_iter=args.lda_max_iter,
    )
    beta = topics.topic_term_table(model)
    gamma = topics.document_topic_table(model)
    best_terms = topics.top_terms(model, args.top_terms)
    _show("Top terms per topic:", best_terms)
    _show("Dominant topic per document:", topics.dominant_topics(model))
    save_table(beta, tables_dir / "topic_term_beta.csv", index=False)
    save_table(gamma, tables_dir / "document_topic_gamma.csv", index=False)
    log_ratio = None
    if n_topics >= 2:
        log_ratio = topics.topic_log_ratio(model, 1, 2)
        save_table(log_ratio, tables_dir / "topic_log_ratio.csv", index=False)

    # --- Charts ---
    if args.skip_plots:
        log.info("Chart rendering disabled via --skip-plots")
    else:
        figures["term_frequencies"] = plots.plot_term_frequencies(
            frequencies, figures_dir / "term_frequencies.png"
        )
        figures["cosine_heatmap"] = plots.plot_distance_heatmap(
            similarity,
            figures_dir / "cosine_similarity_heatmap.png",
            title="Cosine similarity (TF-IDF)",
        )
        for tree in trees:
            figures[f"dendrogram_{tree.method}"] = plots.plot_dendrogram(
                tree,
                figures_dir / f"dendrogram_{tree.method}.png",
                n_clusters=n_clusters,
            )
        figures["top_terms"] = plots.plot_top_terms(
            best_terms, figures_dir / "topic_top_terms.png"
        )
        figures["document_topics"] = plots.plot_document_topics(
            gamma, figures_dir / "document_topic_boxplot.png"
        )
        if log_ratio is not None and not log_ratio.empty:
            figures["log_ratio"] = plots.plot_log_ratio(
                log_ratio, figures_dir / "topic_log_ratio.png"
            )

    # --- Manifest ---
    summary = {
        "documents": len(corpus),
        "failed": len(failed),
        "terms": dtm.shape[1],
        "sparsity": round(matrices.sparsity(dtm), 4),
        "n_topics": n_topics,
        "n_clusters": n_clusters,
        "hierarchy": coefficients,
        "figures": {name: str(path) for name, path in figures.items()},
    }
    manifest_path = save_manifest(args.output_dir, records, summary)

    log.info("=" * 60)
    log.info("ANALYSIS COMPLETE")
    log.info("  PDFs discovered: %s", len(pdf_files))
    log.info("  Extracted now:   %s", len(to_extract))
    log.info("  Failed:          %s", len(failed))
    log.info("  Terms kept:      %s", dtm.shape[1])
    log.info("  Figures:         %s", len(figures))
    log.info("  Manifest:        %s", manifest_path)
    log.info("  State:           %s", state_path)
    log.info("  Total runtime:   %.1fs", time.perf_counter() - overall_t0)
    if failed:
        log.warning("Failed files:")
        for r in failed:
            log.warning("  - %s: %s", r.filename, (r.error or "unknown")[:200])
