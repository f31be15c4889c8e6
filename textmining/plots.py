"""Charts for every analysis stage, written as PNG files."""

from __future__ import annotations

import logging
import math
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
from scipy.cluster.hierarchy import dendrogram  # noqa: E402

from .models import Dendrogram  # noqa: E402

log = logging.getLogger(__name__)

DPI = 150


def _save(fig, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=DPI, bbox_inches="tight")
    plt.close(fig)
    log.debug("Saved figure: %s", path)
    return path


def plot_term_frequencies(
    frequencies: pd.Series,
    path: Path,
    *,
    top_n: int = 25,
    title: str = "Most frequent terms",
) -> Path:
    """Horizontal bar chart of the *top_n* most frequent terms."""
    data = frequencies.head(top_n).iloc[::-1]
    fig, ax = plt.subplots(figsize=(7, max(3, 0.3 * len(data))))
    ax.barh(data.index.astype(str), data.to_numpy(), color="steelblue")
    ax.set_xlabel("Frequency")
    ax.set_title(title)
    return _save(fig, path)


def plot_distance_heatmap(
    distances: pd.DataFrame,
    path: Path,
    *,
    title: str = "Document distances",
    cmap: str = "viridis",
) -> Path:
    """Heatmap of a square distance or similarity matrix."""
    size = max(4, 0.6 * len(distances))
    fig, ax = plt.subplots(figsize=(size + 1.5, size))
    image = ax.imshow(distances.to_numpy(), cmap=cmap)
    labels = [str(label) for label in distances.index]
    ax.set_xticks(range(len(labels)))
    ax.set_xticklabels(labels, rotation=90, fontsize=7)
    ax.set_yticks(range(len(labels)))
    ax.set_yticklabels(labels, fontsize=7)
    ax.set_title(title)
    fig.colorbar(image, ax=ax, fraction=0.046, pad=0.04)
    return _save(fig, path)


def plot_dendrogram(
    tree: Dendrogram,
    path: Path,
    *,
    title: str | None = None,
    n_clusters: int | None = None,
) -> Path:
    """Render a dendrogram; colour *n_clusters* groups when given."""
    fig, ax = plt.subplots(figsize=(max(6, 0.5 * len(tree.labels)), 5))
    color_threshold = None
    if n_clusters and 1 < n_clusters <= len(tree.labels):
        # Height just below the merge that would leave fewer groups.
        color_threshold = float(sorted(tree.heights)[-(n_clusters - 1)]) - 1e-12
    dendrogram(
        tree.linkage,
        labels=[str(label) for label in tree.labels],
        leaf_rotation=90,
        leaf_font_size=8,
        color_threshold=color_threshold,
        ax=ax,
    )
    ax.set_ylabel("Height")
    ax.set_title(title or f"Cluster dendrogram ({tree.method})")
    return _save(fig, path)


def plot_top_terms(
    table: pd.DataFrame,
    path: Path,
    *,
    title: str = "Top terms per topic",
) -> Path:
    """One bar panel per topic from a ``topic, term, beta`` table."""
    topics = sorted(table["topic"].unique())
    ncols = min(3, len(topics))
    nrows = math.ceil(len(topics) / ncols)
    fig, axes = plt.subplots(
        nrows,
        ncols,
        figsize=(4 * ncols, 3.2 * nrows),
        squeeze=False,
    )
    for ax, topic in zip(axes.flat, topics):
        rows = table[table["topic"] == topic].sort_values("beta")
        ax.barh(rows["term"].astype(str), rows["beta"], color=f"C{(topic - 1) % 10}")
        ax.set_title(f"Topic {topic}")
        ax.set_xlabel("beta")
    for ax in list(axes.flat)[len(topics):]:
        ax.set_visible(False)
    fig.suptitle(title)
    return _save(fig, path)


def plot_log_ratio(
    table: pd.DataFrame,
    path: Path,
    *,
    top_n: int = 10,
    title: str | None = None,
) -> Path:
    """Bar chart of the terms with the largest ``log_ratio`` in either direction."""
    ordered = table.sort_values("log_ratio")
    data = pd.concat([ordered.head(top_n), ordered.tail(top_n)]).drop_duplicates("term")
    fig, ax = plt.subplots(figsize=(7, max(3, 0.3 * len(data))))
    colors = ["firebrick" if v < 0 else "seagreen" for v in data["log_ratio"]]
    ax.barh(data["term"].astype(str), data["log_ratio"], color=colors)
    ax.axvline(0, lw=1, color="gray")
    ax.set_xlabel("log2 ratio of beta")
    ratio_cols = [c for c in table.columns if c.startswith("topic")]
    default_title = " vs ".join(reversed(ratio_cols)) if ratio_cols else "Topic comparison"
    ax.set_title(title or default_title)
    return _save(fig, path)


def plot_document_topics(
    table: pd.DataFrame,
    path: Path,
    *,
    title: str = "Topic probabilities per document",
) -> Path:
    """Boxplot of gamma for every topic from a ``document, topic, gamma`` table."""
    topics = sorted(table["topic"].unique())
    groups = [table.loc[table["topic"] == topic, "gamma"].to_numpy() for topic in topics]
    fig, ax = plt.subplots(figsize=(max(5, 1.2 * len(topics)), 4))
    ax.boxplot(groups)
    ax.set_xticks(range(1, len(topics) + 1))
    ax.set_xticklabels([str(t) for t in topics])
    ax.set_xlabel("Topic")
    ax.set_ylabel("gamma")
    ax.set_ylim(-0.05, 1.05)
    ax.set_title(title)
    return _save(fig, path)
