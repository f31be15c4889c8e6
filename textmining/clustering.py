"""Hierarchical clustering of documents.

Agglomerative methods are delegated to :func:`scipy.cluster.hierarchy.linkage`.
Divisive clustering (DIANA) has no scipy counterpart; it is computed here and
returned as an ordinary linkage matrix so both kinds render and cut the same
way.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import cophenet, fcluster, linkage
from scipy.spatial.distance import squareform

from .distances import condensed
from .models import Dendrogram

log = logging.getLogger(__name__)

# Accepted linkage names mapped to scipy's; ``mcquitty`` is WPGMA.
# ``ward`` applies Ward's criterion to unsquared Euclidean distances.
LINKAGE_METHODS = {
    "ward": "ward",
    "average": "average",
    "centroid": "centroid",
    "mcquitty": "weighted",
    "single": "single",
    "complete": "complete",
    "median": "median",
}


def _check_size(distances: pd.DataFrame) -> None:
    if distances.shape[0] < 2:
        raise ValueError("Hierarchical clustering needs at least two documents")


# ---------------------------------------------------------------------------
# Agglomerative
# ---------------------------------------------------------------------------


def agglomerative(distances: pd.DataFrame, method: str = "ward") -> Dendrogram:
    """Bottom-up clustering of a labelled distance matrix."""
    try:
        scipy_method = LINKAGE_METHODS[method]
    except KeyError:
        raise ValueError(
            f"Unknown linkage method {method!r}; "
            f"expected one of {sorted(LINKAGE_METHODS)}"
        ) from None
    _check_size(distances)

    z = linkage(condensed(distances), method=scipy_method)
    log.info("Agglomerative clustering (%s): root height %.4f", method, z[-1, 2])
    return Dendrogram(linkage=z, labels=tuple(distances.index), method=method)


# ---------------------------------------------------------------------------
# Divisive (DIANA)
# ---------------------------------------------------------------------------


def _split_cluster(sub: np.ndarray) -> np.ndarray:
    """Split one cluster in two; return a boolean mask of the splinter group.

    The splinter group starts with the member of largest mean dissimilarity.
    Members then move over while they are on average closer to the
    splinter group than to the rest.
    """
    size = sub.shape[0]
    splinter = np.zeros(size, dtype=bool)
    splinter[int(np.argmax(sub.sum(axis=1) / (size - 1)))] = True

    while (~splinter).sum() > 1:
        rest = np.flatnonzero(~splinter)
        to_rest = sub[np.ix_(rest, rest)].sum(axis=1) / (rest.size - 1)
        to_splinter = sub[np.ix_(rest, np.flatnonzero(splinter))].mean(axis=1)
        diff = to_rest - to_splinter
        best = int(np.argmax(diff))
        if diff[best] <= 0:
            break
        splinter[rest[best]] = True
    return splinter


def divisive(distances: pd.DataFrame) -> Dendrogram:
    """Top-down DIANA clustering of a labelled distance matrix.

    At each step the cluster with the largest diameter is split; the merge
    height of a split is that cluster's diameter, so heights are monotone and
    the root sits at the largest pairwise distance.
    """
    _check_size(distances)
    dist = squareform(condensed(distances))
    n = dist.shape[0]

    splits: list[tuple[float, list[int], list[int]]] = []
    pending: list[list[int]] = [list(range(n))]
    while pending:
        members = pending.pop()
        if len(members) < 2:
            continue
        sub = dist[np.ix_(members, members)]
        mask = _split_cluster(sub)
        left = [m for m, flag in zip(members, mask) if flag]
        right = [m for m, flag in zip(members, mask) if not flag]
        splits.append((float(sub.max()), left, right))
        pending.extend([left, right])

    # Children have smaller (or equal) diameter and fewer members than their
    # parent, so this order lists every node after both of its children.
    splits.sort(key=lambda s: (s[0], len(s[1]) + len(s[2])))

    node_ids: dict[frozenset[int], int] = {frozenset([i]): i for i in range(n)}
    z = np.zeros((n - 1, 4), dtype=float)
    for row, (height, left, right) in enumerate(splits):
        a, b = frozenset(left), frozenset(right)
        first, second = sorted((node_ids[a], node_ids[b]))
        z[row] = [first, second, height, len(a) + len(b)]
        node_ids[a | b] = n + row

    log.info("Divisive clustering (diana): root height %.4f", z[-1, 2])
    return Dendrogram(linkage=z, labels=tuple(distances.index), method="diana")


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------


def cut_tree(dendrogram: Dendrogram, n_clusters: int) -> pd.Series:
    """Assign each document to one of at most *n_clusters* flat clusters."""
    if n_clusters < 1:
        raise ValueError("n_clusters must be at least 1")
    labels = fcluster(dendrogram.linkage, t=n_clusters, criterion="maxclust")
    return pd.Series(labels, index=list(dendrogram.labels), name=dendrogram.method)


def hierarchy_coefficient(dendrogram: Dendrogram) -> float:
    """Agglomerative (or divisive) coefficient of the tree.

    For each document, take the height at which it is first joined to
    another cluster, divide by the root height and average ``1 - ratio``.
    Values near 1 indicate a strong clustering structure.
    """
    z = dendrogram.linkage
    n = z.shape[0] + 1
    root = float(z[:, 2].max())
    if root <= 0:
        return 0.0

    first_join = np.zeros(n)
    for left, right, height, _ in z:
        for child in (int(left), int(right)):
            if child < n:
                first_join[child] = height
    return float(np.mean(1.0 - first_join / root))


def cophenetic_correlation(dendrogram: Dendrogram, distances: pd.DataFrame) -> float:
    """Correlation between tree (cophenetic) distances and the input distances."""
    coefficient, _ = cophenet(dendrogram.linkage, condensed(distances))
    return float(coefficient)
