"""
Cluster Validity Module

Computes cohesion, separation and silhouette statistics for a partition
from the full pairwise distance matrix, plus global indices (between/total
sum of squares, Dunn, Calinski-Harabasz).

Statistics that need a second cluster are undefined at k=1 and carry the
NOT_APPLICABLE marker instead of a number.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from config.settings import DISTANCE_BLOCK_SIZE, PARALLEL_WORKERS
from ..clustering.clusterer import Partition, as_matrix
from ..errors import NOT_APPLICABLE, is_applicable
from ..preprocessor import StandardizedDataset
from .distances import distance_matrix

logger = logging.getLogger(__name__)

Stat = Union[float, Any]  # float or NOT_APPLICABLE


@dataclass(frozen=True)
class ClusterValidity:
    """Validity statistics for one cluster."""
    label: int
    size: int
    diameter: float
    average_distance: float
    average_toother: Stat
    separation: Union[Dict[int, float], Any]
    ave_between: Union[Dict[int, float], Any]
    avg_silhouette: Stat

    @property
    def min_separation(self) -> Stat:
        if not is_applicable(self.separation):
            return NOT_APPLICABLE
        return min(self.separation.values())

    @property
    def between_within_ratio(self) -> Stat:
        """
        Mean distance to other clusters over mean distance inside the cluster.

        Advisory only: larger means the cluster stands apart from the rest,
        but there is no threshold that makes a cluster valid.
        """
        if not is_applicable(self.average_toother) or self.average_distance == 0.0:
            return NOT_APPLICABLE
        return self.average_toother / self.average_distance


@dataclass(frozen=True)
class ValidityReport:
    """Validity statistics for one (dataset, partition) pair."""
    k: int
    n_samples: int
    clusters: List[ClusterValidity]
    separation_matrix: Union[np.ndarray, Any]
    ave_between_matrix: Union[np.ndarray, Any]
    min_separation: Stat
    silhouette_widths: Union[np.ndarray, Any]
    avg_silhouette: Stat
    average_within: Stat
    average_between: Stat
    wb_ratio: Stat
    total_ss: float
    within_ss: float
    between_ss: float
    between_total_ratio: Stat
    dunn: Stat
    calinski_harabasz: Stat
    labels: List[int] = field(default_factory=list)

    def cluster(self, label: int) -> ClusterValidity:
        for c in self.clusters:
            if c.label == label:
                return c
        raise KeyError(f"No cluster labelled {label}")

    def cluster_frame(self) -> pd.DataFrame:
        """Per-cluster statistics as a DataFrame indexed by label."""
        rows = []
        for c in self.clusters:
            rows.append({
                'label': c.label,
                'size': c.size,
                'diameter': c.diameter,
                'average_distance': c.average_distance,
                'average_toother': _plain(c.average_toother),
                'min_separation': _plain(c.min_separation),
                'avg_silhouette': _plain(c.avg_silhouette),
                'between_within_ratio': _plain(c.between_within_ratio),
            })
        return pd.DataFrame(rows).set_index('label')

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view; NOT_APPLICABLE becomes None."""
        return {
            'k': self.k,
            'n_samples': self.n_samples,
            'clusters': [
                {
                    'label': c.label,
                    'size': c.size,
                    'diameter': c.diameter,
                    'average_distance': c.average_distance,
                    'average_toother': _plain(c.average_toother),
                    'separation': _plain_dict(c.separation),
                    'ave_between': _plain_dict(c.ave_between),
                    'avg_silhouette': _plain(c.avg_silhouette),
                }
                for c in self.clusters
            ],
            'min_separation': _plain(self.min_separation),
            'avg_silhouette': _plain(self.avg_silhouette),
            'average_within': _plain(self.average_within),
            'average_between': _plain(self.average_between),
            'wb_ratio': _plain(self.wb_ratio),
            'total_ss': self.total_ss,
            'within_ss': self.within_ss,
            'between_ss': self.between_ss,
            'between_total_ratio': _plain(self.between_total_ratio),
            'dunn': _plain(self.dunn),
            'calinski_harabasz': _plain(self.calinski_harabasz),
        }


def _plain(value) -> Optional[float]:
    return float(value) if is_applicable(value) else None


def _plain_dict(value) -> Optional[Dict[str, float]]:
    if not is_applicable(value):
        return None
    return {str(k): float(v) for k, v in value.items()}


class ValidityAnalyzer:
    """
    Cluster validity statistics from a pairwise distance matrix.

    Per cluster: size, diameter, average intra-cluster distance, average
    distance to all other records, separation and average distance to
    every other cluster, average silhouette width.

    Global: minimum separation, per-record and average silhouette widths,
    average within/between distances, total/within/between sums of
    squares, Dunn index and Calinski-Harabasz index.
    """

    def __init__(self, block_size: int = DISTANCE_BLOCK_SIZE, n_jobs: int = PARALLEL_WORKERS):
        self.block_size = block_size
        self.n_jobs = n_jobs

    def analyze(
        self,
        standardized: Union[StandardizedDataset, np.ndarray],
        partition: Union[Partition, np.ndarray],
        distances: Optional[np.ndarray] = None,
    ) -> ValidityReport:
        """
        Compute the validity report for a partition.

        Args:
            standardized: StandardizedDataset the partition was fitted on
            partition: Partition or a label per record
            distances: Precomputed distance matrix; computed when None

        Returns:
            ValidityReport
        """
        X = as_matrix(standardized)
        labels = partition.labels if isinstance(partition, Partition) else np.asarray(partition)
        n = X.shape[0]

        if labels.shape != (n,):
            raise ValueError(f"Expected {n} labels, got shape {labels.shape}")

        if distances is None:
            distances = distance_matrix(X, block_size=self.block_size, n_jobs=self.n_jobs)
        D = np.asarray(distances, dtype=np.float64)
        if D.shape != (n, n):
            raise ValueError(f"Distance matrix shape {D.shape} does not match {n} records")

        uniq, codes = np.unique(labels, return_inverse=True)
        codes = codes.ravel()
        k = len(uniq)

        onehot = np.zeros((n, k), dtype=np.float64)
        onehot[np.arange(n), codes] = 1.0
        sizes = onehot.sum(axis=0)

        # to_cluster[r, j]: summed distance from record r to members of cluster j
        to_cluster = D @ onehot
        block_sums = onehot.T @ to_cluster

        members = [np.flatnonzero(codes == i) for i in range(k)]
        diameters = np.zeros(k)
        avg_dist = np.zeros(k)
        for i, idx in enumerate(members):
            if len(idx) > 1:
                diameters[i] = D[np.ix_(idx, idx)].max()
                avg_dist[i] = block_sums[i, i] / (len(idx) * (len(idx) - 1))

        total_ss, within_ss = _sums_of_squares(X, codes, k)
        between_ss = total_ss - within_ss
        between_total = between_ss / total_ss if total_ss > 0 else NOT_APPLICABLE

        if k == 1:
            logger.info("k=1: separation, silhouette, Dunn and Calinski-Harabasz are not applicable")
            clusters = [
                ClusterValidity(
                    label=_label(uniq[0]),
                    size=int(sizes[0]),
                    diameter=float(diameters[0]),
                    average_distance=float(avg_dist[0]),
                    average_toother=NOT_APPLICABLE,
                    separation=NOT_APPLICABLE,
                    ave_between=NOT_APPLICABLE,
                    avg_silhouette=NOT_APPLICABLE,
                )
            ]
            return ValidityReport(
                k=1,
                n_samples=n,
                clusters=clusters,
                separation_matrix=NOT_APPLICABLE,
                ave_between_matrix=NOT_APPLICABLE,
                min_separation=NOT_APPLICABLE,
                silhouette_widths=NOT_APPLICABLE,
                avg_silhouette=NOT_APPLICABLE,
                average_within=float(avg_dist[0]) if n > 1 else NOT_APPLICABLE,
                average_between=NOT_APPLICABLE,
                wb_ratio=NOT_APPLICABLE,
                total_ss=total_ss,
                within_ss=within_ss,
                between_ss=between_ss,
                between_total_ratio=between_total,
                dunn=NOT_APPLICABLE,
                calinski_harabasz=NOT_APPLICABLE,
                labels=[_label(uniq[0])],
            )

        separation = np.zeros((k, k))
        for i in range(k):
            for j in range(i + 1, k):
                sep = D[np.ix_(members[i], members[j])].min()
                separation[i, j] = separation[j, i] = sep

        ave_between = block_sums / np.outer(sizes, sizes)
        np.fill_diagonal(ave_between, 0.0)

        own_sums = block_sums.diagonal()
        row_totals = block_sums.sum(axis=1)
        average_toother = (row_totals - own_sums) / (sizes * (n - sizes))

        silhouette = _silhouette_widths(to_cluster, codes, sizes)
        cluster_sil = np.bincount(codes, weights=silhouette, minlength=k) / sizes

        within_pairs = float((sizes * (sizes - 1)).sum())
        between_pairs = float(n * n - (sizes ** 2).sum())
        average_within = own_sums.sum() / within_pairs if within_pairs > 0 else NOT_APPLICABLE
        average_between = (block_sums.sum() - own_sums.sum()) / between_pairs
        if is_applicable(average_within) and average_between > 0:
            wb_ratio = average_within / average_between
        else:
            wb_ratio = NOT_APPLICABLE

        off_diag = ~np.eye(k, dtype=bool)
        min_sep = float(separation[off_diag].min())
        max_diam = float(diameters.max())
        dunn = min_sep / max_diam if max_diam > 0 else NOT_APPLICABLE

        if n > k and within_ss > 0:
            ch = (between_ss / (k - 1)) / (within_ss / (n - k))
        else:
            ch = NOT_APPLICABLE

        label_values = [_label(v) for v in uniq]
        clusters = []
        for i in range(k):
            others = [j for j in range(k) if j != i]
            clusters.append(
                ClusterValidity(
                    label=label_values[i],
                    size=int(sizes[i]),
                    diameter=float(diameters[i]),
                    average_distance=float(avg_dist[i]),
                    average_toother=float(average_toother[i]),
                    separation={label_values[j]: float(separation[i, j]) for j in others},
                    ave_between={label_values[j]: float(ave_between[i, j]) for j in others},
                    avg_silhouette=float(cluster_sil[i]),
                )
            )

        report = ValidityReport(
            k=k,
            n_samples=n,
            clusters=clusters,
            separation_matrix=separation,
            ave_between_matrix=ave_between,
            min_separation=min_sep,
            silhouette_widths=silhouette,
            avg_silhouette=float(silhouette.mean()),
            average_within=_float(average_within),
            average_between=float(average_between),
            wb_ratio=_float(wb_ratio),
            total_ss=total_ss,
            within_ss=within_ss,
            between_ss=between_ss,
            between_total_ratio=_float(between_total),
            dunn=_float(dunn),
            calinski_harabasz=_float(ch),
            labels=label_values,
        )
        logger.info(
            f"Validated k={k}: avg silhouette {report.avg_silhouette:.4f}, "
            f"between/total {_fmt(report.between_total_ratio)}, Dunn {_fmt(report.dunn)}"
        )
        return report


def _label(value):
    return int(value) if isinstance(value, (int, np.integer)) else value


def _float(value) -> Stat:
    return float(value) if is_applicable(value) else value


def _fmt(value) -> str:
    return f"{value:.4f}" if is_applicable(value) else "n/a"


def _sums_of_squares(X: np.ndarray, codes: np.ndarray, k: int):
    """Total and within-cluster sums of squared distances to the (cluster) means."""
    centered = X - X.mean(axis=0)
    total_ss = float(np.einsum('ij,ij->', centered, centered))

    counts = np.bincount(codes, minlength=k).astype(np.float64)
    sums = np.zeros((k, X.shape[1]))
    np.add.at(sums, codes, X)
    means = sums / counts[:, np.newaxis]
    diff = X - means[codes]
    within_ss = float(np.einsum('ij,ij->', diff, diff))
    return total_ss, within_ss


def _silhouette_widths(to_cluster: np.ndarray, codes: np.ndarray, sizes: np.ndarray) -> np.ndarray:
    """
    Silhouette width per record.

    a(r): mean distance to the other members of r's cluster.
    b(r): smallest mean distance from r to the members of another cluster.
    s(r) = (b - a) / max(a, b), and 0 for members of singleton clusters.
    """
    n = len(codes)
    rows = np.arange(n)
    own_size = sizes[codes]

    with np.errstate(divide='ignore', invalid='ignore'):
        a = to_cluster[rows, codes] / (own_size - 1)
        means = to_cluster / sizes[np.newaxis, :]
    means[rows, codes] = np.inf
    b = means.min(axis=1)

    denom = np.maximum(a, b)
    s = np.zeros(n)
    ok = (own_size > 1) & (denom > 0)
    s[ok] = (b[ok] - a[ok]) / denom[ok]
    return np.clip(s, -1.0, 1.0)


def validate(
    standardized: Union[StandardizedDataset, np.ndarray],
    partition: Union[Partition, np.ndarray],
    distances: Optional[np.ndarray] = None,
    block_size: int = DISTANCE_BLOCK_SIZE,
    n_jobs: int = PARALLEL_WORKERS,
) -> ValidityReport:
    """
    Convenience function to validate a partition.

    Args:
        standardized: StandardizedDataset the partition was fitted on
        partition: Partition or a label per record
        distances: Optional precomputed distance matrix
        block_size: Rows per distance block when computing distances
        n_jobs: Worker threads for the distance matrix

    Returns:
        ValidityReport
    """
    analyzer = ValidityAnalyzer(block_size=block_size, n_jobs=n_jobs)
    return analyzer.analyze(standardized, partition, distances=distances)
