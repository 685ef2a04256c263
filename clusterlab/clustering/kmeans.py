"""
Lloyd's Algorithm Module

Runs k-means to convergence for a fixed cluster count and a fixed set of
initial centroids. All randomness lives in the caller that chooses the
initial centroids; a run here is a pure function of its inputs.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from config.settings import KMEANS_MAX_ITER
from ..errors import DegenerateRun

logger = logging.getLogger(__name__)


@dataclass
class KMeansRun:
    """Result of a single k-means run. Labels are 0-based here."""
    labels: np.ndarray
    centroids: np.ndarray
    wcss: float
    n_iter: int
    converged: bool
    n_reseeds: int = 0


def squared_distances(X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Squared Euclidean distance from every row of X to every centroid (n, k)."""
    d = np.empty((X.shape[0], centroids.shape[0]), dtype=np.float64)
    for j, centroid in enumerate(centroids):
        diff = X - centroid
        d[:, j] = np.einsum('ij,ij->i', diff, diff)
    return d


def within_cluster_ss(X: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> float:
    """Total within-cluster sum of squared distances to the assigned centroid."""
    diff = X - centroids[labels]
    return float(np.einsum('ij,ij->', diff, diff))


class KMeansOptimizer:
    """
    Lloyd's algorithm with a deterministic empty-cluster policy.

    Each iteration:
    - Assignment: nearest centroid by squared Euclidean distance,
      ties go to the lowest label (``np.argmin`` keeps the first minimum)
    - Update: centroids become the mean of their members
    - Convergence: stop when no label changes, or at ``max_iter``

    Empty clusters are re-seeded right after the assignment step. In
    ascending label order, each empty cluster takes the worst-served
    record: the one farthest from its own centroid among records whose
    cluster still has at least two members (lowest index on ties). If no
    such record lies at a positive distance, the run raises DegenerateRun.
    """

    def __init__(self, max_iter: int = KMEANS_MAX_ITER):
        if max_iter < 1:
            raise ValueError(f"max_iter must be >= 1, got {max_iter}")
        self.max_iter = max_iter

    def run(self, X: np.ndarray, initial_centroids: np.ndarray) -> KMeansRun:
        """
        Run Lloyd's algorithm from the given centroids.

        Args:
            X: Standardized feature matrix (n_samples, n_features)
            initial_centroids: Starting centroids (k, n_features)

        Returns:
            KMeansRun with 0-based labels, final centroids and WCSS

        Raises:
            DegenerateRun: If k non-empty clusters cannot be maintained
        """
        X = np.asarray(X, dtype=np.float64)
        centroids = np.array(initial_centroids, dtype=np.float64)

        if centroids.ndim != 2 or centroids.shape[1] != X.shape[1]:
            raise ValueError(
                f"Centroids of shape {centroids.shape} do not match data with "
                f"{X.shape[1]} features"
            )
        k = centroids.shape[0]
        if not 1 <= k <= X.shape[0]:
            raise ValueError(f"Need 1 <= k <= {X.shape[0]}, got {k}")

        labels, n_reseeds = self._assign(X, centroids, k)
        converged = False
        n_iter = 0

        for n_iter in range(1, self.max_iter + 1):
            centroids = self._update(X, labels, k)
            new_labels, reseeds = self._assign(X, centroids, k)
            n_reseeds += reseeds

            if np.array_equal(new_labels, labels):
                converged = True
                break
            labels = new_labels

        if not converged:
            logger.warning(f"K-Means (k={k}) hit max_iter={self.max_iter} before converging")
            centroids = self._update(X, labels, k)

        centroids.setflags(write=False)
        labels.setflags(write=False)

        return KMeansRun(
            labels=labels,
            centroids=centroids,
            wcss=within_cluster_ss(X, labels, centroids),
            n_iter=n_iter,
            converged=converged,
            n_reseeds=n_reseeds,
        )

    def _assign(self, X: np.ndarray, centroids: np.ndarray, k: int) -> Tuple[np.ndarray, int]:
        """Nearest-centroid assignment followed by empty-cluster re-seeding."""
        d = squared_distances(X, centroids)
        labels = np.argmin(d, axis=1)
        counts = np.bincount(labels, minlength=k)

        rows = np.arange(X.shape[0])
        n_reseeds = 0
        for empty in np.flatnonzero(counts == 0):
            own = d[rows, labels]
            candidates = np.where(counts[labels] > 1, own, -1.0)
            worst = int(np.argmax(candidates))

            if candidates[worst] <= 0.0:
                raise DegenerateRun(
                    f"Cluster {empty} is empty and no record can be moved into it"
                )

            logger.debug(f"Re-seeding empty cluster {empty} with record {worst}")
            counts[labels[worst]] -= 1
            labels[worst] = empty
            counts[empty] = 1
            d[worst, empty] = 0.0
            n_reseeds += 1

        return labels, n_reseeds

    def _update(self, X: np.ndarray, labels: np.ndarray, k: int) -> np.ndarray:
        """Componentwise mean of each cluster's members."""
        counts = np.bincount(labels, minlength=k).astype(np.float64)
        sums = np.zeros((k, X.shape[1]), dtype=np.float64)
        np.add.at(sums, labels, X)
        return sums / counts[:, np.newaxis]


def lloyd(
    X: np.ndarray,
    initial_centroids: np.ndarray,
    max_iter: int = KMEANS_MAX_ITER,
) -> KMeansRun:
    """Convenience wrapper around ``KMeansOptimizer(max_iter).run``."""
    return KMeansOptimizer(max_iter=max_iter).run(X, initial_centroids)
