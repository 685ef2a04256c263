"""
K-Means Restart Module

Runs Lloyd's algorithm from many random initializations for one k and
keeps the partition with the lowest within-cluster sum of squares.
"""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

import numpy as np

from config.settings import (
    KMEANS_INIT,
    KMEANS_MAX_ITER,
    KMEANS_RESTARTS,
    PARALLEL_WORKERS,
)
from ..errors import DegenerateRun, InvalidK, NoFeasibleRestart
from ..preprocessor import StandardizedDataset
from ..utils import resolve_workers
from .kmeans import KMeansOptimizer, KMeansRun

logger = logging.getLogger(__name__)

SeedLike = Union[None, int, np.random.SeedSequence]

INIT_METHODS = ("k-means++", "random")


@dataclass(frozen=True)
class Partition:
    """
    Best k-means partition for one k.

    Labels take values in 1..k; ``centroids[j - 1]`` is the centroid of
    label ``j``. The label numbering carries no meaning beyond identity.
    """
    labels: np.ndarray
    centroids: np.ndarray
    k: int
    wcss: float
    n_iter: int
    converged: bool
    n_reseeds: int
    restarts_requested: int
    restarts_used: int
    seed: Optional[int] = None

    @property
    def n_samples(self) -> int:
        return len(self.labels)

    def cluster_indices(self, label: int) -> np.ndarray:
        """Get indices of records carrying a given label."""
        return np.flatnonzero(self.labels == label)

    def cluster_sizes(self) -> Dict[int, int]:
        """Get size of each cluster, keyed by label."""
        counts = np.bincount(self.labels, minlength=self.k + 1)[1:]
        return {label: int(n) for label, n in enumerate(counts, start=1)}


def as_matrix(standardized: Union[StandardizedDataset, np.ndarray]) -> np.ndarray:
    """Accept a StandardizedDataset or an already-scaled 2-D array."""
    if isinstance(standardized, StandardizedDataset):
        return standardized.values
    X = np.asarray(standardized, dtype=np.float64)
    if X.ndim != 2:
        raise ValueError(f"Expected a 2-D matrix, got shape {X.shape}")
    return X


def check_k(k: int, n_samples: int) -> None:
    if not isinstance(k, (int, np.integer)) or k < 1 or k > n_samples:
        raise InvalidK(k, n_samples)


def _seed_value(seed: SeedLike) -> Optional[int]:
    if isinstance(seed, np.random.SeedSequence):
        entropy = seed.entropy
        return int(entropy) if isinstance(entropy, (int, np.integer)) else None
    return seed


def _restart_seeds(seed: SeedLike, restarts: int) -> List[np.random.SeedSequence]:
    """
    One child SeedSequence per restart.

    Children are keyed by restart index, so restart ``i`` draws the same
    initial centroids whatever the total restart count.
    """
    if isinstance(seed, np.random.SeedSequence):
        parent = np.random.SeedSequence(seed.entropy, spawn_key=seed.spawn_key)
    else:
        parent = np.random.SeedSequence(seed)
    return parent.spawn(restarts)


def _initial_centroids(
    X: np.ndarray,
    candidates: np.ndarray,
    k: int,
    seed_seq: np.random.SeedSequence,
    init: str = KMEANS_INIT,
) -> np.ndarray:
    """
    Draw k distinct records without replacement.

    'random' samples uniformly. 'k-means++' picks the first record
    uniformly and each next one with probability proportional to its
    squared distance to the nearest record already picked; picked records
    have zero weight, so draws stay without replacement.
    """
    if init not in INIT_METHODS:
        raise ValueError(f"Unknown init: {init}. Available: {list(INIT_METHODS)}")
    if len(candidates) < k:
        raise DegenerateRun(
            f"Only {len(candidates)} distinct records available for k={k}"
        )

    rng = np.random.default_rng(seed_seq)
    if init == 'random':
        return X[rng.choice(candidates, size=k, replace=False)]

    pool = X[candidates]
    chosen = [int(rng.integers(len(candidates)))]
    diff = pool - pool[chosen[0]]
    closest = np.einsum('ij,ij->i', diff, diff)

    for _ in range(1, k):
        total = closest.sum()
        if total <= 0.0:
            raise DegenerateRun(f"No spread left to seed centroid {len(chosen) + 1}")
        nxt = int(rng.choice(len(candidates), p=closest / total))
        chosen.append(nxt)
        diff = pool - pool[nxt]
        closest = np.minimum(closest, np.einsum('ij,ij->i', diff, diff))
        closest[chosen] = 0.0

    return pool[chosen]


def _run_restart(
    X: np.ndarray,
    candidates: np.ndarray,
    k: int,
    seed_seq: np.random.SeedSequence,
    max_iter: int,
    init: str = KMEANS_INIT,
) -> Optional[KMeansRun]:
    """Single restart. Must be at module level for pickling."""
    try:
        start = _initial_centroids(X, candidates, k, seed_seq, init)
        return KMeansOptimizer(max_iter=max_iter).run(X, start)
    except DegenerateRun as e:
        logger.debug(f"Restart {seed_seq.spawn_key} discarded: {e}")
        return None


def _distinct_rows(X: np.ndarray) -> np.ndarray:
    """Sorted index of the first occurrence of every distinct record."""
    _, first = np.unique(X, axis=0, return_index=True)
    return np.sort(first)


def fit_kmeans(
    standardized: Union[StandardizedDataset, np.ndarray],
    k: int,
    restarts: int = KMEANS_RESTARTS,
    seed: SeedLike = None,
    max_iter: int = KMEANS_MAX_ITER,
    n_jobs: int = PARALLEL_WORKERS,
    init: str = KMEANS_INIT,
) -> Partition:
    """
    Fit k-means with ``restarts`` random initializations and keep the best.

    Args:
        standardized: StandardizedDataset (or standardized matrix)
        k: Number of clusters, 1 <= k <= n_samples
        restarts: Number of independent initializations (>= 1)
        seed: Seed for reproducible initializations
        max_iter: Lloyd iteration cap per restart
        n_jobs: 0 = sequential, -1 = auto, n = n worker processes
        init: Seeding of each restart, "k-means++" or "random"

    Returns:
        Partition with the lowest WCSS; ties go to the earliest restart

    Raises:
        InvalidK: If k is outside 1..n_samples
        NoFeasibleRestart: If every restart degenerated
    """
    X = as_matrix(standardized)
    check_k(k, X.shape[0])
    if restarts < 1:
        raise ValueError(f"restarts must be >= 1, got {restarts}")
    if init not in INIT_METHODS:
        raise ValueError(f"Unknown init: {init}. Available: {list(INIT_METHODS)}")

    candidates = _distinct_rows(X)
    seeds = _restart_seeds(seed, restarts)
    n_workers = resolve_workers(n_jobs)

    if n_workers > 1 and restarts > 1:
        with ProcessPoolExecutor(max_workers=min(n_workers, restarts)) as executor:
            futures = [
                executor.submit(_run_restart, X, candidates, k, s, max_iter, init)
                for s in seeds
            ]
            # Reduce in submission order so ties resolve the same way every time
            runs = [f.result() for f in futures]
    else:
        runs = [_run_restart(X, candidates, k, s, max_iter, init) for s in seeds]

    best: Optional[KMeansRun] = None
    best_index = -1
    used = 0
    for i, run in enumerate(runs):
        if run is None:
            continue
        used += 1
        if best is None or run.wcss < best.wcss:
            best = run
            best_index = i

    if best is None:
        raise NoFeasibleRestart(k, restarts)

    if used < restarts:
        logger.warning(f"k={k}: {restarts - used} of {restarts} restarts degenerated")

    logger.info(
        f"k={k}: best WCSS {best.wcss:.4f} from restart {best_index + 1}/{restarts} "
        f"({best.n_iter} iterations)"
    )

    labels = best.labels + 1
    labels.setflags(write=False)

    return Partition(
        labels=labels,
        centroids=best.centroids,
        k=int(k),
        wcss=best.wcss,
        n_iter=best.n_iter,
        converged=best.converged,
        n_reseeds=best.n_reseeds,
        restarts_requested=restarts,
        restarts_used=used,
        seed=_seed_value(seed),
    )
