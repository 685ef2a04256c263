"""
Elbow Method Module

Fits k-means for every k in a range and records the within-cluster sum
of squares, producing the curve an analyst inspects to choose k.
"""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from tqdm import tqdm

from config.settings import (
    ELBOW_K_RANGE,
    ELBOW_RESTARTS,
    KMEANS_INIT,
    KMEANS_MAX_ITER,
    PARALLEL_WORKERS,
)
from ..errors import InvalidK
from ..preprocessor import StandardizedDataset
from ..utils import resolve_workers
from .clusterer import Partition, as_matrix, fit_kmeans

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElbowPoint:
    """One (k, WCSS) point of the elbow curve."""
    k: int
    wcss: float
    restarts_used: int


@dataclass
class ElbowCurve:
    """(k, WCSS) pairs ordered by increasing k."""
    points: List[ElbowPoint] = field(default_factory=list)

    @property
    def ks(self) -> np.ndarray:
        return np.array([p.k for p in self.points], dtype=int)

    @property
    def wcss(self) -> np.ndarray:
        return np.array([p.wcss for p in self.points], dtype=float)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    def suggest_k(self) -> Optional[int]:
        """
        Advisory elbow: the k with the largest second difference of WCSS.

        Only interior points of a contiguous run of k values have a second
        difference, so fewer than three points gives None. Treat the answer
        as a hint for visual inspection, not a decision.
        """
        if len(self.points) < 3:
            return None
        w = self.wcss
        second = w[:-2] - 2 * w[1:-1] + w[2:]
        return int(self.ks[1 + int(np.argmax(second))])

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                'k': self.ks,
                'wcss': self.wcss,
                'restarts_used': [p.restarts_used for p in self.points],
            }
        )


def _fit_for_k(X, k, restarts, seed_seq, max_iter, init) -> Partition:
    """Fit one k. Must be at module level for pickling."""
    return fit_kmeans(X, k, restarts=restarts, seed=seed_seq, max_iter=max_iter, init=init)


def _k_seed(seed: Optional[int], k: int) -> np.random.SeedSequence:
    """Seed for one k, independent of which other k values are scanned."""
    return np.random.SeedSequence(seed, spawn_key=(k,))


def elbow_scan(
    standardized: Union[StandardizedDataset, np.ndarray],
    k_range: Tuple[int, int] = ELBOW_K_RANGE,
    restarts_per_k: int = ELBOW_RESTARTS,
    seed: Optional[int] = None,
    max_iter: int = KMEANS_MAX_ITER,
    n_jobs: int = PARALLEL_WORKERS,
    init: str = KMEANS_INIT,
    progress: bool = False,
) -> ElbowCurve:
    """
    Build the elbow curve over an inclusive range of k.

    Args:
        standardized: StandardizedDataset (or standardized matrix)
        k_range: Inclusive (k_min, k_max); k_max is clipped to n_samples
        restarts_per_k: Restarts per k (exploratory, may be small)
        seed: Seed; each k derives its own child seed
        max_iter: Lloyd iteration cap per restart
        n_jobs: 0 = sequential, -1 = auto, n = n worker processes across k
        init: Restart seeding, "k-means++" or "random"
        progress: Show a tqdm progress bar when running sequentially

    Returns:
        ElbowCurve ordered by k

    Raises:
        InvalidK: If k_min < 1 or k_min > n_samples
        ValueError: If k_max < k_min
    """
    X = as_matrix(standardized)
    n_samples = X.shape[0]
    k_min, k_max = int(k_range[0]), int(k_range[1])

    if k_min < 1 or k_min > n_samples:
        raise InvalidK(k_min, n_samples)
    if k_max < k_min:
        raise ValueError(f"Empty k range: ({k_min}, {k_max})")
    if k_max > n_samples:
        logger.warning(f"Clipping k_max={k_max} to n_samples={n_samples}")
        k_max = n_samples

    ks = list(range(k_min, k_max + 1))
    n_workers = resolve_workers(n_jobs)

    if n_workers > 1 and len(ks) > 1:
        with ProcessPoolExecutor(max_workers=min(n_workers, len(ks))) as executor:
            futures = [
                executor.submit(_fit_for_k, X, k, restarts_per_k, _k_seed(seed, k), max_iter, init)
                for k in ks
            ]
            partitions = [f.result() for f in futures]
    else:
        iterator = tqdm(ks, desc="Elbow scan", disable=not progress)
        partitions = [
            _fit_for_k(X, k, restarts_per_k, _k_seed(seed, k), max_iter, init)
            for k in iterator
        ]

    curve = ElbowCurve()
    for partition in partitions:
        curve.points.append(
            ElbowPoint(k=partition.k, wcss=partition.wcss, restarts_used=partition.restarts_used)
        )
        logger.info(f"Elbow k={partition.k}: WCSS={partition.wcss:.4f}")

    return curve
