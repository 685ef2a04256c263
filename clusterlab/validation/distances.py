"""
Pairwise Distance Module

Computes the exact N x N Euclidean distance matrix used by the cluster
validity statistics.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Union

import numpy as np
from scipy.spatial.distance import cdist

from config.settings import DISTANCE_BLOCK_SIZE, PARALLEL_WORKERS
from ..clustering.clusterer import as_matrix
from ..preprocessor import StandardizedDataset
from ..utils import resolve_workers, row_blocks

logger = logging.getLogger(__name__)


def _fill_block(X: np.ndarray, D: np.ndarray, start: int, stop: int) -> None:
    """Upper-triangle rows start:stop. Each block owns its rows of D."""
    D[start:stop, start:] = cdist(X[start:stop], X[start:], metric='euclidean')


def distance_matrix(
    standardized: Union[StandardizedDataset, np.ndarray],
    block_size: int = DISTANCE_BLOCK_SIZE,
    n_jobs: int = PARALLEL_WORKERS,
) -> np.ndarray:
    """
    Full symmetric Euclidean distance matrix.

    Rows are processed in blocks. Each block computes its slice of the
    upper triangle, then the upper triangle is mirrored into the lower one.
    Distances are exact, O(N^2 * F) time and O(N^2) memory.

    Args:
        standardized: StandardizedDataset (or standardized matrix)
        block_size: Rows per block
        n_jobs: 0 = sequential, -1 = auto, n = n worker threads

    Returns:
        (n_samples, n_samples) array, symmetric with a zero diagonal
    """
    X = as_matrix(standardized)
    n = X.shape[0]
    D = np.zeros((n, n), dtype=np.float64)
    blocks = row_blocks(n, block_size)
    n_workers = resolve_workers(n_jobs)

    if n_workers > 1 and len(blocks) > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            futures = [executor.submit(_fill_block, X, D, a, b) for a, b in blocks]
            for f in futures:
                f.result()
    else:
        for a, b in blocks:
            _fill_block(X, D, a, b)

    # Mirror block by block; avoids materialising N^2 triangle indices.
    for a, b in blocks:
        D[b:, a:b] = D[a:b, b:].T
        square = D[a:b, a:b]
        D[a:b, a:b] = np.triu(square) + np.triu(square, 1).T
    np.fill_diagonal(D, 0.0)

    logger.debug(f"Computed {n}x{n} distance matrix in {len(blocks)} blocks")
    return D
