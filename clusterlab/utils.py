"""
Common utility functions for ClusterLab.
"""

import logging
import multiprocessing
from typing import List, Tuple

logger = logging.getLogger(__name__)


def resolve_workers(n_jobs: int) -> int:
    """
    Translate an ``n_jobs`` setting into a worker count.

    Args:
        n_jobs: 0 = sequential, -1 = auto (all CPUs but one), n = n workers

    Returns:
        Number of workers; 0 means run in the calling process
    """
    if n_jobs is None or n_jobs == 0:
        return 0
    if n_jobs < 0:
        return max(1, multiprocessing.cpu_count() - 1)
    return int(n_jobs)


def row_blocks(n_rows: int, block_size: int) -> List[Tuple[int, int]]:
    """
    Split ``range(n_rows)`` into contiguous ``(start, stop)`` blocks.

    Args:
        n_rows: Total number of rows
        block_size: Maximum rows per block

    Returns:
        List of (start, stop) pairs covering every row exactly once
    """
    if block_size < 1:
        raise ValueError(f"block_size must be positive, got {block_size}")
    return [(i, min(i + block_size, n_rows)) for i in range(0, n_rows, block_size)]
