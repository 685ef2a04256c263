"""
ClusterLab Configuration Settings
Central configuration for all modules.
"""

import os
from pathlib import Path

# =============================================================================
# Path Configuration
# =============================================================================
BASE_DIR = Path(__file__).parent.parent.absolute()
OUTPUTS_DIR = Path(os.environ.get("CLUSTERLAB_OUTPUTS", BASE_DIR / "outputs"))

# =============================================================================
# Randomness
# =============================================================================
# Seed used when callers do not pass one; every stochastic call takes it
# explicitly, nothing seeds global state.
DEFAULT_SEED = 42

# =============================================================================
# K-Means Configuration
# =============================================================================
KMEANS_MAX_ITER = 100  # Lloyd iterations per restart (termination safeguard)
KMEANS_RESTARTS = 20   # Restarts for the final fit
KMEANS_INIT = "k-means++"  # Restart seeding: "k-means++" or "random"

# Elbow scan
ELBOW_K_RANGE = (1, 10)  # Inclusive range of k values to scan
ELBOW_RESTARTS = 10      # Exploratory, fewer restarts than the final fit

# =============================================================================
# Validation Configuration
# =============================================================================
DISTANCE_BLOCK_SIZE = 1024  # Rows per block of the pairwise distance matrix

# =============================================================================
# Parallelism
# =============================================================================
PARALLEL_WORKERS = 0  # 0=sequential, -1=auto, n=n workers
