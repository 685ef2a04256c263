"""
ClusterLab: Clustering and Validation Engine

Standardize numeric records, choose a cluster count with the elbow
method, fit a restart-robust k-means partition and validate it with
cohesion and separation statistics.
"""

__version__ = "0.1.0"
__author__ = "ClusterLab Team"

from .errors import (
    ClusterLabError,
    DegenerateColumn,
    InvalidK,
    NoFeasibleRestart,
    NotApplicable,
    NOT_APPLICABLE,
)
from .preprocessor import StandardizedDataset, standardize
from .clustering import ElbowCurve, Partition, elbow_scan, fit_kmeans
from .validation import ValidityReport, distance_matrix, validate
