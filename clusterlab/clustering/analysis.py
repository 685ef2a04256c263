"""
Cluster Profiling Module

Joins a partition's labels back onto the original, unscaled table and
summarizes each cluster for presentation.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .clusterer import Partition

logger = logging.getLogger(__name__)


@dataclass
class ClusterSummary:
    """Summary information about a single cluster."""
    label: int
    size: int
    percentage: float
    representative_indices: List[int]
    feature_means: Optional[Dict[str, float]] = None
    feature_stds: Optional[Dict[str, float]] = None


def attach_labels(
    data: Union[pd.DataFrame, np.ndarray],
    partition: Partition,
    column: str = "cluster",
) -> pd.DataFrame:
    """
    Rejoin cluster labels to the unscaled table by row position.

    Args:
        data: Original (unscaled) table the partition was derived from
        partition: Fitted Partition
        column: Name of the label column to add

    Returns:
        New DataFrame with the label column appended; ``data`` is untouched
    """
    frame = data.copy() if isinstance(data, pd.DataFrame) else pd.DataFrame(np.asarray(data))
    if len(frame) != partition.n_samples:
        raise ValueError(
            f"Table has {len(frame)} rows but partition covers {partition.n_samples}"
        )
    if column in frame.columns:
        raise ValueError(f"Column '{column}' already exists")
    frame[column] = np.asarray(partition.labels)
    return frame


def analyze_clusters(
    partition: Partition,
    data: Union[pd.DataFrame, np.ndarray],
    feature_names: Optional[Sequence[str]] = None,
    n_representatives: int = 3,
    standardized: Optional[np.ndarray] = None,
) -> List[ClusterSummary]:
    """
    Analyze a partition and generate summaries for each cluster.

    Args:
        partition: Fitted Partition
        data: Original (unscaled) feature table
        feature_names: Names of features (defaults to DataFrame columns)
        n_representatives: Number of representative records per cluster
        standardized: Matrix the centroids live in; representatives are the
            records closest to their centroid there. Falls back to the
            cluster mean of ``data`` when omitted.

    Returns:
        List of ClusterSummary objects ordered by label
    """
    if isinstance(data, pd.DataFrame):
        names = list(feature_names) if feature_names else [str(c) for c in data.columns]
        features = data.to_numpy(dtype=float)
    else:
        features = np.asarray(data, dtype=float)
        names = list(feature_names) if feature_names else [f"f{i}" for i in range(features.shape[1])]

    if len(features) != partition.n_samples:
        raise ValueError(
            f"Table has {len(features)} rows but partition covers {partition.n_samples}"
        )

    summaries = []
    total_samples = partition.n_samples

    for label, size in partition.cluster_sizes().items():
        indices = partition.cluster_indices(label)
        cluster_features = features[indices]

        means = cluster_features.mean(axis=0)
        stds = cluster_features.std(axis=0, ddof=1) if size > 1 else np.zeros_like(means)

        if standardized is not None:
            points = np.asarray(standardized)[indices]
            centroid = partition.centroids[label - 1]
        else:
            points = cluster_features
            centroid = means
        distances = np.linalg.norm(points - centroid, axis=1)

        closest_in_cluster = np.argsort(distances, kind='stable')[:n_representatives]

        summaries.append(
            ClusterSummary(
                label=label,
                size=size,
                percentage=size / total_samples * 100,
                representative_indices=indices[closest_in_cluster].tolist(),
                feature_means=dict(zip(names, means.tolist())),
                feature_stds=dict(zip(names, stds.tolist())),
            )
        )

    return summaries


def compare_clusters(
    summaries: List[ClusterSummary],
    feature_name: str,
) -> Dict[int, float]:
    """
    Compare clusters by a specific feature.

    Returns:
        Dictionary mapping label to feature mean
    """
    comparison = {}
    for summary in summaries:
        if summary.feature_means and feature_name in summary.feature_means:
            comparison[summary.label] = summary.feature_means[feature_name]
    return comparison


def print_cluster_report(summaries: List[ClusterSummary], max_features: int = 8):
    """Print a formatted cluster profile report."""
    print("\n" + "=" * 60)
    print("CLUSTER PROFILE REPORT")
    print("=" * 60)

    for summary in summaries:
        print(f"\nCluster {summary.label}")
        print(f"  Size: {summary.size} records ({summary.percentage:.1f}%)")

        if summary.feature_means:
            print("  Feature means:")
            for feat, value in list(summary.feature_means.items())[:max_features]:
                print(f"    - {feat}: {value:.2f}")

    print("\n" + "=" * 60)
