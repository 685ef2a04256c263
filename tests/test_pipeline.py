"""
End-to-end scenarios: standardize, fit, validate.
"""

import numpy as np
import pandas as pd
import pytest
from sklearn.metrics import adjusted_rand_score

from clusterlab import (
    DegenerateColumn,
    NOT_APPLICABLE,
    elbow_scan,
    fit_kmeans,
    standardize,
    validate,
)


class TestWellSeparatedBlobs:
    """Three blobs at (0,0), (10,0), (5,10)."""

    @pytest.fixture
    def result(self, blobs):
        X, truth = blobs
        Z = standardize(X)
        partition = fit_kmeans(Z, 3, restarts=20, seed=42)
        return truth, partition, validate(Z, partition)

    def test_recovers_blobs(self, result):
        truth, partition, _ = result

        assert adjusted_rand_score(truth, partition.labels) == pytest.approx(1.0)

    def test_between_total_ratio(self, result):
        _, _, report = result

        assert report.between_total_ratio > 0.9

    def test_dunn_index(self, result):
        _, _, report = result

        assert report.dunn > 1.0

    def test_silhouette_high(self, result):
        _, _, report = result

        assert report.avg_silhouette > 0.7


class TestSingleCluster:
    """k=1: WCSS is the total sum of squares; separation is undefined."""

    def test_wcss_equals_total_ss(self, blobs):
        X, _ = blobs
        Z = standardize(X)
        partition = fit_kmeans(Z, 1, restarts=3, seed=0)
        report = validate(Z, partition)

        assert partition.wcss == pytest.approx(report.total_ss)
        # Standardized columns each contribute N-1
        assert report.total_ss == pytest.approx(2 * (150 - 1))

    def test_separation_not_applicable(self, blobs):
        X, _ = blobs
        Z = standardize(X)
        report = validate(Z, fit_kmeans(Z, 1, restarts=1, seed=0))

        assert report.min_separation is NOT_APPLICABLE
        assert report.dunn is NOT_APPLICABLE


class TestConstantColumn:
    """A constant feature stops the pipeline before clustering."""

    def test_raises_naming_column(self, blob_frame):
        frame = blob_frame.assign(region=3.0)

        with pytest.raises(DegenerateColumn, match="region"):
            standardize(frame)


class TestRestartsOnClearOptimum:
    """With one clear optimum a single restart matches many."""

    def test_one_restart_matches_fifty(self, blobs):
        X, _ = blobs
        Z = standardize(X)
        single = fit_kmeans(Z, 3, restarts=1, seed=11)
        many = fit_kmeans(Z, 3, restarts=50, seed=11)

        assert single.wcss == pytest.approx(many.wcss)
        assert adjusted_rand_score(single.labels, many.labels) == pytest.approx(1.0)


def test_full_pipeline_from_dataframe():
    """Mixed-scale table through elbow scan, fit and validation."""
    rng = np.random.default_rng(5)
    frame = pd.DataFrame({
        'spend': np.concatenate([rng.normal(100, 5, 40), rng.normal(900, 20, 40)]),
        'visits': np.concatenate([rng.normal(2, 0.3, 40), rng.normal(12, 1.0, 40)]),
    })
    Z = standardize(frame)

    curve = elbow_scan(Z, k_range=(1, 4), restarts_per_k=5, seed=1)
    partition = fit_kmeans(Z, 2, restarts=10, seed=1)
    report = validate(Z, partition)

    assert curve.wcss[1] < 0.2 * curve.wcss[0]
    assert sorted(partition.cluster_sizes().values()) == [40, 40]
    assert report.calinski_harabasz > 0
