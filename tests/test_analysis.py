"""
Tests for cluster profiling on the unscaled table.
"""

import numpy as np
import pandas as pd
import pytest

from clusterlab.clustering import ClusterSummary, analyze_clusters, attach_labels, fit_kmeans
from clusterlab.clustering.analysis import compare_clusters, print_cluster_report
from clusterlab.preprocessor import standardize


@pytest.fixture
def fitted(blob_frame):
    Z = standardize(blob_frame)
    return Z, fit_kmeans(Z, 3, restarts=5, seed=0)


class TestAttachLabels:
    """Test rejoining labels to the original table."""

    def test_adds_label_column(self, blob_frame, fitted):
        _, partition = fitted
        labelled = attach_labels(blob_frame, partition)

        assert list(labelled.columns) == ['x', 'y', 'cluster']
        np.testing.assert_array_equal(labelled['cluster'].to_numpy(), partition.labels)

    def test_original_untouched(self, blob_frame, fitted):
        _, partition = fitted
        attach_labels(blob_frame, partition, column='segment')

        assert 'segment' not in blob_frame.columns

    def test_unscaled_values_kept(self, blob_frame, fitted):
        _, partition = fitted
        labelled = attach_labels(blob_frame, partition)

        pd.testing.assert_frame_equal(labelled[['x', 'y']], blob_frame)

    def test_row_count_mismatch(self, blob_frame, fitted):
        _, partition = fitted

        with pytest.raises(ValueError, match="rows"):
            attach_labels(blob_frame.iloc[:10], partition)

    def test_existing_column_rejected(self, blob_frame, fitted):
        _, partition = fitted

        with pytest.raises(ValueError, match="already exists"):
            attach_labels(blob_frame, partition, column='x')

    def test_accepts_array(self, blobs, fitted):
        X, _ = blobs
        _, partition = fitted

        assert attach_labels(X, partition).shape == (150, 3)


class TestAnalyzeClusters:
    """Test per-cluster summaries."""

    def test_summary_per_label(self, blob_frame, fitted):
        _, partition = fitted
        summaries = analyze_clusters(partition, blob_frame)

        assert [s.label for s in summaries] == [1, 2, 3]
        assert all(isinstance(s, ClusterSummary) for s in summaries)
        assert sum(s.size for s in summaries) == 150
        assert sum(s.percentage for s in summaries) == pytest.approx(100.0)

    def test_means_on_unscaled_data(self, blob_frame, fitted):
        _, partition = fitted
        summaries = analyze_clusters(partition, blob_frame)
        expected = attach_labels(blob_frame, partition).groupby('cluster').mean()

        for s in summaries:
            assert s.feature_means['x'] == pytest.approx(expected.loc[s.label, 'x'])
            assert s.feature_means['y'] == pytest.approx(expected.loc[s.label, 'y'])

    def test_representatives_belong_to_cluster(self, blob_frame, fitted):
        Z, partition = fitted
        summaries = analyze_clusters(
            partition, blob_frame, n_representatives=4, standardized=Z.values
        )

        for s in summaries:
            assert len(s.representative_indices) == 4
            assert all(partition.labels[i] == s.label for i in s.representative_indices)

    def test_compare_clusters(self, blob_frame, fitted):
        _, partition = fitted
        comparison = compare_clusters(analyze_clusters(partition, blob_frame), 'x')

        assert sorted(comparison) == [1, 2, 3]
        # Blob centers sit at x = 0, 5 and 10
        assert sorted(round(v) for v in comparison.values()) == [0, 5, 10]

    def test_print_report(self, blob_frame, fitted, capsys):
        _, partition = fitted
        print_cluster_report(analyze_clusters(partition, blob_frame))

        out = capsys.readouterr().out
        assert "CLUSTER PROFILE REPORT" in out
        assert "Cluster 3" in out
