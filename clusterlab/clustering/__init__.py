"""Clustering package: Lloyd's k-means, restarts, elbow scan and profiling."""
from .kmeans import KMeansOptimizer, KMeansRun, lloyd
from .clusterer import Partition, fit_kmeans
from .elbow import ElbowCurve, ElbowPoint, elbow_scan
from .analysis import ClusterSummary, analyze_clusters, attach_labels, print_cluster_report
