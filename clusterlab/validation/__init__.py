"""Validation package for cluster validity statistics."""
from .distances import distance_matrix
from .analysis import ClusterValidity, ValidityAnalyzer, ValidityReport, validate
