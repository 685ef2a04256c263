"""Configuration package for ClusterLab."""
