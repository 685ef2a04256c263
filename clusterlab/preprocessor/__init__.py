"""Preprocessor package for feature standardization."""
from .scaler import StandardizedDataset, standardize, constant_columns
