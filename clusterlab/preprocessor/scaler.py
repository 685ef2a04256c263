"""
Feature Standardization Module

Rescales every feature column to zero mean and unit sample variance so
that features measured on different scales contribute equally to
Euclidean distances.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.utils import check_array

from ..errors import DegenerateColumn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StandardizedDataset:
    """Standardized feature matrix plus the statistics used to produce it."""
    values: np.ndarray
    columns: List[str]
    means: np.ndarray
    stds: np.ndarray

    @property
    def n_samples(self) -> int:
        return self.values.shape[0]

    @property
    def n_features(self) -> int:
        return self.values.shape[1]

    def inverse_transform(self, values: np.ndarray) -> np.ndarray:
        """Map points (e.g. centroids) back to the original feature scale."""
        values = np.asarray(values, dtype=float)
        return values * self.stds + self.means

    def to_frame(self) -> pd.DataFrame:
        """Standardized values as a DataFrame with the original column names."""
        return pd.DataFrame(self.values, columns=self.columns)


def _column_names(dataset, n_features: int, columns: Optional[Sequence[str]]) -> List[str]:
    if columns is not None:
        if len(columns) != n_features:
            raise ValueError(
                f"Got {len(columns)} column names for {n_features} features"
            )
        return [str(c) for c in columns]
    if isinstance(dataset, pd.DataFrame):
        return [str(c) for c in dataset.columns]
    return [f"f{i}" for i in range(n_features)]


def standardize(
    dataset: Union[np.ndarray, pd.DataFrame],
    columns: Optional[Sequence[str]] = None,
) -> StandardizedDataset:
    """
    Standardize each column as ``(x - mean) / std``.

    The standard deviation is the unbiased sample estimate (divisor N-1).
    The input is never modified, so cluster labels can later be joined back
    against the unscaled values.

    Args:
        dataset: Numeric table of shape (n_samples, n_features), N >= 2
        columns: Optional feature names (defaults to DataFrame columns or f0..fn)

    Returns:
        StandardizedDataset

    Raises:
        DegenerateColumn: If any column has zero variance
        ValueError: If the table is empty, non-numeric or contains NaN/inf
    """
    X = check_array(dataset, dtype=np.float64, ensure_min_samples=2, copy=True)
    names = _column_names(dataset, X.shape[1], columns)

    # Range rather than std: the mean of a repeated value can carry rounding noise.
    spans = np.ptp(X, axis=0)
    for idx, span in enumerate(spans):
        if span == 0.0:
            raise DegenerateColumn(names[idx], idx)

    # Two-pass centring: a large column offset leaves rounding bias after the first.
    means = X.mean(axis=0)
    centered = X - means
    bias = centered.mean(axis=0)
    centered -= bias
    means = means + bias
    stds = np.sqrt(np.einsum('ij,ij->j', centered, centered) / (X.shape[0] - 1))

    values = centered / stds
    values.setflags(write=False)
    means.setflags(write=False)
    stds.setflags(write=False)

    logger.debug(f"Standardized {X.shape[0]} samples x {X.shape[1]} features")
    return StandardizedDataset(values=values, columns=names, means=means, stds=stds)


def constant_columns(dataset: Union[np.ndarray, pd.DataFrame]) -> List[int]:
    """Indices of zero-variance columns, for callers that want to drop them first."""
    X = check_array(dataset, dtype=np.float64, ensure_min_samples=2)
    return [int(i) for i in np.flatnonzero(np.ptp(X, axis=0) == 0.0)]
