import numpy as np
import pandas as pd
import pytest

BLOB_CENTERS = np.array([[0.0, 0.0], [10.0, 0.0], [5.0, 10.0]])


def make_blobs(n_per_blob: int = 50, spread: float = 0.5, seed: int = 0):
    """Three well-separated 2D Gaussian blobs and their true blob index."""
    rng = np.random.default_rng(seed)
    points = [rng.normal(center, spread, size=(n_per_blob, 2)) for center in BLOB_CENTERS]
    truth = np.repeat(np.arange(len(BLOB_CENTERS)), n_per_blob)
    return np.vstack(points), truth


@pytest.fixture
def blobs():
    """Raw blob coordinates (150 x 2) and true blob index per record."""
    return make_blobs()


@pytest.fixture
def blob_frame(blobs):
    X, _ = blobs
    return pd.DataFrame(X, columns=['x', 'y'])


@pytest.fixture
def random_data():
    """Unstructured data where restarts genuinely disagree."""
    rng = np.random.default_rng(7)
    return rng.normal(size=(60, 3))
