"""
Exceptions and markers raised by the clustering engine.
"""


class ClusterLabError(Exception):
    """Base exception for clustering engine failures."""


class DegenerateColumn(ClusterLabError, ValueError):
    """Raised when a feature column has zero variance and cannot be standardized."""

    def __init__(self, column, index: int):
        self.column = column
        self.index = index
        super().__init__(
            f"Column '{column}' (index {index}) has zero variance; "
            "remove it before standardizing"
        )


class InvalidK(ClusterLabError, ValueError):
    """Raised when a cluster count is outside 1..n_samples."""

    def __init__(self, k: int, n_samples: int):
        self.k = k
        self.n_samples = n_samples
        super().__init__(f"Invalid k={k}: must satisfy 1 <= k <= {n_samples}")


class NoFeasibleRestart(ClusterLabError, RuntimeError):
    """Raised when every k-means restart collapsed to fewer than k clusters."""

    def __init__(self, k: int, restarts: int):
        self.k = k
        self.restarts = restarts
        super().__init__(
            f"All {restarts} restarts degenerated for k={k}; "
            "k may be too large for the number of distinct records"
        )


class DegenerateRun(ClusterLabError):
    """Raised by a single optimizer run that cannot keep k non-empty clusters."""


class NotApplicable:
    """Marker for a statistic that is undefined for the given partition."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_APPLICABLE"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (NotApplicable, ())


NOT_APPLICABLE = NotApplicable()


def is_applicable(value) -> bool:
    """True when ``value`` is a real number rather than the NOT_APPLICABLE marker."""
    return value is not NOT_APPLICABLE
