"""
Configuration File Support for ClusterLab

Allows project-specific configuration via clusterlab.yaml.
"""

from pathlib import Path
from typing import Optional, Tuple
from dataclasses import dataclass
import logging

import yaml

from .settings import (
    DEFAULT_SEED,
    DISTANCE_BLOCK_SIZE,
    ELBOW_K_RANGE,
    ELBOW_RESTARTS,
    KMEANS_INIT,
    KMEANS_MAX_ITER,
    KMEANS_RESTARTS,
    OUTPUTS_DIR,
    PARALLEL_WORKERS,
)

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("clusterlab.yaml", ".clusterlab.yaml", "clusterlab.yml")


@dataclass
class ProjectConfig:
    """Project-specific configuration."""

    # Clustering
    n_clusters: Optional[int] = None  # Use the elbow suggestion if None
    restarts: int = KMEANS_RESTARTS
    max_iter: int = KMEANS_MAX_ITER
    init: str = KMEANS_INIT
    seed: int = DEFAULT_SEED
    parallel_workers: int = PARALLEL_WORKERS  # 0=sequential, -1=auto

    # Elbow scan
    k_min: int = ELBOW_K_RANGE[0]
    k_max: int = ELBOW_K_RANGE[1]
    elbow_restarts: int = ELBOW_RESTARTS

    # Validation
    validate: bool = True
    distance_block_size: int = DISTANCE_BLOCK_SIZE

    # Output
    output_dir: str = str(OUTPUTS_DIR)  # CLUSTERLAB_OUTPUTS overrides
    label_column: str = "cluster"

    @property
    def k_range(self) -> Tuple[int, int]:
        return (self.k_min, self.k_max)


def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """Search ``start`` (default: cwd) and its parents for a config file."""
    current_dir = Path(start) if start else Path.cwd()
    for directory in [current_dir] + list(current_dir.parents):
        for name in CONFIG_FILENAMES:
            path = directory / name
            if path.exists():
                return path
    return None


def load_config(config_path: Optional[Path] = None) -> ProjectConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, searches for clusterlab.yaml
                    in current directory and parent directories.

    Returns:
        ProjectConfig with loaded or default values
    """
    if config_path is None:
        config_path = find_config()

    if config_path is None or not Path(config_path).exists():
        logger.debug("No config file found, using defaults")
        return ProjectConfig()

    defaults = ProjectConfig()
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        logger.info(f"Loaded config from {config_path}")

        clustering = data.get('clustering', {}) or {}
        elbow = data.get('elbow', {}) or {}
        validation = data.get('validation', {}) or {}
        output = data.get('output', {}) or {}

        k_range = elbow.get('k_range', list(defaults.k_range))

        return ProjectConfig(
            # Clustering
            n_clusters=clustering.get('n_clusters'),
            restarts=int(clustering.get('restarts', defaults.restarts)),
            max_iter=int(clustering.get('max_iter', defaults.max_iter)),
            init=clustering.get('init', defaults.init),
            seed=int(clustering.get('seed', defaults.seed)),
            parallel_workers=int(clustering.get('parallel_workers', defaults.parallel_workers)),

            # Elbow
            k_min=int(k_range[0]),
            k_max=int(k_range[1]),
            elbow_restarts=int(elbow.get('restarts', defaults.elbow_restarts)),

            # Validation
            validate=bool(validation.get('enabled', defaults.validate)),
            distance_block_size=int(validation.get('block_size', defaults.distance_block_size)),

            # Output
            output_dir=output.get('directory') or defaults.output_dir,
            label_column=output.get('label_column', defaults.label_column),
        )

    except (OSError, TypeError, ValueError, IndexError, AttributeError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config: {e}, using defaults")
        return ProjectConfig()


def save_default_config(output_path: Path) -> Path:
    """
    Save a default configuration file as a template.

    Args:
        output_path: Where to save the config

    Returns:
        Path to saved config file
    """
    default_config = f"""# ClusterLab Configuration
# Copy to your project root as clusterlab.yaml

# Final k-means fit
clustering:
  n_clusters: null        # null = use the elbow suggestion
  restarts: {KMEANS_RESTARTS}
  max_iter: {KMEANS_MAX_ITER}           # Lloyd iteration cap per restart
  init: {KMEANS_INIT}         # k-means++ or random
  seed: {DEFAULT_SEED}
  parallel_workers: {PARALLEL_WORKERS}     # 0 = sequential (default), -1 = auto-detect

# Elbow scan used to pick k
elbow:
  k_range: [{ELBOW_K_RANGE[0]}, {ELBOW_K_RANGE[1]}]
  restarts: {ELBOW_RESTARTS}

# Validity statistics
validation:
  enabled: true
  block_size: {DISTANCE_BLOCK_SIZE}       # Rows per distance-matrix block

# Output settings
output:
  directory: null         # null = {OUTPUTS_DIR} (or $CLUSTERLAB_OUTPUTS)
  label_column: cluster
"""

    output_path = Path(output_path)
    output_path.write_text(default_config)
    return output_path


# Preset configurations
PRESETS = {
    'quick': ProjectConfig(
        restarts=5,
        elbow_restarts=3,
        k_max=8,
    ),
    'standard': ProjectConfig(),
    'thorough': ProjectConfig(
        restarts=50,
        elbow_restarts=20,
        max_iter=300,
        k_max=15,
    ),
}


def get_preset(name: str) -> ProjectConfig:
    """Get a preset configuration by name."""
    if name not in PRESETS:
        raise ValueError(f"Unknown preset: {name}. Available: {list(PRESETS.keys())}")
    return PRESETS[name]
