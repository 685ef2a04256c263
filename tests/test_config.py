"""
Tests for project configuration system.
"""

import importlib
import pytest
from pathlib import Path
import tempfile

from config.project_config import (
    ProjectConfig,
    find_config,
    load_config,
    save_default_config,
    get_preset,
    PRESETS,
)
from config import settings
from config.settings import KMEANS_RESTARTS, ELBOW_K_RANGE, OUTPUTS_DIR


class TestProjectConfig:
    """Test the ProjectConfig dataclass."""

    def test_default_config_values(self):
        """Test default configuration values."""
        config = ProjectConfig()

        assert config.n_clusters is None
        assert config.restarts == KMEANS_RESTARTS
        assert config.max_iter == 100
        assert config.init == 'k-means++'
        assert config.parallel_workers == 0
        assert config.k_range == ELBOW_K_RANGE
        assert config.validate is True
        assert config.output_dir == str(OUTPUTS_DIR)

    def test_outputs_dir_env_override(self, monkeypatch, tmp_path):
        """CLUSTERLAB_OUTPUTS redirects the default output directory."""
        monkeypatch.setenv('CLUSTERLAB_OUTPUTS', str(tmp_path))
        try:
            assert importlib.reload(settings).OUTPUTS_DIR == tmp_path
        finally:
            monkeypatch.undo()
            importlib.reload(settings)

    def test_config_custom_values(self):
        """Test configuration with custom values."""
        config = ProjectConfig(
            n_clusters=4,
            restarts=50,
            parallel_workers=-1,
            k_min=2,
            k_max=6,
        )

        assert config.n_clusters == 4
        assert config.restarts == 50
        assert config.parallel_workers == -1
        assert config.k_range == (2, 6)

    def test_elbow_explores_with_fewer_restarts(self):
        config = ProjectConfig()

        assert config.elbow_restarts <= config.restarts


class TestLoadConfig:
    """Test configuration loading."""

    def test_load_config_no_file(self):
        """Test loading config when no file exists returns defaults."""
        config = load_config(Path('/nonexistent/path/config.yaml'))

        assert isinstance(config, ProjectConfig)
        assert config.restarts == KMEANS_RESTARTS  # Default value

    def test_load_config_from_yaml(self):
        """Test loading config from YAML file."""
        yaml_content = """
clustering:
  n_clusters: 5
  restarts: 30
  seed: 7
  parallel_workers: 4
  init: random

elbow:
  k_range: [2, 8]
  restarts: 4

validation:
  enabled: false
  block_size: 256

output:
  directory: results
  label_column: segment
"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(yaml_content)
            config_path = Path(f.name)

        try:
            config = load_config(config_path)

            assert config.n_clusters == 5
            assert config.restarts == 30
            assert config.seed == 7
            assert config.parallel_workers == 4
            assert config.init == 'random'
            assert config.k_range == (2, 8)
            assert config.elbow_restarts == 4
            assert config.validate is False
            assert config.distance_block_size == 256
            assert config.output_dir == 'results'
            assert config.label_column == 'segment'
        finally:
            config_path.unlink()

    def test_load_config_partial_yaml(self):
        """Test loading config with only some values specified."""
        yaml_content = """
clustering:
  restarts: 3
"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(yaml_content)
            config_path = Path(f.name)

        try:
            config = load_config(config_path)

            # Specified value
            assert config.restarts == 3
            # Default values
            assert config.k_range == ELBOW_K_RANGE
            assert config.validate is True
            assert config.output_dir == str(OUTPUTS_DIR)
        finally:
            config_path.unlink()

    def test_load_config_malformed_values(self):
        """Unusable values fall back to defaults with a warning."""
        yaml_content = """
clustering:
  restarts: lots
"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(yaml_content)
            config_path = Path(f.name)

        try:
            config = load_config(config_path)

            assert config.restarts == KMEANS_RESTARTS
        finally:
            config_path.unlink()

    def test_find_config_in_parent(self):
        """Config files are found by walking up from a start directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / 'clusterlab.yaml').write_text("clustering:\n  restarts: 9\n")
            nested = root / 'a' / 'b'
            nested.mkdir(parents=True)

            found = find_config(nested)

            assert found == root / 'clusterlab.yaml'
            assert load_config(found).restarts == 9


class TestSaveDefaultConfig:
    """Test saving default configuration."""

    def test_save_creates_file(self):
        """Test that save_default_config creates a file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output_path = Path(tmpdir) / 'test_config.yaml'
            result_path = save_default_config(output_path)

            assert result_path.exists()
            assert result_path.stat().st_size > 0

    def test_saved_config_has_all_sections(self):
        """Test that saved config has all required sections."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output_path = Path(tmpdir) / 'test_config.yaml'
            save_default_config(output_path)

            content = output_path.read_text()

            assert 'clustering:' in content
            assert 'elbow:' in content
            assert 'validation:' in content
            assert 'output:' in content

    def test_saved_config_is_loadable(self):
        """Test that saved config can be loaded back."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output_path = Path(tmpdir) / 'test_config.yaml'
            save_default_config(output_path)

            config = load_config(output_path)

            assert isinstance(config, ProjectConfig)
            assert config == ProjectConfig()


class TestPresets:
    """Test configuration presets."""

    def test_presets_exist(self):
        """Test that expected presets exist."""
        assert 'quick' in PRESETS
        assert 'standard' in PRESETS
        assert 'thorough' in PRESETS

    def test_get_preset_quick(self):
        config = get_preset('quick')

        assert config.restarts < ProjectConfig().restarts
        assert config.elbow_restarts <= config.restarts

    def test_get_preset_standard(self):
        assert get_preset('standard') == ProjectConfig()

    def test_get_preset_thorough(self):
        config = get_preset('thorough')

        assert config.restarts == 50
        assert config.k_max == 15

    def test_get_preset_unknown_raises(self):
        """Test that unknown preset raises ValueError."""
        with pytest.raises(ValueError, match="Unknown preset"):
            get_preset('unknown_preset')
