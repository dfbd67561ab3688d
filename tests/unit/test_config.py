"""Test configuration management."""

from pathlib import Path

import pytest
import yaml

from posterwall.config import Config, ConfigManager


def test_config_manager_loads_config(config_manager, share_root):
    """Test that config manager loads configuration correctly."""
    config = config_manager.load_config()

    assert isinstance(config, Config)
    assert config.share.root == share_root
    assert config.tmdb.api_key == "test-tmdb-key"
    assert config.scan_roots == ["movies", "tv"]


def test_config_defaults(config):
    """Test that omitted sections get their defaults."""
    assert config.share.movies_subpath == "movies"
    assert config.share.tv_subpath == "tv"
    assert config.scanner.scan_interval_minutes == 30
    assert config.scanner.resolver_concurrency == 4
    assert config.scanner.tombstone_retention_scans == 1
    assert config.resolver.confidence_cutoff == 0.5
    assert config.resolver.similarity_threshold == 0.6
    assert config.resolver.request_timeout_seconds == 10.0
    assert config.resolver.retry.factor == 2.0
    assert config.tmdb.poster_size == "w500"


def test_config_is_immutable(config):
    """Test that configuration cannot be changed after loading."""
    with pytest.raises(Exception):
        config.scanner.resolver_concurrency = 8


def test_config_manager_caches_config(config_manager):
    """Test that config manager caches loaded configuration."""
    config1 = config_manager.load_config()
    config2 = config_manager.get_config()

    assert config1 is config2


def test_config_manager_reload_config(config_manager):
    """Test that config manager can reload configuration."""
    config1 = config_manager.load_config()
    config2 = config_manager.reload_config()

    assert config1 is not config2
    assert config1.share.root == config2.share.root


def test_config_manager_override(config_manager):
    """Test replacing the loaded configuration."""
    config = config_manager.load_config()
    debug = config.model_copy(
        update={"logging": config.logging.model_copy(update={"level": "DEBUG"})}
    )

    config_manager.override(debug)

    assert config_manager.get_config() is debug


def test_config_manager_missing_file():
    """Test that config manager raises error for missing file."""
    config_manager = ConfigManager(Path("nonexistent.yaml"))

    with pytest.raises(FileNotFoundError):
        config_manager.load_config()


def test_config_manager_env_location(tmp_path, temp_config_file, monkeypatch):
    """Test that POSTERWALL_CONFIG is searched first."""
    monkeypatch.setenv("POSTERWALL_CONFIG", str(temp_config_file))
    monkeypatch.chdir(tmp_path)

    config = ConfigManager().load_config()

    assert config.tmdb.api_key == "test-tmdb-key"


def test_config_expands_environment_variables(tmp_path, monkeypatch):
    """Test ${VAR} expansion in configuration values."""
    monkeypatch.setenv("TEST_TMDB_KEY", "from-env")
    monkeypatch.setenv("TEST_SHARE", str(tmp_path))
    config_file = tmp_path / "env.yaml"
    config_file.write_text(
        """
share:
  root: "${TEST_SHARE}"
tmdb:
  api_key: "${TEST_TMDB_KEY}"
"""
    )

    config = ConfigManager(config_file).load_config()

    assert config.tmdb.api_key == "from-env"
    assert config.share.root == tmp_path


def test_config_loads_dotenv_next_to_file(tmp_path, monkeypatch):
    """Test that a .env file beside the configuration is honoured."""
    monkeypatch.delenv("DOTENV_TMDB_KEY", raising=False)
    (tmp_path / ".env").write_text("DOTENV_TMDB_KEY=dotenv-key\n")
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        """
share:
  root: "/mnt/media"
tmdb:
  api_key: "${DOTENV_TMDB_KEY}"
"""
    )

    config = ConfigManager(config_file).load_config()

    assert config.tmdb.api_key == "dotenv-key"


def test_config_validation_invalid_concurrency(tmp_path):
    """Test config validation rejects a zero-sized resolver pool."""
    config_file = tmp_path / "invalid.yaml"
    config_file.write_text(
        """
share:
  root: "/mnt/media"
tmdb:
  api_key: "test"
scanner:
  resolver_concurrency: 0
"""
    )

    with pytest.raises(ValueError):
        ConfigManager(config_file).load_config()


def test_config_validation_subpath_escape(tmp_path):
    """Test that subpaths may not leave the share root."""
    config_file = tmp_path / "invalid.yaml"
    config_file.write_text(
        """
share:
  root: "/mnt/media"
  tv_subpath: "../elsewhere"
tmdb:
  api_key: "test"
"""
    )

    with pytest.raises(ValueError):
        ConfigManager(config_file).load_config()


def test_extensions_are_normalized(tmp_path):
    """Test that extensions get a leading dot and lowercase."""
    config_file = tmp_path / "ext.yaml"
    config_file.write_text(
        """
share:
  root: "/mnt/media"
  extensions: ["MKV", ".Mp4"]
tmdb:
  api_key: "test"
"""
    )

    config = ConfigManager(config_file).load_config()

    assert config.share.extensions == [".mkv", ".mp4"]


def test_create_default_config(tmp_path):
    """Test creating default configuration file."""
    output_path = tmp_path / "default_config.yaml"

    ConfigManager.create_default_config(output_path)

    assert output_path.exists()
    content = yaml.safe_load(output_path.read_text())
    assert "share" in content
    assert "tmdb" in content
    assert content["tmdb"]["api_key"] == "${TMDB_API_KEY}"


def test_validate_config_file(config_manager, temp_config_file, tmp_path):
    """Test validating configuration files without loading them."""
    broken = tmp_path / "broken.yaml"
    broken.write_text("share: [unclosed")

    assert config_manager.validate_config_file(temp_config_file)
    assert not config_manager.validate_config_file(broken)
