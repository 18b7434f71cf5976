"""
Tests for the configuration module.
"""

import tempfile
from pathlib import Path

import pytest

from shh import config as config_module
from shh.config import ConfigurationError, ProviderConfig, ShhConfig


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestProviderConfig:
    """Tests for the ProviderConfig dataclass."""

    def test_create_provider_config(self):
        """Test creating a ProviderConfig."""
        config = ProviderConfig(
            name="work-bw",
            type="bitwarden",
            enabled=True,
            config={"backend": "api"},
        )

        assert config.name == "work-bw"
        assert config.type == "bitwarden"
        assert config.enabled is True
        assert config.config == {"backend": "api"}

    def test_default_values(self):
        """Test default values."""
        config = ProviderConfig(name="test", type="test")

        assert config.enabled is True
        assert config.config == {}


class TestShhConfig:
    """Tests for the ShhConfig class."""

    def test_empty_config(self):
        """Test creating an empty config."""
        config = ShhConfig()

        assert config.providers == []
        assert config.global_options == {}
        assert config.strict is False

    def test_load_explicit_missing_file(self):
        """Test that an explicitly given missing file is an error."""
        with pytest.raises(ConfigurationError):
            ShhConfig.load("/nonexistent/path/config.yaml")

    def test_load_without_any_file(self, temp_dir, monkeypatch):
        """Test that no config anywhere gives the defaults."""
        monkeypatch.chdir(temp_dir)
        monkeypatch.delenv("SHH_CONFIG", raising=False)
        monkeypatch.setattr(config_module, "CONFIG_DIR", temp_dir / "none")

        config = ShhConfig.load()

        assert config.providers == []

    def test_load_valid_config(self, temp_dir):
        """Test loading a valid configuration file."""
        path = temp_dir / "config.yaml"
        path.write_text(
            """
options:
  strict: true
  log_file: /tmp/shh-test.log
  providers_dir: /opt/shh/providers

providers:
  - name: vault
    config:
      url: https://vault.example.com
  - name: work-bw
    type: bitwarden
    config:
      backend: api
  - name: azure
    enabled: false
"""
        )

        config = ShhConfig.load(path)

        assert config.strict is True
        assert config.log_file == Path("/tmp/shh-test.log")
        assert config.providers_dir == Path("/opt/shh/providers")
        assert [p.name for p in config.providers] == ["vault", "work-bw", "azure"]
        assert config.providers[0].type == "vault"
        assert config.get_provider_config("work-bw").config == {"backend": "api"}
        assert config.get_provider_config("azure").enabled is False
        assert config.get_provider_config("missing") is None

    def test_search_uses_shh_config_env(self, temp_dir, monkeypatch):
        """Test that $SHH_CONFIG is searched first."""
        path = temp_dir / "custom.yaml"
        path.write_text("options:\n  strict: true\n")
        monkeypatch.setenv("SHH_CONFIG", str(path))

        assert ShhConfig.load().strict is True

    def test_search_finds_project_file(self, temp_dir, monkeypatch):
        """Test that ./.shh.yaml is found."""
        (temp_dir / ".shh.yaml").write_text("options:\n  env_file: custom.env\n")
        monkeypatch.chdir(temp_dir)
        monkeypatch.delenv("SHH_CONFIG", raising=False)

        assert ShhConfig.load().env_file == Path("custom.env")

    def test_invalid_yaml(self, temp_dir):
        """Test that invalid YAML raises an error."""
        path = temp_dir / "bad.yaml"
        path.write_text("providers: [[[")

        with pytest.raises(ConfigurationError) as exc_info:
            ShhConfig.load(path)

        assert exc_info.value.from_exception is not None

    def test_not_a_mapping(self, temp_dir):
        """Test that a top-level list is rejected."""
        path = temp_dir / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            ShhConfig.load(path)

    def test_empty_file(self, temp_dir):
        """Test that an empty file gives defaults."""
        path = temp_dir / "empty.yaml"
        path.write_text("")

        assert ShhConfig.load(path).providers == []

    def test_defaults(self, monkeypatch):
        """Test default option values."""
        monkeypatch.delenv("SHH_LOG_FILE", raising=False)
        config = ShhConfig()

        assert config.log_file.name == "shh.log"
        assert config.providers_dir == config_module.CONFIG_DIR / "providers"
        assert config.sources_file == config_module.CONFIG_DIR / "sources.yaml"
        assert config.env_file == Path(".env")

    def test_log_file_env_override(self, monkeypatch):
        """Test that SHH_LOG_FILE wins over the config option."""
        monkeypatch.setenv("SHH_LOG_FILE", "/tmp/override.log")
        config = ShhConfig(global_options={"log_file": "/tmp/config.log"})

        assert config.log_file == Path("/tmp/override.log")
