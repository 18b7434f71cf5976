"""
Configuration management for shh.

This module handles loading and parsing configuration files for the tool,
including per-provider settings, configured provider aliases and global options.

Example ``~/.config/shh/config.yaml``::

    options:
      strict: true
      log_file: ~/.cache/shh/shh.log

    providers:
      - name: vault
        type: vault
        config:
          url: https://vault.example.com
      - name: work-bw
        type: bitwarden
        config:
          backend: api
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_DIR = Path.home() / ".config" / "shh"


@dataclass
class ProviderConfig:
    """Configuration for a single provider."""

    name: str
    type: str
    enabled: bool = True
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class ShhConfig:
    """Main configuration for shh."""

    providers: list[ProviderConfig] = field(default_factory=list)
    global_options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "ShhConfig":
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the configuration file. If None, searches
                        for config in standard locations.

        Returns:
            A ShhConfig instance with the loaded configuration.

        Raises:
            ConfigurationError: If an explicitly given file is missing, or the
                file is not valid YAML
        """
        if config_path is None:
            config_path = cls._find_config_file()
            if config_path is None:
                return cls()
        elif not Path(config_path).exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        return cls._parse_config_file(config_path)

    @classmethod
    def _find_config_file(cls) -> str | None:
        """Search for config file in standard locations."""
        search_paths = [
            Path.cwd() / ".shh.yaml",
            Path.cwd() / ".shh.yml",
            CONFIG_DIR / "config.yaml",
            CONFIG_DIR / "config.yml",
        ]

        env_path = os.environ.get("SHH_CONFIG")
        if env_path:
            search_paths.insert(0, Path(env_path))

        for path in search_paths:
            if path.exists():
                return str(path)

        return None

    @classmethod
    def _parse_config_file(cls, config_path: str | Path) -> "ShhConfig":
        """Parse a YAML configuration file."""
        path = Path(config_path)

        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in config file: {exc}", exc) from exc

        if data is None:
            return cls()

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        providers = []
        for provider_data in data.get("providers") or []:
            if not isinstance(provider_data, dict):
                raise ConfigurationError(f"Invalid provider entry in {path}: {provider_data!r}")
            name = provider_data.get("name", "")
            provider = ProviderConfig(
                name=name,
                type=provider_data.get("type") or name,
                enabled=provider_data.get("enabled", True),
                config=provider_data.get("config") or {},
            )
            providers.append(provider)

        return cls(
            providers=providers,
            global_options=data.get("options") or {},
        )

    def get_provider_config(self, provider_name: str) -> ProviderConfig | None:
        """Get configuration for a specific provider."""
        for provider in self.providers:
            if provider.name == provider_name:
                return provider
        return None

    @property
    def strict(self) -> bool:
        return bool(self.global_options.get("strict", False))

    @property
    def log_file(self) -> Path:
        configured = os.environ.get("SHH_LOG_FILE") or self.global_options.get("log_file")
        if configured:
            return Path(configured).expanduser()
        return Path(tempfile.gettempdir()) / "shh.log"

    @property
    def providers_dir(self) -> Path:
        configured = self.global_options.get("providers_dir")
        return Path(configured).expanduser() if configured else CONFIG_DIR / "providers"

    @property
    def sources_file(self) -> Path:
        configured = self.global_options.get("sources_file")
        return Path(configured).expanduser() if configured else CONFIG_DIR / "sources.yaml"

    @property
    def env_file(self) -> Path:
        return Path(self.global_options.get("env_file", ".env")).expanduser()


class ConfigurationError(Exception):
    """Exception raised for configuration errors."""

    def __init__(self, message: str, from_exception: Exception | None = None) -> None:
        self.message = message
        self.from_exception = from_exception
        super().__init__(message)
        if from_exception:
            self.__cause__ = from_exception
