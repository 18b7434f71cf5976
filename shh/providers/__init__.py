"""
Provider Interface and Registry for shh.

This module defines the base provider interface that all secret providers must implement,
and provides a registry system for discovering and loading providers.

Usage:
    from shh.providers import Provider, ProviderInfo, ProviderRegistry

    # Create a custom provider
    class MyProvider(Provider):
        info = ProviderInfo(
            name="my_provider",
            description="My custom secret provider",
            usage="my_provider:<name>",
            min_args=1,
        )

        async def resolve(self, arguments: list[str], target: str | None = None) -> str:
            return self.pair(arguments[0], "value")

    # Register the provider
    registry = ProviderRegistry()
    registry.register(MyProvider)

    # Get a provider instance
    provider = registry.get("my_provider")
"""

from __future__ import annotations

import importlib.util
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence


@dataclass
class ProviderInfo:
    """Metadata about a provider."""

    name: str
    description: str
    version: str = "1.0.0"
    author: str = ""
    usage: str = ""
    min_args: int = 1


class Provider(ABC):
    """
    Base class for all secret providers.

    Providers turn an ordered list of arguments (the part of a reference after
    the provider name) into a single ``key=value`` line. The dispatcher keeps
    everything after the first ``=`` as the secret value.

    To create a custom provider:
    1. Inherit from Provider
    2. Set the `info` class attribute with provider metadata
    3. Implement the `resolve` method
    4. Optionally implement `missing_dependencies` and `configure`
    5. Register the provider with a ProviderRegistry

    Example:
        class VaultProvider(Provider):
            info = ProviderInfo(
                name="vault",
                description="HashiCorp Vault provider",
                usage="vault:<path>[:key]",
            )

            async def resolve(self, arguments, target=None):
                # Fetch secret and return "key=value"
                pass
    """

    info: ProviderInfo

    # Importable modules / executables on PATH the backend needs
    required_modules: tuple[str, ...] = ()
    required_commands: tuple[str, ...] = ()

    @abstractmethod
    async def resolve(self, arguments: list[str], target: str | None = None) -> str:
        """
        Resolve a secret to a ``key=value`` line.

        Args:
            arguments: Provider-specific arguments, in reference order
            target: Name of the environment variable the value will be bound to

        Returns:
            The resolved secret as ``key=value``

        Raises:
            ProviderError: If resolution fails
        """
        ...

    def validate_arguments(self, arguments: Sequence[str]) -> bool:
        """
        Validate that the argument list is well-formed for this provider.

        The default implementation requires at least ``info.min_args``
        non-empty leading arguments. Override for custom validation logic.
        """
        if len(arguments) < self.info.min_args:
            return False

        return all(arg for arg in arguments[: self.info.min_args])

    def missing_dependencies(self) -> list[str]:
        """Return the names of required modules or commands that are not available."""
        missing = [name for name in self.required_modules if not module_available(name)]
        missing.extend(cmd for cmd in self.required_commands if shutil.which(cmd) is None)
        return missing

    def configure(self, config: dict[str, Any]) -> None:
        """Apply provider-specific options. The default ignores them."""

    def error(self, message: str, arguments: Sequence[str] | None = None) -> "ProviderError":
        """Build a ProviderError tagged with this provider's name."""
        return ProviderError(message, provider=self.info.name, arguments=arguments)

    def pair(self, key: str, value: str) -> str:
        """
        Format a ``key=value`` result line.

        Any ``=`` in the key becomes ``_`` so the value still starts after the
        first ``=``, even when the key was built from a path or secret name.
        """
        return f"{key.replace('=', '_')}={value}"

    async def close(self) -> None:
        """
        Cleanup resources when the provider is no longer needed.

        Override this method to implement cleanup logic such as
        closing network connections or releasing resources.
        """
        pass

    async def __aenter__(self) -> "Provider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


def module_available(name: str) -> bool:
    """Check whether a (possibly dotted) module can be imported."""
    try:
        return importlib.util.find_spec(name) is not None
    except (ImportError, ValueError):
        return False


class ProviderRegistry:
    """
    Registry for discovering and managing secret providers.

    The registry maintains a mapping of provider names to provider classes,
    along with any per-name configuration and the instances created from them.
    """

    def __init__(self) -> None:
        self._providers: dict[str, type[Provider]] = {}
        self._instances: dict[str, Provider] = {}
        self._config: dict[str, dict[str, Any]] = {}

    def register(
        self,
        provider_class: type[Provider],
        name: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> None:
        """
        Register a provider class with the registry.

        Args:
            provider_class: The provider class to register
            name: Optional custom name, defaults to provider.info.name
            config: Optional configuration applied when the instance is created

        Raises:
            ValueError: If provider class is missing required attributes
            KeyError: If a provider with the same name is already registered
        """
        if not hasattr(provider_class, "info") or not isinstance(provider_class.info, ProviderInfo):
            raise ValueError(
                f"Provider {provider_class.__name__} must have a ProviderInfo attribute"
            )

        provider_name = name or provider_class.info.name

        if provider_name in self._providers:
            raise KeyError(f"Provider '{provider_name}' is already registered")

        self._providers[provider_name] = provider_class
        if config:
            self._config[provider_name] = dict(config)

    def alias(self, name: str, provider_name: str, config: dict[str, Any] | None = None) -> None:
        """Register an existing provider's class again under another name."""
        if provider_name not in self._providers:
            raise UnknownProviderError(provider_name, available=self.names())

        self.register(self._providers[provider_name], name=name, config=config)

    def unregister(self, name: str) -> None:
        """Remove a provider; unknown names are ignored."""
        self._providers.pop(name, None)
        self._instances.pop(name, None)
        self._config.pop(name, None)

    def configure(self, name: str, config: dict[str, Any]) -> None:
        """Merge configuration for a registered provider, dropping any cached instance."""
        if name not in self._providers:
            raise UnknownProviderError(name, available=self.names())

        self._config.setdefault(name, {}).update(config)
        self._instances.pop(name, None)

    def get(self, name: str, config: dict[str, Any] | None = None) -> Provider:
        """
        Get an instance of a provider by name.

        Args:
            name: The name of the provider to get
            config: Optional configuration for a fresh provider instance

        Returns:
            An instance of the requested provider

        Raises:
            UnknownProviderError: If no provider with the given name is registered
        """
        if name not in self._providers:
            raise UnknownProviderError(name, available=self.names())

        # Cache instances for reuse
        if name not in self._instances or config is not None:
            instance = self._providers[name]()

            merged = {**self._config.get(name, {}), **(config or {})}
            if merged:
                instance.configure(merged)

            self._instances[name] = instance

        return self._instances[name]

    def names(self) -> list[str]:
        """Registered provider names, sorted."""
        return sorted(self._providers)

    def list_providers(self) -> list[tuple[str, ProviderInfo]]:
        """
        List all registered providers with their metadata.

        Returns:
            (registered name, ProviderInfo) pairs sorted by name
        """
        return [(name, self._providers[name].info) for name in self.names()]

    def is_registered(self, name: str) -> bool:
        """Check if a provider is registered."""
        return name in self._providers

    async def close(self) -> None:
        """Close every provider instance created by this registry."""
        for instance in self._instances.values():
            await instance.close()
        self._instances.clear()

    def clear(self) -> None:
        """Clear all registered providers, instances and configuration."""
        self._providers.clear()
        self._instances.clear()
        self._config.clear()

    def discover_plugins(self, entry_point_group: str = "shh.providers") -> list[str]:
        """
        Discover and register providers from installed packages.

        This method looks for providers registered as entry points
        by installed packages.

        Args:
            entry_point_group: The entry point group name to search

        Returns:
            Warning messages for entry points that could not be loaded
        """
        from importlib.metadata import entry_points

        warnings: list[str] = []

        for ep in entry_points(group=entry_point_group):
            try:
                provider_class = ep.load()
            except Exception as exc:
                warnings.append(f"Failed to load provider entry point '{ep.name}': {exc}")
                continue

            if not (isinstance(provider_class, type) and issubclass(provider_class, Provider)):
                warnings.append(f"Entry point '{ep.name}' is not a Provider subclass")
                continue

            if self.is_registered(provider_class.info.name):
                warnings.append(f"Provider '{provider_class.info.name}' is already registered")
                continue

            self.register(provider_class)

        return warnings

    def load_directory(self, path: str | Path) -> list[str]:
        """
        Register providers from every ``*.py`` file in a plugin directory.

        Returns:
            Warning messages for plugin files that could not be loaded
        """
        from ..plugins import load_plugin_directory

        return load_plugin_directory(self, Path(path))


class ProviderError(Exception):
    """Base exception for provider-related errors."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        arguments: Sequence[str] | None = None,
    ):
        self.message = message
        self.provider = provider
        self.arguments = list(arguments) if arguments is not None else None
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.provider:
            parts.insert(0, f"[{self.provider}]")
        if self.arguments:
            parts.append(f"(arguments: {':'.join(self.arguments)})")
        return " ".join(parts)


class UnknownProviderError(ProviderError):
    """Raised when a reference names a provider nobody registered."""

    def __init__(self, name: str, available: Sequence[str] = ()):
        message = f"Unknown secret provider: {name}"
        if available:
            message += f". Available providers: {', '.join(available)}"
        super().__init__(message, provider=name)
        self.name = name
