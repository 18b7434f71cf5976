"""Built-in provider loader for shh.

This module registers all built-in providers with a ProviderRegistry.
"""

from . import Provider, ProviderRegistry
from .aws import AwsSecretsProvider
from .azure import AzureKeyVaultProvider
from .bitwarden import BitwardenProvider
from .env import EnvironmentProvider
from .file import FileProvider
from .gcp import GcpSecretsProvider
from .hashicorp import HashiCorpVaultProvider

BUILT_IN_PROVIDERS: tuple[type[Provider], ...] = (
    BitwardenProvider,
    AwsSecretsProvider,
    GcpSecretsProvider,
    HashiCorpVaultProvider,
    AzureKeyVaultProvider,
    FileProvider,
    EnvironmentProvider,
)


def register_built_in_providers(registry: ProviderRegistry) -> None:
    """Register all built-in providers with the registry.

    This function is idempotent - it can be called multiple times safely.
    """
    for provider_class in BUILT_IN_PROVIDERS:
        if not registry.is_registered(provider_class.info.name):
            registry.register(provider_class)


def default_registry() -> ProviderRegistry:
    """A fresh registry holding the seven built-in providers."""
    registry = ProviderRegistry()
    register_built_in_providers(registry)
    return registry
