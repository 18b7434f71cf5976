"""
Azure Key Vault provider using Python SDK (optional extra).

This module provides a provider that resolves secret references from Azure Key Vault
using the Azure SDK instead of the CLI.

Reference Format:
    azure:<vault_name>:<secret_name>=TARGET

Example:
    shh -s azure:production-vault:api-key=API_KEY -- node server.js

Install with: pip install shh[azure]
"""

from __future__ import annotations

from typing import Any

from . import Provider, ProviderError, ProviderInfo


class AzureKeyVaultProvider(Provider):
    """
    Azure Key Vault provider using Python SDK.

    Resolves secrets from Azure Key Vault using azure-identity and azure-keyvault-secrets.
    Authentication goes through ``DefaultAzureCredential``, so an ``az login``
    session, managed identity or service principal variables all work.

    Configuration:
        vault_url_template: URL template with a ``{vault}`` placeholder
            (default: https://{vault}.vault.azure.net)

    Install with: pip install shh[azure]
    """

    info = ProviderInfo(
        name="azure",
        description="Azure Key Vault provider",
        version="1.0.0",
        author="shh contributors",
        usage="azure:<vault_name>:<secret_name>",
        min_args=2,
    )

    required_modules = ("azure.identity", "azure.keyvault.secrets")

    def __init__(self) -> None:
        super().__init__()
        self._clients: dict[str, Any] = {}
        self._credential: Any | None = None
        self._url_template = "https://{vault}.vault.azure.net"

    async def resolve(self, arguments: list[str], target: str | None = None) -> str:
        """
        Resolve a Key Vault secret reference.

        Args:
            arguments: ``[vault_name, secret_name]``
            target: Unused

        Returns:
            ``secret_name=<value>``

        Raises:
            ProviderError: If the secret cannot be resolved
        """
        vault_name, secret_name = arguments[0], arguments[1]

        try:
            value = self._fetch_secret(vault_name, secret_name)
        except ProviderError:
            raise
        except Exception as exc:
            raise self.error(
                f"Failed to get secret '{secret_name}' in vault '{vault_name}': {exc}",
                arguments,
            ) from exc

        return self.pair(secret_name, value)

    def _client(self, vault_name: str) -> Any:
        """Get (or create) a SecretClient for a vault."""
        if vault_name not in self._clients:
            try:
                from azure.identity import DefaultAzureCredential
                from azure.keyvault.secrets import SecretClient
            except ImportError as exc:
                raise self.error(
                    "Azure SDK is required for the azure provider. "
                    "Install it with: pip install shh[azure]"
                ) from exc

            if self._credential is None:
                self._credential = DefaultAzureCredential()

            vault_url = self._url_template.format(vault=vault_name)
            self._clients[vault_name] = SecretClient(
                vault_url=vault_url, credential=self._credential
            )

        return self._clients[vault_name]

    def _fetch_secret(self, vault_name: str, secret_name: str) -> str:
        """Fetch a secret using Azure SDK."""
        secret = self._client(vault_name).get_secret(secret_name)
        if secret.value is None:
            raise self.error(
                f"Secret '{secret_name}' has no value",
                [vault_name, secret_name],
            )
        return secret.value

    def configure(self, config: dict[str, Any]) -> None:
        """Configure the Azure Key Vault provider."""
        if "vault_url_template" in config:
            self._url_template = config["vault_url_template"]

    async def close(self) -> None:
        """Clean up resources."""
        self._clients.clear()
        self._credential = None


def create_provider() -> AzureKeyVaultProvider:
    """Factory function to create an AzureKeyVaultProvider instance."""
    return AzureKeyVaultProvider()
