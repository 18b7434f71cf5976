"""
Google Cloud Secret Manager provider (optional extra).

This module provides a provider that resolves secret references from GCP Secret Manager.

Reference Format:
    gcp:<project_id>:<secret_name>=TARGET

Example:
    shh -s gcp:my-project:db-password=DB_PASS -- python app.py

Install with: pip install shh[gcp]
"""

from __future__ import annotations

from typing import Any

from . import Provider, ProviderError, ProviderInfo


class GcpSecretsProvider(Provider):
    """
    Google Cloud Secret Manager provider.

    Resolves the latest version of a secret using google-cloud-secret-manager.
    Trailing newlines are stripped from the payload.

    Install with: pip install shh[gcp]
    """

    info = ProviderInfo(
        name="gcp",
        description="Google Cloud Secret Manager provider",
        version="1.0.0",
        author="shh contributors",
        usage="gcp:<project_id>:<secret_name>",
        min_args=2,
    )

    required_modules = ("google.cloud.secretmanager",)

    def __init__(self) -> None:
        super().__init__()
        self._client: Any | None = None
        self._version = "latest"

    async def resolve(self, arguments: list[str], target: str | None = None) -> str:
        """
        Resolve a secret from GCP Secret Manager.

        Args:
            arguments: ``[project_id, secret_name]``
            target: Unused

        Returns:
            ``secret_name=<payload>``

        Raises:
            ProviderError: If resolution fails
        """
        project_id, secret_name = arguments[0], arguments[1]

        try:
            value = self._fetch_secret(project_id, secret_name)
        except ProviderError:
            raise
        except Exception as exc:
            raise self.error(
                f"Failed to get secret '{secret_name}' in project '{project_id}': {exc}",
                arguments,
            ) from exc

        value = value.rstrip("\r\n")

        return self.pair(secret_name, value)

    def _get_client(self) -> Any:
        if self._client is None:
            try:
                from google.cloud import secretmanager
            except ImportError as exc:
                raise self.error(
                    "google-cloud-secret-manager is required for the gcp provider. "
                    "Install it with: pip install shh[gcp]"
                ) from exc

            self._client = secretmanager.SecretManagerServiceClient()

        return self._client

    def _fetch_secret(self, project_id: str, secret_name: str) -> str:
        """Fetch a secret version using the Secret Manager client."""
        name = f"projects/{project_id}/secrets/{secret_name}/versions/{self._version}"

        response = self._get_client().access_secret_version(request={"name": name})

        return response.payload.data.decode("UTF-8")

    def configure(self, config: dict[str, Any]) -> None:
        """Configure the GCP Secret Manager provider."""
        if "version" in config:
            self._version = str(config["version"])

    async def close(self) -> None:
        """Clean up resources."""
        self._client = None


def create_provider() -> GcpSecretsProvider:
    """Factory function to create a GcpSecretsProvider instance."""
    return GcpSecretsProvider()
