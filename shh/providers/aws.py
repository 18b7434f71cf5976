"""
AWS Secrets Manager provider (optional extra).

This module provides a provider that resolves secret references from AWS Secrets Manager.

Reference Format:
    aws:<profile>:<secret_name>=TARGET

Example:
    shh -s aws:prod:my-app/database=DB_PASS -- python app.py

Install with: pip install shh[aws]
"""

from __future__ import annotations

from typing import Any

from . import Provider, ProviderError, ProviderInfo


class AwsSecretsProvider(Provider):
    """
    AWS Secrets Manager provider.

    Resolves secrets from AWS Secrets Manager using boto3 under the named
    profile. The current ``SecretString`` is returned as-is, so JSON secrets
    come back as their JSON text.

    Configuration:
        region: AWS region (default: the profile's region)

    Install with: pip install shh[aws]
    """

    info = ProviderInfo(
        name="aws",
        description="AWS Secrets Manager provider",
        version="1.0.0",
        author="shh contributors",
        usage="aws:<profile>:<secret_name>",
        min_args=2,
    )

    required_modules = ("boto3",)

    def __init__(self) -> None:
        super().__init__()
        self._clients: dict[str, Any] = {}
        self._region: str | None = None

    async def resolve(self, arguments: list[str], target: str | None = None) -> str:
        """
        Resolve a secret from AWS Secrets Manager.

        Args:
            arguments: ``[profile, secret_name]``
            target: Unused

        Returns:
            ``secret_name=<SecretString>``

        Raises:
            ProviderError: If resolution fails
        """
        profile, secret_name = arguments[0], arguments[1]

        try:
            value = self._fetch_secret(profile, secret_name)
        except ProviderError:
            raise
        except Exception as exc:
            raise self.error(
                f"Failed to get secret '{secret_name}' in profile '{profile}': {exc}",
                arguments,
            ) from exc

        return self.pair(secret_name, value)

    def _client(self, profile: str) -> Any:
        """Get (or create) a Secrets Manager client for a profile."""
        if profile not in self._clients:
            try:
                import boto3
            except ImportError as exc:
                raise self.error(
                    "boto3 is required for the aws provider. Install it with: pip install shh[aws]"
                ) from exc

            session = boto3.session.Session(profile_name=profile, region_name=self._region)
            self._clients[profile] = session.client(service_name="secretsmanager")

        return self._clients[profile]

    def _fetch_secret(self, profile: str, secret_name: str) -> str:
        """Fetch the current secret value using boto3."""
        response = self._client(profile).get_secret_value(SecretId=secret_name)

        if "SecretString" in response and response["SecretString"] is not None:
            return response["SecretString"]

        # Binary secret
        return response["SecretBinary"].decode("utf-8")

    def configure(self, config: dict[str, Any]) -> None:
        """Configure the AWS Secrets provider."""
        if "region" in config:
            self._region = config["region"]

    async def close(self) -> None:
        """Clean up resources."""
        self._clients.clear()


def create_provider() -> AwsSecretsProvider:
    """Factory function to create an AwsSecretsProvider instance."""
    return AwsSecretsProvider()
