"""
HashiCorp Vault provider (optional extra).

This module provides a provider that resolves secret references from a
HashiCorp Vault KV v2 secrets engine.

Reference Format:
    vault:<mount>/<path>[:key]=TARGET

Example:
    shh -s vault:secret/my-app/database:password=DB_PASS -- python app.py
    shh -s vault:secret/my-app=APP_CONFIG -- python app.py  # whole data block as JSON

Install with: pip install shh[vault]
"""

from __future__ import annotations

import json
import os
from typing import Any

from . import Provider, ProviderError, ProviderInfo

# Requesting this key returns the whole data block
WHOLE_SECRET_KEY = "value"


class HashiCorpVaultProvider(Provider):
    """
    HashiCorp Vault provider.

    Resolves secrets from a KV v2 engine using the hvac library. The first
    segment of the path is the mount point; a single-segment path uses the
    default mount.

    Configuration:
        url: Vault server URL (default: VAULT_ADDR env var)
        token: Vault token (default: VAULT_TOKEN env var)
        namespace: Vault namespace (for Enterprise Vault)
        mount_point: Default mount point (default: secret)

    Install with: pip install shh[vault]
    """

    info = ProviderInfo(
        name="vault",
        description="HashiCorp Vault KV v2 provider",
        version="1.0.0",
        author="shh contributors",
        usage="vault:<path>[:key]",
    )

    required_modules = ("hvac",)

    def __init__(self) -> None:
        super().__init__()
        self._client: Any | None = None
        self._url: str | None = None
        self._token: str | None = None
        self._namespace: str | None = None
        self._default_mount: str = "secret"

    async def resolve(self, arguments: list[str], target: str | None = None) -> str:
        """
        Resolve a secret from HashiCorp Vault.

        Args:
            arguments: ``[path]`` or ``[path, key]``; key defaults to ``value``
            target: Unused

        Returns:
            ``<path with / as _>_<key>=<value>``

        Raises:
            ProviderError: If resolution fails
        """
        path = arguments[0]
        key = arguments[1] if len(arguments) > 1 and arguments[1] else WHOLE_SECRET_KEY

        try:
            data = self._read_data(path)
        except ProviderError:
            raise
        except Exception as exc:
            raise self.error(f"Failed to get secret at path '{path}': {exc}", arguments) from exc

        if key == WHOLE_SECRET_KEY:
            value = json.dumps(data) if data else ""
        else:
            found = data.get(key)
            value = "" if found is None else str(found)

        if not value:
            raise self.error(f"Key '{key}' not found in vault path '{path}'", arguments)

        return self.pair(f"{path.replace('/', '_')}_{key}", value)

    def _get_client(self) -> Any:
        """Create the hvac client once the address and token are known."""
        if self._client is None:
            url = self._url or os.environ.get("VAULT_ADDR")
            token = self._token or os.environ.get("VAULT_TOKEN")

            if not url or not token:
                raise self.error(
                    "Vault address or token not configured. Set VAULT_ADDR and VAULT_TOKEN"
                )

            try:
                import hvac
            except ImportError as exc:
                raise self.error(
                    "hvac is required for the vault provider. Install it with: pip install shh[vault]"
                ) from exc

            self._client = hvac.Client(url=url, token=token, namespace=self._namespace)

        return self._client

    def _split_path(self, path: str) -> tuple[str, str]:
        """Split ``mount/secret/path`` into mount point and secret path."""
        parts = path.strip("/").split("/", 1)
        if len(parts) == 1:
            return self._default_mount, parts[0]
        return parts[0], parts[1]

    def _read_data(self, path: str) -> dict[str, Any]:
        """Read the ``data.data`` block of a KV v2 secret."""
        mount_point, secret_path = self._split_path(path)

        response = self._get_client().secrets.kv.v2.read_secret_version(
            path=secret_path, mount_point=mount_point
        )

        return (response or {}).get("data", {}).get("data") or {}

    def configure(self, config: dict[str, Any]) -> None:
        """Configure the HashiCorp Vault provider."""
        if "url" in config:
            self._url = config["url"]
        if "token" in config:
            self._token = config["token"]
        if "namespace" in config:
            self._namespace = config["namespace"]
        if "mount_point" in config:
            self._default_mount = config["mount_point"]

    async def close(self) -> None:
        """Clean up resources."""
        self._client = None


def create_provider() -> HashiCorpVaultProvider:
    """Factory function to create a HashiCorpVaultProvider instance."""
    return HashiCorpVaultProvider()
