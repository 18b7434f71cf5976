"""
Tests for the AWS, GCP, Azure and HashiCorp Vault providers.

The SDK clients are replaced with mocks; no network access is needed.
"""

import json
from unittest.mock import MagicMock

import pytest

from shh.providers import ProviderError
from shh.providers.aws import AwsSecretsProvider
from shh.providers.azure import AzureKeyVaultProvider
from shh.providers.gcp import GcpSecretsProvider
from shh.providers.hashicorp import HashiCorpVaultProvider


class TestAwsSecretsProvider:
    """Tests for the AwsSecretsProvider class."""

    @pytest.fixture
    def client(self):
        """A mocked Secrets Manager client."""
        return MagicMock()

    @pytest.fixture
    def provider(self, client, monkeypatch):
        """A provider whose client factory returns the mock."""
        provider = AwsSecretsProvider()
        monkeypatch.setattr(provider, "_client", lambda profile: client)
        return provider

    @pytest.mark.asyncio
    async def test_secret_string(self, provider, client):
        """Test resolving a string secret."""
        client.get_secret_value.return_value = {"SecretString": "s3cr3t"}

        result = await provider.resolve(["prod", "db_pass"], target="DB_PASS")

        assert result == "db_pass=s3cr3t"
        client.get_secret_value.assert_called_once_with(SecretId="db_pass")

    @pytest.mark.asyncio
    async def test_secret_binary(self, provider, client):
        """Test resolving a binary secret."""
        client.get_secret_value.return_value = {"SecretBinary": b"bin"}

        assert await provider.resolve(["prod", "blob"]) == "blob=bin"

    @pytest.mark.asyncio
    async def test_sdk_failure(self, provider, client):
        """Test that SDK exceptions become provider errors."""
        client.get_secret_value.side_effect = RuntimeError("AccessDenied")

        with pytest.raises(ProviderError) as exc_info:
            await provider.resolve(["prod", "db_pass"])

        assert "AccessDenied" in str(exc_info.value)
        assert "profile 'prod'" in str(exc_info.value)

    def test_requires_two_arguments(self):
        """Test that profile and secret name are both required."""
        provider = AwsSecretsProvider()

        assert not provider.validate_arguments(["prod"])
        assert provider.validate_arguments(["prod", "name"])


class TestGcpSecretsProvider:
    """Tests for the GcpSecretsProvider class."""

    @pytest.fixture
    def client(self):
        """A mocked Secret Manager client."""
        return MagicMock()

    @pytest.fixture
    def provider(self, client, monkeypatch):
        """A provider whose client factory returns the mock."""
        provider = GcpSecretsProvider()
        monkeypatch.setattr(provider, "_get_client", lambda: client)
        return provider

    @pytest.mark.asyncio
    async def test_resolve_latest(self, provider, client):
        """Test resolving the latest version and trimming trailing newlines."""
        client.access_secret_version.return_value.payload.data = b"value\r\n"

        result = await provider.resolve(["my-proj", "api-key"])

        assert result == "api-key=value"
        client.access_secret_version.assert_called_once_with(
            request={"name": "projects/my-proj/secrets/api-key/versions/latest"}
        )

    @pytest.mark.asyncio
    async def test_configured_version(self, provider, client):
        """Test pinning a version through configuration."""
        client.access_secret_version.return_value.payload.data = b"v3"
        provider.configure({"version": 3})

        await provider.resolve(["p", "s"])

        client.access_secret_version.assert_called_once_with(
            request={"name": "projects/p/secrets/s/versions/3"}
        )

    @pytest.mark.asyncio
    async def test_failure(self, provider, client):
        """Test that client failures become provider errors."""
        client.access_secret_version.side_effect = RuntimeError("NotFound")

        with pytest.raises(ProviderError) as exc_info:
            await provider.resolve(["p", "s"])

        assert "project 'p'" in str(exc_info.value)


class TestAzureKeyVaultProvider:
    """Tests for the AzureKeyVaultProvider class."""

    @pytest.fixture
    def client(self):
        """A mocked SecretClient."""
        return MagicMock()

    @pytest.fixture
    def provider(self, client, monkeypatch):
        """A provider whose client factory returns the mock."""
        provider = AzureKeyVaultProvider()
        monkeypatch.setattr(provider, "_client", lambda vault: client)
        return provider

    @pytest.mark.asyncio
    async def test_resolve(self, provider, client):
        """Test resolving a Key Vault secret."""
        client.get_secret.return_value.value = "kv-value"

        assert await provider.resolve(["myvault", "conn"]) == "conn=kv-value"
        client.get_secret.assert_called_once_with("conn")

    @pytest.mark.asyncio
    async def test_no_value(self, provider, client):
        """Test that a secret without a value is an error."""
        client.get_secret.return_value.value = None

        with pytest.raises(ProviderError) as exc_info:
            await provider.resolve(["myvault", "conn"])

        assert "has no value" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_failure(self, provider, client):
        """Test that SDK failures become provider errors."""
        client.get_secret.side_effect = RuntimeError("Forbidden")

        with pytest.raises(ProviderError) as exc_info:
            await provider.resolve(["myvault", "conn"])

        assert "vault 'myvault'" in str(exc_info.value)


class TestHashiCorpVaultProvider:
    """Tests for the HashiCorpVaultProvider class."""

    @pytest.fixture
    def client(self):
        """A mocked hvac client holding one secret."""
        client = MagicMock()
        client.secrets.kv.v2.read_secret_version.return_value = {
            "data": {"data": {"username": "admin", "password": "pw"}}
        }
        return client

    @pytest.fixture
    def provider(self, client, monkeypatch):
        """A provider whose client factory returns the mock."""
        provider = HashiCorpVaultProvider()
        monkeypatch.setattr(provider, "_get_client", lambda: client)
        return provider

    @pytest.mark.asyncio
    async def test_resolve_key(self, provider, client):
        """Test resolving a single key, with the first segment as mount."""
        result = await provider.resolve(["kv/app/db", "password"])

        assert result == "kv_app_db_password=pw"
        client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path="app/db", mount_point="kv"
        )

    @pytest.mark.asyncio
    async def test_default_key_returns_whole_secret(self, provider):
        """Test that omitting the key returns the data block as JSON."""
        result = await provider.resolve(["kv/app/db"])

        key, _, value = result.partition("=")
        assert key == "kv_app_db_value"
        assert json.loads(value) == {"username": "admin", "password": "pw"}

    @pytest.mark.asyncio
    async def test_single_segment_uses_default_mount(self, provider, client):
        """Test that a bare secret name uses the default mount."""
        await provider.resolve(["db", "username"])

        client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path="db", mount_point="secret"
        )

    @pytest.mark.asyncio
    async def test_missing_key(self, provider):
        """Test that a missing key is an error."""
        with pytest.raises(ProviderError) as exc_info:
            await provider.resolve(["kv/app/db", "nope"])

        assert "Key 'nope' not found" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unconfigured(self, monkeypatch):
        """Test that a missing address or token is reported."""
        monkeypatch.delenv("VAULT_ADDR", raising=False)
        monkeypatch.delenv("VAULT_TOKEN", raising=False)
        provider = HashiCorpVaultProvider()

        with pytest.raises(ProviderError) as exc_info:
            await provider.resolve(["kv/app", "key"])

        assert "VAULT_ADDR" in str(exc_info.value)
