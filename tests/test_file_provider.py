"""
Tests for the file-based provider.
"""

import os
import tempfile
from pathlib import Path

import pytest

from shh.providers.file import FileProvider
from shh.providers import ProviderError


class TestFileProvider:
    """Tests for the FileProvider class."""

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for test files."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    @pytest.fixture
    def secret_file(self, temp_dir):
        """Create a test secret file."""
        file_path = temp_dir / "db_password.txt"
        file_path.write_text("super_secret_value\n")
        return file_path

    @pytest.mark.asyncio
    async def test_read_absolute_path(self, secret_file):
        """Test reading a secret from an absolute path."""
        provider = FileProvider()

        result = await provider.resolve([str(secret_file)])

        assert result == "db_password=super_secret_value"

    @pytest.mark.asyncio
    async def test_newlines_removed_everywhere(self, temp_dir):
        """Test that every CR and LF is removed, not just trailing ones."""
        file_path = temp_dir / "multi"
        file_path.write_bytes(b"line1\r\nline2\nline3\n")
        provider = FileProvider()

        result = await provider.resolve([str(file_path)])

        assert result == "multi=line1line2line3"

    @pytest.mark.asyncio
    async def test_relative_path_with_base(self, temp_dir, secret_file):
        """Test reading with a base path."""
        provider = FileProvider(base_path=str(temp_dir))

        result = await provider.resolve([secret_file.name])

        assert result.endswith("=super_secret_value")

    @pytest.mark.asyncio
    async def test_configure_base_path(self, temp_dir, secret_file):
        """Test configuring base path via configure()."""
        provider = FileProvider()
        provider.configure({"base_path": str(temp_dir)})

        result = await provider.resolve([secret_file.name])

        assert result == "db_password=super_secret_value"

    @pytest.mark.asyncio
    async def test_missing_file_raises_error(self, temp_dir):
        """Test that a missing file raises an error."""
        provider = FileProvider()

        with pytest.raises(ProviderError) as exc_info:
            await provider.resolve([str(temp_dir / "nonexistent.txt")])

        assert "does not exist" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_directory_raises_error(self, temp_dir):
        """Test that a directory is not read as a secret."""
        provider = FileProvider()

        with pytest.raises(ProviderError):
            await provider.resolve([str(temp_dir)])

    @pytest.mark.asyncio
    @pytest.mark.skipif(
        os.name != "posix" or getattr(os, "geteuid", lambda: 0)() == 0,
        reason="permission checks need a non-root posix user",
    )
    async def test_unreadable_file_raises_error(self, secret_file):
        """Test that a permission error becomes a provider error."""
        secret_file.chmod(0)
        provider = FileProvider()

        try:
            with pytest.raises(ProviderError) as exc_info:
                await provider.resolve([str(secret_file)])
        finally:
            secret_file.chmod(0o600)

        assert "Permission denied" in str(exc_info.value)
