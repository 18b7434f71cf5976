"""
File-based provider for shh.

This module provides a provider that reads secret values from files.
Useful for Docker secrets, mounted files, or any file-based secret storage.

Reference Format:
    file:<path>=TARGET

Example:
    shh -s file:/run/secrets/db_password=DB_PASSWORD -- ./server
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from . import Provider, ProviderInfo


class FileProvider(Provider):
    """
    File-based secret provider.

    Reads the whole file and removes every carriage return and newline, so
    multi-line files collapse into a single line. The key of the returned
    pair is the file name without its extension.

    Configuration:
        base_path: Base directory for relative paths (default: current directory)
    """

    info = ProviderInfo(
        name="file",
        description="Raw file contents with newlines removed",
        version="1.0.0",
        author="shh contributors",
        usage="file:<path>",
    )

    def __init__(self, base_path: str | None = None) -> None:
        super().__init__()
        self._base_path = Path(base_path) if base_path else None

    async def resolve(self, arguments: list[str], target: str | None = None) -> str:
        """
        Read a secret from a file.

        Args:
            arguments: ``[file_path]``
            target: Unused

        Returns:
            ``<file stem>=<contents without newlines>``

        Raises:
            ProviderError: If the file cannot be read
        """
        file_path = self._resolve_path(arguments[0])

        if not file_path.is_file():
            raise self.error(f"File '{file_path}' does not exist", arguments)

        try:
            content = file_path.read_text()
        except PermissionError as exc:
            raise self.error(
                f"Permission denied reading secret file: {file_path}", arguments
            ) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise self.error(f"Error reading secret file {file_path}: {exc}", arguments) from exc

        value = content.replace("\r", "").replace("\n", "")

        return self.pair(file_path.stem, value)

    def _resolve_path(self, reference: str) -> Path:
        """Resolve a file path from the reference."""
        path = Path(reference).expanduser()

        # Make relative paths relative to base_path
        if not path.is_absolute() and self._base_path is not None:
            path = self._base_path / path

        return path

    def configure(self, config: dict[str, Any]) -> None:
        """Configure the file provider with options."""
        if "base_path" in config:
            self._base_path = Path(config["base_path"])


def create_provider(base_path: str | None = None) -> FileProvider:
    """Factory function to create a FileProvider instance."""
    return FileProvider(base_path)
