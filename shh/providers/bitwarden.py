"""
Bitwarden provider for shh.

This module resolves fields of Bitwarden vault items, either through the
``bw`` command-line client (default) or through a REST endpoint authenticated
with a pre-unlocked session token.

Reference Format:
    bitwarden:<item_name>[:field]=TARGET

Field lookup order:
    1. custom field with that name
    2. built-in ``password`` / ``notes``
    3. first URI, when the field is ``uri``

Example:
    shh -s bitwarden:MyApp:API_Key=APP_KEY -- python app.py
    shh -s bitwarden:Database=DB_PASS -- python app.py  # field defaults to password

Configuration:
    backend: "cli" (default) or "api"
    api_url: Base URL for the API backend (default: https://api.bitwarden.com)
    token: Session token for the API backend (default: BW_TOKEN env var)
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
from typing import Any

from . import Provider, ProviderInfo, module_available

DEFAULT_FIELD = "password"
DEFAULT_API_URL = "https://api.bitwarden.com"


def extract_field(item: dict[str, Any], field: str) -> str | None:
    """
    Pick a field value out of a Bitwarden item.

    Custom fields win over built-in ones, so an item with a custom field
    named ``password`` returns that rather than the login password.
    """
    for custom in item.get("fields") or []:
        if custom.get("name") == field and custom.get("value") not in (None, ""):
            return str(custom["value"])

    login = item.get("login") or {}

    if field in ("password", "notes"):
        value = item.get(field) or login.get(field)
        if value:
            return str(value)

    if field == "uri":
        uris = item.get("uris") or login.get("uris") or []
        if uris and uris[0].get("uri"):
            return str(uris[0]["uri"])

    return None


class BitwardenProvider(Provider):
    """
    Bitwarden vault provider.

    The CLI backend requires ``bw`` on PATH and an authenticated session
    (``bw login`` followed by ``bw unlock`` with ``BW_SESSION`` exported).
    The API backend requires a session token in ``BW_TOKEN``.
    """

    info = ProviderInfo(
        name="bitwarden",
        description="Bitwarden vault item fields (bw CLI or REST API)",
        version="1.0.0",
        author="shh contributors",
        usage="bitwarden:<item>[:field]",
    )

    def __init__(self) -> None:
        super().__init__()
        self._backend = "cli"
        self._api_url = DEFAULT_API_URL
        self._token: str | None = None
        self._items: dict[str, dict[str, Any]] = {}
        self._status_checked = False

    async def resolve(self, arguments: list[str], target: str | None = None) -> str:
        """
        Resolve a field of a Bitwarden item.

        Args:
            arguments: ``[item_name]`` or ``[item_name, field]``
            target: Unused

        Returns:
            ``<item>_<field>=<value>``

        Raises:
            ProviderError: If the item or field cannot be resolved
        """
        item_name = arguments[0]
        field = arguments[1] if len(arguments) > 1 and arguments[1] else DEFAULT_FIELD

        if item_name not in self._items:
            if self._backend == "api":
                self._items[item_name] = await self._fetch_item_api(item_name, arguments)
            else:
                self._items[item_name] = await self._fetch_item_cli(item_name, arguments)

        value = extract_field(self._items[item_name], field)
        if value is None:
            raise self.error(f"Field '{field}' not found in item '{item_name}'", arguments)

        return self.pair(f"{item_name}_{field}", value)

    def missing_dependencies(self) -> list[str]:
        if self._backend == "api":
            return [] if module_available("aiohttp") else ["aiohttp"]
        return [] if shutil.which("bw") else ["bw"]

    async def _run_bw(self, *args: str) -> tuple[int, str, str]:
        """Run the bw CLI, returning exit code, stdout and stderr."""
        try:
            process = await asyncio.create_subprocess_exec(
                "bw",
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise self.error("Bitwarden CLI (bw) not installed") from exc

        stdout, stderr = await process.communicate()
        return process.returncode or 0, stdout.decode(), stderr.decode()

    async def _check_status(self, arguments: list[str]) -> None:
        """Make sure the CLI is logged in and unlocked (checked once per run)."""
        if self._status_checked:
            return

        code, stdout, _ = await self._run_bw("status")
        if code != 0:
            raise self.error("Not logged into Bitwarden. Run 'bw login' first.", arguments)

        try:
            status = json.loads(stdout).get("status")
        except (json.JSONDecodeError, AttributeError):
            status = None

        if status == "unauthenticated":
            raise self.error("Not logged into Bitwarden. Run 'bw login' first.", arguments)
        if status == "locked" and not os.environ.get("BW_SESSION"):
            raise self.error(
                "Bitwarden vault is locked. Run 'bw unlock --raw' and export BW_SESSION.",
                arguments,
            )

        self._status_checked = True

    async def _fetch_item_cli(self, item_name: str, arguments: list[str]) -> dict[str, Any]:
        """Fetch an item by name with ``bw get item``."""
        await self._check_status(arguments)

        code, stdout, stderr = await self._run_bw("get", "item", item_name)
        if code != 0:
            detail = (stderr or stdout).strip()
            raise self.error(f"Failed to get item '{item_name}': {detail}", arguments)

        try:
            item = json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise self.error(f"Invalid JSON returned for item '{item_name}'", arguments) from exc

        if not isinstance(item, dict):
            raise self.error(f"Item '{item_name}' not found in vault", arguments)

        return item

    async def _fetch_item_api(self, item_name: str, arguments: list[str]) -> dict[str, Any]:
        """Find an item by name in the REST item listing."""
        token = self._token or os.environ.get("BW_TOKEN")
        if not token:
            raise self.error(
                "BW_TOKEN environment variable not set. Get a session token with "
                "'bw unlock --raw' and export it as BW_TOKEN.",
                arguments,
            )

        payload = await self._fetch_items(token, arguments)

        if isinstance(payload, dict) and payload.get("errorCode"):
            message = payload.get("message") or "Unknown error"
            raise self.error(f"Bitwarden API returned error: {message}", arguments)

        items = payload.get("data", []) if isinstance(payload, dict) else []
        for item in items or []:
            if isinstance(item, dict) and item.get("name") == item_name:
                return item

        raise self.error(f"Item '{item_name}' not found in vault", arguments)

    async def _fetch_items(self, token: str, arguments: list[str]) -> Any:
        """GET the vault item listing."""
        try:
            import aiohttp
        except ImportError as exc:
            raise self.error(
                "aiohttp is required for the Bitwarden API backend", arguments
            ) from exc

        url = f"{self._api_url.rstrip('/')}/vault/items"

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Accept": "application/json",
                    },
                ) as response:
                    if response.status == 401:
                        raise self.error(
                            "Bitwarden API authentication failed - check BW_TOKEN", arguments
                        )
                    return await response.json(content_type=None)
        except aiohttp.ClientError as exc:
            raise self.error(
                f"Network failure while contacting Bitwarden API: {exc}", arguments
            ) from exc

    def configure(self, config: dict[str, Any]) -> None:
        """Configure the Bitwarden provider."""
        if "backend" in config:
            backend = str(config["backend"]).lower()
            if backend not in ("cli", "api"):
                raise self.error(f"Unknown Bitwarden backend '{backend}' (expected cli or api)")
            self._backend = backend
        if "api_url" in config:
            self._api_url = config["api_url"]
        if "token" in config:
            self._token = config["token"]

    async def close(self) -> None:
        """Clean up resources."""
        self._items.clear()
        self._status_checked = False


def create_provider() -> BitwardenProvider:
    """Factory function to create a BitwardenProvider instance."""
    return BitwardenProvider()
