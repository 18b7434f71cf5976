"""
Example custom provider for shh.

This example adds a provider for the standard Unix password manager
(``pass``). Drop this file into ``~/.config/shh/providers/`` and it is picked
up on the next run:

    shh -s pass:email/work=MAIL_PASSWORD -- mutt

Reference Format:
    pass:<entry>[:line]=TARGET   # line defaults to 1 (the password line)
"""

from __future__ import annotations

import asyncio
import shutil

from shh.providers import Provider, ProviderInfo, ProviderRegistry


class PassProvider(Provider):
    """
    Password-store provider.

    Runs ``pass show <entry>`` and returns one line of the decrypted entry.
    """

    info = ProviderInfo(
        name="pass",
        description="Unix password-store (pass) entries",
        version="1.0.0",
        author="shh contributors",
        usage="pass:<entry>[:line]",
    )

    required_commands = ("pass",)

    async def resolve(self, arguments: list[str], target: str | None = None) -> str:
        entry = arguments[0]
        line = arguments[1] if len(arguments) > 1 and arguments[1] else "1"

        if not line.isdigit() or int(line) < 1:
            raise self.error(f"Line must be a positive number, got '{line}'", arguments)

        code, stdout, stderr = await self._run_pass("show", entry)
        if code != 0:
            raise self.error(f"Failed to read entry '{entry}': {stderr.strip()}", arguments)

        lines = stdout.splitlines()
        if int(line) > len(lines):
            raise self.error(f"Entry '{entry}' has no line {line}", arguments)

        return self.pair(entry.replace('/', '_'), lines[int(line) - 1])

    async def _run_pass(self, *args: str) -> tuple[int, str, str]:
        if shutil.which("pass") is None:
            raise self.error("pass is not installed")

        process = await asyncio.create_subprocess_exec(
            "pass",
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        return process.returncode or 0, stdout.decode(), stderr.decode()


def register(registry: ProviderRegistry) -> None:
    """Register the provider with the registry."""
    registry.register(PassProvider)
